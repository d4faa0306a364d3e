"""Import all models so SQLAlchemy metadata knows about them."""
from drive.models.base import Base
from drive.models.user import User
from drive.models.folder import Folder
from drive.models.file_record import FileRecord

__all__ = ["Base", "User", "Folder", "FileRecord"]
