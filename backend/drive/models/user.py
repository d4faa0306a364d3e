"""User model - account owning one bucket and one namespace tree."""
from sqlalchemy import String, BigInteger
from sqlalchemy.orm import Mapped, mapped_column
from drive.config import settings
from drive.models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(150), nullable=False, unique=True)
    bucket_name: Mapped[str] = mapped_column(String(63), nullable=False, unique=True)
    storage_quota_bytes: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=lambda: settings.DEFAULT_STORAGE_QUOTA_BYTES
    )
