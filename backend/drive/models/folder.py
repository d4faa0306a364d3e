"""Folder model - node of a user's namespace tree. parent_id is null only for the root."""
from sqlalchemy import String, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column
from drive.models.base import Base, TimestampMixin, UserMixin


class Folder(Base, TimestampMixin, UserMixin):
    __tablename__ = "folders"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    parent_id: Mapped[int | None] = mapped_column(
        ForeignKey("folders.id"), nullable=True, index=True
    )

    __table_args__ = (
        Index("idx_folders_user_parent", "user_id", "parent_id"),
    )

    @property
    def is_root(self) -> bool:
        return self.parent_id is None
