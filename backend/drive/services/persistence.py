"""Persistence gateway: typed query specs translated into SQLAlchemy statements.

The namespace, quota and upload services describe what they want with the
small FolderQuery / FileQuery specs below and never build SQL themselves.
"""
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import Select, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from drive.models import FileRecord, Folder, User


@dataclass(frozen=True)
class FolderQuery:
    owner_id: int
    parent_id: Optional[int] = None
    root_only: bool = False
    name_equals: Optional[str] = None


@dataclass(frozen=True)
class FileQuery:
    owner_id: int
    folder_id: Optional[int] = None
    name_contains: Optional[str] = None
    object_key: Optional[str] = None


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _folder_statement(spec: FolderQuery) -> Select:
    stmt = select(Folder).where(Folder.user_id == spec.owner_id)
    if spec.root_only:
        stmt = stmt.where(Folder.parent_id.is_(None))
    elif spec.parent_id is not None:
        stmt = stmt.where(Folder.parent_id == spec.parent_id)
    if spec.name_equals is not None:
        stmt = stmt.where(Folder.name == spec.name_equals)
    return stmt


def _file_statement(spec: FileQuery) -> Select:
    stmt = select(FileRecord).where(FileRecord.user_id == spec.owner_id)
    if spec.folder_id is not None:
        stmt = stmt.where(FileRecord.folder_id == spec.folder_id)
    if spec.name_contains:
        stmt = stmt.where(
            FileRecord.name.ilike(f"%{_escape_like(spec.name_contains)}%", escape="\\")
        )
    if spec.object_key is not None:
        stmt = stmt.where(FileRecord.object_key == spec.object_key)
    return stmt


class PersistenceGateway:
    """Wraps one AsyncSession; one gateway per request."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ── Unit of work ─────────────────────────────────────────────

    def add(self, obj) -> None:
        self.db.add(obj)

    async def delete(self, obj) -> None:
        await self.db.delete(obj)

    async def flush(self) -> None:
        await self.db.flush()

    async def commit(self) -> None:
        await self.db.commit()

    async def rollback(self) -> None:
        await self.db.rollback()

    async def refresh(self, obj) -> None:
        await self.db.refresh(obj)

    # ── Users ────────────────────────────────────────────────────

    async def get_user(self, user_id: int, for_update: bool = False) -> Optional[User]:
        stmt = select(User).where(User.id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def find_user_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.username == username))
        return result.scalar_one_or_none()

    # ── Folders ──────────────────────────────────────────────────

    async def get_folder(self, owner_id: int, folder_id: int) -> Optional[Folder]:
        result = await self.db.execute(
            select(Folder).where(Folder.id == folder_id, Folder.user_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def get_root_folder(self, owner_id: int) -> Optional[Folder]:
        result = await self.db.execute(_folder_statement(FolderQuery(owner_id, root_only=True)))
        return result.scalars().first()

    async def find_folders(self, spec: FolderQuery) -> Sequence[Folder]:
        result = await self.db.execute(
            _folder_statement(spec).order_by(desc(Folder.created_at), desc(Folder.id))
        )
        return result.scalars().all()

    async def find_folders_page(
        self, spec: FolderQuery, offset: int, limit: int
    ) -> tuple[Sequence[Folder], int]:
        stmt = _folder_statement(spec)
        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery()))
        result = await self.db.execute(
            stmt.order_by(desc(Folder.created_at), desc(Folder.id)).offset(offset).limit(limit)
        )
        return result.scalars().all(), total or 0

    async def all_folders(self, owner_id: int) -> Sequence[Folder]:
        """Every folder of one user, loaded in a single query."""
        result = await self.db.execute(select(Folder).where(Folder.user_id == owner_id))
        return result.scalars().all()

    # ── Files ────────────────────────────────────────────────────

    async def get_file(self, owner_id: int, file_id: int) -> Optional[FileRecord]:
        result = await self.db.execute(
            select(FileRecord).where(FileRecord.id == file_id, FileRecord.user_id == owner_id)
        )
        return result.scalar_one_or_none()

    async def find_file_by_object_key(self, owner_id: int, object_key: str) -> Optional[FileRecord]:
        result = await self.db.execute(
            _file_statement(FileQuery(owner_id, object_key=object_key)).order_by(FileRecord.id)
        )
        return result.scalars().first()

    async def find_files(self, spec: FileQuery) -> Sequence[FileRecord]:
        result = await self.db.execute(
            _file_statement(spec).order_by(desc(FileRecord.created_at), desc(FileRecord.id))
        )
        return result.scalars().all()

    async def find_files_page(
        self, spec: FileQuery, offset: int, limit: int, order_by_updated: bool = False
    ) -> tuple[Sequence[FileRecord], int]:
        stmt = _file_statement(spec)
        total = await self.db.scalar(select(func.count()).select_from(stmt.subquery()))
        column = FileRecord.updated_at if order_by_updated else FileRecord.created_at
        result = await self.db.execute(
            stmt.order_by(desc(column), desc(FileRecord.id)).offset(offset).limit(limit)
        )
        return result.scalars().all(), total or 0

    # ── Aggregates ───────────────────────────────────────────────

    async def sum_file_sizes(
        self,
        owner_id: int,
        mime_prefix: Optional[str] = None,
        exclude_file_id: Optional[int] = None,
    ) -> int:
        """SUM(size) over a user's files, optionally limited to one MIME prefix."""
        stmt = select(func.coalesce(func.sum(FileRecord.size), 0)).where(
            FileRecord.user_id == owner_id
        )
        if mime_prefix is not None:
            stmt = stmt.where(FileRecord.mime_type.like(f"{_escape_like(mime_prefix)}%", escape="\\"))
        if exclude_file_id is not None:
            stmt = stmt.where(FileRecord.id != exclude_file_id)
        return int(await self.db.scalar(stmt) or 0)
