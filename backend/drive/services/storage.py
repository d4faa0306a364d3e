"""StorageService - the single entry point routes call into.

Wires the namespace tree, the quota ledger and the multipart coordinator to
one request's database session and the shared object store gateway. Every
public method is one use case and takes the authenticated user id explicitly.
"""
from typing import Iterable, Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from drive.config import settings
from drive.database import get_db
from drive.models import FileRecord, Folder, User
from drive.services.errors import NotFoundError
from drive.services.multipart import MultipartUploadCoordinator, UploadedPart, UploadSession
from drive.services.namespace import DeleteSummary, NamespaceTree
from drive.services.object_store import ObjectStoreGateway, get_object_store
from drive.services.pagination import Page
from drive.services.persistence import PersistenceGateway
from drive.services.quota import QuotaLedger, UsageReport


class StorageService:
    def __init__(
        self,
        db: AsyncSession,
        object_store: ObjectStoreGateway,
        strict_quota: Optional[bool] = None,
    ):
        self.store = PersistenceGateway(db)
        self.object_store = object_store
        self.tree = NamespaceTree(self.store, object_store)
        self.quota = QuotaLedger(self.store)
        self.uploads = MultipartUploadCoordinator(self.tree, self.quota, object_store)
        self.strict_quota = settings.STRICT_QUOTA if strict_quota is None else strict_quota

    async def _user(self, user_id: int) -> User:
        user = await self.store.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    # ── Folders ──────────────────────────────────────────────────

    async def create_folder(self, user_id: int, name: str, parent_id: Optional[int] = None) -> Folder:
        return await self.tree.create_folder(user_id, name, parent_id)

    async def get_folder(self, user_id: int, folder_id: int) -> Folder:
        return await self.tree.get_folder(user_id, folder_id)

    async def list_folders(
        self, user_id: int, parent_id: Optional[int] = None, page: int = 1, limit: int = 20
    ) -> Page[Folder]:
        return await self.tree.list_folders(user_id, parent_id, page, limit)

    async def update_folder(
        self, user_id: int, folder_id: int, name: str, parent_id: Optional[int] = None
    ) -> Folder:
        return await self.tree.rename_or_move_folder(user_id, folder_id, name, parent_id)

    async def delete_folder(self, user_id: int, folder_id: int) -> DeleteSummary:
        user = await self._user(user_id)
        return await self.tree.delete_folder(user_id, folder_id, user.bucket_name)

    async def list_children(self, user_id: int, folder_id: Optional[int] = None) -> list[Folder]:
        return list(await self.tree.list_children(user_id, folder_id))

    async def parent_tree(self, user_id: int, folder_id: Optional[int] = None) -> list[Folder]:
        return await self.tree.resolve_ancestry_path(user_id, folder_id)

    async def move_destinations(
        self, user_id: int, item_type: str, source_folder_id: Optional[int] = None
    ) -> list[tuple[Folder, str]]:
        return await self.tree.list_destinations(user_id, item_type, source_folder_id)

    async def list_contents(
        self, user_id: int, folder_id: Optional[int] = None, page: int = 1, limit: int = 20
    ) -> Page:
        return await self.tree.list_contents(user_id, folder_id, page, limit)

    async def list_tree(self, user_id: int, path: str = "/", page: int = 1, limit: int = 20) -> Page:
        return await self.tree.list_tree(user_id, path, page, limit)

    # ── Files ────────────────────────────────────────────────────

    async def create_file(
        self,
        user_id: int,
        name: str,
        object_key: str,
        size: int,
        folder_id: Optional[int] = None,
        mime_type: Optional[str] = None,
        path: Optional[str] = None,
    ) -> FileRecord:
        """Authorize the declared size, then record the file.

        Without strict quota the two steps are separate statements and
        concurrent requests can overshoot the quota together. With strict
        quota the user row stays locked until the insert commits.
        """
        await self.quota.authorize(user_id, size, lock=self.strict_quota)
        return await self.tree.create_file(
            user_id, name, object_key, size, folder_id=folder_id, mime_type=mime_type, path=path
        )

    async def get_file(self, user_id: int, file_id: int) -> FileRecord:
        return await self.tree.get_file(user_id, file_id)

    async def list_files(
        self, user_id: int, folder_id: Optional[int] = None, page: int = 1, limit: int = 20
    ) -> Page[FileRecord]:
        return await self.tree.list_files(user_id, folder_id, page, limit)

    async def update_file(
        self,
        user_id: int,
        file_id: int,
        name: Optional[str] = None,
        folder_id: Optional[int] = None,
    ) -> FileRecord:
        return await self.tree.rename_or_move_file(user_id, file_id, name, folder_id)

    async def delete_file(self, user_id: int, file_id: int) -> None:
        user = await self._user(user_id)
        await self.tree.delete_file(user_id, file_id, user.bucket_name)

    async def search_files(self, user_id: int, query: str, page: int = 1, limit: int = 20) -> Page[FileRecord]:
        return await self.tree.search(user_id, query, page, limit)

    # ── Uploads ──────────────────────────────────────────────────

    async def init_multipart_upload(self, user_id: int, object_key: str, total_chunks: int) -> UploadSession:
        return await self.uploads.initiate(await self._user(user_id), object_key, total_chunks)

    async def complete_multipart_upload(
        self, user_id: int, object_key: str, upload_id: str, parts: Iterable[UploadedPart]
    ) -> dict:
        return await self.uploads.complete(await self._user(user_id), object_key, upload_id, parts)

    async def abort_multipart_upload(self, user_id: int, object_key: str, upload_id: str) -> None:
        await self.uploads.abort(await self._user(user_id), object_key, upload_id)

    async def list_incomplete_uploads(self, user_id: int, prefix: str = "") -> list[dict]:
        return await self.uploads.list_incomplete(await self._user(user_id), prefix)

    async def upload_url(self, user_id: int, object_key: str) -> str:
        return await self.uploads.single_upload_url(await self._user(user_id), object_key)

    async def download_url(self, user_id: int, object_key: str) -> str:
        return await self.uploads.download_url(await self._user(user_id), object_key)

    async def common_upload_url(self, object_key: str) -> str:
        """Presigned PUT into the shared bucket (avatars and the like). No quota applies."""
        return await self.object_store.presigned_upload_url(settings.COMMON_BUCKET, object_key)

    # ── Quota ────────────────────────────────────────────────────

    async def usage_report(self, user_id: int) -> UsageReport:
        return await self.quota.usage_report(user_id)


def get_storage_service(
    db: AsyncSession = Depends(get_db),
    object_store: ObjectStoreGateway = Depends(get_object_store),
) -> StorageService:
    """FastAPI dependency building a StorageService for the current request."""
    return StorageService(db, object_store)
