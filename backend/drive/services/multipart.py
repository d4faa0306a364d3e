"""Chunked upload sessions against the object store.

A session goes Initiated -> (parts PUT directly by the client) -> Completed,
or -> Aborted. Part uploads never pass through this service, so the only
state kept here is what the object store itself keeps. Sessions the client
abandons stay open until aborted or until a bucket lifecycle rule expires
them.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from drive.config import settings
from drive.models import User
from drive.services.errors import InvalidOperationError
from drive.services.namespace import NamespaceTree
from drive.services.object_store import ObjectStoreGateway
from drive.services.quota import QuotaLedger

logger = logging.getLogger(__name__)


@dataclass
class PartUrl:
    part_number: int
    url: str


@dataclass
class UploadSession:
    upload_id: str
    file_id: int
    object_key: str
    part_urls: list[PartUrl]


@dataclass
class UploadedPart:
    part_number: int
    etag: str


def order_parts(parts: Iterable[UploadedPart]) -> list[dict]:
    """Sort parts by part number, the order the object store assembles them in."""
    ordered = sorted(parts, key=lambda p: p.part_number)
    numbers = [p.part_number for p in ordered]
    if any(n < 1 for n in numbers):
        raise InvalidOperationError("Part numbers start at 1")
    if len(set(numbers)) != len(numbers):
        raise InvalidOperationError("Duplicate part numbers")
    return [{"part_number": p.part_number, "etag": p.etag} for p in ordered]


class MultipartUploadCoordinator:
    def __init__(
        self,
        tree: NamespaceTree,
        quota: QuotaLedger,
        object_store: ObjectStoreGateway,
        url_ttl: Optional[int] = None,
    ):
        self.tree = tree
        self.quota = quota
        self.object_store = object_store
        self.url_ttl = url_ttl or settings.PRESIGNED_URL_TTL_SECONDS

    async def initiate(self, user: User, object_key: str, total_chunks: int) -> UploadSession:
        """Open a multipart session for an already recorded file.

        Quota is checked against the file's declared size, with the file's
        own row left out of the usage sum.
        """
        if total_chunks < 1 or total_chunks > settings.MAX_MULTIPART_PARTS:
            raise InvalidOperationError(
                f"totalChunks must be between 1 and {settings.MAX_MULTIPART_PARTS}"
            )
        file = await self.tree.get_file_by_object_key(user.id, object_key)
        await self.quota.authorize(user.id, file.size, exclude_file_id=file.id)

        upload_id = await self.object_store.initiate_multipart(user.bucket_name, object_key)
        part_urls = []
        for part_number in range(1, total_chunks + 1):
            url = await self.object_store.presigned_part_url(
                user.bucket_name, object_key, upload_id, part_number, ttl=self.url_ttl
            )
            part_urls.append(PartUrl(part_number=part_number, url=url))

        logger.info(
            f"Initiated multipart upload {upload_id} for {object_key} "
            f"({total_chunks} parts, user {user.id})"
        )
        return UploadSession(
            upload_id=upload_id, file_id=file.id, object_key=object_key, part_urls=part_urls
        )

    async def complete(
        self, user: User, object_key: str, upload_id: str, parts: Iterable[UploadedPart]
    ) -> dict:
        parts = list(parts)
        if not parts:
            raise InvalidOperationError("At least one part is required")
        await self.tree.get_file_by_object_key(user.id, object_key)
        etag = await self.object_store.complete_multipart(
            user.bucket_name, object_key, upload_id, order_parts(parts)
        )
        logger.info(f"Completed multipart upload {upload_id} for {object_key}")
        return {"status": "completed", "objectKey": object_key, "etag": etag}

    async def abort(self, user: User, object_key: str, upload_id: str) -> None:
        await self.tree.get_file_by_object_key(user.id, object_key)
        await self.object_store.abort_multipart(user.bucket_name, object_key, upload_id)
        logger.info(f"Aborted multipart upload {upload_id} for {object_key}")

    async def list_incomplete(self, user: User, prefix: str = "") -> list[dict]:
        return await self.object_store.list_incomplete_uploads(user.bucket_name, prefix)

    async def single_upload_url(self, user: User, object_key: str) -> str:
        file = await self.tree.get_file_by_object_key(user.id, object_key)
        await self.quota.authorize(user.id, file.size, exclude_file_id=file.id)
        return await self.object_store.presigned_upload_url(
            user.bucket_name, object_key, ttl=self.url_ttl
        )

    async def download_url(self, user: User, object_key: str) -> str:
        await self.tree.get_file_by_object_key(user.id, object_key)
        return await self.object_store.presigned_download_url(
            user.bucket_name, object_key, ttl=self.url_ttl
        )
