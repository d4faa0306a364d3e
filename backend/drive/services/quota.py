"""Quota ledger: per-user storage usage and write authorization.

Usage is always recomputed with an aggregate SUM over the user's file rows;
nothing is cached, so the number is correct after any sequence of creates and
deletes.

authorize() is a precondition check, not a reservation. Unless the caller
asks for a row lock (STRICT_QUOTA), two concurrent writers can both pass the
check against a nearly full quota and overshoot it together.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Optional

from drive.services.errors import InvalidOperationError, NotFoundError, QuotaExceededError
from drive.services.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

MIME_BUCKETS = {
    "images": "image/",
    "video": "video/",
    "audio": "audio/",
}


@dataclass
class UsageReport:
    total: int
    images: int
    video: int
    audio: int
    other: int
    quota: int

    def to_dict(self) -> dict:
        return asdict(self)


class QuotaLedger:
    def __init__(self, store: PersistenceGateway):
        self.store = store

    async def quota_for(self, user_id: int, lock: bool = False) -> int:
        user = await self.store.get_user(user_id, for_update=lock)
        if not user:
            raise NotFoundError("User not found")
        return user.storage_quota_bytes

    async def current_usage(self, user_id: int, exclude_file_id: Optional[int] = None) -> int:
        return await self.store.sum_file_sizes(user_id, exclude_file_id=exclude_file_id)

    async def authorize(
        self,
        user_id: int,
        additional_bytes: int,
        exclude_file_id: Optional[int] = None,
        lock: bool = False,
    ) -> None:
        """Raise QuotaExceededError if usage + additional_bytes would pass the quota.

        Landing exactly on the quota is allowed. exclude_file_id leaves one
        existing row out of the usage sum, for checks made on behalf of a file
        that is already recorded. lock=True takes a FOR UPDATE lock on the
        user row, held until the caller's transaction ends.
        """
        if additional_bytes < 0:
            raise InvalidOperationError("Size must not be negative")
        quota = await self.quota_for(user_id, lock=lock)
        usage = await self.current_usage(user_id, exclude_file_id=exclude_file_id)
        if usage + additional_bytes > quota:
            logger.warning(
                f"Quota denied for user {user_id}: {usage} + {additional_bytes} > {quota}"
            )
            raise QuotaExceededError(usage=usage, requested=additional_bytes, quota=quota)

    async def usage_report(self, user_id: int) -> UsageReport:
        quota = await self.quota_for(user_id)
        total = await self.store.sum_file_sizes(user_id)
        by_kind = {
            kind: await self.store.sum_file_sizes(user_id, mime_prefix=prefix)
            for kind, prefix in MIME_BUCKETS.items()
        }
        return UsageReport(
            total=total,
            other=total - sum(by_kind.values()),
            quota=quota,
            **by_kind,
        )
