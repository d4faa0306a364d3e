"""Account provisioning: one bucket and one root folder per user."""
import logging
import re
from typing import Optional

from drive.config import settings
from drive.models import User
from drive.services.errors import (
    AlreadyExistsError,
    DriveError,
    InvalidNameError,
    InvalidOperationError,
    NotFoundError,
)
from drive.services.namespace import NamespaceTree
from drive.services.object_store import ObjectStoreGateway
from drive.services.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

# users.storage_quota_bytes is a signed BIGINT
MAX_QUOTA_BYTES = 2**63 - 1


def bucket_name_for(username: str, prefix: Optional[str] = None) -> str:
    """Derive an S3-safe bucket name from a username."""
    slug = re.sub(r"[^a-z0-9-]", "-", username.lower())
    slug = re.sub(r"--+", "-", slug).strip("-")
    if not slug:
        raise InvalidNameError("Username has no characters usable in a bucket name")
    return f"{settings.BUCKET_PREFIX if prefix is None else prefix}{slug}"[:63].rstrip("-")


class AccountService:
    def __init__(self, store: PersistenceGateway, object_store: ObjectStoreGateway):
        self.store = store
        self.object_store = object_store
        self.tree = NamespaceTree(store, object_store)

    async def register(self, username: str, storage_quota_bytes: Optional[int] = None) -> User:
        """Create the user's bucket, then the user row and its root folder in one commit."""
        username = username.strip()
        if not username:
            raise InvalidNameError("Username must not be empty")
        if storage_quota_bytes is not None and not 0 < storage_quota_bytes <= MAX_QUOTA_BYTES:
            raise InvalidOperationError(f"Storage quota must be between 1 and {MAX_QUOTA_BYTES} bytes")
        if await self.store.find_user_by_username(username):
            raise AlreadyExistsError("User already exists")
        bucket = bucket_name_for(username)
        await self.object_store.create_bucket(bucket)

        try:
            user = User(
                username=username,
                bucket_name=bucket,
                storage_quota_bytes=storage_quota_bytes or settings.DEFAULT_STORAGE_QUOTA_BYTES,
            )
            self.store.add(user)
            await self.store.flush()
            await self.tree.create_root(user.id)
            await self.store.commit()
        except Exception:
            await self.store.rollback()
            await self._discard_bucket(bucket)
            raise
        await self.store.refresh(user)
        logger.info(f"Registered user {user.id} '{username}' with bucket {bucket}")
        return user

    async def get_user(self, user_id: int) -> User:
        user = await self.store.get_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    async def _discard_bucket(self, bucket: str) -> None:
        """Drop a bucket whose user row never made it into the database."""
        try:
            await self.object_store.delete_bucket(bucket)
        except DriveError as e:
            logger.error(f"Could not remove bucket {bucket} after failed registration: {e}")
