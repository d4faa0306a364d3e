"""Shared fixtures: in-memory SQLite database and a recording fake object store."""
import itertools

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from drive.models import Base
from drive.services.accounts import AccountService
from drive.services.errors import AlreadyExistsError, NotFoundError, StorageIOError
from drive.services.persistence import PersistenceGateway
from drive.services.storage import StorageService


class FakeObjectStore:
    """In-memory stand-in for ObjectStoreGateway that records every call."""

    def __init__(self):
        self.buckets: set[str] = set()
        self.deleted: list[tuple[str, str]] = []
        self.fail_delete_keys: set[str] = set()
        self.sessions: dict[str, dict] = {}
        self.completed: list[dict] = []
        self.calls: list[tuple] = []
        self._ids = itertools.count(1)

    async def bucket_exists(self, name):
        return name in self.buckets

    async def create_bucket(self, name):
        if name in self.buckets:
            raise AlreadyExistsError(f"Bucket {name} already exists")
        self.buckets.add(name)
        return name

    async def delete_bucket(self, name):
        self.buckets.discard(name)

    async def ensure_bucket(self, name):
        self.buckets.add(name)
        return name

    async def presigned_upload_url(self, bucket, key, ttl=None):
        self.calls.append(("presigned_upload_url", bucket, key, ttl))
        return f"https://s3.test/{bucket}/{key}?op=put&ttl={ttl}"

    async def presigned_download_url(self, bucket, key, ttl=None):
        self.calls.append(("presigned_download_url", bucket, key, ttl))
        return f"https://s3.test/{bucket}/{key}?op=get&ttl={ttl}"

    async def delete_object(self, bucket, key):
        if key in self.fail_delete_keys:
            raise StorageIOError(f"delete_object failed for {key}")
        self.deleted.append((bucket, key))
        return key

    async def initiate_multipart(self, bucket, key):
        upload_id = f"upload-{next(self._ids)}"
        self.sessions[upload_id] = {"bucket": bucket, "key": key}
        self.calls.append(("initiate_multipart", bucket, key))
        return upload_id

    async def presigned_part_url(self, bucket, key, upload_id, part_number, ttl=None):
        return f"https://s3.test/{bucket}/{key}?uploadId={upload_id}&partNumber={part_number}"

    async def complete_multipart(self, bucket, key, upload_id, ordered_parts):
        session = self.sessions.get(upload_id)
        if not session or session["key"] != key:
            raise NotFoundError("object or upload session not found (NoSuchUpload)")
        del self.sessions[upload_id]
        self.completed.append(
            {"bucket": bucket, "key": key, "upload_id": upload_id, "parts": ordered_parts}
        )
        return '"final-etag"'

    async def abort_multipart(self, bucket, key, upload_id):
        if upload_id not in self.sessions:
            raise NotFoundError("object or upload session not found (NoSuchUpload)")
        del self.sessions[upload_id]

    async def list_incomplete_uploads(self, bucket, prefix=""):
        return [
            {"key": s["key"], "upload_id": upload_id, "initiated": None}
            for upload_id, s in self.sessions.items()
            if s["bucket"] == bucket and s["key"].startswith(prefix)
        ]


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def object_store():
    return FakeObjectStore()


@pytest.fixture
def service(db, object_store):
    return StorageService(db, object_store, strict_quota=False)


@pytest.fixture
def accounts(db, object_store):
    return AccountService(PersistenceGateway(db), object_store)


@pytest.fixture
def make_user(accounts):
    counter = itertools.count(1)

    async def _make(quota=None, username=None):
        return await accounts.register(username or f"user{next(counter)}", quota)

    return _make


@pytest_asyncio.fixture
async def user(make_user):
    return await make_user()
