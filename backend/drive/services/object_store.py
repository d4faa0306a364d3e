"""S3-compatible object store gateway (MinIO for dev, AWS S3 for production).

boto3 is synchronous; every call is pushed to a worker thread with
asyncio.to_thread so a slow object store never stalls the event loop.
Presigned URLs expire on their own schedule, independent of the request that
issued them. Incomplete multipart sessions are not expired here either; that
is a bucket lifecycle policy on the object store side.
"""
import asyncio
import logging
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from drive.config import settings
from drive.services.errors import (
    AlreadyExistsError,
    NotFoundError,
    StorageIOError,
    UploadSessionError,
)

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"NoSuchUpload", "NoSuchKey", "NoSuchBucket", "404"}


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def translate_error(exc: Exception, action: str, multipart: bool = False) -> Exception:
    """Map a botocore failure onto the engine's error kinds."""
    if isinstance(exc, ClientError):
        code = _error_code(exc)
        if code in _NOT_FOUND_CODES:
            return NotFoundError(f"{action}: object or upload session not found ({code})")
        if code in ("BucketAlreadyExists", "BucketAlreadyOwnedByYou"):
            return AlreadyExistsError(f"{action}: bucket already exists")
    if multipart:
        return UploadSessionError(f"{action} failed: {exc}")
    return StorageIOError(f"{action} failed: {exc}")


class ObjectStoreGateway:
    """Thin async facade over a boto3 S3 client."""

    def __init__(
        self,
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region_name: Optional[str] = None,
        use_ssl: Optional[bool] = None,
        default_ttl: Optional[int] = None,
    ):
        self.region_name = region_name or settings.S3_REGION
        self.default_ttl = default_ttl or settings.PRESIGNED_URL_TTL_SECONDS
        client_kwargs: dict[str, Any] = {
            "region_name": self.region_name,
            "use_ssl": settings.S3_USE_SSL if use_ssl is None else use_ssl,
            "config": Config(signature_version="s3v4", s3={"addressing_style": "path"}),
        }
        endpoint = endpoint_url if endpoint_url is not None else settings.S3_ENDPOINT_URL
        if endpoint:
            client_kwargs["endpoint_url"] = endpoint
        access_key = access_key or settings.S3_ACCESS_KEY
        secret_key = secret_key or settings.S3_SECRET_KEY
        if access_key and secret_key:
            client_kwargs["aws_access_key_id"] = access_key
            client_kwargs["aws_secret_access_key"] = secret_key
        self._client = boto3.client("s3", **client_kwargs)

    async def _call(self, action: str, method: str, multipart: bool = False, **params):
        try:
            return await asyncio.to_thread(getattr(self._client, method), **params)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Object store {action} failed: {e}")
            raise translate_error(e, action, multipart=multipart) from e

    async def _presign(self, action: str, client_method: str, params: dict, ttl: Optional[int]) -> str:
        return await self._call(
            action,
            "generate_presigned_url",
            ClientMethod=client_method,
            Params=params,
            ExpiresIn=ttl or self.default_ttl,
        )

    # ── Buckets ──────────────────────────────────────────────────

    async def bucket_exists(self, name: str) -> bool:
        try:
            await asyncio.to_thread(self._client.head_bucket, Bucket=name)
            return True
        except ClientError as e:
            if _error_code(e) in _NOT_FOUND_CODES:
                return False
            raise translate_error(e, "head_bucket") from e
        except BotoCoreError as e:
            raise translate_error(e, "head_bucket") from e

    async def create_bucket(self, name: str) -> str:
        """Create a bucket. Fails with AlreadyExistsError if it is already there."""
        if await self.bucket_exists(name):
            raise AlreadyExistsError(f"Bucket {name} already exists")
        params: dict[str, Any] = {"Bucket": name}
        if self.region_name != "us-east-1":
            params["CreateBucketConfiguration"] = {"LocationConstraint": self.region_name}
        await self._call("create_bucket", "create_bucket", **params)
        logger.info(f"Created bucket {name}")
        return name

    async def delete_bucket(self, name: str) -> None:
        """Remove an empty bucket."""
        await self._call("delete_bucket", "delete_bucket", Bucket=name)
        logger.info(f"Deleted bucket {name}")

    async def ensure_bucket(self, name: str) -> str:
        """Create the bucket only if it is missing."""
        if not await self.bucket_exists(name):
            await self.create_bucket(name)
        return name

    # ── Single-shot objects ──────────────────────────────────────

    async def presigned_upload_url(self, bucket: str, key: str, ttl: Optional[int] = None) -> str:
        return await self._presign(
            "presign put_object", "put_object", {"Bucket": bucket, "Key": key}, ttl
        )

    async def presigned_download_url(self, bucket: str, key: str, ttl: Optional[int] = None) -> str:
        return await self._presign(
            "presign get_object", "get_object", {"Bucket": bucket, "Key": key}, ttl
        )

    async def delete_object(self, bucket: str, key: str) -> str:
        await self._call("delete_object", "delete_object", Bucket=bucket, Key=key)
        return key

    # ── Multipart ────────────────────────────────────────────────

    async def initiate_multipart(self, bucket: str, key: str) -> str:
        response = await self._call(
            "create_multipart_upload", "create_multipart_upload",
            multipart=True, Bucket=bucket, Key=key,
        )
        return response["UploadId"]

    async def presigned_part_url(
        self, bucket: str, key: str, upload_id: str, part_number: int, ttl: Optional[int] = None
    ) -> str:
        return await self._presign(
            "presign upload_part",
            "upload_part",
            {"Bucket": bucket, "Key": key, "UploadId": upload_id, "PartNumber": part_number},
            ttl,
        )

    async def complete_multipart(
        self, bucket: str, key: str, upload_id: str, ordered_parts: list[dict]
    ) -> str:
        """Complete an upload. ordered_parts must already be sorted by part number."""
        response = await self._call(
            "complete_multipart_upload", "complete_multipart_upload",
            multipart=True,
            Bucket=bucket,
            Key=key,
            UploadId=upload_id,
            MultipartUpload={
                "Parts": [
                    {"PartNumber": p["part_number"], "ETag": p["etag"]} for p in ordered_parts
                ]
            },
        )
        return response.get("ETag", "")

    async def abort_multipart(self, bucket: str, key: str, upload_id: str) -> None:
        await self._call(
            "abort_multipart_upload", "abort_multipart_upload",
            multipart=True, Bucket=bucket, Key=key, UploadId=upload_id,
        )

    async def list_incomplete_uploads(self, bucket: str, prefix: str = "") -> list[dict]:
        response = await self._call(
            "list_multipart_uploads", "list_multipart_uploads",
            multipart=True, Bucket=bucket, Prefix=prefix,
        )
        return [
            {
                "key": u["Key"],
                "upload_id": u["UploadId"],
                "initiated": u.get("Initiated"),
            }
            for u in response.get("Uploads", [])
        ]


object_store = ObjectStoreGateway()


def get_object_store() -> ObjectStoreGateway:
    """FastAPI dependency returning the shared gateway."""
    return object_store
