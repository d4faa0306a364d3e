"""Upload request/response schemas."""
from typing import Optional
from datetime import datetime
from pydantic import Field
from drive.schemas.base import CamelModel


class ObjectKeyRequest(CamelModel):
    object_key: str


class MultipartInitRequest(CamelModel):
    object_key: str
    total_chunks: int = Field(..., ge=1)


class PartUrlResponse(CamelModel):
    part_number: int
    url: str


class MultipartInitResponse(CamelModel):
    upload_id: str
    file_id: int
    object_key: str
    part_urls: list[PartUrlResponse]


class UploadedPartSchema(CamelModel):
    part_number: int = Field(..., ge=1)
    e_tag: str


class MultipartCompleteRequest(CamelModel):
    object_key: str
    upload_id: str
    parts: list[UploadedPartSchema]


class MultipartCompleteResponse(CamelModel):
    status: str = "completed"
    object_key: str
    etag: str


class MultipartAbortRequest(CamelModel):
    object_key: str
    upload_id: str


class IncompleteUploadResponse(CamelModel):
    key: str
    upload_id: str
    initiated: Optional[datetime] = None


class UploadUrlResponse(CamelModel):
    upload_url: str


class DownloadUrlResponse(CamelModel):
    download_url: str
