"""Upload API routes: presigned URLs and multipart sessions."""
from fastapi import APIRouter, Depends, Query

from drive.auth import get_current_user_id
from drive.schemas.upload import (
    DownloadUrlResponse,
    IncompleteUploadResponse,
    MultipartAbortRequest,
    MultipartCompleteRequest,
    MultipartCompleteResponse,
    MultipartInitRequest,
    MultipartInitResponse,
    ObjectKeyRequest,
    UploadUrlResponse,
)
from drive.services.multipart import UploadedPart
from drive.services.storage import StorageService, get_storage_service

router = APIRouter(prefix="/api/upload", tags=["upload"])


@router.post("/upload-url", response_model=UploadUrlResponse)
async def upload_url(
    body: ObjectKeyRequest,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Presigned PUT URL for a recorded file."""
    return {"upload_url": await service.upload_url(user_id, body.object_key)}


@router.post("/upload-multipart-url", response_model=MultipartInitResponse)
async def init_multipart_upload(
    body: MultipartInitRequest,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Open a multipart session and presign one URL per chunk."""
    session = await service.init_multipart_upload(user_id, body.object_key, body.total_chunks)
    return {
        "upload_id": session.upload_id,
        "file_id": session.file_id,
        "object_key": session.object_key,
        "part_urls": [{"part_number": p.part_number, "url": p.url} for p in session.part_urls],
    }


@router.post("/complete-multipart-upload", response_model=MultipartCompleteResponse)
async def complete_multipart_upload(
    body: MultipartCompleteRequest,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Assemble the uploaded parts into the final object."""
    parts = [UploadedPart(part_number=p.part_number, etag=p.e_tag) for p in body.parts]
    result = await service.complete_multipart_upload(user_id, body.object_key, body.upload_id, parts)
    return {"status": result["status"], "object_key": result["objectKey"], "etag": result["etag"]}


@router.post("/abort-multipart-upload")
async def abort_multipart_upload(
    body: MultipartAbortRequest,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Drop an unfinished session and the parts stored for it."""
    await service.abort_multipart_upload(user_id, body.object_key, body.upload_id)
    return {"aborted": True, "uploadId": body.upload_id}


@router.get("/incomplete", response_model=list[IncompleteUploadResponse])
async def list_incomplete_uploads(
    prefix: str = Query("", description="Object key prefix"),
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Multipart sessions still open in the caller's bucket."""
    return await service.list_incomplete_uploads(user_id, prefix)


@router.post("/download-url", response_model=DownloadUrlResponse)
async def download_url(
    body: ObjectKeyRequest,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Presigned GET URL for a recorded file."""
    return {"download_url": await service.download_url(user_id, body.object_key)}


@router.post("/common/upload-url", response_model=UploadUrlResponse)
async def common_upload_url(
    body: ObjectKeyRequest,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Presigned PUT URL into the shared bucket (avatars, etc.)."""
    return {"upload_url": await service.common_upload_url(body.object_key)}
