"""Files API routes."""
from typing import Optional
from fastapi import APIRouter, Depends, Query

from drive.auth import get_current_user_id
from drive.routes.folders import content_item
from drive.schemas.base import DeleteResponse, PageResponse, to_page_response
from drive.schemas.file import ContentItemResponse, FileCreate, FileResponse, FileUpdate
from drive.services.storage import StorageService, get_storage_service

router = APIRouter(prefix="/api/files", tags=["files"])


@router.post("", response_model=FileResponse, status_code=201)
async def create_file(
    body: FileCreate,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Record a file's metadata. The declared size is checked against the quota."""
    return await service.create_file(
        user_id,
        body.name,
        body.object_key,
        body.size,
        folder_id=body.folder_id,
        mime_type=body.mime_type,
        path=body.path,
    )


@router.get("", response_model=PageResponse[FileResponse])
async def list_files(
    folder_id: Optional[int] = Query(None, alias="folderId"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """List files directly inside a folder, newest first."""
    result = await service.list_files(user_id, folder_id, page, limit)
    return to_page_response(result, FileResponse.model_validate)


@router.get("/search", response_model=PageResponse[FileResponse])
async def search_files(
    q: str = Query(..., description="Search query"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Search files by name, most recently updated first."""
    result = await service.search_files(user_id, q, page, limit)
    return to_page_response(result, FileResponse.model_validate)


@router.get("/tree", response_model=PageResponse[ContentItemResponse])
async def directory_tree(
    path: str = Query("/", description="Folder path (default: /)"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Non-recursive listing of the folder at a path."""
    result = await service.list_tree(user_id, path, page, limit)
    return to_page_response(result, content_item)


@router.get("/{file_id}", response_model=FileResponse)
async def get_file(
    file_id: int,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    return await service.get_file(user_id, file_id)


@router.put("/{file_id}", response_model=FileResponse)
async def update_file(
    file_id: int,
    body: FileUpdate,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Rename a file and/or move it to another folder."""
    return await service.update_file(user_id, file_id, body.name, body.folder_id)


@router.delete("/{file_id}", response_model=DeleteResponse)
async def delete_file(
    file_id: int,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Delete a file's object and its record."""
    await service.delete_file(user_id, file_id)
    return {"deleted": True, "id": file_id}
