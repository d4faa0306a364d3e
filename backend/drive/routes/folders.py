"""Folders API routes."""
from typing import Optional
from fastapi import APIRouter, Depends, Query

from drive.auth import get_current_user_id
from drive.models import FileRecord, Folder
from drive.schemas.base import PageResponse, to_page_response
from drive.schemas.file import ContentItemResponse
from drive.schemas.folder import (
    DestinationResponse,
    FolderCreate,
    FolderDeleteResponse,
    FolderResponse,
    FolderUpdate,
)
from drive.services.storage import StorageService, get_storage_service

router = APIRouter(prefix="/api/folders", tags=["folders"])


@router.post("", response_model=FolderResponse, status_code=201)
async def create_folder(
    body: FolderCreate,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Create a folder. Without parentId it goes under the root."""
    return await service.create_folder(user_id, body.name, body.parent_id)


@router.get("", response_model=PageResponse[FolderResponse])
async def list_folders(
    parent_id: Optional[int] = Query(None, alias="parentId"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """List direct subfolders of a folder, newest first."""
    result = await service.list_folders(user_id, parent_id, page, limit)
    return to_page_response(result, _folder_dict)


@router.get("/contents", response_model=PageResponse[ContentItemResponse])
async def list_contents(
    folder_id: Optional[int] = Query(None, alias="folderId"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Subfolders and files of a folder in one list, newest first."""
    result = await service.list_contents(user_id, folder_id, page, limit)
    return to_page_response(result, content_item)


@router.get("/parent-tree", response_model=list[FolderResponse])
async def parent_tree(
    folder_id: Optional[int] = Query(None, alias="folderId"),
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Ancestors of a folder, root first."""
    return await service.parent_tree(user_id, folder_id)


@router.get("/children", response_model=list[FolderResponse])
async def children(
    folder_id: Optional[int] = Query(None, alias="folderId"),
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Direct subfolders of a folder (root when omitted)."""
    return await service.list_children(user_id, folder_id)


@router.get("/move-destinations", response_model=list[DestinationResponse])
async def move_destinations(
    type: str = Query(..., description="Type of item being moved: 'file' or 'folder'"),
    source_folder_id: Optional[int] = Query(None, alias="sourceFolderId"),
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Folders an item can be moved into, sorted by path."""
    destinations = await service.move_destinations(user_id, type, source_folder_id)
    return [{**_folder_dict(folder), "path": path} for folder, path in destinations]


@router.get("/{folder_id}", response_model=FolderResponse)
async def get_folder(
    folder_id: int,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    return await service.get_folder(user_id, folder_id)


@router.put("/{folder_id}", response_model=FolderResponse)
async def update_folder(
    folder_id: int,
    body: FolderUpdate,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Rename a folder and optionally move it under another parent."""
    return await service.update_folder(user_id, folder_id, body.name, body.parent_id)


@router.delete("/{folder_id}", response_model=FolderDeleteResponse)
async def delete_folder(
    folder_id: int,
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Delete a folder with everything inside it."""
    summary = await service.delete_folder(user_id, folder_id)
    return {
        "deleted": True,
        "id": folder_id,
        "deleted_files": summary.deleted_files,
        "deleted_folders": summary.deleted_folders,
    }


def _folder_dict(folder: Folder) -> dict:
    return {
        "id": folder.id,
        "name": folder.name,
        "parent_id": folder.parent_id,
        "user_id": folder.user_id,
        "created_at": folder.created_at,
        "updated_at": folder.updated_at,
    }


def content_item(item) -> dict:
    """Tag a folder or file row for the mixed contents listing."""
    if isinstance(item, FileRecord):
        return {
            "type": "file",
            "id": item.id,
            "name": item.name,
            "created_at": item.created_at,
            "updated_at": item.updated_at,
            "folder_id": item.folder_id,
            "object_key": item.object_key,
            "size": item.size,
            "mime_type": item.mime_type,
        }
    return {"type": "folder", **_folder_dict(item)}
