"""Folder request/response schemas."""
from typing import Optional
from datetime import datetime
from drive.schemas.base import CamelModel, CamelORMModel


class FolderCreate(CamelModel):
    name: str
    parent_id: Optional[int] = None


class FolderUpdate(CamelModel):
    name: str
    parent_id: Optional[int] = None


class FolderResponse(CamelORMModel):
    id: int
    name: str
    parent_id: Optional[int] = None
    user_id: int
    created_at: datetime
    updated_at: datetime


class DestinationResponse(FolderResponse):
    path: str


class FolderDeleteResponse(CamelModel):
    deleted: bool = True
    id: int
    deleted_files: list[int] = []
    deleted_folders: list[int] = []
