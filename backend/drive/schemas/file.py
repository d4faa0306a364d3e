"""File request/response schemas."""
from typing import Literal, Optional
from datetime import datetime
from pydantic import Field
from drive.schemas.base import CamelModel, CamelORMModel


class FileCreate(CamelModel):
    name: str
    object_key: str
    size: int = Field(..., ge=0, description="Declared size in bytes")
    folder_id: Optional[int] = None
    path: Optional[str] = Field(None, description="Folder path; mutually exclusive with folderId")
    mime_type: Optional[str] = None


class FileUpdate(CamelModel):
    name: Optional[str] = None
    folder_id: Optional[int] = None


class FileResponse(CamelORMModel):
    id: int
    name: str
    object_key: str
    folder_id: int
    size: int
    mime_type: Optional[str] = None
    user_id: int
    created_at: datetime
    updated_at: datetime


class ContentItemResponse(CamelORMModel):
    """One entry of a folder listing; folders and files share this shape."""
    type: Literal["folder", "file"]
    id: int
    name: str
    created_at: datetime
    updated_at: datetime
    parent_id: Optional[int] = None
    folder_id: Optional[int] = None
    object_key: Optional[str] = None
    size: Optional[int] = None
    mime_type: Optional[str] = None
