"""User and usage schemas."""
from typing import Optional
from datetime import datetime
from pydantic import Field
from drive.schemas.base import CamelModel, CamelORMModel


class UserCreate(CamelModel):
    username: str = Field(..., min_length=1, max_length=150)
    storage_quota_bytes: Optional[int] = Field(None, gt=0, le=2**63 - 1)


class UserResponse(CamelORMModel):
    id: int
    username: str
    bucket_name: str
    storage_quota_bytes: int
    created_at: datetime


class UsageResponse(CamelModel):
    total: int
    images: int
    video: int
    audio: int
    other: int
    quota: int
