"""Users API routes: provisioning, profile and storage usage."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from drive.auth import get_current_user_id
from drive.database import get_db
from drive.schemas.user import UsageResponse, UserCreate, UserResponse
from drive.services.accounts import AccountService
from drive.services.object_store import ObjectStoreGateway, get_object_store
from drive.services.persistence import PersistenceGateway
from drive.services.storage import StorageService, get_storage_service

router = APIRouter(prefix="/api/users", tags=["users"])


def get_account_service(
    db: AsyncSession = Depends(get_db),
    object_store: ObjectStoreGateway = Depends(get_object_store),
) -> AccountService:
    return AccountService(PersistenceGateway(db), object_store)


@router.post("", response_model=UserResponse, status_code=201)
async def register_user(
    body: UserCreate,
    accounts: AccountService = Depends(get_account_service),
):
    """Provision a user: bucket, user row and root folder."""
    return await accounts.register(body.username, body.storage_quota_bytes)


@router.get("/me", response_model=UserResponse)
async def get_me(
    user_id: int = Depends(get_current_user_id),
    accounts: AccountService = Depends(get_account_service),
):
    return await accounts.get_user(user_id)


@router.get("/me/usage", response_model=UsageResponse)
async def get_usage(
    user_id: int = Depends(get_current_user_id),
    service: StorageService = Depends(get_storage_service),
):
    """Bytes used, split by image/video/audio/other, plus the quota."""
    report = await service.usage_report(user_id)
    return report.to_dict()
