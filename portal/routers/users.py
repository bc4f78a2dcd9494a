from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.identity import IdentityGateway, get_identity_gateway
from portal.auth.jwt import require_roles
from portal.db import get_session
from portal.models import UserProfile, UserRole
from portal.schemas.common import OperationResult
from portal.schemas.user import (
    UserProfileResponse, BulkDeleteUsersRequest, BulkDeleteUsersResult, MakeAdminRequest, MakeAdminResult
)
from portal.utils.activity_log import get_recent_logs
from portal.utils.user_utils import bulk_delete_users, delete_user, make_admin, list_users

router = APIRouter(prefix="/users", tags=["users"])

admin_only = require_roles(UserRole.ADMIN)


@router.get("/", response_model=List[UserProfileResponse])
async def get_users(
        role: Optional[UserRole] = None,
        _: UserProfile = Depends(admin_only),
        session: AsyncSession = Depends(get_session)
):
    return await list_users(session, role)


@router.post("/bulk-delete", response_model=BulkDeleteUsersResult)
async def delete_users(
        data: BulkDeleteUsersRequest,
        _: UserProfile = Depends(admin_only),
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    return await bulk_delete_users(session, identity, data.user_ids)


@router.delete("/{uid}", response_model=OperationResult)
async def remove_user(
        uid: str,
        _: UserProfile = Depends(admin_only),
        background_tasks: BackgroundTasks = BackgroundTasks(),
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    return await delete_user(session, identity, uid, background_tasks)


@router.post("/make-admin", response_model=MakeAdminResult)
async def grant_admin(
        data: MakeAdminRequest,
        _: UserProfile = Depends(admin_only),
        session: AsyncSession = Depends(get_session)
):
    return await make_admin(session, data.email)


@router.get("/logs")
async def activity_logs(
        limit: int = 50,
        _: UserProfile = Depends(admin_only),
        session: AsyncSession = Depends(get_session)
):
    logs = await get_recent_logs(session, limit)
    return [
        {"id": log.id, "title": log.title, "message": log.message, "created_at": log.created_at}
        for log in logs
    ]
