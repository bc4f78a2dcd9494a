from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.identity import IdentityGateway, get_identity_gateway
from portal.auth.jwt import require_roles
from portal.db import get_session
from portal.models import UserProfile, UserRole
from portal.schemas.common import OperationResult
from portal.schemas.team import InstituteTeamsResult, ManageTeamBySpocRequest
from portal.schemas.user import CreateSpocInput, CreateSpocResult, ManageSpocRequestInput, UserProfileResponse
from portal.utils.spoc_utils import (
    manage_team_by_spoc, get_institute_teams, create_spoc, manage_spoc_request, list_spoc_requests
)

router = APIRouter(prefix="/spoc", tags=["spoc"])


@router.get("/teams", response_model=InstituteTeamsResult)
async def institute_teams(
        institute: Optional[str] = Query(None, description="Только для администратора"),
        current_user: UserProfile = Depends(require_roles(UserRole.SPOC, UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session)
):
    if current_user.role == UserRole.SPOC.value:
        institute = current_user.institute
    if not institute:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Institute is required.")
    return await get_institute_teams(session, institute)


@router.post("/teams/{team_id}/manage", response_model=OperationResult)
async def manage_team(
        team_id: str,
        data: ManageTeamBySpocRequest,
        current_user: UserProfile = Depends(require_roles(UserRole.SPOC, UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session)
):
    return await manage_team_by_spoc(
        session, team_id, data.action, member_email=data.member_email, actor=current_user
    )


@router.post("/create", response_model=CreateSpocResult)
async def create_spoc_account(
        data: CreateSpocInput,
        _: UserProfile = Depends(require_roles(UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    return await create_spoc(session, identity, data)


@router.get("/requests", response_model=List[UserProfileResponse])
async def pending_requests(
        _: UserProfile = Depends(require_roles(UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session)
):
    return await list_spoc_requests(session)


@router.post("/requests", response_model=OperationResult)
async def process_request(
        data: ManageSpocRequestInput,
        _: UserProfile = Depends(require_roles(UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    return await manage_spoc_request(session, identity, data.uid, data.action)
