from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.jwt import get_current_user
from portal.db import get_session
from portal.models import UserProfile
from portal.schemas.common import OperationResult
from portal.schemas.team import InviteDetailsResult, PersonalDetails
from portal.utils.team_utils import get_invite_details, join_team_via_invite

router = APIRouter(prefix="/invites", tags=["invites"])


@router.get("/{invite_id}", response_model=InviteDetailsResult)
async def invite_details(invite_id: str, session: AsyncSession = Depends(get_session)):
    return await get_invite_details(session, invite_id)


@router.post("/{invite_id}/join", response_model=OperationResult)
async def join_team(
        invite_id: str,
        details: PersonalDetails,
        current_user: UserProfile = Depends(get_current_user),
        background_tasks: BackgroundTasks = BackgroundTasks(),
        session: AsyncSession = Depends(get_session)
):
    return await join_team_via_invite(session, invite_id, current_user.uid, details, background_tasks)
