from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.identity import IdentityGateway, get_identity_gateway
from portal.auth.jwt import get_current_user, require_roles
from portal.db import get_session
from portal.models import Team, UserProfile, UserRole
from portal.schemas.common import OperationResult
from portal.schemas.team import (
    CreateTeamRequest, CreateTeamInput, CreateTeamResult, InviteMemberRequest, InviteMemberInput,
    InviteMemberResult, InviteLinkResult, MentorDetails, ToggleTeamLockRequest, SetSihStatusRequest,
    TeamResponse
)
from portal.utils.problem_statement_utils import select_problem_statement
from portal.utils.team_utils import (
    create_team, invite_member, leave_team, get_team_invite_link, toggle_team_lock, nominate_team,
    set_sih_status, set_mentor_details, enroll_team_in_ssih
)

router = APIRouter(prefix="/teams", tags=["teams"])


async def get_led_team(
        team_id: str,
        current_user: UserProfile = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
) -> Team:
    """Команда, лидером которой является текущий пользователь"""
    team = await session.get(Team, team_id)
    if team is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Team not found.")
    if team.leader.get("uid") != current_user.uid:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the team leader can perform this action."
        )
    return team


@router.post("/create", response_model=CreateTeamResult)
async def create_new_team(
        data: CreateTeamRequest,
        current_user: UserProfile = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await create_team(session, CreateTeamInput(
        **data.model_dump(),
        leader_uid=current_user.uid,
        leader_email=current_user.email
    ))


@router.get("/my", response_model=TeamResponse)
async def get_my_team(
        current_user: UserProfile = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    team = await session.get(Team, current_user.team_id) if current_user.team_id else None
    if team is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="You are not currently on a team.")
    return team


@router.get("/", response_model=List[TeamResponse])
async def list_teams(
        _: UserProfile = Depends(require_roles(UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session)
):
    result = await session.execute(select(Team).order_by(Team.created_at))
    return result.scalars().all()


@router.post("/leave", response_model=OperationResult)
async def leave_my_team(
        current_user: UserProfile = Depends(get_current_user),
        background_tasks: BackgroundTasks = BackgroundTasks(),
        session: AsyncSession = Depends(get_session)
):
    return await leave_team(session, current_user.uid, background_tasks)


@router.post("/{team_id}/invite", response_model=InviteMemberResult)
async def invite_team_member(
        data: InviteMemberRequest,
        team: Team = Depends(get_led_team),
        session: AsyncSession = Depends(get_session),
        identity: IdentityGateway = Depends(get_identity_gateway)
):
    return await invite_member(session, identity, InviteMemberInput(
        **data.model_dump(),
        team_id=team.id,
        team_name=team.name
    ))


@router.get("/{team_id}/invite-link", response_model=InviteLinkResult)
async def team_invite_link(
        team: Team = Depends(get_led_team),
        session: AsyncSession = Depends(get_session)
):
    return await get_team_invite_link(session, team.id, team_name=team.name)


@router.post("/{team_id}/mentor", response_model=OperationResult)
async def save_mentor(
        team_id: str,
        data: MentorDetails,
        current_user: UserProfile = Depends(get_current_user),
        background_tasks: BackgroundTasks = BackgroundTasks(),
        session: AsyncSession = Depends(get_session)
):
    return await set_mentor_details(session, team_id, current_user.uid, data, background_tasks)


@router.post("/{team_id}/problem-statement/{problem_statement_id}", response_model=OperationResult)
async def choose_problem_statement(
        team_id: str,
        problem_statement_id: str,
        current_user: UserProfile = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await select_problem_statement(session, team_id, current_user.uid, problem_statement_id)


@router.post("/{team_id}/lock", response_model=OperationResult)
async def lock_team(
        team_id: str,
        data: ToggleTeamLockRequest,
        current_user: UserProfile = Depends(require_roles(UserRole.SPOC, UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session)
):
    return await toggle_team_lock(session, team_id, data.is_locked, actor=current_user)


@router.post("/{team_id}/ssih-enroll", response_model=OperationResult)
async def ssih_enroll(
        team_id: str,
        current_user: UserProfile = Depends(require_roles(UserRole.SPOC, UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session)
):
    return await enroll_team_in_ssih(session, team_id, actor=current_user)

@router.post("/{team_id}/nominate", response_model=OperationResult)
async def nominate(
        team_id: str,
        current_user: UserProfile = Depends(require_roles(UserRole.SPOC, UserRole.ADMIN)),
        background_tasks: BackgroundTasks = BackgroundTasks(),
        session: AsyncSession = Depends(get_session)
):
    return await nominate_team(session, team_id, actor=current_user, background_tasks=background_tasks)


@router.post("/{team_id}/sih-status", response_model=OperationResult)
async def update_sih_status(
        team_id: str,
        data: SetSihStatusRequest,
        _: UserProfile = Depends(require_roles(UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session)
):
    return await set_sih_status(session, team_id, data.status)
