import logging
from typing import Dict, List, Optional

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.identity import IdentityGateway
from portal.auth.utils import generate_password
from portal.errors import NotFoundError, ValidationError, DuplicateIdentityError, AccountNotFoundError
from portal.models import (
    Team, TeamInvite, UserProfile, UserRole, SpocStatus, SpocTeamAction, SpocRequestAction
)
from portal.schemas.common import OperationResult
from portal.schemas.team import InstituteTeamsResult, TeamResponse
from portal.schemas.user import CreateSpocInput, CreateSpocResult, RegisterSpocInput, UserProfileResponse
from portal.utils.activity_log import log_activity
from portal.utils.notifications import deliver, spoc_credentials_email, spoc_request_email
from portal.utils.operations import operation, chunked, IN_QUERY_CHUNK_SIZE
from portal.utils.team_utils import get_team, get_profile, get_profile_by_email, ensure_can_manage

logger = logging.getLogger(__name__)


async def _profiles_by_emails(session: AsyncSession, emails: List[str]) -> List[UserProfile]:
    profiles = []
    for part in chunked(emails, IN_QUERY_CHUNK_SIZE):
        result = await session.execute(select(UserProfile).where(UserProfile.email.in_(part)))
        profiles.extend(result.scalars().all())
    return profiles


async def _profiles_by_uids(session: AsyncSession, uids: List[str]) -> List[UserProfile]:
    profiles = []
    for part in chunked(uids, IN_QUERY_CHUNK_SIZE):
        result = await session.execute(select(UserProfile).where(UserProfile.uid.in_(part)))
        profiles.extend(result.scalars().all())
    return profiles


async def _remove_member(session: AsyncSession, team: Team, member_email: Optional[str]) -> OperationResult:
    if not member_email:
        raise ValidationError("Member email is required to remove a member.")

    member = team.find_member(email=member_email)
    if member is None:
        raise NotFoundError("Member not found in this team.")

    team.members = team.without_member(member)

    profile = await get_profile_by_email(session, member_email)
    if profile is not None and profile.team_id == team.id:
        profile.team_id = None
    elif profile is None:
        logger.warning(f"Профиль {member_email} не найден, из команды {team.id} удалена только запись")

    log_activity(session, "Member Removed", f"{member['name']} was removed from team \"{team.name}\" by SPOC.")
    await session.commit()

    return OperationResult(success=True, message=f"{member['name']} has been removed from the team.")


async def _delete_team(session: AsyncSession, team: Team) -> OperationResult:
    """
    Удаление команды: у лидера и всех участников очищается ссылка на команду
    и роль сбрасывается до member. Все записи фиксируются одним пакетом.
    """
    profiles = await _profiles_by_emails(session, team.roster_emails())

    # Профили, которые ссылаются на команду, но выпали из ее записи
    result = await session.execute(select(UserProfile).where(UserProfile.team_id == team.id))
    seen = {p.uid for p in profiles}
    profiles.extend(p for p in result.scalars().all() if p.uid not in seen)

    for profile in profiles:
        profile.team_id = None
        profile.role = UserRole.MEMBER.value

    await session.execute(delete(TeamInvite).where(TeamInvite.team_id == team.id))
    await session.delete(team)
    log_activity(session, "Team Deleted", f"Team \"{team.name}\" was deleted by SPOC.")
    await session.commit()

    logger.info(f"Команда {team.id} удалена, обновлено профилей: {len(profiles)}")
    return OperationResult(success=True, message=f"Team \"{team.name}\" has been deleted.")


@operation("manage team")
async def manage_team_by_spoc(
        session: AsyncSession,
        team_id: str,
        action: str,
        member_email: Optional[str] = None,
        actor: Optional[UserProfile] = None
) -> OperationResult:
    """
    Управление командой со стороны SPOC.

    :param action: "remove-member" (нужен member_email) или "delete-team"
    :param actor: профиль SPOC; команда должна принадлежать его институту
    """
    try:
        action = SpocTeamAction(action)
    except ValueError:
        raise ValidationError("Invalid action specified.")

    team = await get_team(session, team_id)
    ensure_can_manage(team, actor)

    if action == SpocTeamAction.REMOVE_MEMBER:
        return await _remove_member(session, team, member_email)
    return await _delete_team(session, team)


@operation("fetch institute teams", InstituteTeamsResult)
async def get_institute_teams(session: AsyncSession, institute: str) -> InstituteTeamsResult:
    """Команды института и профили всех их участников (uid -> профиль)"""
    result = await session.execute(
        select(Team).where(Team.institute == institute).order_by(Team.created_at)
    )
    teams = list(result.scalars().all())

    uids = []
    for team in teams:
        uids.extend(team.roster_uids())
    profiles = await _profiles_by_uids(session, list(dict.fromkeys(uids)))

    users: Dict[str, UserProfileResponse] = {
        p.uid: UserProfileResponse.model_validate(p) for p in profiles
    }
    return InstituteTeamsResult(
        success=True,
        message=f"Found {len(teams)} team(s).",
        teams=[TeamResponse.model_validate(t) for t in teams],
        users=users
    )


@operation("create SPOC", CreateSpocResult)
async def create_spoc(session: AsyncSession, identity: IdentityGateway, data: CreateSpocInput) -> CreateSpocResult:
    """Создание SPOC администратором: учетная запись, профиль и письмо с паролем"""
    if await get_profile_by_email(session, data.email):
        raise DuplicateIdentityError(data.email)

    password = generate_password()
    uid = await identity.create_account(data.email, password, data.name)

    session.add(UserProfile(
        uid=uid,
        role=UserRole.SPOC.value,
        name=data.name,
        email=data.email,
        institute=data.institute,
        contact_number=data.contact_number,
        spoc_status=SpocStatus.APPROVED.value,
        password_changed=False
    ))
    log_activity(session, "SPOC Created", f"SPOC account created for {data.name} ({data.institute}).")
    await session.commit()

    await deliver(data.email, *spoc_credentials_email(data.name, data.email, password, data.institute))

    return CreateSpocResult(
        success=True,
        message=f"SPOC account for {data.name} created. Credentials were sent to {data.email}.",
        uid=uid
    )


@operation("submit SPOC request", CreateSpocResult)
async def register_spoc(session: AsyncSession, identity: IdentityGateway, data: RegisterSpocInput) -> CreateSpocResult:
    """
    Заявка на роль SPOC. Учетная запись создается заблокированной и
    включается, когда администратор одобряет заявку.
    """
    if await get_profile_by_email(session, data.email):
        raise DuplicateIdentityError(data.email)

    result = await session.execute(select(UserProfile.email).where(UserProfile.role == UserRole.ADMIN.value))
    admin_emails = list(result.scalars().all())

    uid = await identity.create_account(data.email, data.password, data.name)
    await identity.set_disabled(uid, True)

    session.add(UserProfile(
        uid=uid,
        role=UserRole.SPOC.value,
        name=data.name,
        email=data.email,
        institute=data.institute,
        contact_number=data.contact_number,
        spoc_status=SpocStatus.PENDING.value,
        password_changed=True
    ))
    await session.commit()

    if not admin_emails:
        raise NotFoundError("Your request was saved, but no admin is available to review it.")
    await deliver(admin_emails, *spoc_request_email(data.name, data.email, data.institute))

    return CreateSpocResult(
        success=True,
        message="Your request has been submitted. You will be able to log in once an admin approves it.",
        uid=uid
    )


@operation("process SPOC request")
async def manage_spoc_request(session: AsyncSession, identity: IdentityGateway, uid: str, action: str) -> OperationResult:
    try:
        action = SpocRequestAction(action)
    except ValueError:
        raise ValidationError("Invalid action specified.")

    profile = await get_profile(session, uid)
    if profile.role != UserRole.SPOC.value or profile.spoc_status != SpocStatus.PENDING.value:
        raise ValidationError("There is no pending SPOC request for this user.")

    if action == SpocRequestAction.APPROVE:
        await identity.set_disabled(uid, False)
        profile.spoc_status = SpocStatus.APPROVED.value
        log_activity(session, "SPOC Approved", f"SPOC request of {profile.name} ({profile.institute}) approved.")
        await session.commit()
        return OperationResult(success=True, message=f"{profile.name} is now an approved SPOC.")

    name = profile.name
    await session.delete(profile)
    log_activity(session, "SPOC Rejected", f"SPOC request of {name} ({profile.institute}) rejected.")
    await session.commit()
    try:
        await identity.delete_account(uid)
    except AccountNotFoundError:
        logger.warning(f"Учетная запись {uid} уже удалена")
    return OperationResult(success=True, message=f"SPOC request of {name} has been rejected.")


async def list_spoc_requests(session: AsyncSession) -> List[UserProfile]:
    result = await session.execute(
        select(UserProfile).where(
            UserProfile.role == UserRole.SPOC.value,
            UserProfile.spoc_status == SpocStatus.PENDING.value
        ).order_by(UserProfile.created_at)
    )
    return list(result.scalars().all())
