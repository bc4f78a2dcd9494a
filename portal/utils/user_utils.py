import logging
from typing import Dict, List, Set

from fastapi import BackgroundTasks
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.identity import IdentityGateway
from portal.errors import AccountNotFoundError, DuplicateIdentityError, NotFoundError, ValidationError
from portal.models import Team, TeamInvite, UserProfile, UserRole
from portal.schemas.common import OperationResult
from portal.schemas.user import BulkDeleteUsersResult, MakeAdminResult, RegisterResult, UserRegister
from portal.utils.activity_log import log_activity
from portal.utils.notifications import notify, member_left_email
from portal.utils.operations import operation, chunked, IN_QUERY_CHUNK_SIZE, WRITE_BATCH_SIZE
from portal.utils.team_utils import get_profile, get_profile_by_email

logger = logging.getLogger(__name__)


async def _load_profiles(session: AsyncSession, uids: List[str]) -> Dict[str, UserProfile]:
    profiles = {}
    for part in chunked(uids, IN_QUERY_CHUNK_SIZE):
        result = await session.execute(select(UserProfile).where(UserProfile.uid.in_(part)))
        for profile in result.scalars().all():
            profiles[profile.uid] = profile
    return profiles


async def _load_teams(session: AsyncSession, team_ids: List[str]) -> List[Team]:
    teams = []
    for part in chunked(team_ids, IN_QUERY_CHUNK_SIZE):
        result = await session.execute(select(Team).where(Team.id.in_(part)))
        teams.extend(result.scalars().all())
    return teams


async def _cascade_delete_team(session: AsyncSession, team: Team, deleting: Set[str]) -> None:
    """
    Удаление команды лидера, который удаляется: у всех оставшихся участников
    очищается ссылка на команду. Фиксируется отдельным пакетом.
    """
    result = await session.execute(select(UserProfile).where(UserProfile.team_id == team.id))
    affected = {p.uid: p for p in result.scalars().all()}

    roster_uids = [uid for uid in team.roster_uids() if uid not in affected]
    affected.update(await _load_profiles(session, roster_uids))

    for uid, profile in affected.items():
        if uid not in deleting:
            profile.team_id = None
            if profile.role == UserRole.LEADER.value:
                profile.role = UserRole.MEMBER.value

    await session.execute(delete(TeamInvite).where(TeamInvite.team_id == team.id))
    await session.delete(team)
    await session.commit()
    logger.info(f"Команда {team.id} удалена вместе с лидером {team.leader.get('uid')}")


def _describe_skipped(profile: UserProfile) -> str:
    return f"{profile.name or profile.email} ({profile.role})"


@operation("delete users", BulkDeleteUsersResult)
async def bulk_delete_users(session: AsyncSession, identity: IdentityGateway, user_ids: List[str]) -> BulkDeleteUsersResult:
    """
    Массовое удаление пользователей администратором.

    Администраторы и SPOC пропускаются и попадают в отчет. Команды удаляемых
    лидеров удаляются каскадно. Профили удаляются пакетами, учетные записи по
    одной; отсутствующая учетная запись считается удаленной, прочие ошибки
    логируются и не прерывают удаление остальных. Общего отката нет: уже
    зафиксированные пакеты остаются в силе.
    """
    if not user_ids:
        raise ValidationError("No users selected for deletion.")

    uids = list(dict.fromkeys(user_ids))
    profiles = await _load_profiles(session, uids)

    skipped = [_describe_skipped(profiles[uid]) for uid in uids if uid in profiles and profiles[uid].is_protected]
    deletable = [uid for uid in uids if uid not in profiles or not profiles[uid].is_protected]
    deleting = set(deletable)

    # Команды удаляемых лидеров
    team_ids = list(dict.fromkeys(
        profiles[uid].team_id for uid in deletable
        if uid in profiles and profiles[uid].role == UserRole.LEADER.value and profiles[uid].team_id
    ))
    deleted_team_ids = set()
    for team in await _load_teams(session, team_ids):
        await _cascade_delete_team(session, team, deleting)
        deleted_team_ids.add(team.id)

    # Рядовые участники уцелевших команд убираются из их состава
    surviving_team_ids = list(dict.fromkeys(
        profiles[uid].team_id for uid in deletable
        if uid in profiles and profiles[uid].team_id and profiles[uid].team_id not in deleted_team_ids
    ))
    if surviving_team_ids:
        for team in await _load_teams(session, surviving_team_ids):
            team.members = [m for m in team.get_members() if m.get("uid") not in deleting]
        await session.commit()

    existing = [uid for uid in deletable if uid in profiles]
    for part in chunked(existing, WRITE_BATCH_SIZE):
        await session.execute(delete(UserProfile).where(UserProfile.uid.in_(part)))
        await session.commit()

    deleted_users = 0
    for uid in deletable:
        try:
            await identity.delete_account(uid)
            deleted_users += 1
        except AccountNotFoundError:
            deleted_users += 1
        except Exception as e:
            logger.error(f"Не удалось удалить учетную запись {uid}: {e}")

    message = f"Successfully deleted {deleted_users} user(s) and {len(deleted_team_ids)} team(s)."
    if skipped:
        message += f" Skipped {len(skipped)} protected account(s): {', '.join(skipped)}."
    logger.info(message)

    return BulkDeleteUsersResult(
        success=True,
        message=message,
        deleted_users=deleted_users,
        deleted_teams=len(deleted_team_ids),
        skipped=skipped
    )


@operation("delete user")
async def delete_user(
        session: AsyncSession,
        identity: IdentityGateway,
        uid: str,
        background_tasks: BackgroundTasks = None
) -> OperationResult:
    """Удаление одного пользователя вместе с учетной записью"""
    profile = await session.get(UserProfile, uid)

    if profile is None:
        await identity.delete_account(uid)
        return OperationResult(success=True, message="Orphaned account has been deleted.")

    if profile.is_protected:
        raise ValidationError("Admin and SPOC accounts cannot be deleted.")

    if profile.role == UserRole.LEADER.value and profile.team_id:
        raise ValidationError("This user leads a team. Delete the team before deleting the user.")

    team = await session.get(Team, profile.team_id) if profile.team_id else None
    if team is not None:
        member = team.find_member(uid=uid) or team.find_member(email=profile.email)
        if member:
            team.members = team.without_member(member)

    name = profile.name
    await session.delete(profile)
    log_activity(session, "User Deleted", f"User {name} ({profile.email}) was deleted.")
    await session.commit()

    try:
        await identity.delete_account(uid)
    except AccountNotFoundError:
        logger.warning(f"Учетная запись {uid} уже удалена")

    if team is not None:
        await notify(background_tasks, team.leader["email"], *member_left_email(team.leader["name"], team.name, name))

    return OperationResult(success=True, message=f"User {name} has been deleted.")


@operation("make admin", MakeAdminResult)
async def make_admin(session: AsyncSession, email: str) -> MakeAdminResult:
    profile = await get_profile_by_email(session, email)
    if profile is None:
        raise NotFoundError(f"No user found with email {email}.")
    if profile.team_id:
        raise ValidationError("This user is part of a team and cannot become an admin.")

    profile.role = UserRole.ADMIN.value
    await session.commit()
    return MakeAdminResult(success=True, message=f"{email} is now an admin.", uid=profile.uid)


async def list_users(session: AsyncSession, role: UserRole = None) -> List[UserProfile]:
    query = select(UserProfile).order_by(UserProfile.created_at)
    if role is not None:
        query = query.where(UserProfile.role == UserRole(role).value)
    result = await session.execute(query)
    return list(result.scalars().all())


@operation("change password")
async def change_password(session: AsyncSession, identity: IdentityGateway, uid: str, new_password: str) -> OperationResult:
    profile = await get_profile(session, uid)
    await identity.update_password(uid, new_password)
    profile.password_changed = True
    await session.commit()
    return OperationResult(success=True, message="Password updated successfully.")


@operation("register", RegisterResult)
async def register_user(session: AsyncSession, identity: IdentityGateway, data: UserRegister) -> RegisterResult:
    """Самостоятельная регистрация: учетная запись и профиль без команды"""
    email = data.email.lower()
    if await get_profile_by_email(session, email):
        raise DuplicateIdentityError(email)

    uid = await identity.create_account(email, data.password, data.name)
    session.add(UserProfile(
        uid=uid,
        role=UserRole.MEMBER.value,
        name=data.name,
        email=email,
        password_changed=True
    ))
    await session.commit()
    return RegisterResult(success=True, message="Registration successful. You can now create or join a team.", uid=uid)
