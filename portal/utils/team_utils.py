import logging
from typing import List, Optional

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.identity import IdentityGateway
from portal.auth.utils import generate_password
from portal.db import new_id
from portal.errors import (
    NotFoundError, ValidationError, CapacityError, DuplicateNameError, TeamLockedError,
    PermissionDeniedError, DuplicateIdentityError, ExternalServiceError
)
from portal.models import (
    Team, TeamInvite, UserProfile, UserRole, SihSelectionStatus, leader_snapshot, member_snapshot
)
from portal.schemas.common import OperationResult
from portal.settings import settings
from portal.schemas.team import (
    CreateTeamInput, CreateTeamResult, AddMemberInput, InviteMemberInput, InviteMemberResult,
    InviteLinkResult, InviteDetailsResult, MentorDetails, PersonalDetails
)
from portal.utils.activity_log import log_activity
from portal.utils.notifications import (
    deliver, notify, new_member_email, member_left_email, team_credentials_email,
    nomination_email, mentor_update_email
)
from portal.utils.operations import operation

logger = logging.getLogger(__name__)

# Роли, которые не могут состоять в команде
NON_PARTICIPANT_ROLES = [UserRole.SPOC.value, UserRole.ADMIN.value, UserRole.JURY.value]


async def get_team(session: AsyncSession, team_id: str) -> Team:
    team = await session.get(Team, team_id)
    if team is None:
        raise NotFoundError(f"Team with ID {team_id} not found.")
    return team


async def get_profile(session: AsyncSession, uid: str) -> UserProfile:
    profile = await session.get(UserProfile, uid)
    if profile is None:
        raise NotFoundError("User not found.")
    return profile


async def get_profile_by_email(session: AsyncSession, email: str) -> Optional[UserProfile]:
    result = await session.execute(
        select(UserProfile).where(UserProfile.email == email.lower()).limit(1)
    )
    return result.scalar_one_or_none()


def ensure_unlocked(team: Team) -> None:
    if team.is_locked:
        raise TeamLockedError("This team is locked. Its roster can no longer be changed.")


def ensure_can_manage(team: Team, actor: Optional[UserProfile]) -> None:
    """SPOC управляет только командами своего института; администратор - любыми"""
    if actor is None or actor.role == UserRole.ADMIN.value:
        return
    if actor.role == UserRole.SPOC.value and actor.institute == team.institute:
        return
    raise PermissionDeniedError("You can only manage teams from your own institute.")


@operation("create team", CreateTeamResult)
async def create_team(session: AsyncSession, data: CreateTeamInput) -> CreateTeamResult:
    """
    Создание команды и назначение создателя лидером.

    Команда и обновление профиля лидера фиксируются одним пакетом. Уникальность
    имени проверяется запросом, а уникальный индекс на teams.name закрывает
    гонку двух одновременных созданий.
    """
    existing = await session.execute(
        select(Team.id).where(Team.name == data.team_name).limit(1)
    )
    if existing.scalar_one_or_none():
        raise DuplicateNameError("A team with this name already exists. Please choose another name.")

    leader = await get_profile(session, data.leader_uid)
    if leader.role in NON_PARTICIPANT_ROLES:
        raise ValidationError("Users with an admin, SPOC or jury role cannot create teams.")
    if leader.team_id:
        raise ValidationError("You are already part of a team.")

    team = Team(
        id=new_id(),
        name=data.team_name,
        leader=leader_snapshot(data.leader_uid, data.name, data.leader_email),
        institute=data.institute,
        department=data.department,
        category=data.category.value if data.category else None,
        members=[],
        is_locked=False
    )
    session.add(team)

    leader.role = UserRole.LEADER.value
    leader.team_id = team.id
    leader.name = data.name
    leader.gender = data.gender.value if data.gender else leader.gender
    leader.institute = data.institute
    leader.department = data.department
    leader.enrollment_number = data.enrollment_number
    leader.contact_number = data.contact_number
    leader.semester = data.semester
    leader.year_of_study = data.year_of_study
    leader.password_changed = True

    try:
        await session.commit()
    except IntegrityError:
        raise DuplicateNameError("A team with this name already exists. Please choose another name.")

    logger.info(f"Команда \"{team.name}\" ({team.id}) создана лидером {leader.uid}")
    return CreateTeamResult(
        success=True,
        message=f"Team \"{data.team_name}\" created successfully!",
        team_id=team.id
    )


@operation("add member to team")
async def add_member_to_team(
        session: AsyncSession,
        data: AddMemberInput,
        background_tasks: BackgroundTasks = None
) -> OperationResult:
    """Добавление уже зарегистрированного пользователя в команду"""
    team = await get_team(session, data.team_id)
    ensure_unlocked(team)
    if team.is_full():
        raise CapacityError("This team is already full.")

    user = await get_profile(session, data.user_id)
    if user.role in NON_PARTICIPANT_ROLES:
        raise ValidationError("Users with an admin, SPOC or jury role cannot be added to teams.")
    if user.team_id == team.id:
        raise ValidationError("You are already a member of this team.")
    if user.team_id:
        raise ValidationError("This user is already part of another team.")

    snapshot = member_snapshot(
        uid=data.user_id,
        name=data.name,
        email=data.email,
        enrollment_number=data.enrollment_number,
        contact_number=data.contact_number,
        gender=data.gender.value if data.gender else None,
        semester=data.semester,
        year_of_study=data.year_of_study
    )
    team.members = team.get_members() + [snapshot]
    user.team_id = team.id
    await session.commit()

    await notify(
        background_tasks, team.leader["email"], *new_member_email(team.leader["name"], team.name, snapshot)
    )

    return OperationResult(success=True, message=f"Successfully added {data.name} to {team.name}.")


@operation("invite member")
async def invite_member(session: AsyncSession, identity: IdentityGateway, data: InviteMemberInput) -> InviteMemberResult:
    """
    Приглашение нового участника: создает учетную запись с временным паролем,
    добавляет участника в команду и отправляет ему данные для входа.

    Учетная запись и членство в команде не откатываются, если письмо не ушло.
    """
    team = await get_team(session, data.team_id)
    ensure_unlocked(team)
    if team.is_full():
        raise CapacityError("This team is already full.")

    already_registered = (
        f"A user with email {data.member_email} is already registered. "
        f"Please check whether they are already part of a team."
    )
    if await get_profile_by_email(session, data.member_email):
        raise DuplicateIdentityError(data.member_email, already_registered)

    temp_password = generate_password()
    try:
        uid = await identity.create_account(data.member_email, temp_password, data.member_name)
    except DuplicateIdentityError:
        raise DuplicateIdentityError(data.member_email, already_registered)

    snapshot = member_snapshot(uid=uid, name=data.member_name, email=data.member_email)
    team.members = team.get_members() + [snapshot]
    session.add(UserProfile(
        uid=uid,
        role=UserRole.MEMBER.value,
        name=data.member_name,
        email=data.member_email,
        institute=team.institute,
        department=team.department,
        team_id=team.id,
        password_changed=False
    ))
    await session.commit()
    logger.info(f"{data.member_email} ({uid}) добавлен в команду {team.id} по приглашению")

    subject, body = team_credentials_email(data.member_name, data.member_email, temp_password, team.name)
    try:
        await deliver(data.member_email, subject, body)
    except ExternalServiceError as e:
        raise ExternalServiceError(
            f"{data.member_name} was added to the team, but the credentials email could not be sent: {e}"
        )

    return InviteMemberResult(
        success=True,
        message=f"{data.member_name} has been added to {team.name}. Login credentials were sent to {data.member_email}.",
        uid=uid
    )


@operation("leave team")
async def leave_team(session: AsyncSession, user_id: str, background_tasks: BackgroundTasks = None) -> OperationResult:
    user = await get_profile(session, user_id)

    if not user.team_id:
        raise ValidationError("You are not currently on a team.")

    if user.role == UserRole.LEADER.value:
        raise ValidationError(
            "Team leaders cannot leave their team. The team must be deleted by a SPOC or an Admin."
        )

    team = await session.get(Team, user.team_id)
    removed = None
    if team is not None:
        ensure_unlocked(team)
        removed = team.find_member(uid=user_id)
        if removed:
            team.members = team.without_member(removed)
            log_activity(session, "Member Left Team", f"{user.name} left team \"{team.name}\".")
    else:
        logger.warning(
            f"Пользователь {user_id} ссылается на несуществующую команду {user.team_id}, ссылка будет очищена"
        )

    user.team_id = None
    await session.commit()

    if removed:
        await notify(
            background_tasks, team.leader["email"], *member_left_email(team.leader["name"], team.name, user.name)
        )

    return OperationResult(success=True, message="You have successfully left the team.")


async def _find_invite(session: AsyncSession, team_id: str) -> Optional[TeamInvite]:
    result = await session.execute(
        select(TeamInvite).where(TeamInvite.team_id == team_id).limit(1)
    )
    return result.scalar_one_or_none()


@operation("get invite link", InviteLinkResult)
async def get_team_invite_link(
        session: AsyncSession,
        team_id: str,
        base_url: Optional[str] = None,
        team_name: Optional[str] = None
) -> InviteLinkResult:
    """
    Постоянная ссылка-приглашение в команду: существующая переиспользуется,
    иначе создается новая. Если параллельный запрос успел создать свою,
    уникальный индекс отклонит вторую вставку и вернется уже созданная.
    """
    team = await get_team(session, team_id)

    invite = await _find_invite(session, team_id)
    if invite is None:
        invite = TeamInvite(id=new_id(), team_id=team_id, team_name=team_name or team.name)
        session.add(invite)
        try:
            await session.commit()
            logger.info(f"Создано приглашение {invite.id} для команды {team_id}")
        except IntegrityError:
            await session.rollback()
            invite = await _find_invite(session, team_id)
            if invite is None:
                raise

    return InviteLinkResult(
        success=True,
        message="Invite link is ready.",
        invite_id=invite.id,
        invite_link=f"{(base_url or settings.base_url).rstrip('/')}/join/{invite.id}"
    )


@operation("get invite details", InviteDetailsResult)
async def get_invite_details(session: AsyncSession, invite_id: str) -> InviteDetailsResult:
    invite = await session.get(TeamInvite, invite_id)
    if invite is None:
        raise NotFoundError("This invitation is invalid or has expired.")

    team = await session.get(Team, invite.team_id)
    if team is None:
        raise NotFoundError("The team you are trying to join no longer exists.")

    return InviteDetailsResult(
        success=True,
        message="Invite details fetched successfully.",
        team_id=team.id,
        team_name=team.name,
        leader_name=team.leader["name"]
    )


@operation("join team")
async def join_team_via_invite(
        session: AsyncSession,
        invite_id: str,
        user_id: str,
        details: PersonalDetails,
        background_tasks: BackgroundTasks = None
) -> OperationResult:
    """Вступление в команду по ссылке-приглашению"""
    invite = await session.get(TeamInvite, invite_id)
    if invite is None:
        raise NotFoundError("This invitation is invalid or has expired.")
    user = await get_profile(session, user_id)

    return await add_member_to_team(session, AddMemberInput(
        user_id=user.uid,
        team_id=invite.team_id,
        email=user.email,
        **details.model_dump()
    ), background_tasks)


@operation("update team lock status")
async def toggle_team_lock(
        session: AsyncSession,
        team_id: str,
        is_locked: bool,
        actor: Optional[UserProfile] = None
) -> OperationResult:
    team = await get_team(session, team_id)
    ensure_can_manage(team, actor)
    team.is_locked = is_locked
    await session.commit()
    return OperationResult(
        success=True,
        message=f"Team has been successfully {'locked' if is_locked else 'unlocked'}."
    )


@operation("enroll team")
async def enroll_team_in_ssih(session: AsyncSession, team_id: str, actor: Optional[UserProfile] = None) -> OperationResult:
    """Отметка SPOC о том, что команда зарегистрирована в SIH"""
    team = await get_team(session, team_id)
    ensure_can_manage(team, actor)
    team.ssih_enrolled = True
    await session.commit()
    return OperationResult(success=True, message="Team successfully marked as enrolled in SIH 2025.")

@operation("nominate team")
async def nominate_team(
        session: AsyncSession,
        team_id: str,
        actor: Optional[UserProfile] = None,
        background_tasks: BackgroundTasks = None
) -> OperationResult:
    """Выдвижение команды институтом (SPOC)"""
    team = await get_team(session, team_id)
    ensure_can_manage(team, actor)
    if team.is_locked:
        raise ValidationError("Team is locked.")
    if team.sih_selection_status == SihSelectionStatus.UNIVERSITY.value:
        raise ValidationError("This team's nomination status has been finalized by an admin.")

    team.is_nominated = True
    team.sih_selection_status = SihSelectionStatus.INSTITUTE.value
    await session.commit()

    await notify(background_tasks, team.leader["email"], *nomination_email(team.leader["name"], team.name))
    return OperationResult(success=True, message=f"Team \"{team.name}\" has been nominated.")


@operation("update status")
async def set_sih_status(session: AsyncSession, team_id: str, status: SihSelectionStatus) -> OperationResult:
    team = await get_team(session, team_id)
    team.sih_selection_status = SihSelectionStatus(status).value
    team.is_nominated = True
    await session.commit()
    return OperationResult(success=True, message="Team SIH selection status updated successfully.")


@operation("save mentor details")
async def set_mentor_details(
        session: AsyncSession,
        team_id: str,
        leader_uid: str,
        mentor: MentorDetails,
        background_tasks: BackgroundTasks = None
) -> OperationResult:
    team = await get_team(session, team_id)

    if team.leader["uid"] != leader_uid:
        raise PermissionDeniedError("Only the team leader can update mentor details.")

    if not team.sih_selection_status:
        raise ValidationError("This team has not been nominated for SIH.")

    team.mentor = mentor.model_dump(mode="json")
    await session.commit()

    spoc_emails = await get_institute_spoc_emails(session, team.institute)
    if spoc_emails:
        await notify(background_tasks, spoc_emails, *mentor_update_email(team.name, team.mentor))

    return OperationResult(success=True, message="Mentor details have been successfully saved.")


async def get_institute_spoc_emails(session: AsyncSession, institute: Optional[str]) -> List[str]:
    if not institute:
        return []
    result = await session.execute(
        select(UserProfile.email).where(
            UserProfile.role == UserRole.SPOC.value,
            UserProfile.institute == institute
        )
    )
    return list(result.scalars().all())
