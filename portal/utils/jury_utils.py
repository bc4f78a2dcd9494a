import logging
from typing import List, Optional

from sqlalchemy import select, update, delete
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.identity import IdentityGateway
from portal.auth.utils import generate_password
from portal.db import new_id
from portal.errors import AccountNotFoundError, DuplicateIdentityError, NotFoundError, ValidationError
from portal.models import JuryPanel, Team, UserProfile, UserRole, PanelStatus, jury_member_snapshot
from portal.schemas.common import OperationResult
from portal.schemas.jury import CreateJuryPanelInput, CreateJuryPanelResult, JuryMemberInput, UpdateJuryPanelInput
from portal.utils.activity_log import log_activity
from portal.utils.notifications import deliver, jury_credentials_email
from portal.utils.operations import operation, Compensation
from portal.utils.team_utils import get_team, get_profile_by_email

logger = logging.getLogger(__name__)


def _duplicate_jury_email(email: str) -> DuplicateIdentityError:
    return DuplicateIdentityError(
        email, f'A user with email "{email}" already exists. All jury members must have new accounts.'
    )


def _ensure_unique_emails(members: List[JuryMemberInput]) -> None:
    emails = [m.email.lower() for m in members]
    if len(emails) != len(set(emails)):
        raise ValidationError("Each jury member must have a unique email.")


async def get_panel(session: AsyncSession, panel_id: str) -> JuryPanel:
    panel = await session.get(JuryPanel, panel_id)
    if panel is None:
        raise NotFoundError(f"Jury panel with ID {panel_id} not found.")
    return panel


async def _delete_profile(session: AsyncSession, uid: str) -> None:
    await session.execute(delete(UserProfile).where(UserProfile.uid == uid))
    await session.commit()


async def _provision_member(
        session: AsyncSession,
        identity: IdentityGateway,
        member: JuryMemberInput,
        panel_id: str,
        panel_name: str,
        compensation: Compensation
) -> dict:
    """
    Учетная запись, профиль жюри и письмо с паролем для одного участника панели.
    Созданные ресурсы добавляются в compensation.
    """
    if await get_profile_by_email(session, member.email):
        raise _duplicate_jury_email(member.email)

    password = generate_password()
    try:
        uid = await identity.create_account(member.email, password, member.name)
    except DuplicateIdentityError:
        raise _duplicate_jury_email(member.email)
    compensation.push(f"delete account {member.email}", lambda: identity.delete_account(uid))

    session.add(UserProfile(
        uid=uid,
        role=UserRole.JURY.value,
        name=member.name,
        email=member.email,
        institute=member.institute,
        department=member.department,
        contact_number=member.contact_number,
        highest_qualification=member.highest_qualification,
        experience=member.experience,
        panel_id=panel_id,
        password_changed=False
    ))
    await session.commit()
    compensation.push(f"delete profile {uid}", lambda: _delete_profile(session, uid))

    await deliver(member.email, *jury_credentials_email(member.name, member.email, password, panel_name))
    return jury_member_snapshot(uid, member.name, member.email)


async def _undo(session: AsyncSession, compensation: Compensation, panel_name: str) -> None:
    await session.rollback()
    steps = len(compensation)
    undone = await compensation.run()
    logger.warning(f"Панель \"{panel_name}\": откат созданных ресурсов, выполнено {undone} из {steps}")


@operation("create jury panel", CreateJuryPanelResult)
async def create_jury_panel(
        session: AsyncSession,
        identity: IdentityGateway,
        data: CreateJuryPanelInput
) -> CreateJuryPanelResult:
    """
    Создание панели жюри.

    Черновик сохраняет исходные данные участников без учетных записей.
    Иначе учетные записи создаются сразу; если любой участник не создан,
    все созданные в этом вызове учетные записи и профили удаляются.
    """
    _ensure_unique_emails(data.jury_members)

    if data.is_draft:
        panel = JuryPanel(
            id=new_id(),
            name=data.panel_name,
            status=PanelStatus.DRAFT.value,
            members=[m.model_dump(mode="json") for m in data.jury_members],
            student_coordinator_name=data.student_coordinator_name,
            student_coordinator_contact=data.student_coordinator_contact
        )
        session.add(panel)
        await session.commit()
        return CreateJuryPanelResult(
            success=True,
            message=f"Draft panel \"{data.panel_name}\" saved.",
            panel_id=panel.id
        )

    panel_id = new_id()
    compensation = Compensation()
    try:
        finalized = []
        for member in data.jury_members:
            finalized.append(
                await _provision_member(session, identity, member, panel_id, data.panel_name, compensation)
            )

        session.add(JuryPanel(
            id=panel_id,
            name=data.panel_name,
            status=PanelStatus.ACTIVE.value,
            members=finalized,
            student_coordinator_name=data.student_coordinator_name,
            student_coordinator_contact=data.student_coordinator_contact
        ))
        log_activity(session, "Jury Panel Created", f"Panel \"{data.panel_name}\" created with {len(finalized)} member(s).")
        await session.commit()
    except Exception:
        await _undo(session, compensation, data.panel_name)
        raise

    return CreateJuryPanelResult(
        success=True,
        message=f"Panel \"{data.panel_name}\" created and credentials sent to {len(finalized)} jury member(s).",
        panel_id=panel_id
    )


@operation("finalize jury panel", CreateJuryPanelResult)
async def finalize_jury_panel(session: AsyncSession, identity: IdentityGateway, panel_id: str) -> CreateJuryPanelResult:
    panel = await get_panel(session, panel_id)
    if not panel.is_draft:
        raise ValidationError("This panel has already been finalized.")

    panel_name = panel.name
    members = [JuryMemberInput(**m) for m in panel.members or []]
    if not members:
        raise ValidationError("A panel must have at least one jury member.")
    _ensure_unique_emails(members)

    compensation = Compensation()
    try:
        finalized = []
        for member in members:
            finalized.append(
                await _provision_member(session, identity, member, panel_id, panel_name, compensation)
            )

        panel.status = PanelStatus.ACTIVE.value
        panel.members = finalized
        log_activity(session, "Jury Panel Finalized", f"Panel \"{panel_name}\" finalized.")
        await session.commit()
    except Exception:
        await _undo(session, compensation, panel_name)
        raise

    return CreateJuryPanelResult(
        success=True,
        message=f"Panel \"{panel_name}\" has been finalized and credentials were sent.",
        panel_id=panel_id
    )


async def _delete_accounts(identity: IdentityGateway, uids: List[str]) -> None:
    for uid in uids:
        try:
            await identity.delete_account(uid)
        except AccountNotFoundError:
            logger.info(f"Учетная запись {uid} уже отсутствует")
        except Exception as e:
            logger.error(f"Не удалось удалить учетную запись жюри {uid}: {e}")


@operation("update jury panel")
async def update_jury_panel(
        session: AsyncSession,
        identity: IdentityGateway,
        panel_id: str,
        data: UpdateJuryPanelInput
) -> OperationResult:
    """
    Изменение панели. У утвержденной панели исключенные участники теряют
    профиль и учетную запись, новые получают их так же, как при создании.
    """
    panel = await get_panel(session, panel_id)
    _ensure_unique_emails(data.jury_members)

    if panel.is_draft:
        panel.name = data.panel_name
        panel.members = [m.model_dump(mode="json") for m in data.jury_members]
        panel.student_coordinator_name = data.student_coordinator_name
        panel.student_coordinator_contact = data.student_coordinator_contact
        await session.commit()
        return OperationResult(success=True, message=f"Draft panel \"{data.panel_name}\" updated.")

    current = {m["uid"]: m for m in panel.members or [] if m.get("uid")}
    kept = [m for m in data.jury_members if m.uid and m.uid in current]
    added = [m for m in data.jury_members if not m.uid or m.uid not in current]
    kept_uids = {m.uid for m in kept}
    removed_uids = [uid for uid in current if uid not in kept_uids]

    compensation = Compensation()
    try:
        new_snapshots = []
        for member in added:
            new_snapshots.append(
                await _provision_member(session, identity, member, panel_id, data.panel_name, compensation)
            )

        for member in kept:
            profile = await session.get(UserProfile, member.uid)
            if profile is not None:
                profile.name = member.name
                profile.institute = member.institute
                profile.department = member.department
                profile.contact_number = member.contact_number
                profile.highest_qualification = member.highest_qualification
                profile.experience = member.experience

        if removed_uids:
            await session.execute(delete(UserProfile).where(UserProfile.uid.in_(removed_uids)))

        panel.name = data.panel_name
        panel.members = [jury_member_snapshot(m.uid, m.name, current[m.uid]["email"]) for m in kept] + new_snapshots
        panel.student_coordinator_name = data.student_coordinator_name
        panel.student_coordinator_contact = data.student_coordinator_contact
        await session.commit()
    except Exception:
        await _undo(session, compensation, data.panel_name)
        raise

    await _delete_accounts(identity, removed_uids)

    return OperationResult(
        success=True,
        message=f"Panel \"{data.panel_name}\" updated: {len(added)} added, {len(removed_uids)} removed."
    )


@operation("delete jury panel")
async def delete_jury_panel(session: AsyncSession, identity: IdentityGateway, panel_id: str) -> OperationResult:
    panel = await get_panel(session, panel_id)
    panel_name = panel.name

    result = await session.execute(select(UserProfile.uid).where(UserProfile.panel_id == panel_id))
    member_uids = list(dict.fromkeys(panel.member_uids() + list(result.scalars().all())))

    await session.execute(update(Team).where(Team.panel_id == panel_id).values(panel_id=None))
    if member_uids:
        await session.execute(delete(UserProfile).where(UserProfile.uid.in_(member_uids)))
    await session.delete(panel)
    log_activity(session, "Jury Panel Deleted", f"Panel \"{panel_name}\" deleted.")
    await session.commit()

    await _delete_accounts(identity, member_uids)

    return OperationResult(success=True, message=f"Panel \"{panel_name}\" and its jury accounts have been deleted.")


@operation("assign team to panel")
async def assign_team_to_panel(session: AsyncSession, team_id: str, panel_id: Optional[str]) -> OperationResult:
    """Назначение команды панели; panel_id=None снимает назначение"""
    team = await get_team(session, team_id)
    if panel_id is not None:
        panel = await get_panel(session, panel_id)
        if panel.is_draft:
            raise ValidationError("Teams can only be assigned to finalized panels.")

    team.panel_id = panel_id
    await session.commit()
    return OperationResult(success=True, message="Team assignment updated.")


async def list_jury_panels(session: AsyncSession) -> List[JuryPanel]:
    result = await session.execute(select(JuryPanel).order_by(JuryPanel.created_at))
    return list(result.scalars().all())
