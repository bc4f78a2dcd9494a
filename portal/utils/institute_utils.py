import datetime
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.errors import DuplicateNameError, NotFoundError, PermissionDeniedError, ValidationError
from portal.models import Institute, UserProfile, UserRole
from portal.schemas.common import OperationResult
from portal.schemas.announcement import InstituteResult
from portal.utils.operations import operation

logger = logging.getLogger(__name__)

MIN_EVALUATION_DATES = 2
MAX_EVALUATION_DATES = 4


async def get_institute(session: AsyncSession, institute_id: str) -> Institute:
    institute = await session.get(Institute, institute_id)
    if institute is None:
        raise NotFoundError("Institute not found.")
    return institute


def ensure_own_institute(institute: Institute, actor: Optional[UserProfile]) -> None:
    """SPOC меняет настройки только своего института"""
    if actor is None or actor.role == UserRole.ADMIN.value:
        return
    if actor.role == UserRole.SPOC.value and actor.institute == institute.name:
        return
    raise PermissionDeniedError("You can only manage your own institute.")


@operation("add institute", InstituteResult)
async def add_institute(session: AsyncSession, name: str) -> InstituteResult:
    name = name.strip()
    existing = await session.execute(select(Institute.id).where(Institute.name == name))
    if existing.scalar_one_or_none():
        raise DuplicateNameError(f"Institute \"{name}\" already exists.")

    institute = Institute(name=name)
    session.add(institute)
    try:
        await session.commit()
    except IntegrityError:
        raise DuplicateNameError(f"Institute \"{name}\" already exists.")

    return InstituteResult(success=True, message=f"Institute \"{name}\" added.", institute_id=institute.id)


async def list_institutes(session: AsyncSession) -> List[Institute]:
    result = await session.execute(select(Institute).order_by(Institute.name))
    return list(result.scalars().all())


@operation("save dates")
async def set_evaluation_dates(
        session: AsyncSession,
        institute_id: str,
        dates: List[datetime.date],
        actor: Optional[UserProfile] = None
) -> OperationResult:
    """
    Даты внутреннего отбора института.

    Допускается от двух до четырех дат; хранятся строками ISO в порядке ввода.
    """
    if not MIN_EVALUATION_DATES <= len(dates) <= MAX_EVALUATION_DATES:
        raise ValidationError("Please select between two and four dates.")

    institute = await get_institute(session, institute_id)
    ensure_own_institute(institute, actor)

    institute.evaluation_dates = [d.isoformat() for d in dates]
    await session.commit()
    logger.info(f"Даты отбора института {institute.name}: {institute.evaluation_dates}")
    return OperationResult(success=True, message="Evaluation dates have been successfully saved.")


@operation("save details")
async def set_student_coordinator(
        session: AsyncSession,
        institute_id: str,
        name: str,
        contact: str,
        actor: Optional[UserProfile] = None
) -> OperationResult:
    institute = await get_institute(session, institute_id)
    ensure_own_institute(institute, actor)

    institute.student_coordinator_name = name
    institute.student_coordinator_contact = contact
    await session.commit()
    return OperationResult(success=True, message="Student coordinator details have been successfully saved.")
