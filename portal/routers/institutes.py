from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.jwt import require_roles
from portal.db import get_session
from portal.models import UserProfile, UserRole
from portal.schemas.announcement import (
    InstituteRequest, InstituteResponse, InstituteResult, EvaluationDatesRequest, StudentCoordinatorRequest
)
from portal.schemas.common import OperationResult
from portal.utils.institute_utils import add_institute, list_institutes, set_evaluation_dates, set_student_coordinator

router = APIRouter(prefix="/institutes", tags=["institutes"])


@router.get("/", response_model=List[InstituteResponse])
async def get_institutes(session: AsyncSession = Depends(get_session)):
    return await list_institutes(session)


@router.post("/", response_model=InstituteResult)
async def create_institute(
        data: InstituteRequest,
        _: UserProfile = Depends(require_roles(UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session)
):
    return await add_institute(session, data.name)


@router.put("/{institute_id}/evaluation-dates", response_model=OperationResult)
async def update_evaluation_dates(
        institute_id: str,
        data: EvaluationDatesRequest,
        current_user: UserProfile = Depends(require_roles(UserRole.SPOC, UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session)
):
    return await set_evaluation_dates(session, institute_id, data.dates, actor=current_user)


@router.put("/{institute_id}/student-coordinator", response_model=OperationResult)
async def update_student_coordinator(
        institute_id: str,
        data: StudentCoordinatorRequest,
        current_user: UserProfile = Depends(require_roles(UserRole.SPOC, UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session)
):
    return await set_student_coordinator(
        session, institute_id, data.student_coordinator_name, data.student_coordinator_contact, actor=current_user
    )
