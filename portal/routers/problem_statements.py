from typing import List, Optional

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.jwt import get_current_user, require_roles
from portal.db import get_session
from portal.errors import ValidationError
from portal.models import UserProfile, UserRole, ProblemStatementCategory
from portal.schemas.problem_statement import BulkUploadResult, ProblemStatementResponse
from portal.utils.problem_statement_utils import (
    read_problem_statement_rows, bulk_upload_problem_statements, list_problem_statements
)

router = APIRouter(prefix="/problem-statements", tags=["problem-statements"])


@router.post("/upload", response_model=BulkUploadResult)
async def upload_problem_statements(
        file: UploadFile = File(...),
        _: UserProfile = Depends(require_roles(UserRole.ADMIN)),
        session: AsyncSession = Depends(get_session)
):
    """Загрузка постановок задач из xlsx файла"""
    if not file.filename.lower().endswith(".xlsx"):
        return BulkUploadResult(success=False, message="Only .xlsx files are supported.")

    try:
        header, rows = read_problem_statement_rows(await file.read())
    except ValidationError as e:
        return BulkUploadResult(success=False, message=str(e))

    return await bulk_upload_problem_statements(session, header, rows)


@router.get("/", response_model=List[ProblemStatementResponse])
async def get_problem_statements(
        category: Optional[ProblemStatementCategory] = None,
        _: UserProfile = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    return await list_problem_statements(session, category)
