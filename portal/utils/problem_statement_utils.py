import logging
from io import BytesIO
from typing import Any, List, Optional, Sequence, Tuple

from openpyxl import load_workbook
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.errors import NotFoundError, PermissionDeniedError, ValidationError
from portal.models import ProblemStatement, ProblemStatementCategory
from portal.schemas.common import OperationResult
from portal.schemas.problem_statement import BulkUploadResult
from portal.utils.operations import operation, WRITE_BATCH_SIZE
from portal.utils.team_utils import get_team, ensure_unlocked

logger = logging.getLogger(__name__)

EXPECTED_HEADERS = [
    'Statement_id', 'Title', 'Category', 'Technology_Bucket',
    'Datasetfile', 'Description', 'Department', 'Organisation'
]

CATEGORIES = [c.value for c in ProblemStatementCategory]


def _cell_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def read_problem_statement_rows(content: bytes) -> Tuple[List[Optional[str]], List[List[Optional[str]]]]:
    """
    Чтение первого листа xlsx файла.

    Returns:
        Заголовок и строки данных. Для ячеек со ссылкой берется адрес ссылки.
    """
    try:
        workbook = load_workbook(BytesIO(content), data_only=True)
    except Exception as e:
        raise ValidationError(f"Could not read the Excel file: {e}")

    if not workbook.worksheets:
        raise ValidationError("No worksheet found in the Excel file.")
    worksheet = workbook.worksheets[0]

    rows = []
    for row in worksheet.iter_rows():
        values = []
        for cell in row:
            link = getattr(cell, "hyperlink", None)
            if link is not None and link.target:
                values.append(link.target)
            else:
                values.append(_cell_text(cell.value))
        rows.append(values)

    if not rows:
        raise ValidationError("The Excel file is empty.")
    return rows[0], rows[1:]


def _field(row: Sequence[Optional[str]], index: int) -> Optional[str]:
    return _cell_text(row[index]) if index < len(row) else None


@operation("upload problem statements", BulkUploadResult)
async def bulk_upload_problem_statements(
        session: AsyncSession,
        header: Sequence[Optional[str]],
        rows: Sequence[Sequence[Optional[str]]]
) -> BulkUploadResult:
    """
    Загрузка постановок задач из строк таблицы.

    Строки с ошибками пропускаются и перечисляются в errors (нумерация как
    в файле, заголовок - строка 1). Записи фиксируются пакетами.
    """
    found = [_cell_text(h) for h in list(header)[:len(EXPECTED_HEADERS)]]
    if found != EXPECTED_HEADERS:
        return BulkUploadResult(
            success=False,
            message="Excel file headers do not match the expected format.",
            errors=[
                f"Invalid headers. Expected: {', '.join(EXPECTED_HEADERS)}. "
                f"Found: {', '.join(h or '' for h in found)}"
            ]
        )

    added_count = 0
    failed_count = 0
    errors = []
    pending = 0

    for row_number, row in enumerate(rows, start=2):
        if not any(_cell_text(v) for v in row):
            continue

        statement_id, title, category, theme = (_field(row, i) for i in range(4))
        if not statement_id or not title or not category or not theme:
            errors.append(
                f"Row {row_number}: Missing mandatory fields (Statement_id, Title, Category, Technology_Bucket)."
            )
            failed_count += 1
            continue

        if category not in CATEGORIES:
            errors.append(
                f"Row {row_number}: Invalid category \"{category}\". "
                f"Must be one of {', '.join(repr(c) for c in CATEGORIES)}."
            )
            failed_count += 1
            continue

        session.add(ProblemStatement(
            problem_statement_id=statement_id,
            title=title,
            category=category,
            theme=theme,
            dataset_link=_field(row, 4) or "",
            description=_field(row, 5) or "",
            department=_field(row, 6) or "",
            organization=_field(row, 7) or ""
        ))
        added_count += 1
        pending += 1

        if pending >= WRITE_BATCH_SIZE:
            await session.commit()
            pending = 0

    if pending:
        await session.commit()

    logger.info(f"Загружено постановок задач: {added_count}, ошибок: {failed_count}")
    return BulkUploadResult(
        success=True,
        message=f"Bulk upload completed. Added: {added_count}, Failed: {failed_count}.",
        added_count=added_count,
        failed_count=failed_count,
        errors=errors
    )


async def list_problem_statements(session: AsyncSession, category: ProblemStatementCategory = None) -> List[ProblemStatement]:
    query = select(ProblemStatement).order_by(ProblemStatement.problem_statement_id)
    if category is not None:
        query = query.where(ProblemStatement.category == ProblemStatementCategory(category).value)
    result = await session.execute(query)
    return list(result.scalars().all())


@operation("select problem statement")
async def select_problem_statement(
        session: AsyncSession,
        team_id: str,
        leader_uid: str,
        problem_statement_id: str
):
    """Выбор постановки задачи лидером команды"""
    team = await get_team(session, team_id)
    if team.leader["uid"] != leader_uid:
        raise PermissionDeniedError("Only the team leader can select a problem statement.")
    ensure_unlocked(team)

    statement = await session.get(ProblemStatement, problem_statement_id)
    if statement is None:
        raise NotFoundError("Problem statement not found.")

    team.problem_statement_id = statement.id
    team.problem_statement_title = statement.title
    await session.commit()
    return OperationResult(success=True, message=f"Problem statement \"{statement.title}\" selected.")
