from typing import List

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models import ActivityLog


def log_activity(session: AsyncSession, title: str, message: str) -> ActivityLog:
    """Добавляет запись журнала в текущий пакет записи (фиксируется вместе с ним)"""
    entry = ActivityLog(title=title, message=message)
    session.add(entry)
    return entry


async def get_recent_logs(session: AsyncSession, limit: int = 50) -> List[ActivityLog]:
    result = await session.execute(
        select(ActivityLog).order_by(ActivityLog.created_at.desc()).limit(limit)
    )
    return list(result.scalars().all())
