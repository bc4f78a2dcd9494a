import logging
from typing import List

from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.models import Announcement, AnnouncementAudience, Team
from portal.schemas.announcement import CreateAnnouncementRequest, CreateAnnouncementResult
from portal.utils.notifications import announcement_email, notify
from portal.utils.operations import operation

logger = logging.getLogger(__name__)


@operation("create announcement", CreateAnnouncementResult)
async def create_announcement(
        session: AsyncSession,
        data: CreateAnnouncementRequest,
        author_name: str = None,
        background_tasks: BackgroundTasks = None
) -> CreateAnnouncementResult:
    """
    Публикация объявления. Для аудитории nominated_teams лидерам выдвинутых
    команд дополнительно отправляется письмо.
    """
    announcement = Announcement(
        title=data.title,
        content=data.content,
        url=data.url,
        audience=AnnouncementAudience(data.audience).value,
        author_name=author_name
    )
    session.add(announcement)
    await session.commit()

    message = "Announcement posted successfully."

    if announcement.audience == AnnouncementAudience.NOMINATED_TEAMS.value:
        result = await session.execute(select(Team.leader).where(Team.is_nominated.is_(True)))
        emails = list(dict.fromkeys(
            leader["email"] for leader in result.scalars().all() if leader and leader.get("email")
        ))
        if not emails:
            message += " No nominated teams found to notify."
        else:
            await notify(background_tasks, emails, *announcement_email(data.title, data.content, data.url))
            message += f" Emailing {len(emails)} nominated team leader(s)."

    return CreateAnnouncementResult(success=True, message=message, announcement_id=announcement.id)


async def list_announcements(session: AsyncSession, audiences: List[AnnouncementAudience] = None) -> List[Announcement]:
    query = select(Announcement).order_by(Announcement.created_at.desc())
    if audiences:
        query = query.where(Announcement.audience.in_([AnnouncementAudience(a).value for a in audiences]))
    result = await session.execute(query)
    return list(result.scalars().all())

