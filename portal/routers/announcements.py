from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from portal.auth.jwt import get_current_user, require_roles
from portal.db import get_session
from portal.models import UserProfile, UserRole, AnnouncementAudience
from portal.schemas.announcement import AnnouncementResponse, CreateAnnouncementRequest, CreateAnnouncementResult
from portal.utils.announcement_utils import create_announcement, list_announcements

router = APIRouter(prefix="/announcements", tags=["announcements"])

# Какие объявления видит каждая роль
ROLE_AUDIENCES = {
    UserRole.SPOC.value: [AnnouncementAudience.ALL, AnnouncementAudience.SPOC],
    UserRole.LEADER.value: [AnnouncementAudience.ALL, AnnouncementAudience.TEAMS],
    UserRole.MEMBER.value: [AnnouncementAudience.ALL, AnnouncementAudience.TEAMS],
    UserRole.JURY.value: [AnnouncementAudience.ALL],
}


@router.post("/", response_model=CreateAnnouncementResult)
async def post_announcement(
        data: CreateAnnouncementRequest,
        current_user: UserProfile = Depends(require_roles(UserRole.ADMIN)),
        background_tasks: BackgroundTasks = BackgroundTasks(),
        session: AsyncSession = Depends(get_session)
):
    return await create_announcement(session, data, author_name=current_user.name, background_tasks=background_tasks)


@router.get("/", response_model=List[AnnouncementResponse])
async def get_announcements(
        current_user: UserProfile = Depends(get_current_user),
        session: AsyncSession = Depends(get_session)
):
    # Администратор видит все объявления
    return await list_announcements(session, ROLE_AUDIENCES.get(current_user.role))
