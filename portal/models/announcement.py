from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Text, JSON

from portal.db import Base, new_id
from portal.models.enums import AnnouncementAudience


class Announcement(Base):
    """Объявление для участников, SPOC или команд"""
    __tablename__ = 'announcements'

    id = Column(String(64), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    url = Column(String(1024), nullable=True)
    audience = Column(String(32), nullable=False, default=AnnouncementAudience.ALL.value)
    author_name = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class Institute(Base):
    """Институт: даты внутреннего отбора и студенческий координатор задаются SPOC"""
    __tablename__ = 'institutes'

    id = Column(String(64), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False, unique=True)
    # ISO-даты (YYYY-MM-DD)
    evaluation_dates = Column(JSON, nullable=False, default=list)
    student_coordinator_name = Column(String(255), nullable=True)
    student_coordinator_contact = Column(String(64), nullable=True)
