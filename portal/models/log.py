from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Text

from portal.db import Base, new_id


class ActivityLog(Base):
    """Журнал действий, видимый администраторам"""
    __tablename__ = 'logs'

    id = Column(String(64), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
