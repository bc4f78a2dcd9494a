from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Text

from portal.db import Base, new_id


class ProblemStatement(Base):
    """Постановка задачи хакатона"""
    __tablename__ = 'problem_statements'

    id = Column(String(64), primary_key=True, default=new_id)
    problem_statement_id = Column(String(64), nullable=False, index=True)
    title = Column(String(512), nullable=False)
    category = Column(String(32), nullable=False)
    theme = Column(String(255), nullable=False)
    dataset_link = Column(String(1024), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    department = Column(String(255), nullable=False, default="")
    organization = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
