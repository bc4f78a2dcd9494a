from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Boolean

from portal.db import Base, new_id


class IdentityAccount(Base):
    """Учетная запись сервиса идентификации (логин и пароль)"""
    __tablename__ = 'accounts'

    id = Column(String(64), primary_key=True, default=new_id)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(String(512), nullable=False)
    display_name = Column(String(255), nullable=True)
    disabled = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
