from datetime import datetime, timezone
from sqlalchemy import Column, String, DateTime, Boolean

from portal.db import Base
from portal.models.enums import UserRole, PROTECTED_ROLES


class UserProfile(Base):
    """Профиль пользователя: связь учетной записи с ролью и командой"""
    __tablename__ = 'users'

    uid = Column(String(64), primary_key=True)
    role = Column(String(20), nullable=False, default=UserRole.MEMBER.value, index=True)
    name = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=False, unique=True, index=True)
    institute = Column(String(255), nullable=True, index=True)
    department = Column(String(255), nullable=True)
    enrollment_number = Column(String(64), nullable=True)
    contact_number = Column(String(32), nullable=True)
    gender = Column(String(16), nullable=True)
    semester = Column(String(16), nullable=True)
    year_of_study = Column(String(16), nullable=True)
    team_id = Column(String(64), nullable=True, index=True)
    panel_id = Column(String(64), nullable=True, index=True)
    spoc_status = Column(String(20), nullable=True)
    highest_qualification = Column(String(255), nullable=True)
    experience = Column(String(255), nullable=True)
    password_changed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def is_protected(self) -> bool:
        return self.role in [role.value for role in PROTECTED_ROLES]
