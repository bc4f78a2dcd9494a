from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Column, String, DateTime, Boolean, JSON

from portal.db import Base, new_id
from portal.models.enums import Gender

# Участников без учета лидера
MAX_TEAM_MEMBERS = 5

PLACEHOLDER = "N/A"


def leader_snapshot(uid: str, name: str, email: str) -> dict:
    """Копия данных лидера, хранимая внутри документа команды"""
    return {"uid": uid, "name": name, "email": email}


def member_snapshot(
        uid: Optional[str],
        name: str,
        email: str,
        enrollment_number: Optional[str] = None,
        contact_number: Optional[str] = None,
        gender: Optional[str] = None,
        semester: Optional[str] = None,
        year_of_study: Optional[str] = None
) -> dict:
    """
    Копия данных участника, хранимая в массиве members команды.

    Все места, где участник добавляется в команду, строят запись только через
    эту функцию, чтобы форма записи не расходилась.
    """
    return {
        "uid": uid,
        "name": name,
        "email": email,
        "enrollment_number": enrollment_number or PLACEHOLDER,
        "contact_number": contact_number or PLACEHOLDER,
        "gender": gender or Gender.OTHER.value,
        "semester": semester,
        "year_of_study": year_of_study,
    }


class Team(Base):
    """Модель команды"""
    __tablename__ = 'teams'

    id = Column(String(64), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False, unique=True, index=True)
    leader = Column(JSON, nullable=False)
    institute = Column(String(255), nullable=True, index=True)
    department = Column(String(255), nullable=True)
    category = Column(String(20), nullable=True)
    members = Column(JSON, nullable=False, default=list)
    mentor = Column(JSON, nullable=True)
    is_locked = Column(Boolean, default=False, nullable=False)
    is_nominated = Column(Boolean, default=False, nullable=False)
    sih_selection_status = Column(String(20), nullable=True)
    ssih_enrolled = Column(Boolean, default=False, nullable=False)
    panel_id = Column(String(64), nullable=True, index=True)
    problem_statement_id = Column(String(64), nullable=True)
    problem_statement_title = Column(String(512), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    def get_members(self) -> List[dict]:
        return list(self.members or [])

    def roster_size(self) -> int:
        """Лидер плюс участники"""
        return 1 + len(self.get_members())

    def is_full(self) -> bool:
        return len(self.get_members()) >= MAX_TEAM_MEMBERS

    def find_member(self, uid: str = None, email: str = None) -> Optional[dict]:
        for member in self.get_members():
            if uid is not None and member.get("uid") == uid:
                return member
            if email is not None and member.get("email") == email:
                return member
        return None

    def without_member(self, member: dict) -> List[dict]:
        """Массив участников без указанной записи (по uid, иначе по email)"""
        if member.get("uid"):
            return [m for m in self.get_members() if m.get("uid") != member["uid"]]
        return [m for m in self.get_members() if m.get("email") != member.get("email")]

    def roster_uids(self) -> List[str]:
        uids = [self.leader["uid"]] if self.leader and self.leader.get("uid") else []
        uids.extend(m["uid"] for m in self.get_members() if m.get("uid"))
        return uids

    def roster_emails(self) -> List[str]:
        emails = [self.leader["email"]] if self.leader else []
        emails.extend(m["email"] for m in self.get_members() if m.get("email"))
        return emails


class TeamInvite(Base):
    """Постоянная ссылка-приглашение в команду"""
    __tablename__ = 'team_invites'

    id = Column(String(64), primary_key=True, default=new_id)
    team_id = Column(String(64), nullable=False, unique=True, index=True)
    team_name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
