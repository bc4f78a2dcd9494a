from datetime import datetime, timezone
from typing import List

from sqlalchemy import Column, String, DateTime, JSON

from portal.db import Base, new_id
from portal.models.enums import PanelStatus


def jury_member_snapshot(uid: str, name: str, email: str) -> dict:
    """Запись участника утвержденной панели"""
    return {"uid": uid, "name": name, "email": email}


class JuryPanel(Base):
    """Панель жюри. В черновике members хранит исходные данные без uid"""
    __tablename__ = 'jury_panels'

    id = Column(String(64), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default=PanelStatus.DRAFT.value)
    members = Column(JSON, nullable=False, default=list)
    student_coordinator_name = Column(String(255), nullable=True)
    student_coordinator_contact = Column(String(32), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def is_draft(self) -> bool:
        return self.status == PanelStatus.DRAFT.value

    def member_uids(self) -> List[str]:
        return [m["uid"] for m in (self.members or []) if m.get("uid")]
