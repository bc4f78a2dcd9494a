import datetime
from typing import List, Optional

from pydantic import BaseModel, conlist, constr

from portal.schemas.common import NormalizedEmail, OperationResult


class JuryMemberInput(BaseModel):
    uid: Optional[str] = None
    name: constr(min_length=1, max_length=255)
    email: NormalizedEmail
    institute: Optional[str] = None
    contact_number: Optional[str] = None
    department: Optional[str] = None
    highest_qualification: Optional[str] = None
    experience: Optional[str] = None


class CreateJuryPanelInput(BaseModel):
    panel_name: constr(min_length=1, max_length=255)
    jury_members: conlist(JuryMemberInput, min_length=1)
    is_draft: bool = False
    student_coordinator_name: Optional[str] = None
    student_coordinator_contact: Optional[str] = None


class UpdateJuryPanelInput(BaseModel):
    panel_name: constr(min_length=1, max_length=255)
    jury_members: conlist(JuryMemberInput, min_length=1)
    student_coordinator_name: Optional[str] = None
    student_coordinator_contact: Optional[str] = None


class CreateJuryPanelResult(OperationResult):
    panel_id: Optional[str] = None


class JuryPanelResponse(BaseModel):
    id: str
    name: str
    status: str
    members: List[dict] = []
    student_coordinator_name: Optional[str] = None
    student_coordinator_contact: Optional[str] = None
    created_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True
