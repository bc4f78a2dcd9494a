from __future__ import annotations

import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, constr

from portal.models.enums import Gender, SihSelectionStatus, TeamCategory
from portal.schemas.common import NormalizedEmail, OperationResult
from portal.schemas.user import UserProfileResponse


class PersonalDetails(BaseModel):
    """Личные и учебные данные, которые заполняются при вступлении в команду"""
    name: constr(min_length=1, max_length=255)
    gender: Optional[Gender] = None
    enrollment_number: Optional[str] = None
    contact_number: Optional[str] = None
    semester: Optional[str] = None
    year_of_study: Optional[str] = None


class CreateTeamRequest(PersonalDetails):
    team_name: constr(min_length=1, max_length=255)
    institute: str
    department: str
    category: Optional[TeamCategory] = None


class CreateTeamInput(CreateTeamRequest):
    leader_uid: str
    leader_email: NormalizedEmail


class CreateTeamResult(OperationResult):
    team_id: Optional[str] = None


class AddMemberInput(PersonalDetails):
    user_id: str
    team_id: str
    email: NormalizedEmail


class InviteMemberRequest(BaseModel):
    member_name: constr(min_length=1, max_length=255)
    member_email: NormalizedEmail


class InviteMemberInput(InviteMemberRequest):
    team_id: str
    team_name: Optional[str] = None


class InviteMemberResult(OperationResult):
    uid: Optional[str] = None


class InviteLinkResult(OperationResult):
    invite_id: Optional[str] = None
    invite_link: Optional[str] = None


class InviteDetailsResult(OperationResult):
    team_id: Optional[str] = None
    team_name: Optional[str] = None
    leader_name: Optional[str] = None


class ManageTeamBySpocRequest(BaseModel):
    action: str
    member_email: Optional[NormalizedEmail] = None


class ToggleTeamLockRequest(BaseModel):
    is_locked: bool


class SetSihStatusRequest(BaseModel):
    status: SihSelectionStatus


class MentorDetails(BaseModel):
    name: constr(min_length=1, max_length=255)
    email: NormalizedEmail
    phone_number: str
    designation: Optional[str] = None
    department: Optional[str] = None
    gender: Optional[Gender] = None


class TeamMemberSnapshot(BaseModel):
    uid: Optional[str] = None
    name: str
    email: str
    enrollment_number: Optional[str] = None
    contact_number: Optional[str] = None
    gender: Optional[str] = None
    semester: Optional[str] = None
    year_of_study: Optional[str] = None


class TeamLeaderSnapshot(BaseModel):
    uid: str
    name: str
    email: str


class TeamResponse(BaseModel):
    id: str
    name: str
    leader: TeamLeaderSnapshot
    institute: Optional[str] = None
    department: Optional[str] = None
    category: Optional[str] = None
    members: List[TeamMemberSnapshot] = []
    mentor: Optional[dict] = None
    is_locked: bool = False
    is_nominated: bool = False
    sih_selection_status: Optional[str] = None
    ssih_enrolled: bool = False
    panel_id: Optional[str] = None
    problem_statement_id: Optional[str] = None
    problem_statement_title: Optional[str] = None
    created_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True


class InstituteTeamsResult(OperationResult):
    teams: List[TeamResponse] = []
    users: Dict[str, UserProfileResponse] = {}
