import datetime
from typing import List, Optional
from pydantic import BaseModel, constr

from portal.schemas.common import NormalizedEmail, OperationResult


class UserLogin(BaseModel):
    email: NormalizedEmail
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str


class ChangePasswordRequest(BaseModel):
    new_password: constr(min_length=8)


class UserProfileResponse(BaseModel):
    uid: str
    role: str
    name: str
    email: str
    institute: Optional[str] = None
    department: Optional[str] = None
    enrollment_number: Optional[str] = None
    contact_number: Optional[str] = None
    gender: Optional[str] = None
    semester: Optional[str] = None
    year_of_study: Optional[str] = None
    team_id: Optional[str] = None
    panel_id: Optional[str] = None
    spoc_status: Optional[str] = None
    password_changed: bool = False
    created_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True


class BulkDeleteUsersRequest(BaseModel):
    user_ids: List[str]


class BulkDeleteUsersResult(OperationResult):
    deleted_users: int = 0
    deleted_teams: int = 0
    skipped: List[str] = []


class MakeAdminRequest(BaseModel):
    email: NormalizedEmail


class MakeAdminResult(OperationResult):
    uid: Optional[str] = None


class CreateSpocInput(BaseModel):
    name: constr(min_length=1, max_length=255)
    email: NormalizedEmail
    institute: str
    contact_number: str


class RegisterSpocInput(CreateSpocInput):
    password: constr(min_length=8)


class CreateSpocResult(OperationResult):
    uid: Optional[str] = None


class ManageSpocRequestInput(BaseModel):
    uid: str
    action: str


class UserRegister(BaseModel):
    name: constr(min_length=1, max_length=255)
    email: NormalizedEmail
    password: constr(min_length=8)


class RegisterResult(OperationResult):
    uid: Optional[str] = None
