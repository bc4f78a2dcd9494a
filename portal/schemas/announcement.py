import datetime
from typing import List, Optional

from pydantic import BaseModel, constr

from portal.models.enums import AnnouncementAudience
from portal.schemas.common import OperationResult


class CreateAnnouncementRequest(BaseModel):
    title: constr(min_length=1, max_length=255)
    content: constr(min_length=1)
    url: Optional[str] = None
    audience: AnnouncementAudience = AnnouncementAudience.ALL


class AnnouncementResponse(BaseModel):
    id: str
    title: str
    content: str
    url: Optional[str] = None
    audience: str
    author_name: Optional[str] = None
    created_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True


class CreateAnnouncementResult(OperationResult):
    announcement_id: Optional[str] = None


class InstituteRequest(BaseModel):
    name: constr(min_length=1, max_length=255)


class InstituteResponse(BaseModel):
    id: str
    name: str
    evaluation_dates: List[str] = []
    student_coordinator_name: Optional[str] = None
    student_coordinator_contact: Optional[str] = None

    class Config:
        from_attributes = True


class InstituteResult(OperationResult):
    institute_id: Optional[str] = None


class EvaluationDatesRequest(BaseModel):
    dates: List[datetime.date]


class StudentCoordinatorRequest(BaseModel):
    student_coordinator_name: constr(min_length=1, max_length=255)
    student_coordinator_contact: constr(min_length=1, max_length=64)
