import datetime
from typing import List, Optional

from pydantic import BaseModel

from portal.schemas.common import OperationResult


class ProblemStatementResponse(BaseModel):
    id: str
    problem_statement_id: str
    title: str
    category: str
    theme: str
    dataset_link: str = ""
    description: str = ""
    department: str = ""
    organization: str = ""
    created_at: Optional[datetime.datetime] = None

    class Config:
        from_attributes = True


class BulkUploadResult(OperationResult):
    added_count: int = 0
    failed_count: int = 0
    errors: List[str] = []
