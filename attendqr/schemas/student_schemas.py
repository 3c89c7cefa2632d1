from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from attendqr.schemas.auth_schemas import EMAIL_PATTERN


class StudentCreate(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN)
    full_name: str = Field(min_length=1)
    school_id: Optional[str] = None
    class_id: Optional[int] = None


class LecturerCreate(BaseModel):
    email: str = Field(pattern=EMAIL_PATTERN)
    full_name: str = Field(min_length=1)


class StudentIds(BaseModel):
    student_ids: List[int] = Field(min_length=1)


class BulkStatusRequest(StudentIds):
    status: Literal["active", "inactive"]


class BulkAssignRequest(StudentIds):
    class_id: int
