from typing import Optional

from pydantic import BaseModel, Field


class ClassCreate(BaseModel):
    name: str = Field(min_length=1)
    course_code: str = Field(min_length=1)
    description: Optional[str] = None
    schedule: Optional[str] = None
    location: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    department: Optional[str] = None
    semester: Optional[str] = None
    academic_year: Optional[str] = None


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    course_code: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    schedule: Optional[str] = None
    location: Optional[str] = None
    capacity: Optional[int] = Field(default=None, ge=1)
    department: Optional[str] = None
    semester: Optional[str] = None
    academic_year: Optional[str] = None


class EnrollRequest(BaseModel):
    # Student email or school id
    identifier: str = Field(min_length=1)


class AssignLecturerRequest(BaseModel):
    lecturer_id: int
