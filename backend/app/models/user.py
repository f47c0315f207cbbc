"""User-related Pydantic models"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List


class SubjectAssignment(BaseModel):
    """A subject taught (teacher) or taken (student) in one class"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")
    subject: str
    class_id: str = Field(alias="class")


class User(BaseModel):
    model_config = ConfigDict(extra="ignore")
    user_id: str
    username: str
    name: str
    surname: Optional[str] = None
    role: str = "student"  # admin, teacher or student
    class_id: Optional[str] = None
    subjects: List[SubjectAssignment] = []  # teacher assignments
    enrolled_subjects: List[SubjectAssignment] = []  # student enrolments
    blocked: bool = False
