"""Test definition and batch scheduling Pydantic models"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime, timezone


class Batch(BaseModel):
    """A named group of students sharing one [start, end] window"""
    name: str
    student_ids: List[str] = []
    window_start: datetime
    window_end: datetime
    active: bool = True


class TestDefinition(BaseModel):
    model_config = ConfigDict(extra="ignore")
    test_id: str
    title: str
    subject: str
    class_id: str
    session: str
    instructions: Optional[str] = None
    duration: int  # minutes
    question_count: int
    total_marks: int
    randomize: bool = False
    questions: List[str] = []
    question_marks: List[int] = []
    status: str = "draft"  # draft, scheduled, completed, cancelled (active is derived)
    batches: List[Batch] = []
    created_by: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class TestCreate(BaseModel):
    """Model for creating a draft test"""
    model_config = ConfigDict(populate_by_name=True)
    title: str
    subject: str
    class_id: str = Field(alias="class")
    session: str
    duration: int
    question_count: int
    total_marks: int
    questions: List[str] = []
    question_marks: Optional[List[int]] = None
    instructions: Optional[str] = None
    randomize: bool = False


class TestUpdate(BaseModel):
    """Partial update of a draft test; omitted fields keep their value"""
    model_config = ConfigDict(populate_by_name=True)
    title: Optional[str] = None
    subject: Optional[str] = None
    class_id: Optional[str] = Field(default=None, alias="class")
    session: Optional[str] = None
    duration: Optional[int] = None
    question_count: Optional[int] = None
    total_marks: Optional[int] = None
    questions: Optional[List[str]] = None
    question_marks: Optional[List[int]] = None
    instructions: Optional[str] = None
    randomize: Optional[bool] = None


class QuestionSetUpdate(BaseModel):
    questions: List[str]
    question_marks: List[int]


class BatchWindow(BaseModel):
    start: datetime
    end: datetime


class BatchIn(BaseModel):
    """Batch as submitted by an admin scheduling a test"""
    name: str
    students: List[str] = []
    schedule: BatchWindow
    active: bool = True


class ScheduleRequest(BaseModel):
    batches: Optional[List[BatchIn]] = None
    status: Optional[str] = None


class StatusUpdate(BaseModel):
    status: str
