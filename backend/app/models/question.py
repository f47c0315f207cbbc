"""Question bank Pydantic models"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List
from datetime import datetime, timezone


class Question(BaseModel):
    """A multiple-choice question scoped to one subject and class"""
    model_config = ConfigDict(extra="ignore")
    question_id: str
    subject: str
    class_id: str
    text: str
    type: str = "multiple_choice"
    options: List[str]
    correct_answer: str
    marks: int
    difficulty: str = "medium"  # easy, medium, hard
    tags: List[str] = []
    explanation: Optional[str] = None
    test_id: Optional[str] = None  # test the question was authored for, if any
    save_to_bank: bool = True
    is_active: bool = True
    usage_count: int = 0
    last_used: Optional[str] = None
    created_by: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class QuestionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    subject: str
    class_id: str = Field(alias="class")
    text: str
    options: List[str]
    correct_answer: str
    marks: int = 1
    difficulty: str = "medium"
    tags: List[str] = []
    explanation: Optional[str] = None
    save_to_bank: bool = True
    test_id: Optional[str] = None


class QuestionBulkImport(BaseModel):
    questions: List[dict]
    test_id: Optional[str] = None
