"""Result (graded attempt) Pydantic models"""

from pydantic import BaseModel, ConfigDict
from typing import Optional, Dict


class Result(BaseModel):
    """One graded attempt; unique per (test_id, user_id)"""
    model_config = ConfigDict(extra="ignore")
    result_id: str
    test_id: str
    user_id: str
    answers: Dict[str, Optional[str]] = {}
    correctness: Dict[str, bool] = {}
    score: int
    total_questions: int
    total_marks: int
    subject: str
    class_id: str
    session: str
    term: str
    submitted_at: str
    is_active: bool = True
    reviewed_by: Optional[str] = None
    reviewed_at: Optional[str] = None
    remarks: Optional[str] = None


class SubmitRequest(BaseModel):
    """Model for a student's answer submission"""
    answers: Dict[str, Optional[str]] = {}
    user_id: Optional[str] = None  # defaults to the caller


class ResultOverride(BaseModel):
    """Admin correction of a stored result"""
    score: Optional[int] = None
    answers: Optional[Dict[str, Optional[str]]] = None
    correctness: Optional[Dict[str, bool]] = None
    remarks: Optional[str] = None
