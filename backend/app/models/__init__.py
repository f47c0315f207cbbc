"""Pydantic models for the school CBT engine"""

from .user import User, SubjectAssignment
from .question import Question, QuestionCreate, QuestionBulkImport
from .test import (
    Batch,
    TestDefinition,
    TestCreate,
    TestUpdate,
    QuestionSetUpdate,
    BatchWindow,
    BatchIn,
    ScheduleRequest,
    StatusUpdate,
)
from .result import Result, SubmitRequest, ResultOverride
