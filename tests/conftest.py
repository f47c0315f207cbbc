"""
School CBT - Test Configuration and Fixtures
"""
import os
from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator

import pytest
from faker import Faker
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

# Set testing environment
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['MONGO_URL'] = 'mongodb://localhost:27017'
os.environ['DB_NAME'] = 'school_cbt_test'

from main import app
from app.config import EXAM_TITLE, CA1_TITLE
from app.database import ensure_indexes
from app.deps import get_db
from app.models.user import User
from app.models.question import QuestionCreate
from app.models.test import TestCreate, ScheduleRequest, BatchIn, BatchWindow
from app.services import question_bank, test_definitions, scheduler
from app.utils.auth import create_access_token

fake = Faker()

SUBJECT = "Mathematics"
CLASS_ID = "JSS1"
SESSION = "2024/2025 First Term"
WINDOW_START = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)
WINDOW_END = WINDOW_START + timedelta(seconds=3600)


@pytest.fixture
async def db():
    """Fresh in-memory database with the production indexes"""
    database = AsyncMongoMockClient()["school_cbt_test"]
    await ensure_indexes(database)
    return database


async def _insert_user(db, role: str, **extra) -> User:
    doc = {
        "user_id": f"user_{fake.unique.uuid4()[:12]}",
        "username": fake.unique.user_name(),
        "name": fake.first_name(),
        "surname": fake.last_name(),
        "role": role,
        "subjects": [],
        "enrolled_subjects": [],
        "blocked": False,
    }
    doc.update(extra)
    await db.users.insert_one(dict(doc))
    return User(**doc)


@pytest.fixture
async def admin(db) -> User:
    return await _insert_user(db, "admin")


@pytest.fixture
async def teacher(db) -> User:
    return await _insert_user(db, "teacher", subjects=[{"subject": SUBJECT, "class": CLASS_ID}])


@pytest.fixture
async def other_teacher(db) -> User:
    return await _insert_user(db, "teacher", subjects=[{"subject": "English", "class": CLASS_ID}])


@pytest.fixture
async def form_teacher(db) -> User:
    """Teaches two subjects to the same class"""
    return await _insert_user(db, "teacher", subjects=[
        {"subject": SUBJECT, "class": CLASS_ID},
        {"subject": "English", "class": CLASS_ID},
    ])


@pytest.fixture
async def unassigned_teacher(db) -> User:
    return await _insert_user(db, "teacher")


@pytest.fixture
async def student(db) -> User:
    return await _insert_user(
        db, "student", class_id=CLASS_ID,
        enrolled_subjects=[{"subject": SUBJECT, "class": CLASS_ID}]
    )


@pytest.fixture
async def classmate(db) -> User:
    return await _insert_user(
        db, "student", class_id=CLASS_ID,
        enrolled_subjects=[{"subject": SUBJECT, "class": CLASS_ID}]
    )


@pytest.fixture
async def outsider(db) -> User:
    """A student enrolled elsewhere"""
    return await _insert_user(
        db, "student", class_id="JSS2",
        enrolled_subjects=[{"subject": SUBJECT, "class": "JSS2"}]
    )


def auth_headers(user: User) -> dict:
    token = create_access_token({"user_id": user.user_id})
    return {"Authorization": f"Bearer {token}"}


def question_payload(index: int = 1, **overrides) -> dict:
    payload = {
        "subject": SUBJECT,
        "class": CLASS_ID,
        "text": f"What is {index} + {index}?",
        "options": [str(index * 2), str(index * 2 + 1), str(index * 2 + 2), str(index * 2 + 3)],
        "correct_answer": str(index * 2),
        "marks": 20,
    }
    payload.update(overrides)
    return payload


async def make_questions(db, teacher: User, count: int = 3, **overrides) -> list:
    questions = []
    for index in range(1, count + 1):
        data = QuestionCreate(**question_payload(index, **overrides))
        questions.append(await question_bank.create_question(db, teacher, data))
    return questions


def exam_payload(question_ids=None, question_marks=None, **overrides) -> dict:
    payload = {
        "title": EXAM_TITLE,
        "subject": SUBJECT,
        "class": CLASS_ID,
        "session": SESSION,
        "duration": 60,
        "question_count": 3,
        "total_marks": 60,
        "questions": question_ids or [],
        "question_marks": question_marks,
    }
    payload.update(overrides)
    return payload


def ca_payload(**overrides) -> dict:
    payload = exam_payload(title=CA1_TITLE, total_marks=20)
    payload.update(overrides)
    return payload


async def make_exam(db, teacher: User, questions: list) -> dict:
    """Draft examination sharing its 60 marks evenly across ``questions``"""
    data = TestCreate(**exam_payload(
        [q["question_id"] for q in questions],
        [60 // len(questions)] * len(questions),
        question_count=len(questions),
    ))
    return await test_definitions.create_test(db, teacher, data)


def batch(name: str, students: list, start=WINDOW_START, end=WINDOW_END, active: bool = True) -> BatchIn:
    return BatchIn(
        name=name,
        students=[s.user_id for s in students],
        schedule=BatchWindow(start=start, end=end),
        active=active,
    )


@pytest.fixture
async def questions(db, teacher) -> list:
    return await make_questions(db, teacher)


@pytest.fixture
async def scheduled_exam(db, teacher, admin, student, questions) -> dict:
    """Examination scheduled for ``student`` in a one-hour window"""
    exam = await make_exam(db, teacher, questions)
    request = ScheduleRequest(batches=[batch("Batch A", [student])], status="scheduled")
    return await scheduler.schedule_test(db, exam["test_id"], request, admin)


@pytest.fixture
async def client(db) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database override"""
    original_db = app.state.db
    app.state.db = db
    app.dependency_overrides[get_db] = lambda: db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()
    app.state.db = original_db
