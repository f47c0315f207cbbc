"""
Submission intake and grading.

``submit_test`` runs every gate (status, batch membership, window, question
snapshot) before any scoring, grades with the pure ``grade_answers`` and
persists through the result store. Two racing submissions for the same
student both get graded; the unique (test_id, user_id) index decides which
one is stored and the other is reported as already submitted.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from app.config import logger
from app.errors import CBTError, NotFoundError, ConflictError, AuthorizationError
from app.services.question_bank import fetch_questions
from app.services.results import create_result
from app.services.scheduler import find_student_batch, window_contains
from app.utils.serialization import utc_now, isoformat_utc
from app.utils.validation import is_well_formed


@dataclass
class GradedQuestion:
    question_id: str
    correct_answer: str
    mark: int


@dataclass
class GradeOutcome:
    score: int
    correctness: Dict[str, bool] = field(default_factory=dict)


def session_term(session: str) -> str:
    """'2024/2025 First Term' -> 'First Term'"""
    return session.split(" ", 1)[1] if " " in session else session


def build_snapshot(test: dict, question_docs: Dict[str, dict]) -> List[GradedQuestion]:
    """
    Well-formed questions of a test in test order, each with the mark it is
    worth in this test.

    Missing or malformed questions are left out; the caller compares the
    length against the declared question count.
    """
    marks = test.get("question_marks") or []
    snapshot = []
    for index, qid in enumerate(test.get("questions") or []):
        question = question_docs.get(qid)
        if not question or not is_well_formed(question):
            continue
        mark = marks[index] if index < len(marks) and marks[index] else question.get("marks", 1)
        snapshot.append(GradedQuestion(qid, question["correct_answer"], mark))
    return snapshot


def grade_answers(snapshot: List[GradedQuestion], answers: Dict[str, Optional[str]]) -> GradeOutcome:
    """All-or-nothing marking per question; unanswered questions score zero."""
    outcome = GradeOutcome(score=0)
    for question in snapshot:
        selected = answers.get(question.question_id)
        is_correct = isinstance(selected, str) and selected == question.correct_answer
        if is_correct:
            outcome.score += question.mark
        outcome.correctness[question.question_id] = is_correct
    return outcome


def _reject(test_id: str, user_id: str, error: CBTError):
    logger.warning(f"Submission rejected: test={test_id} user={user_id} reason={error.reason}")
    raise error


async def submit_test(
    db,
    test_id: str,
    user_id: str,
    answers: Dict[str, Optional[str]],
    now: Optional[datetime] = None,
) -> dict:
    """Gate, grade and store one student's attempt"""
    now = now or utc_now()

    test = await db.tests.find_one({"test_id": test_id}, {"_id": 0})
    if not test:
        raise NotFoundError("Test not found", reason="test_not_found")

    if test.get("status") != "scheduled":
        _reject(test_id, user_id, ConflictError("Test is not scheduled.", reason="test_not_scheduled"))

    batch = find_student_batch(test, user_id, now)
    if not batch:
        _reject(test_id, user_id, AuthorizationError(
            "You are not assigned to this test.", reason="not_assigned_to_test"
        ))

    if not batch.get("active", True) or not window_contains(batch, now):
        _reject(test_id, user_id, ConflictError("Test not available at this time.", reason="window_closed"))

    question_docs = await fetch_questions(db, test.get("questions") or [])
    snapshot = build_snapshot(test, question_docs)
    available_marks = sum(q.mark for q in snapshot)
    if not snapshot or len(snapshot) != test.get("question_count") or available_marks != test["total_marks"]:
        logger.error(
            f"Question snapshot mismatch for test {test_id}: "
            f"{len(snapshot)} gradable questions worth {available_marks}, "
            f"{test.get('question_count')} declared worth {test['total_marks']}"
        )
        _reject(test_id, user_id, ConflictError(
            "Test questions do not match the specified question count.",
            reason="question_snapshot_mismatch"
        ))

    outcome = grade_answers(snapshot, answers)
    graded_ids = [q.question_id for q in snapshot]

    result = {
        "result_id": f"result_{uuid.uuid4().hex[:12]}",
        "test_id": test_id,
        "user_id": user_id,
        "answers": {qid: answers.get(qid) for qid in graded_ids},
        "correctness": outcome.correctness,
        "score": outcome.score,
        "total_questions": len(snapshot),
        "total_marks": test["total_marks"],
        "subject": test["subject"],
        "class_id": test["class_id"],
        "session": test["session"],
        "term": session_term(test["session"]),
        "batch": batch["name"],
        "submitted_at": isoformat_utc(now),
        "is_active": True,
    }
    stored = await create_result(db, result)
    logger.info(
        f"Test submitted: test={test_id} user={user_id} "
        f"score={outcome.score}/{test['total_marks']} batch={batch['name']}"
    )
    return stored
