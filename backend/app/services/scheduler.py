"""
Batch scheduling and test status lifecycle.

Stored status moves draft -> scheduled -> completed, and any status except
completed may move to cancelled. ``active`` is never stored: it is derived
from the clock and the batch windows by ``effective_status``. The submission
window check, not the status field, decides whether an attempt is accepted.
"""

from datetime import datetime
from typing import List, Optional

from app.config import logger, TEST_STATUSES
from app.errors import NotFoundError, ConflictError, ValidationError
from app.models.test import ScheduleRequest
from app.models.user import User
from app.services.question_bank import fetch_questions
from app.services.roster import unenrolled_students
from app.utils.serialization import utc_now, isoformat_utc, parse_datetime
from app.utils.validation import Violation, ensure_valid, question_set_problem

# Stored transitions; re-asserting the current status is always allowed.
ALLOWED_TRANSITIONS = {
    "draft": {"scheduled", "cancelled"},
    "scheduled": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

DERIVED_STATUSES = {"active"}


def check_transition(current: str, target: str):
    """Raise unless ``current`` may move to ``target``."""
    if target not in TEST_STATUSES:
        raise ValidationError(f"Invalid status. Use one of: {', '.join(TEST_STATUSES)}.")
    if target in DERIVED_STATUSES:
        raise ConflictError(
            "Status 'active' is derived from batch windows and cannot be set directly",
            reason="invalid_transition"
        )
    if target == current:
        return
    if target not in ALLOWED_TRANSITIONS.get(current, set()):
        raise ConflictError(
            f"Cannot change test status from '{current}' to '{target}'",
            reason="invalid_transition"
        )


def window_contains(batch: dict, now: datetime) -> bool:
    """Closed window: both ends are inclusive."""
    return parse_datetime(batch["window_start"]) <= now <= parse_datetime(batch["window_end"])


def batches_for_student(test: dict, user_id: str) -> List[dict]:
    return [b for b in test.get("batches", []) if user_id in b.get("student_ids", [])]


def find_student_batch(test: dict, user_id: str, now: datetime) -> Optional[dict]:
    """
    The batch a student sits the test in.

    A student listed in several batches is matched to an active batch whose
    window contains ``now`` if there is one, otherwise to the first batch
    listing them.
    """
    candidates = batches_for_student(test, user_id)
    for batch in candidates:
        if batch.get("active", True) and window_contains(batch, now):
            return batch
    return candidates[0] if candidates else None


def is_active(test: dict, now: Optional[datetime] = None) -> bool:
    if test.get("status") != "scheduled":
        return False
    now = now or utc_now()
    return any(b.get("active", True) and window_contains(b, now) for b in test.get("batches", []))


def effective_status(test: dict, now: Optional[datetime] = None) -> str:
    """Stored status, with ``active`` substituted while a batch window is open."""
    if is_active(test, now):
        return "active"
    return test.get("status", "draft")


def with_derived_status(test: dict, now: Optional[datetime] = None) -> dict:
    test["is_active"] = is_active(test, now)
    test["effective_status"] = effective_status(test, now)
    return test


async def _build_batches(db, test: dict, request: ScheduleRequest) -> List[dict]:
    """Validate every batch before any is written."""
    violations = []
    seen_names = set()
    all_students = []

    for index, batch in enumerate(request.batches):
        name = batch.name.strip()
        if not name:
            violations.append(Violation(f"batches[{index}].name", "Each batch requires a name."))
        elif name in seen_names:
            violations.append(Violation(f"batches[{index}].name", f"Batch name '{name}' is used twice."))
        seen_names.add(name)

        if parse_datetime(batch.schedule.start) >= parse_datetime(batch.schedule.end):
            violations.append(Violation(
                f"batches[{index}].schedule",
                f"Invalid schedule for batch {name}: End time must be after start time."
            ))
        all_students.extend(batch.students)

    not_enrolled = await unenrolled_students(db, all_students, test["subject"], test["class_id"])
    for student_id in not_enrolled:
        violations.append(Violation(
            "batches.students",
            f"Student {student_id} is not enrolled in {test['subject']}/{test['class_id']}."
        ))

    ensure_valid(violations)

    return [
        {
            "name": batch.name.strip(),
            "student_ids": list(dict.fromkeys(batch.students)),
            "window_start": isoformat_utc(batch.schedule.start),
            "window_end": isoformat_utc(batch.schedule.end),
            "active": batch.active,
        }
        for batch in request.batches
    ]


async def _ensure_gradable(db, test: dict):
    question_docs = await fetch_questions(db, test.get("questions", []))
    problem = question_set_problem(test, question_docs)
    if problem:
        raise ConflictError(f"Test cannot be scheduled: {problem}", reason="test_not_ready")


async def schedule_test(db, test_id: str, request: ScheduleRequest, actor: User) -> dict:
    """
    Replace a test's batches and optionally move its status.

    Overlapping windows, within this test or across tests for the same
    student, are accepted, as are windows that already ended.
    """
    test = await db.tests.find_one({"test_id": test_id}, {"_id": 0})
    if not test:
        raise NotFoundError("Test not found", reason="test_not_found")

    update = {}
    if request.status is not None:
        check_transition(test["status"], request.status)
        if request.status == "scheduled":
            await _ensure_gradable(db, test)
        update["status"] = request.status

    if request.batches is not None:
        update["batches"] = await _build_batches(db, test, request)

    if not update:
        return with_derived_status(test)

    update["updated_at"] = isoformat_utc(utc_now())
    await db.tests.update_one({"test_id": test_id}, {"$set": update})
    test.update(update)

    logger.info(
        f"Test {test_id} scheduled by {actor.user_id}: "
        f"{len(test.get('batches', []))} batches, status={test['status']}"
    )
    return with_derived_status(test)


async def change_status(db, test_id: str, target: str, actor: User) -> dict:
    return await schedule_test(db, test_id, ScheduleRequest(status=target), actor)
