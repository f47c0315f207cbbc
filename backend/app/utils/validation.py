"""Validation utilities for questions and test definitions.

Each validator takes the full candidate and returns every violation found,
so callers can report all problems at once and write nothing on failure.
"""

import re
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional

from app.config import (
    TEST_TITLES,
    SESSION_PATTERN,
    MIN_OPTIONS,
    MAX_OPTIONS,
    QUESTION_DIFFICULTIES,
    expected_total_marks,
)
from app.errors import ValidationError

MAX_QUESTION_TEXT = 1000
MAX_QUESTION_MARKS = 100


@dataclass
class Violation:
    field: str
    message: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)


def ensure_valid(violations: List[Violation]):
    """Raise a ValidationError carrying every violation, if there are any."""
    if violations:
        raise ValidationError(
            " ".join(v.message for v in violations),
            errors=[v.to_dict() for v in violations]
        )


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_blank(value) -> bool:
    return not isinstance(value, str) or not value.strip()


def question_shape_errors(question: dict) -> List[Violation]:
    """Structural problems that make a stored question ungradable."""
    errors = []
    if _is_blank(question.get("text")):
        errors.append(Violation("text", "text must be a non-empty string"))

    options = question.get("options")
    if not isinstance(options, list) or len(options) < MIN_OPTIONS:
        errors.append(Violation("options", f"at least {MIN_OPTIONS} options are required"))
    elif any(_is_blank(opt) for opt in options):
        errors.append(Violation("options", "options must be non-empty strings"))
    elif len(set(opt.strip() for opt in options)) != len(options):
        errors.append(Violation("options", "options must be distinct"))

    correct = question.get("correct_answer")
    if _is_blank(correct):
        errors.append(Violation("correct_answer", "correct_answer must be a non-empty string"))
    elif isinstance(options, list) and correct not in options:
        errors.append(Violation("correct_answer", "correct_answer must be one of the options"))
    return errors


def is_well_formed(question: dict) -> bool:
    return not question_shape_errors(question)


def validate_question_payload(payload: Dict[str, Any]) -> List[Violation]:
    """Rules for a question being created or edited in the bank."""
    violations = []
    for field in ("subject", "class_id"):
        if _is_blank(payload.get(field)):
            violations.append(Violation(field, f"{field} is required."))

    text = payload.get("text")
    if isinstance(text, str) and len(text.strip()) > MAX_QUESTION_TEXT:
        violations.append(Violation("text", f"Question text cannot exceed {MAX_QUESTION_TEXT} characters."))

    options = payload.get("options") or []
    if len(options) > MAX_OPTIONS:
        violations.append(Violation("options", f"A question can have at most {MAX_OPTIONS} options."))

    for error in question_shape_errors(payload):
        violations.append(Violation(error.field, f"Question {error.message}."))

    marks = payload.get("marks")
    if not _is_positive_int(marks) or marks > MAX_QUESTION_MARKS:
        violations.append(Violation("marks", f"Marks must be a whole number between 1 and {MAX_QUESTION_MARKS}."))

    if payload.get("difficulty", "medium") not in QUESTION_DIFFICULTIES:
        violations.append(Violation("difficulty", f"Difficulty must be one of {', '.join(QUESTION_DIFFICULTIES)}."))
    return violations


def validate_test_definition(candidate: Dict[str, Any], question_docs: Dict[str, dict]) -> List[Violation]:
    """
    Validate a complete test definition candidate.

    ``question_docs`` maps question id to the stored question for every id
    referenced by ``candidate["questions"]`` that exists in the bank.
    """
    violations = []

    title = candidate.get("title")
    if title not in TEST_TITLES:
        violations.append(Violation("title", f"Title must be one of: {', '.join(TEST_TITLES)}."))

    for field in ("subject", "class_id"):
        if _is_blank(candidate.get(field)):
            violations.append(Violation(field, f"{field} is required."))

    for field, label in (("duration", "Duration"), ("question_count", "Question count"), ("total_marks", "Total marks")):
        if not _is_positive_int(candidate.get(field)):
            violations.append(Violation(field, f"{label} must be a positive number."))

    total_marks = candidate.get("total_marks")
    expected = expected_total_marks(title)
    if expected is not None and _is_positive_int(total_marks) and total_marks != expected:
        kind = "Examinations" if expected == 60 else "Continuous Assessments"
        violations.append(Violation("total_marks", f"{kind} must have exactly {expected} marks."))

    session = candidate.get("session")
    if not isinstance(session, str) or not re.match(SESSION_PATTERN, session):
        violations.append(Violation("session", 'Invalid session format. Use "YYYY/YYYY First/Second/Third Term".'))

    questions = candidate.get("questions") or []
    question_marks = candidate.get("question_marks")
    question_count = candidate.get("question_count")

    if len(set(questions)) != len(questions):
        violations.append(Violation("questions", "A question can only appear once in a test."))

    if _is_positive_int(question_count) and len(questions) > question_count:
        violations.append(Violation(
            "questions",
            f"Number of questions ({len(questions)}) exceeds question count ({question_count})."
        ))

    missing = [qid for qid in questions if qid not in question_docs]
    if missing:
        violations.append(Violation("questions", f"One or more question IDs are invalid: {', '.join(missing)}."))

    present = [question_docs[qid] for qid in questions if qid in question_docs]
    mismatched = [
        q["question_id"] for q in present
        if q.get("subject") != candidate.get("subject") or q.get("class_id") != candidate.get("class_id")
    ]
    if mismatched:
        violations.append(Violation(
            "questions",
            f"Questions must match test subject and class: {', '.join(mismatched)}."
        ))
    for q in present:
        for error in question_shape_errors(q):
            violations.append(Violation("questions", f"Question {q['question_id']}: {error.message}."))

    marks = question_marks if question_marks is not None else []
    if len(marks) != len(questions):
        violations.append(Violation(
            "question_marks",
            "Number of question marks must match number of questions."
        ))
    elif questions:
        if not all(_is_positive_int(m) for m in marks):
            violations.append(Violation("question_marks", "Every question mark must be a positive number."))
        marks_sum = sum(marks)
        if _is_positive_int(total_marks) and marks_sum != total_marks:
            violations.append(Violation(
                "question_marks",
                f"Sum of question marks ({marks_sum}) must equal total marks ({total_marks})."
            ))

    return violations


def question_set_problem(test: Dict[str, Any], question_docs: Dict[str, dict]) -> Optional[str]:
    """Why a stored test cannot be scheduled for grading, or None if it can."""
    questions = test.get("questions") or []
    if not questions:
        return "Test has no questions."
    if len(questions) != test.get("question_count"):
        return (
            f"Test has {len(questions)} questions but its question count is "
            f"{test.get('question_count')}."
        )
    if sum(test.get("question_marks") or []) != test.get("total_marks"):
        return "Sum of question marks must equal total marks."
    if any(qid not in question_docs or not is_well_formed(question_docs[qid]) for qid in questions):
        return "One or more questions are missing or malformed."
    mismatched = [
        qid for qid in questions
        if question_docs[qid].get("subject") != test.get("subject")
        or question_docs[qid].get("class_id") != test.get("class_id")
    ]
    if mismatched:
        return f"Questions no longer match test subject and class: {', '.join(mismatched)}."
    return None
