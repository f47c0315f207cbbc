"""
Test definition and question validation rules
"""
import pytest

from app.config import EXAM_TITLE, CA2_TITLE
from app.errors import ValidationError
from app.utils.validation import (
    validate_test_definition,
    validate_question_payload,
    question_set_problem,
    ensure_valid,
    is_well_formed,
)

from conftest import SUBJECT, CLASS_ID, SESSION


def _question(qid, **overrides):
    doc = {
        "question_id": qid,
        "subject": SUBJECT,
        "class_id": CLASS_ID,
        "text": f"Question {qid}",
        "options": ["A", "B", "C"],
        "correct_answer": "A",
        "marks": 20,
    }
    doc.update(overrides)
    return doc


def _candidate(**overrides):
    candidate = {
        "title": EXAM_TITLE,
        "subject": SUBJECT,
        "class_id": CLASS_ID,
        "session": SESSION,
        "duration": 60,
        "question_count": 3,
        "total_marks": 60,
        "questions": ["q1", "q2", "q3"],
        "question_marks": [20, 20, 20],
    }
    candidate.update(overrides)
    return candidate


@pytest.fixture
def bank():
    return {qid: _question(qid) for qid in ("q1", "q2", "q3")}


def _fields(violations):
    return {v.field for v in violations}


class TestTestDefinition:
    def test_valid_examination(self, bank):
        assert validate_test_definition(_candidate(), bank) == []

    def test_mark_sum_must_equal_total(self, bank):
        violations = validate_test_definition(_candidate(question_marks=[20, 20, 10]), bank)

        assert _fields(violations) == {"question_marks"}
        assert "60" in violations[0].message

        with pytest.raises(ValidationError) as exc_info:
            ensure_valid(violations)
        assert "60" in exc_info.value.message
        assert exc_info.value.errors[0]["field"] == "question_marks"

    def test_marks_length_must_match_questions(self, bank):
        violations = validate_test_definition(_candidate(question_marks=[30, 30]), bank)
        assert "question_marks" in _fields(violations)

    def test_missing_marks_with_questions_rejected(self, bank):
        violations = validate_test_definition(_candidate(question_marks=None), bank)
        assert "question_marks" in _fields(violations)

    def test_empty_question_set_is_valid_draft(self):
        assert validate_test_definition(_candidate(questions=[], question_marks=[]), {}) == []

    def test_unknown_title(self, bank):
        violations = validate_test_definition(_candidate(title="Mid-term Quiz"), bank)
        assert "title" in _fields(violations)

    def test_title_category_fixes_total_marks(self):
        exam = validate_test_definition(_candidate(questions=[], question_marks=[], total_marks=20), {})
        assert any("exactly 60" in v.message for v in exam)

        ca = validate_test_definition(
            _candidate(title=CA2_TITLE, questions=[], question_marks=[], total_marks=60), {}
        )
        assert any("exactly 20" in v.message for v in ca)

    @pytest.mark.parametrize("session", ["2024/2025", "2024-2025 First Term", "2024/2025 Fourth Term", None])
    def test_session_format(self, session):
        violations = validate_test_definition(_candidate(questions=[], question_marks=[], session=session), {})
        assert "session" in _fields(violations)

    @pytest.mark.parametrize("field", ["duration", "question_count", "total_marks"])
    @pytest.mark.parametrize("value", [0, -5, None])
    def test_positive_numbers(self, field, value):
        violations = validate_test_definition(_candidate(questions=[], question_marks=[], **{field: value}), {})
        assert field in _fields(violations)

    def test_more_questions_than_count(self, bank):
        violations = validate_test_definition(_candidate(question_count=2), bank)
        assert any("exceeds question count" in v.message for v in violations)

    def test_fewer_questions_than_count_allowed_in_draft(self, bank):
        candidate = _candidate(question_count=5, questions=["q1", "q2"], question_marks=[30, 30])
        assert validate_test_definition(candidate, bank) == []

    def test_question_from_other_class(self, bank):
        bank["q3"] = _question("q3", class_id="JSS2")
        violations = validate_test_definition(_candidate(), bank)
        assert any("q3" in v.message and "subject and class" in v.message for v in violations)

    def test_unknown_question_id(self, bank):
        del bank["q2"]
        violations = validate_test_definition(_candidate(), bank)
        assert any("invalid" in v.message and "q2" in v.message for v in violations)

    def test_malformed_question(self, bank):
        bank["q1"] = _question("q1", correct_answer="Z")
        violations = validate_test_definition(_candidate(), bank)
        assert any("q1" in v.message for v in violations)

    def test_duplicate_question(self, bank):
        violations = validate_test_definition(_candidate(questions=["q1", "q1", "q2"]), bank)
        assert any("only appear once" in v.message for v in violations)

    def test_every_violation_reported(self, bank):
        violations = validate_test_definition(
            _candidate(title="Quiz", session="bad", duration=0, question_marks=[1, 1, 1]), bank
        )
        assert {"title", "session", "duration", "question_marks"} <= _fields(violations)


class TestQuestionShape:
    def test_well_formed(self):
        assert is_well_formed(_question("q1"))

    @pytest.mark.parametrize("overrides", [
        {"text": "   "},
        {"options": ["A"]},
        {"options": ["A", ""]},
        {"options": ["A", "A"]},
        {"correct_answer": ""},
        {"correct_answer": "D"},
    ])
    def test_malformed(self, overrides):
        assert not is_well_formed(_question("q1", **overrides))

    def test_payload_rules(self):
        payload = _question("q1", marks=0, difficulty="impossible", options=list("ABCDEFG"))
        fields = _fields(validate_question_payload(payload))
        assert {"marks", "difficulty", "options"} <= fields

    def test_payload_requires_subject_and_class(self):
        fields = _fields(validate_question_payload(_question("q1", subject="", class_id=None)))
        assert {"subject", "class_id"} <= fields


class TestQuestionSetProblem:
    def test_gradable(self, bank):
        test = _candidate()
        assert question_set_problem(test, bank) is None

    def test_empty(self):
        assert question_set_problem(_candidate(questions=[], question_marks=[]), {}) == "Test has no questions."

    def test_short_of_question_count(self, bank):
        test = _candidate(question_count=4)
        assert "question count is 4" in question_set_problem(test, bank)

    def test_deleted_question(self, bank):
        del bank["q1"]
        assert "missing or malformed" in question_set_problem(_candidate(), bank)

    def test_question_moved_to_other_class(self, bank):
        bank["q2"] = _question("q2", class_id="JSS3")
        assert "q2" in question_set_problem(_candidate(), bank)
