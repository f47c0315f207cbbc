"""
Question bank - create, import, edit and look up questions.

Questions are owned by the bank, not by tests: a test only references
question ids. A question referenced by any non-draft test is frozen.
"""

import re
import uuid
from typing import List, Dict, Optional

from pydantic import ValidationError as PydanticValidationError

from app.config import logger
from app.errors import AuthorizationError, NotFoundError, ConflictError, ValidationError
from app.models.question import QuestionCreate
from app.models.user import User
from app.services.roster import is_teacher_assigned, assigned_pairs, pair_query
from app.utils.serialization import utc_now, isoformat_utc
from app.utils.validation import validate_question_payload, ensure_valid

MAX_LIST = 500

PUBLIC_PROJECTION = {"_id": 0, "correct_answer": 0}


def _normalise_tags(tags: List[str]) -> List[str]:
    return [t.strip().lower() for t in tags if t and t.strip()]


def _question_doc(data: QuestionCreate, user: User) -> dict:
    now = isoformat_utc(utc_now())
    return {
        "question_id": f"q_{uuid.uuid4().hex[:12]}",
        "subject": data.subject.strip(),
        "class_id": data.class_id.strip(),
        "text": data.text.strip(),
        "type": "multiple_choice",
        "options": [opt.strip() for opt in data.options],
        "correct_answer": data.correct_answer.strip(),
        "marks": data.marks,
        "difficulty": data.difficulty,
        "tags": _normalise_tags(data.tags),
        "explanation": data.explanation,
        "test_id": data.test_id,
        "save_to_bank": data.save_to_bank,
        "is_active": True,
        "usage_count": 0,
        "last_used": None,
        "created_by": user.user_id,
        "created_at": now,
        "updated_at": now,
    }


async def fetch_questions(db, question_ids: List[str]) -> Dict[str, dict]:
    """Map question id -> stored question for every id that exists."""
    if not question_ids:
        return {}
    docs = await db.questions.find(
        {"question_id": {"$in": list(question_ids)}},
        {"_id": 0}
    ).to_list(len(question_ids))
    return {doc["question_id"]: doc for doc in docs}


async def record_usage(db, question_ids: List[str]):
    if not question_ids:
        return
    await db.questions.update_many(
        {"question_id": {"$in": list(question_ids)}},
        {"$inc": {"usage_count": 1}, "$set": {"last_used": isoformat_utc(utc_now())}}
    )


async def _check_target_test(db, test_id: str, subject: str, class_id: str):
    test = await db.tests.find_one({"test_id": test_id}, {"_id": 0, "subject": 1, "class_id": 1, "status": 1})
    if not test:
        raise NotFoundError("Test not found", reason="test_not_found")
    if test["subject"] != subject or test["class_id"] != class_id:
        raise ValidationError("Question does not match test subject/class")
    if test["status"] != "draft":
        raise AuthorizationError("Can only add questions to draft tests", reason="question_set_frozen")


async def _ensure_not_in_use(db, question_id: str):
    in_use = await db.tests.find_one(
        {"questions": question_id, "status": {"$ne": "draft"}},
        {"_id": 0, "test_id": 1}
    )
    if in_use:
        raise ConflictError(
            f"Question is used by non-draft test {in_use['test_id']}",
            reason="question_in_use"
        )


async def create_question(db, user: User, data: QuestionCreate) -> dict:
    """Validate and store a new question"""
    if not is_teacher_assigned(user, data.subject, data.class_id):
        raise AuthorizationError("Not assigned to this subject/class", reason="not_assigned")

    ensure_valid(validate_question_payload(data.model_dump()))

    if data.test_id:
        await _check_target_test(db, data.test_id, data.subject, data.class_id)

    doc = _question_doc(data, user)
    await db.questions.insert_one(doc)
    doc.pop("_id", None)
    logger.info(f"Question created: {doc['question_id']} ({doc['subject']}/{doc['class_id']}) by {user.user_id}")
    return doc


async def bulk_import_questions(db, user: User, items: List[dict], test_id: Optional[str] = None) -> dict:
    """
    Import many questions at once.

    Each item is validated on its own; valid items are inserted and invalid
    ones are reported back by 1-based position.
    """
    if not items:
        raise ValidationError("Questions must be a non-empty array")

    invalid = []
    docs = []
    for index, item in enumerate(items, start=1):
        try:
            data = QuestionCreate.model_validate({**item, "test_id": test_id})
        except PydanticValidationError as e:
            invalid.append({"index": index, "error": "; ".join(err["msg"] for err in e.errors())})
            continue

        if not is_teacher_assigned(user, data.subject, data.class_id):
            invalid.append({"index": index, "error": "Not assigned to this subject/class"})
            continue

        violations = validate_question_payload(data.model_dump())
        if violations:
            invalid.append({"index": index, "error": " ".join(v.message for v in violations)})
            continue
        docs.append(_question_doc(data, user))

    if not docs:
        raise ValidationError("No valid questions provided", errors=[
            {"field": f"questions[{i['index']}]", "message": i["error"]} for i in invalid
        ])

    if test_id:
        for doc in docs:
            await _check_target_test(db, test_id, doc["subject"], doc["class_id"])

    await db.questions.insert_many(docs)
    inserted_ids = [doc["question_id"] for doc in docs]
    logger.info(f"Imported {len(docs)} questions by {user.user_id} ({len(invalid)} rejected)")

    response = {
        "message": f"Imported {len(docs)} questions successfully",
        "count": len(docs),
        "inserted_ids": inserted_ids,
    }
    if invalid:
        response["invalid_questions"] = invalid
    return response


async def get_question(db, user: User, question_id: str) -> dict:
    question = await db.questions.find_one({"question_id": question_id}, {"_id": 0})
    if not question:
        raise NotFoundError("Question not found", reason="question_not_found")
    if user.role != "admin" and not is_teacher_assigned(user, question["subject"], question["class_id"]):
        raise AuthorizationError("Not assigned to this subject/class", reason="not_assigned")
    return question


async def list_questions(
    db,
    user: User,
    subject: Optional[str] = None,
    class_id: Optional[str] = None,
    tags: Optional[List[str]] = None,
    text: Optional[str] = None,
    difficulty: Optional[str] = None,
    test_id: Optional[str] = None,
) -> List[dict]:
    """Bank questions visible to the caller, without correct answers"""
    query = {"is_active": True}
    if user.role != "admin":
        pairs = assigned_pairs(user)
        if not pairs:
            return []
        query.update(pair_query(pairs))
    if subject:
        query["subject"] = subject
    if class_id:
        query["class_id"] = class_id
    if tags:
        query["tags"] = {"$in": _normalise_tags(tags)}
    if text:
        query["text"] = {"$regex": re.escape(text), "$options": "i"}
    if difficulty:
        query["difficulty"] = difficulty
    if test_id:
        query["test_id"] = test_id
    else:
        query["save_to_bank"] = True

    cursor = db.questions.find(query, PUBLIC_PROJECTION).sort([("usage_count", 1), ("created_at", -1)])
    return await cursor.to_list(MAX_LIST)


async def update_question(db, user: User, question_id: str, data: QuestionCreate) -> dict:
    """Replace a question's content; refused once a non-draft test uses it"""
    existing = await get_question(db, user, question_id)
    if not is_teacher_assigned(user, data.subject, data.class_id):
        raise AuthorizationError("Not assigned to this subject/class", reason="not_assigned")

    ensure_valid(validate_question_payload(data.model_dump()))
    await _ensure_not_in_use(db, question_id)

    if data.test_id:
        await _check_target_test(db, data.test_id, data.subject, data.class_id)

    replacement = _question_doc(data, user)
    for key in ("question_id", "created_by", "created_at", "usage_count", "last_used", "is_active"):
        replacement[key] = existing.get(key, replacement[key])
    if not data.test_id:
        replacement["test_id"] = existing.get("test_id")

    await db.questions.replace_one({"question_id": question_id}, replacement)
    replacement.pop("_id", None)
    logger.info(f"Question updated: {question_id} by {user.user_id}")
    return replacement


async def delete_question(db, user: User, question_id: str):
    await get_question(db, user, question_id)
    await _ensure_not_in_use(db, question_id)
    await db.questions.delete_one({"question_id": question_id})
    logger.info(f"Question deleted: {question_id} by {user.user_id}")
