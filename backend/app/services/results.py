"""
Result store - the only writer of graded attempts.

Results are append-only; the admin override is the single edit path.
"""

from typing import Optional, List, Dict

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from app.config import logger, MAX_REMARKS_LENGTH
from app.errors import ConflictError, NotFoundError, ValidationError, InternalError
from app.models.user import User
from app.utils.serialization import utc_now, isoformat_utc

MAX_RESULTS = 10000


async def create_result(db, result: dict) -> dict:
    """Insert a result; a second result for the same (test_id, user_id) is refused"""
    try:
        await db.results.insert_one(result)
    except DuplicateKeyError:
        logger.warning(f"Duplicate submission refused: test={result['test_id']} user={result['user_id']}")
        raise ConflictError("Test already submitted.", reason="already_submitted")
    except PyMongoError as e:
        logger.error(f"Failed to store result for test {result['test_id']}: {e}", exc_info=True)
        raise InternalError()
    result.pop("_id", None)
    return result


async def get_result(db, result_id: str) -> dict:
    result = await db.results.find_one({"result_id": result_id}, {"_id": 0})
    if not result:
        raise NotFoundError("Result not found", reason="result_not_found")
    return result


async def find_by_test(db, test_id: str) -> List[dict]:
    return await db.results.find(
        {"test_id": test_id, "is_active": True},
        {"_id": 0}
    ).sort("submitted_at", 1).to_list(MAX_RESULTS)


async def find_by_student_and_session(db, user_id: str, session: Optional[str] = None, term: Optional[str] = None) -> List[dict]:
    query = {"user_id": user_id, "is_active": True}
    if session:
        query["session"] = session
    if term:
        query["term"] = term
    return await db.results.find(query, {"_id": 0}).sort("submitted_at", -1).to_list(MAX_RESULTS)


async def find_class_results(db, class_id: str, subject: str, session: str, term: Optional[str] = None) -> List[dict]:
    query = {"class_id": class_id, "subject": subject, "session": session, "is_active": True}
    if term:
        query["term"] = term
    return await db.results.find(query, {"_id": 0}).sort("score", -1).to_list(MAX_RESULTS)


async def aggregate_class_average(db, class_id: str, subject: str, session: str, term: Optional[str] = None) -> Dict:
    """Mean score of a class in one subject and session"""
    match = {"class_id": class_id, "subject": subject, "session": session, "is_active": True}
    if term:
        match["term"] = term

    rows = await db.results.aggregate([
        {"$match": match},
        {"$group": {"_id": None, "average_score": {"$avg": "$score"}, "count": {"$sum": 1}}}
    ]).to_list(1)

    if not rows:
        return {"average_score": 0, "student_count": 0}
    return {
        "average_score": round(rows[0]["average_score"], 2),
        "student_count": rows[0]["count"]
    }


async def admin_override(
    db,
    result_id: str,
    actor: User,
    score: Optional[int] = None,
    answers: Optional[Dict[str, Optional[str]]] = None,
    correctness: Optional[Dict[str, bool]] = None,
    remarks: Optional[str] = None,
) -> dict:
    """Privileged correction of a stored result, bypassing grading"""
    result = await get_result(db, result_id)

    update = {}
    if score is not None:
        if score < 0 or score > result["total_marks"]:
            raise ValidationError(
                f"Score must be a number between 0 and total marks ({result['total_marks']}).",
                reason="score_out_of_range"
            )
        update["score"] = score
    if answers is not None:
        update["answers"] = answers
    if correctness is not None:
        update["correctness"] = correctness
    if remarks is not None:
        if len(remarks) > MAX_REMARKS_LENGTH:
            raise ValidationError(f"Remarks cannot exceed {MAX_REMARKS_LENGTH} characters.")
        update["remarks"] = remarks

    if not update:
        raise ValidationError("Nothing to update. Provide score, answers, correctness or remarks.")

    update["reviewed_by"] = actor.user_id
    update["reviewed_at"] = isoformat_utc(utc_now())

    updated = await db.results.find_one_and_update(
        {"result_id": result_id},
        {"$set": update},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER
    )
    logger.info(
        f"Result {result_id} overridden by {actor.user_id}: "
        f"{[k for k in update if k not in ('reviewed_by', 'reviewed_at')]}"
    )
    return updated
