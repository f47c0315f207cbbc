"""Result routes - queries, class figures and the admin override."""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.deps import get_db, get_current_user, get_admin_user
from app.errors import AuthorizationError
from app.models.user import User
from app.models.result import ResultOverride
from app.services import results
from app.services.reporting import with_grade, analyse_result, summarise_performance
from app.services.roster import is_teacher_assigned

router = APIRouter(tags=["results"])


def _require_class_access(user: User, subject: str, class_id: str):
    if user.role == "admin":
        return
    if user.role == "teacher" and is_teacher_assigned(user, subject, class_id):
        return
    raise AuthorizationError("You are not assigned to this subject/class", reason="not_assigned")


async def _student_results(db, user: User, student_id: str, session: Optional[str], term: Optional[str]):
    if user.role == "student" and user.user_id != student_id:
        raise AuthorizationError("Students can only view their own results")

    rows = await results.find_by_student_and_session(db, student_id, session=session, term=term)
    if user.role == "teacher":
        rows = [r for r in rows if is_teacher_assigned(user, r["subject"], r["class_id"])]
    return rows


@router.get("/results/student/{student_id}")
async def get_student_results(
    student_id: str,
    session: Optional[str] = None,
    term: Optional[str] = None,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """A student's results, newest first"""
    rows = await _student_results(db, user, student_id, session, term)
    return [with_grade(r) for r in rows]


@router.get("/results/student/{student_id}/performance")
async def get_student_performance(
    student_id: str,
    session: Optional[str] = None,
    term: Optional[str] = None,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    rows = await _student_results(db, user, student_id, session, term)
    return summarise_performance(rows)


@router.get("/results/class")
async def get_class_results(
    subject: str,
    session: str,
    class_id: str = Query(..., alias="class"),
    term: Optional[str] = None,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Results of one class in a subject and session, highest score first"""
    _require_class_access(user, subject, class_id)
    rows = await results.find_class_results(db, class_id, subject, session, term)
    return [with_grade(r) for r in rows]


@router.get("/results/class-average")
async def get_class_average(
    subject: str,
    session: str,
    class_id: str = Query(..., alias="class"),
    term: Optional[str] = None,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    _require_class_access(user, subject, class_id)
    average = await results.aggregate_class_average(db, class_id, subject, session, term)
    return {"class": class_id, "subject": subject, "session": session, "term": term, **average}


@router.get("/results/{result_id}")
async def get_result(result_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    """One result with its correct/incorrect breakdown"""
    result = await results.get_result(db, result_id)
    if user.role == "student":
        if result["user_id"] != user.user_id:
            raise AuthorizationError("Students can only view their own results")
    else:
        _require_class_access(user, result["subject"], result["class_id"])

    result["analysis"] = analyse_result(result)
    return with_grade(result)


@router.put("/results/{result_id}")
async def override_result(
    result_id: str,
    data: ResultOverride,
    user: User = Depends(get_admin_user),
    db=Depends(get_db)
):
    """Admin correction of a stored result"""
    updated = await results.admin_override(
        db, result_id, user,
        score=data.score,
        answers=data.answers,
        correctness=data.correctness,
        remarks=data.remarks,
    )
    return with_grade(updated)
