"""Test routes - definition, question selection, scheduling, submission."""

from fastapi import APIRouter, Depends, Query
from typing import Optional

from app.deps import get_db, get_current_user, get_admin_user, get_teacher_user
from app.errors import AuthorizationError
from app.models.user import User
from app.models.test import TestCreate, TestUpdate, QuestionSetUpdate, ScheduleRequest, StatusUpdate
from app.models.result import SubmitRequest
from app.services import test_definitions, scheduler, grader, results
from app.utils.serialization import serialize_doc
from app.services.reporting import with_grade
from app.services.roster import is_teacher_assigned

router = APIRouter(tags=["tests"])


@router.post("/tests", status_code=201)
async def create_test(data: TestCreate, user: User = Depends(get_teacher_user), db=Depends(get_db)):
    """Create a draft test for an assigned subject/class"""
    return await test_definitions.create_test(db, user, data)


@router.get("/tests")
async def get_tests(
    status: Optional[str] = None,
    subject: Optional[str] = None,
    class_id: Optional[str] = Query(None, alias="class"),
    session: Optional[str] = None,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """List the tests visible to the caller"""
    tests = await test_definitions.list_tests(
        db, user, status=status, subject=subject, class_id=class_id, session=session
    )
    return serialize_doc(tests)


@router.get("/tests/{test_id}")
async def get_test(test_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    test = await test_definitions.get_test(db, user, test_id)
    return serialize_doc(test)


@router.put("/tests/{test_id}")
async def update_test(test_id: str, data: TestUpdate, user: User = Depends(get_teacher_user), db=Depends(get_db)):
    """Edit a draft test"""
    return await test_definitions.update_test(db, user, test_id, data)


@router.delete("/tests/{test_id}")
async def delete_test(test_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    if user.role not in ("teacher", "admin"):
        raise AuthorizationError("Access restricted to test creator or admins")
    await test_definitions.delete_test(db, user, test_id)
    return {"message": "Test deleted"}


@router.put("/tests/{test_id}/questions")
async def update_test_questions(
    test_id: str,
    data: QuestionSetUpdate,
    user: User = Depends(get_teacher_user),
    db=Depends(get_db)
):
    """Replace the question selection of a draft test"""
    return await test_definitions.update_question_set(db, user, test_id, data)


@router.put("/tests/{test_id}/schedule")
async def schedule_test(
    test_id: str,
    request: ScheduleRequest,
    user: User = Depends(get_admin_user),
    db=Depends(get_db)
):
    """Assign batches and optionally move the test's status"""
    return await scheduler.schedule_test(db, test_id, request, user)


@router.put("/tests/{test_id}/status")
async def update_test_status(
    test_id: str,
    data: StatusUpdate,
    user: User = Depends(get_admin_user),
    db=Depends(get_db)
):
    return await scheduler.change_status(db, test_id, data.status, user)


@router.post("/tests/{test_id}/submit")
async def submit_test(
    test_id: str,
    data: SubmitRequest,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Grade and record a student's answers"""
    if user.role == "student":
        if data.user_id and data.user_id != user.user_id:
            raise AuthorizationError("Students can only submit their own answers")
        user_id = user.user_id
    elif user.role == "admin":
        user_id = data.user_id or user.user_id
    else:
        raise AuthorizationError("Only students can submit tests")

    await grader.submit_test(db, test_id, user_id, data.answers)
    return {"message": "Test submitted"}


@router.get("/tests/{test_id}/results")
async def get_test_results(test_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    """All results of a test, for the subject/class teacher or an admin"""
    test = await test_definitions.load_test(db, test_id)
    if user.role == "teacher":
        if not is_teacher_assigned(user, test["subject"], test["class_id"]):
            raise AuthorizationError("You are not assigned to this subject/class", reason="not_assigned")
    elif user.role != "admin":
        raise AuthorizationError("Access restricted to teachers and admins")

    return [with_grade(r) for r in await results.find_by_test(db, test_id)]
