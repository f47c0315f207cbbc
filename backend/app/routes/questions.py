"""Question bank routes."""

from fastapi import APIRouter, Depends, Query
from typing import Optional, List

from app.deps import get_db, get_current_user, get_teacher_user
from app.errors import AuthorizationError
from app.models.user import User
from app.models.question import QuestionCreate, QuestionBulkImport
from app.services import question_bank
from app.utils.serialization import serialize_doc

router = APIRouter(tags=["questions"])


@router.get("/questions")
async def get_questions(
    subject: Optional[str] = None,
    class_id: Optional[str] = Query(None, alias="class"),
    tags: Optional[List[str]] = Query(None),
    search: Optional[str] = None,
    difficulty: Optional[str] = None,
    test_id: Optional[str] = None,
    user: User = Depends(get_current_user),
    db=Depends(get_db)
):
    """Search the question bank (teachers see their subject/class pairs, admins all)"""
    if user.role not in ("teacher", "admin"):
        raise AuthorizationError("Access restricted to teachers and admins")
    questions = await question_bank.list_questions(
        db, user,
        subject=subject,
        class_id=class_id,
        tags=tags,
        text=search,
        difficulty=difficulty,
        test_id=test_id,
    )
    return serialize_doc(questions)


@router.post("/questions", status_code=201)
async def create_question(data: QuestionCreate, user: User = Depends(get_teacher_user), db=Depends(get_db)):
    """Create a question in the bank"""
    return await question_bank.create_question(db, user, data)


@router.post("/questions/bulk", status_code=201)
async def bulk_import_questions(data: QuestionBulkImport, user: User = Depends(get_teacher_user), db=Depends(get_db)):
    """Import many questions; invalid items are reported, valid ones stored"""
    return await question_bank.bulk_import_questions(db, user, data.questions, data.test_id)


@router.get("/questions/{question_id}")
async def get_question(question_id: str, user: User = Depends(get_current_user), db=Depends(get_db)):
    if user.role not in ("teacher", "admin"):
        raise AuthorizationError("Access restricted to teachers and admins")
    return await question_bank.get_question(db, user, question_id)


@router.put("/questions/{question_id}")
async def update_question(
    question_id: str,
    data: QuestionCreate,
    user: User = Depends(get_teacher_user),
    db=Depends(get_db)
):
    return await question_bank.update_question(db, user, question_id, data)


@router.delete("/questions/{question_id}")
async def delete_question(question_id: str, user: User = Depends(get_teacher_user), db=Depends(get_db)):
    await question_bank.delete_question(db, user, question_id)
    return {"message": "Question deleted"}
