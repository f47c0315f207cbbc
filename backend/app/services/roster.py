"""
Roster lookups - teacher assignments and student enrolments.

Both come from the ``users`` collection maintained by the user/class
management screens; this engine only reads them.
"""

from typing import List, Iterable, Tuple

from app.models.user import User


def assigned_pairs(user: User) -> List[Tuple[str, str]]:
    """(subject, class_id) pairs a teacher is assigned to"""
    return [(a.subject, a.class_id) for a in user.subjects]


def enrolled_pairs(user: User) -> List[Tuple[str, str]]:
    return [(e.subject, e.class_id) for e in user.enrolled_subjects]


def is_teacher_assigned(user: User, subject: str, class_id: str) -> bool:
    return (subject, class_id) in assigned_pairs(user)


def pair_query(pairs: Iterable[Tuple[str, str]]) -> dict:
    """Mongo filter matching any of the given (subject, class_id) pairs.

    An empty pair list matches nothing; callers with no pairs return early
    rather than narrowing this filter with their own subject or class keys.
    """
    clauses = [{"subject": subject, "class_id": class_id} for subject, class_id in pairs]
    if not clauses:
        return {"subject": {"$in": []}}
    return {"$or": clauses}


async def unenrolled_students(db, student_ids: List[str], subject: str, class_id: str) -> List[str]:
    """Return the ids in ``student_ids`` that are not students enrolled in subject/class."""
    if not student_ids:
        return []

    unique_ids = list(dict.fromkeys(student_ids))
    students = await db.users.find(
        {"user_id": {"$in": unique_ids}, "role": "student"},
        {"_id": 0, "user_id": 1, "enrolled_subjects": 1}
    ).to_list(len(unique_ids))

    enrolled = set()
    for student in students:
        for enrolment in student.get("enrolled_subjects", []):
            enrolled_class = enrolment.get("class", enrolment.get("class_id"))
            if enrolment.get("subject") == subject and enrolled_class == class_id:
                enrolled.add(student["user_id"])

    return [sid for sid in unique_ids if sid not in enrolled]
