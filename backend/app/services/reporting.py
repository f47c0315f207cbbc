"""
Derived result figures for reporting - percentages, grade bands, summaries.

Nothing here is stored; the grader records raw scores only.
"""

from typing import List, Dict

GRADE_BANDS = [
    (90, "A+"),
    (80, "A"),
    (70, "B"),
    (60, "C"),
    (50, "D"),
    (40, "E"),
]


def calculate_percentage(score, total_marks) -> float:
    if not total_marks:
        return 0.0
    return round(score / total_marks * 100, 2)


def calculate_grade(percentage: float) -> str:
    for floor, grade in GRADE_BANDS:
        if percentage >= floor:
            return grade
    return "F"


def with_grade(result: dict) -> dict:
    result["percentage"] = calculate_percentage(result.get("score", 0), result.get("total_marks", 0))
    result["grade"] = calculate_grade(result["percentage"])
    return result


def analyse_result(result: dict) -> Dict:
    """Correct/incorrect breakdown of one result"""
    correct = sum(1 for ok in result.get("correctness", {}).values() if ok)
    total = result.get("total_questions", 0)
    percentage = calculate_percentage(result.get("score", 0), result.get("total_marks", 0))
    return {
        "correct_answers": correct,
        "incorrect_answers": total - correct,
        "accuracy": round(correct / total * 100, 2) if total else 0.0,
        "score": result.get("score", 0),
        "total_marks": result.get("total_marks", 0),
        "percentage": percentage,
        "grade": calculate_grade(percentage),
        "submitted_at": result.get("submitted_at"),
    }


def summarise_performance(results: List[dict]) -> Dict:
    """Totals and per-subject averages over a student's results"""
    if not results:
        return {
            "total_tests": 0,
            "average_score": 0,
            "average_percentage": 0,
            "best_score": None,
            "worst_score": None,
            "subjects": {},
        }

    scores = [r["score"] for r in results]
    percentages = [calculate_percentage(r["score"], r["total_marks"]) for r in results]

    subjects = {}
    for r in results:
        entry = subjects.setdefault(r["subject"], {"total_tests": 0, "total_score": 0})
        entry["total_tests"] += 1
        entry["total_score"] += r["score"]
    for entry in subjects.values():
        entry["average_score"] = round(entry["total_score"] / entry["total_tests"], 2)

    return {
        "total_tests": len(results),
        "average_score": round(sum(scores) / len(scores), 2),
        "average_percentage": round(sum(percentages) / len(percentages), 2),
        "best_score": max(scores),
        "worst_score": min(scores),
        "subjects": subjects,
    }
