"""
Configuration - env vars, constants, logging setup.
"""

import os
import logging
from pathlib import Path
from dotenv import load_dotenv

ROOT_DIR = Path(__file__).parent.parent
load_dotenv(ROOT_DIR / '.env')

# Logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("schoolcbt")

# Database
MONGO_URL = os.environ.get("MONGO_URL", "mongodb://localhost:27017")
DB_NAME = os.environ.get("DB_NAME", "school_cbt")

# Auth
JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY")
JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")

if not JWT_SECRET_KEY:
    logger.warning("⚠️ No JWT_SECRET_KEY found - every authenticated request will be rejected")

# ============ ASSESSMENT RULES ============

CA1_TITLE = "Continuous Assessment 1 (CA 1)"
CA2_TITLE = "Continuous Assessment 2 (CA 2)"
EXAM_TITLE = "Examination"

TEST_TITLES = [CA1_TITLE, CA2_TITLE, EXAM_TITLE]

# Total marks are fixed by title category
CA_TOTAL_MARKS = 20
EXAM_TOTAL_MARKS = 60

SESSION_PATTERN = r"^\d{4}/\d{4} (First|Second|Third) Term$"

TEST_STATUSES = ["draft", "scheduled", "active", "completed", "cancelled"]

MIN_OPTIONS = 2
MAX_OPTIONS = 6
QUESTION_DIFFICULTIES = ["easy", "medium", "hard"]
MAX_REMARKS_LENGTH = 500


def expected_total_marks(title: str):
    """Total marks required by a test title, or None for an unknown title."""
    if title == EXAM_TITLE:
        return EXAM_TOTAL_MARKS
    if title in (CA1_TITLE, CA2_TITLE):
        return CA_TOTAL_MARKS
    return None


def get_version_info():
    """Get deployment version information."""
    git_commit = os.environ.get("GIT_COMMIT_SHA")
    if not git_commit:
        try:
            if os.path.exists(".git_commit"):
                with open(".git_commit", "r") as f:
                    git_commit = f.read().strip()
        except OSError:
            pass

    if not git_commit:
        logger.warning("GIT_COMMIT_SHA not set and .git_commit not found. Build pipeline issue?")
        git_commit = "unknown"

    build_time = os.environ.get("BUILD_TIME", "unknown")
    env = os.environ.get("ENV", os.environ.get("ENVIRONMENT", "development"))

    return {
        "git_commit": git_commit,
        "build_time": build_time,
        "environment": env
    }
