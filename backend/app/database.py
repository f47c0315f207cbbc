"""
Database connection - MongoDB async (Motor) client and index setup.
"""

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING

from .config import MONGO_URL, DB_NAME, logger

client = AsyncIOMotorClient(MONGO_URL)
db = client[DB_NAME]


async def ensure_indexes(database):
    """Create the indexes the engine relies on.

    The unique (test_id, user_id) index on results is what guarantees at most
    one graded attempt per student per test.
    """
    await database.results.create_index(
        [("test_id", ASCENDING), ("user_id", ASCENDING)],
        unique=True,
        name="uniq_test_user"
    )
    await database.results.create_index(
        [("class_id", ASCENDING), ("subject", ASCENDING), ("session", ASCENDING), ("term", ASCENDING)],
        name="class_subject_session_term"
    )
    await database.results.create_index([("result_id", ASCENDING)], unique=True, name="uniq_result_id")
    await database.questions.create_index(
        [("subject", ASCENDING), ("class_id", ASCENDING), ("is_active", ASCENDING)],
        name="subject_class_active"
    )
    await database.questions.create_index([("question_id", ASCENDING)], unique=True, name="uniq_question_id")
    await database.tests.create_index([("test_id", ASCENDING)], unique=True, name="uniq_test_id")
    logger.info("✅ Database indexes ensured")
