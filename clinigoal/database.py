import logging
import secrets
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from clinigoal import config

logger = logging.getLogger(__name__)

client = AsyncIOMotorClient(config.MONGO_URL)
db = client[config.MONGO_DB_NAME]


# ==================== DEPENDENCY ====================

async def get_db() -> AsyncIOMotorDatabase:
    """Database dependency"""
    return db


# ==================== HELPERS ====================

def generate_id(prefix: str) -> str:
    """Generate unique ID with prefix"""
    return f"{prefix}_{secrets.token_hex(8).upper()}"


def serialize_mongo(doc: Optional[dict]) -> Optional[dict]:
    """Drop the Mongo _id so the document is JSON-serializable"""
    if doc is None:
        return None
    doc = dict(doc)
    doc.pop("_id", None)
    return doc


def serialize_many(docs: List[dict]) -> List[dict]:
    return [serialize_mongo(doc) for doc in docs]


# ==================== INDEXES ====================

async def create_indexes(database: AsyncIOMotorDatabase):
    """
    Create MongoDB indexes for data integrity
    Called during application startup
    """
    # Identities
    await database.users.create_index("user_id", unique=True)
    await database.users.create_index("email", unique=True)
    await database.admins.create_index("admin_id", unique=True)
    await database.admins.create_index("email", unique=True)

    # Catalog
    await database.courses.create_index("course_id", unique=True)
    await database.videos.create_index("video_id", unique=True)
    await database.videos.create_index("course_id")
    await database.notes.create_index("note_id", unique=True)
    await database.notes.create_index("course_id")
    await database.quizzes.create_index("quiz_id", unique=True)
    await database.quizzes.create_index("course_id")

    # Payments
    await database.payments.create_index("payment_id", unique=True)
    await database.payments.create_index([("user_id", 1), ("course_id", 1), ("status", 1)])
    await database.payments.create_index("status")
    # At most one Approved payment per (user, course)
    await database.payments.create_index(
        [("user_id", 1), ("course_id", 1)],
        unique=True,
        partialFilterExpression={"status": "Approved"},
        name="one_approved_payment_per_course"
    )

    # Progress (one record per user and course)
    await database.user_progress.create_index([("user_id", 1), ("course_id", 1)], unique=True)
    await database.quiz_submissions.create_index("submission_id", unique=True)
    await database.quiz_submissions.create_index([("user_id", 1), ("course_id", 1)])

    # Reviews
    await database.reviews.create_index("review_id", unique=True)
    await database.reviews.create_index("course_id")

    logger.info("✅ Database indexes created")
