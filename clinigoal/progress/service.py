"""
Per-user, per-course progress tracking

Every mutation is an atomic document operation on the single
(user_id, course_id) record; nothing is loaded, changed in memory and
saved back.
"""

import logging
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from clinigoal import config
from clinigoal.database import generate_id, serialize_many, serialize_mongo
from clinigoal.errors import Conflict, PaymentNotApproved
from clinigoal.payments.service import has_approved_payment

logger = logging.getLogger(__name__)

# Compare-and-swap rounds before a quiz submission gives up
QUIZ_SUBMIT_RETRIES = 5


def empty_progress(user_id: str, course_id: str) -> dict:
    return {
        "user_id": user_id,
        "course_id": course_id,
        "videos_watched": [],
        "notes_viewed": False,
        "assignment_submitted": False,
        "quiz_attempts": [],
        "certificate_generated": False,
    }


def certificate_url(user_id: str, course_id: str) -> str:
    return f"{config.CERTIFICATE_BASE_URL}/{user_id}-{course_id}.pdf"


# ==================== HELPERS ====================

async def _require_approved_payment(db: AsyncIOMotorDatabase, user_id: str, course_id: str):
    if not await has_approved_payment(db, user_id, course_id):
        logger.info("Blocked progress update for user %s course %s: no approved payment", user_id, course_id)
        raise PaymentNotApproved()


async def _ensure_progress(db: AsyncIOMotorDatabase, user_id: str, course_id: str):
    """Create the record on first use; an existing record is left untouched"""
    defaults = empty_progress(user_id, course_id)
    del defaults["user_id"], defaults["course_id"]
    defaults["created_at"] = datetime.utcnow()

    try:
        await db.user_progress.update_one(
            {"user_id": user_id, "course_id": course_id},
            {"$setOnInsert": defaults},
            upsert=True
        )
    except DuplicateKeyError:
        # lost the insert race; the record exists now
        pass


async def _apply(db: AsyncIOMotorDatabase, user_id: str, course_id: str, update: dict) -> dict:
    await _require_approved_payment(db, user_id, course_id)
    await _ensure_progress(db, user_id, course_id)

    update.setdefault("$set", {})["updated_at"] = datetime.utcnow()
    progress = await db.user_progress.find_one_and_update(
        {"user_id": user_id, "course_id": course_id},
        update,
        return_document=ReturnDocument.AFTER
    )
    return serialize_mongo(progress)


# ==================== READS ====================

async def get_progress(db: AsyncIOMotorDatabase, user_id: str, course_id: str) -> dict:
    """Stored record, or an unsaved empty default"""
    progress = await db.user_progress.find_one({"user_id": user_id, "course_id": course_id})
    if not progress:
        return empty_progress(user_id, course_id)
    return serialize_mongo(progress)


async def list_user_progress(db: AsyncIOMotorDatabase, user_id: str) -> List[dict]:
    cursor = db.user_progress.find({"user_id": user_id})
    return serialize_many(await cursor.to_list(length=None))


# ==================== MUTATIONS ====================

async def start_course(db: AsyncIOMotorDatabase, user_id: str, course_id: str) -> dict:
    return await _apply(db, user_id, course_id, {})


async def record_video_watched(db: AsyncIOMotorDatabase, user_id: str, course_id: str, video_id: str) -> dict:
    return await _apply(db, user_id, course_id, {"$addToSet": {"videos_watched": video_id}})


async def mark_notes_viewed(db: AsyncIOMotorDatabase, user_id: str, course_id: str) -> dict:
    return await _apply(db, user_id, course_id, {"$set": {"notes_viewed": True}})


async def mark_assignment_submitted(db: AsyncIOMotorDatabase, user_id: str, course_id: str) -> dict:
    return await _apply(db, user_id, course_id, {"$set": {"assignment_submitted": True}})


async def submit_quiz_attempt(db: AsyncIOMotorDatabase, user_id: str, course_id: str, score: float) -> dict:
    """
    Record one quiz attempt, at most MAX_QUIZ_ATTEMPTS per record

    Past the cap nothing is stored and the caller gets
    {"passed": False, "remaining_attempts": 0}. The push only lands if
    the attempt list still has the length we read, so two concurrent
    submissions cannot both take the last slot.
    """
    await _require_approved_payment(db, user_id, course_id)
    await _ensure_progress(db, user_id, course_id)

    key = {"user_id": user_id, "course_id": course_id}
    for _ in range(QUIZ_SUBMIT_RETRIES):
        progress = await db.user_progress.find_one(key)
        prior = len(progress.get("quiz_attempts") or [])

        if prior >= config.MAX_QUIZ_ATTEMPTS:
            return {"passed": False, "remaining_attempts": 0}

        now = datetime.utcnow()
        attempt = {"attempt_number": prior + 1, "score": score, "attempted_at": now}
        result = await db.user_progress.update_one(
            {**key, "quiz_attempts": {"$size": prior}},
            {"$push": {"quiz_attempts": attempt}, "$set": {"updated_at": now}}
        )
        if result.modified_count == 1:
            return {
                "passed": score >= config.QUIZ_PASS_SCORE,
                "remaining_attempts": config.MAX_QUIZ_ATTEMPTS - (prior + 1),
            }

    logger.warning("Quiz attempt for user %s course %s kept colliding", user_id, course_id)
    raise Conflict("Quiz attempt could not be recorded, please retry")


async def generate_certificate(db: AsyncIOMotorDatabase, user_id: str, course_id: str) -> dict:
    """Flag the certificate as issued; the URL is a placeholder derived from the ids"""
    await _apply(db, user_id, course_id, {"$set": {"certificate_generated": True}})
    return {"certificate_url": certificate_url(user_id, course_id)}


# ==================== QUIZ SUBMISSIONS ====================

async def record_quiz_submission(db: AsyncIOMotorDatabase, data: dict) -> dict:
    submission = {
        "submission_id": generate_id("QSUB"),
        "user_id": data["user_id"],
        "course_id": data["course_id"],
        "quiz_id": data.get("quiz_id"),
        "quiz_title": data["quiz_title"],
        "score": data["score"],
        "submitted_at": datetime.utcnow(),
    }
    await db.quiz_submissions.insert_one(submission)
    return serialize_mongo(submission)


async def list_quiz_submissions(
    db: AsyncIOMotorDatabase,
    user_id: Optional[str] = None,
    course_id: Optional[str] = None
) -> List[dict]:
    query = {}
    if user_id:
        query["user_id"] = user_id
    if course_id:
        query["course_id"] = course_id

    cursor = db.quiz_submissions.find(query).sort("submitted_at", -1)
    return serialize_many(await cursor.to_list(length=None))
