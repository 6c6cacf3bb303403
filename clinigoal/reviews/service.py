from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from clinigoal.database import generate_id, serialize_many, serialize_mongo
from clinigoal.errors import NotFound


async def create_review(db: AsyncIOMotorDatabase, data: dict) -> dict:
    review = {
        "review_id": generate_id("REV"),
        "user_id": data.get("user_id"),
        "course_id": data.get("course_id"),
        "name": data.get("name"),
        "rating": data["rating"],
        "text": data["text"].strip(),
        "reply": None,
        "replied_at": None,
        "created_at": datetime.utcnow(),
    }
    await db.reviews.insert_one(review)
    return serialize_mongo(review)


async def list_reviews(db: AsyncIOMotorDatabase, course_id: Optional[str] = None) -> List[dict]:
    """Newest first, optionally for one course"""
    query = {"course_id": course_id} if course_id else {}
    cursor = db.reviews.find(query).sort("created_at", -1)
    return serialize_many(await cursor.to_list(length=None))


async def get_review(db: AsyncIOMotorDatabase, review_id: str) -> dict:
    review = await db.reviews.find_one({"review_id": review_id})
    if not review:
        raise NotFound("Review not found")
    return serialize_mongo(review)


async def reply_to_review(db: AsyncIOMotorDatabase, review_id: str, reply: str) -> dict:
    review = await db.reviews.find_one_and_update(
        {"review_id": review_id},
        {"$set": {"reply": reply.strip(), "replied_at": datetime.utcnow()}},
        return_document=ReturnDocument.AFTER
    )
    if not review:
        raise NotFound("Review not found")
    return serialize_mongo(review)


async def delete_review(db: AsyncIOMotorDatabase, review_id: str) -> dict:
    result = await db.reviews.delete_one({"review_id": review_id})
    if result.deleted_count == 0:
        raise NotFound("Review not found")
    return {"message": "Review deleted successfully"}
