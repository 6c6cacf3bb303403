import logging
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from clinigoal import config
from clinigoal.catalog.storage import FileTooLarge, LocalFileStorage, safe_segment, unique_filename
from clinigoal.database import generate_id, serialize_many, serialize_mongo
from clinigoal.errors import NotFound, ValidationError

logger = logging.getLogger(__name__)

# Videos and notes share one upload/delete path
MEDIA = {
    "video": {
        "collection": "videos", "id_field": "video_id", "prefix": "VID",
        "folder": "videos", "course_ref": "videos", "label": "Video", "mime_prefix": "video/",
    },
    "note": {
        "collection": "notes", "id_field": "note_id", "prefix": "NOTE",
        "folder": "notes", "course_ref": "notes", "label": "Note", "mime_prefix": None,
    },
}


def _require(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    return str(value).strip()


async def _link(db: AsyncIOMotorDatabase, course_id: str, ref: str, item_id: str):
    """Attach an item to its course's ref list (no-op when the course is unknown)"""
    await db.courses.update_one({"course_id": course_id}, {"$addToSet": {ref: item_id}})


async def _unlink(db: AsyncIOMotorDatabase, course_id: str, ref: str, item_id: str):
    await db.courses.update_one({"course_id": course_id}, {"$pull": {ref: item_id}})


# ==================== COURSE CRUD ====================

async def create_course(db: AsyncIOMotorDatabase, data: dict) -> dict:
    now = datetime.utcnow()
    course = {
        "course_id": generate_id("CRS"),
        "title": _require(data.get("title"), "title"),
        "description": data.get("description", ""),
        "price": data.get("price", 0),
        "videos": [],
        "notes": [],
        "quizzes": [],
        "created_at": now,
        "updated_at": now,
    }
    await db.courses.insert_one(course)
    logger.info("Course %s created", course["course_id"])
    return serialize_mongo(course)


async def list_courses(db: AsyncIOMotorDatabase) -> List[dict]:
    cursor = db.courses.find({}).sort("created_at", -1)
    return serialize_many(await cursor.to_list(length=None))


async def get_course(db: AsyncIOMotorDatabase, course_id: str) -> dict:
    course = await db.courses.find_one({"course_id": course_id})
    if not course:
        raise NotFound("Course not found")
    return serialize_mongo(course)


async def update_course(db: AsyncIOMotorDatabase, course_id: str, data: dict) -> dict:
    updates = {k: v for k, v in data.items() if v is not None}
    updates["updated_at"] = datetime.utcnow()

    result = await db.courses.update_one({"course_id": course_id}, {"$set": updates})
    if result.matched_count == 0:
        raise NotFound("Course not found")
    return await get_course(db, course_id)


async def delete_course(db: AsyncIOMotorDatabase, course_id: str) -> dict:
    result = await db.courses.delete_one({"course_id": course_id})
    if result.deleted_count == 0:
        raise NotFound("Course not found")
    logger.info("Course %s deleted", course_id)
    return {"message": "Course deleted successfully"}


# ==================== VIDEO / NOTE CRUD ====================

async def create_media(
    db: AsyncIOMotorDatabase,
    storage: LocalFileStorage,
    kind: str,
    title: str,
    course_id: str,
    filename: str,
    content_type: str,
    source,
    description: str = ""
) -> dict:
    """
    Stream an uploaded file to storage and record it

    Validation: title and course present, for videos a video/* content
    type, and a non-empty file within MAX_UPLOAD_BYTES. `source` is read
    in chunks so an oversized upload is cut off at the limit.
    """
    media = MEDIA[kind]
    title = _require(title, "title")
    course_id = _require(course_id, "course_id")

    if media["mime_prefix"] and not (content_type or "").startswith(media["mime_prefix"]):
        raise ValidationError(f"Only {media['mime_prefix']}* files are allowed")

    folder = f"{media['folder']}/{safe_segment(course_id)}"
    try:
        file_path, size = await storage.store(
            source, folder, unique_filename(filename), max_bytes=config.MAX_UPLOAD_BYTES
        )
    except FileTooLarge:
        raise ValidationError(f"File exceeds the {config.MAX_UPLOAD_BYTES // (1024 * 1024)} MB limit")

    if size == 0:
        await storage.delete(file_path)
        raise ValidationError(f"No {media['label'].lower()} file uploaded")

    item_id = generate_id(media["prefix"])
    now = datetime.utcnow()
    doc = {
        media["id_field"]: item_id,
        "course_id": course_id,
        "title": title,
        "description": description or "",
        "original_name": filename,
        "file_path": file_path,
        "url": storage.url_for(file_path),
        "file_size": size,
        "mime_type": content_type,
        "created_at": now,
        "updated_at": now,
    }
    await db[media["collection"]].insert_one(doc)
    await _link(db, course_id, media["course_ref"], item_id)

    logger.info("%s %s uploaded to %s", media["label"], item_id, file_path)
    return serialize_mongo(doc)


async def list_media(db: AsyncIOMotorDatabase, kind: str, course_id: Optional[str] = None) -> List[dict]:
    query = {"course_id": course_id} if course_id else {}
    cursor = db[MEDIA[kind]["collection"]].find(query).sort("created_at", -1)
    return serialize_many(await cursor.to_list(length=None))


async def get_media(db: AsyncIOMotorDatabase, kind: str, item_id: str) -> dict:
    media = MEDIA[kind]
    doc = await db[media["collection"]].find_one({media["id_field"]: item_id})
    if not doc:
        raise NotFound(f"{media['label']} not found")
    return serialize_mongo(doc)


async def update_media(db: AsyncIOMotorDatabase, kind: str, item_id: str, data: dict) -> dict:
    """Metadata-only update; moving to another course relinks the refs"""
    media = MEDIA[kind]
    current = await get_media(db, kind, item_id)

    updates = {k: v for k, v in data.items() if v is not None}
    updates["updated_at"] = datetime.utcnow()
    await db[media["collection"]].update_one({media["id_field"]: item_id}, {"$set": updates})

    new_course = updates.get("course_id")
    if new_course and new_course != current["course_id"]:
        await _unlink(db, current["course_id"], media["course_ref"], item_id)
        await _link(db, new_course, media["course_ref"], item_id)

    return await get_media(db, kind, item_id)


async def delete_media(db: AsyncIOMotorDatabase, storage: LocalFileStorage, kind: str, item_id: str) -> dict:
    """
    Delete the record and its backing file.
    A failed file delete is logged and the record is still removed.
    """
    media = MEDIA[kind]
    doc = await get_media(db, kind, item_id)

    if not await storage.delete(doc["file_path"]):
        logger.warning("⚠️  %s %s: stored file %s was not removed", media["label"], item_id, doc["file_path"])

    await db[media["collection"]].delete_one({media["id_field"]: item_id})
    await _unlink(db, doc["course_id"], media["course_ref"], item_id)

    logger.info("%s %s deleted", media["label"], item_id)
    return {"message": f"{media['label']} deleted successfully"}


# ==================== QUIZ CRUD ====================

async def create_quiz(db: AsyncIOMotorDatabase, data: dict) -> dict:
    now = datetime.utcnow()
    quiz = {
        "quiz_id": generate_id("QZ"),
        "course_id": _require(data.get("course_id"), "course_id"),
        "title": _require(data.get("title"), "title"),
        "questions": data["questions"],
        "created_at": now,
        "updated_at": now,
    }
    await db.quizzes.insert_one(quiz)
    await _link(db, quiz["course_id"], "quizzes", quiz["quiz_id"])
    return serialize_mongo(quiz)


async def list_quizzes(db: AsyncIOMotorDatabase, course_id: Optional[str] = None) -> List[dict]:
    query = {"course_id": course_id} if course_id else {}
    cursor = db.quizzes.find(query).sort("created_at", -1)
    return serialize_many(await cursor.to_list(length=None))


async def get_quiz(db: AsyncIOMotorDatabase, quiz_id: str) -> dict:
    quiz = await db.quizzes.find_one({"quiz_id": quiz_id})
    if not quiz:
        raise NotFound("Quiz not found")
    return serialize_mongo(quiz)


async def update_quiz(db: AsyncIOMotorDatabase, quiz_id: str, data: dict) -> dict:
    current = await get_quiz(db, quiz_id)

    updates = {k: v for k, v in data.items() if v is not None}
    updates["updated_at"] = datetime.utcnow()
    await db.quizzes.update_one({"quiz_id": quiz_id}, {"$set": updates})

    new_course = updates.get("course_id")
    if new_course and new_course != current["course_id"]:
        await _unlink(db, current["course_id"], "quizzes", quiz_id)
        await _link(db, new_course, "quizzes", quiz_id)

    return await get_quiz(db, quiz_id)


async def delete_quiz(db: AsyncIOMotorDatabase, quiz_id: str) -> dict:
    quiz = await get_quiz(db, quiz_id)
    await db.quizzes.delete_one({"quiz_id": quiz_id})
    await _unlink(db, quiz["course_id"], "quizzes", quiz_id)
    return {"message": "Quiz deleted successfully"}
