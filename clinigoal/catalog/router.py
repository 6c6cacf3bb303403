from fastapi import APIRouter, Depends, File, Form, UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase

from clinigoal.auth.security import require_admin
from clinigoal.catalog import service
from clinigoal.catalog.models import CourseCreate, CourseUpdate, MediaUpdate, QuizCreate, QuizUpdate
from clinigoal.catalog.storage import LocalFileStorage, get_storage
from clinigoal.database import get_db

router = APIRouter(prefix="/api")

# ==================== COURSES ====================

@router.get("/courses", tags=["Courses"])
async def list_courses(db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.list_courses(db)


@router.post("/courses", status_code=201, tags=["Courses"], dependencies=[Depends(require_admin)])
async def create_course(data: CourseCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.create_course(db, data.model_dump())


@router.get("/courses/{course_id}", tags=["Courses"])
async def get_course(course_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.get_course(db, course_id)


@router.put("/courses/{course_id}", tags=["Courses"], dependencies=[Depends(require_admin)])
async def update_course(course_id: str, data: CourseUpdate, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.update_course(db, course_id, data.model_dump(exclude_none=True))


@router.delete("/courses/{course_id}", tags=["Courses"], dependencies=[Depends(require_admin)])
async def delete_course(course_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.delete_course(db, course_id)


# ==================== VIDEOS / NOTES ====================

def build_media_routes(kind: str, plural: str, tag: str):
    """Upload, list, fetch, update and delete routes for one media kind"""

    @router.get(f"/{plural}", tags=[tag])
    async def list_items(db: AsyncIOMotorDatabase = Depends(get_db)):
        return await service.list_media(db, kind)

    @router.get(f"/{plural}/course/{{course_id}}", tags=[tag])
    async def list_items_for_course(course_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
        return await service.list_media(db, kind, course_id)

    @router.post(f"/{plural}", status_code=201, tags=[tag], dependencies=[Depends(require_admin)])
    async def upload_item(
        title: str = Form(...),
        course_id: str = Form(...),
        description: str = Form(""),
        file: UploadFile = File(...),
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: LocalFileStorage = Depends(get_storage)
    ):
        return await service.create_media(
            db, storage, kind,
            title=title,
            course_id=course_id,
            filename=file.filename,
            content_type=file.content_type,
            source=file,
            description=description,
        )

    @router.get(f"/{plural}/{{item_id}}", tags=[tag])
    async def get_item(item_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
        return await service.get_media(db, kind, item_id)

    @router.put(f"/{plural}/{{item_id}}", tags=[tag], dependencies=[Depends(require_admin)])
    async def update_item(item_id: str, data: MediaUpdate, db: AsyncIOMotorDatabase = Depends(get_db)):
        return await service.update_media(db, kind, item_id, data.model_dump(exclude_none=True))

    @router.delete(f"/{plural}/{{item_id}}", tags=[tag], dependencies=[Depends(require_admin)])
    async def delete_item(
        item_id: str,
        db: AsyncIOMotorDatabase = Depends(get_db),
        storage: LocalFileStorage = Depends(get_storage)
    ):
        return await service.delete_media(db, storage, kind, item_id)


build_media_routes("video", "videos", "Videos")
build_media_routes("note", "notes", "Notes")


# ==================== QUIZZES ====================

@router.get("/quizzes", tags=["Quizzes"])
async def list_quizzes(db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.list_quizzes(db)


@router.get("/quizzes/course/{course_id}", tags=["Quizzes"])
async def list_course_quizzes(course_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.list_quizzes(db, course_id)


@router.post("/quizzes", status_code=201, tags=["Quizzes"], dependencies=[Depends(require_admin)])
async def create_quiz(data: QuizCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.create_quiz(db, data.model_dump())


@router.get("/quizzes/{quiz_id}", tags=["Quizzes"])
async def get_quiz(quiz_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.get_quiz(db, quiz_id)


@router.put("/quizzes/{quiz_id}", tags=["Quizzes"], dependencies=[Depends(require_admin)])
async def update_quiz(quiz_id: str, data: QuizUpdate, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.update_quiz(db, quiz_id, data.model_dump(exclude_none=True))


@router.delete("/quizzes/{quiz_id}", tags=["Quizzes"], dependencies=[Depends(require_admin)])
async def delete_quiz(quiz_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.delete_quiz(db, quiz_id)
