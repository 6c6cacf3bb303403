from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from clinigoal.database import get_db
from clinigoal.progress import service
from clinigoal.progress.models import (
    ProgressKey, QuizAttemptRequest, QuizSubmissionCreate, VideoWatchedRequest
)

router = APIRouter(prefix="/api/progress", tags=["Progress"])
submissions_router = APIRouter(prefix="/api/quiz-submissions", tags=["Quiz Submissions"])


# ==================== PROGRESS ====================

@router.get("")
async def get_progress(
    user_id: str = Query(..., min_length=1),
    course_id: str = Query(..., min_length=1),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """
    Current progress for one course; an empty record when nothing is stored yet
    """
    return await service.get_progress(db, user_id, course_id)


@router.post("")
async def start_course(data: ProgressKey, db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Open the progress record for a paid course
    """
    return await service.start_course(db, data.user_id, data.course_id)


@router.get("/user/{user_id}")
async def list_user_progress(user_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.list_user_progress(db, user_id)


@router.post("/video")
async def video_watched(data: VideoWatchedRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.record_video_watched(db, data.user_id, data.course_id, data.video_id)


@router.post("/notes")
async def notes_viewed(data: ProgressKey, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.mark_notes_viewed(db, data.user_id, data.course_id)


@router.post("/assignment")
async def assignment_submitted(data: ProgressKey, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.mark_assignment_submitted(db, data.user_id, data.course_id)


@router.post("/quiz")
async def quiz_attempt(data: QuizAttemptRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Record a quiz attempt (max 2). Score is a percentage, 70 passes.
    """
    return await service.submit_quiz_attempt(db, data.user_id, data.course_id, data.score)


@router.post("/certificate")
async def certificate(data: ProgressKey, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.generate_certificate(db, data.user_id, data.course_id)


# ==================== QUIZ SUBMISSIONS ====================

@submissions_router.post("", status_code=201)
async def submit_quiz(data: QuizSubmissionCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.record_quiz_submission(db, data.model_dump())


@submissions_router.get("")
async def list_quiz_submissions(
    user_id: Optional[str] = None,
    course_id: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.list_quiz_submissions(db, user_id, course_id)
