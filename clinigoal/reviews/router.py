from typing import Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from clinigoal.auth.security import require_admin
from clinigoal.database import get_db
from clinigoal.reviews import service
from clinigoal.reviews.models import ReviewCreate, ReviewReply

router = APIRouter(prefix="/api/reviews", tags=["Reviews"])


@router.get("")
async def list_reviews(course_id: Optional[str] = None, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.list_reviews(db, course_id)


@router.post("", status_code=201)
async def create_review(data: ReviewCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.create_review(db, data.model_dump())


@router.get("/{review_id}")
async def get_review(review_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.get_review(db, review_id)


@router.post("/{review_id}/reply", dependencies=[Depends(require_admin)])
async def reply_to_review(review_id: str, data: ReviewReply, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.reply_to_review(db, review_id, data.reply)


@router.delete("/{review_id}", dependencies=[Depends(require_admin)])
async def delete_review(review_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.delete_review(db, review_id)
