from typing import Optional

from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    user_id: Optional[str] = None
    course_id: Optional[str] = None
    name: Optional[str] = None  # shown when the reviewer has no account
    rating: int = Field(..., ge=1, le=5)
    text: str = Field(..., min_length=1)


class ReviewReply(BaseModel):
    reply: str = Field(..., min_length=1)
