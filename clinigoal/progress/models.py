from typing import Optional

from pydantic import BaseModel, Field


class ProgressKey(BaseModel):
    user_id: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)


class VideoWatchedRequest(ProgressKey):
    video_id: str = Field(..., min_length=1)


class QuizAttemptRequest(ProgressKey):
    score: float = Field(..., ge=0, le=100)  # percentage


class QuizSubmissionCreate(ProgressKey):
    quiz_id: Optional[str] = None
    quiz_title: str = Field(..., min_length=1)
    score: float = Field(..., ge=0)
