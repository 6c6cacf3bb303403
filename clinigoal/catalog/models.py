from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

# ==================== COURSE MODELS ====================

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(0, ge=0)


class CourseUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)


# ==================== VIDEO / NOTE MODELS ====================

class MediaUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    course_id: Optional[str] = Field(None, min_length=1)


# ==================== QUIZ MODELS ====================

class QuizOption(BaseModel):
    option_text: str = Field(..., min_length=1)
    is_correct: bool = False


class QuizQuestion(BaseModel):
    question_text: str = Field(..., min_length=1)
    options: List[QuizOption]

    @field_validator("options")
    @classmethod
    def validate_options(cls, v):
        if len(v) < 2:
            raise ValueError("Each question needs at least 2 options")
        if not any(o.is_correct for o in v):
            raise ValueError("Each question needs at least one correct option")
        return v


class QuizCreate(BaseModel):
    title: str = Field(..., min_length=1)
    course_id: str = Field(..., min_length=1)
    questions: List[QuizQuestion] = Field(..., min_length=1)


class QuizUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    course_id: Optional[str] = Field(None, min_length=1)
    questions: Optional[List[QuizQuestion]] = Field(None, min_length=1)
