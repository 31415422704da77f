from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from codetrack.core.config import DEFAULT_CONTEST_PROBLEM_SCORE
from codetrack.core.timeutils import to_utc_naive, utcnow


def normalize_slug(slug: str) -> str:
    return slug.strip().lower()

# ==================== DATABASE MODELS ====================

class ContestProblem(BaseModel):
    slug: str = Field(..., min_length=1, max_length=200)
    score: int = Field(DEFAULT_CONTEST_PROBLEM_SCORE, ge=0)

    @field_validator("slug")
    @classmethod
    def clean_slug(cls, v):
        return normalize_slug(v)


class Contest(BaseModel):
    """
    Time-boxed event. Status (upcoming/active/ended) is derived at read
    time from start_time/end_time and never stored.
    """
    contest_id: str  # CON_XXXXXX
    title: str
    creator_id: str
    target_group: str = "All"  # group id or "All"
    start_time: datetime
    end_time: datetime
    problems: List[ContestProblem] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)


class ContestSubmission(BaseModel):
    """
    Credit for one problem in one contest
    Unique per (member_id, contest_id, problem_slug); never mutated
    """
    submission_id: str  # SUB_XXXXXX
    member_id: str
    contest_id: str
    problem_slug: str
    score: int
    solved_at: datetime  # judge acceptance time
    verified_at: datetime = Field(default_factory=utcnow)

# ==================== REQUEST SCHEMAS ====================

def _coerce_problems(value):
    """Bare slugs get the default contest score"""
    if value is None:
        return value
    return [{"slug": item} if isinstance(item, str) else item for item in value]


class ContestCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    target_group: str = Field("All", min_length=1)
    start_time: datetime
    end_time: datetime
    problems: List[ContestProblem] = Field(..., min_length=1)

    @field_validator("problems", mode="before")
    @classmethod
    def bare_slugs(cls, v):
        return _coerce_problems(v)

    @field_validator("start_time", "end_time")
    @classmethod
    def naive_utc(cls, v):
        return to_utc_naive(v)

    @model_validator(mode="after")
    def window_is_ordered(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ContestUpdate(BaseModel):
    """Partial update; a field may be omitted but never set to null"""
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    target_group: Optional[str] = Field(None, min_length=1)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    problems: Optional[List[ContestProblem]] = Field(None, min_length=1)

    @field_validator("title", "target_group", "start_time", "end_time", "problems")
    @classmethod
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("problems", mode="before")
    @classmethod
    def bare_slugs(cls, v):
        return _coerce_problems(v)

    @field_validator("start_time", "end_time")
    @classmethod
    def naive_utc(cls, v):
        return to_utc_naive(v) if v is not None else v


class VerifyRequest(BaseModel):
    problem_slug: str = Field(..., min_length=1, max_length=200)

    @field_validator("problem_slug")
    @classmethod
    def clean_slug(cls, v):
        return normalize_slug(v)
