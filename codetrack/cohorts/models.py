from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from codetrack.core.timeutils import to_utc_naive, utcnow

# ==================== DATABASE MODELS ====================

class Group(BaseModel):
    group_id: str  # GRP_XXXXXX
    name: str
    description: str = ""
    track_id: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class Track(BaseModel):
    track_id: str  # TRK_XXXXXX
    name: str
    description: str = ""
    color: str = "#6366f1"
    created_at: datetime = Field(default_factory=utcnow)


class Assignment(BaseModel):
    """Problem set for a group (or "All"); status derived from deadline"""
    assignment_id: str  # ASG_XXXXXX
    title: str
    description: str = ""
    creator_id: str
    target_group: str = "All"
    problems: List[str] = Field(default_factory=list)  # judge slugs
    deadline: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)

# ==================== REQUEST SCHEMAS ====================

class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=1000)
    track_id: Optional[str] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)


class TrackCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field("", max_length=1000)
    color: str = Field("#6366f1", pattern=r"^#[0-9a-fA-F]{6}$")


class TrackUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=1000)
    color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")


class TrackAssignment(BaseModel):
    track_id: Optional[str] = None  # None = unassign


def _clean_slugs(value: List[str]) -> List[str]:
    seen = []
    for slug in value:
        slug = slug.strip().lower()
        if slug and slug not in seen:
            seen.append(slug)
    return seen


class AssignmentCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field("", max_length=5000)
    target_group: str = Field("All", min_length=1)
    problems: List[str] = Field(..., min_length=1)
    deadline: Optional[datetime] = None

    @field_validator("problems")
    @classmethod
    def clean_slugs(cls, v):
        return _clean_slugs(v)

    @field_validator("deadline")
    @classmethod
    def naive_utc(cls, v):
        return to_utc_naive(v) if v is not None else v


class AssignmentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    target_group: Optional[str] = None
    problems: Optional[List[str]] = None
    deadline: Optional[datetime] = None

    @field_validator("problems")
    @classmethod
    def clean_slugs(cls, v):
        return _clean_slugs(v) if v is not None else v

    @field_validator("deadline")
    @classmethod
    def naive_utc(cls, v):
        return to_utc_naive(v) if v is not None else v
