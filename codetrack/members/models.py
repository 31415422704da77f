from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from codetrack.core.timeutils import utcnow

# ==================== ENUMS ====================

class ProblemStatus(str, Enum):
    TODO = "Todo"
    ATTEMPTED = "Attempted"
    SOLVED = "Solved"
    DONE = "Done"


class Role(str, Enum):
    STUDENT = "student"
    SUPERVISOR = "supervisor"
    ADMIN = "admin"

# ==================== DATABASE MODELS ====================

class SolveRecord(BaseModel):
    """One problem on a member's personal list"""
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    problem_id: str  # judge problem slug
    title: str
    status: ProblemStatus = ProblemStatus.TODO
    difficulty: Optional[str] = None  # Easy / Medium / Hard
    topics: List[str] = Field(default_factory=list)
    solved_at: Optional[datetime] = None


class Member(BaseModel):
    """
    A student (or staff) account
    Created on first sign-in, never hard-deleted by the tracker
    """
    model_config = ConfigDict(use_enum_values=True, validate_default=True)

    member_id: str
    email: Optional[str] = None
    display_name: Optional[str] = None
    judge_username: Optional[str] = None  # absent = excluded from judge-backed ranking
    group_id: Optional[str] = None
    role: Role = Role.STUDENT
    streak: int = 0  # cached judge streak
    login_streak: int = 0
    last_login_date: Optional[str] = None  # YYYY-MM-DD
    problems: List[SolveRecord] = Field(default_factory=list)
    badges: List[str] = Field(default_factory=list)  # only ever grows
    last_leaderboard_refresh: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

# ==================== REQUEST SCHEMAS ====================

class SignIn(BaseModel):
    email: Optional[str] = None
    display_name: Optional[str] = None


class JudgeUsernameLink(BaseModel):
    judge_username: str = Field(..., min_length=1, max_length=200)  # handle or profile URL


class ProblemCreate(BaseModel):
    problem_id: str = Field(..., min_length=1, max_length=200)
    title: str = Field(..., min_length=1, max_length=300)
    difficulty: Optional[str] = None
    topics: List[str] = Field(default_factory=list)
    status: ProblemStatus = ProblemStatus.TODO

    @field_validator("problem_id")
    @classmethod
    def normalize_slug(cls, v):
        return v.strip().lower()


class ProblemStatusUpdate(BaseModel):
    status: ProblemStatus


class MemberGroupUpdate(BaseModel):
    group_id: Optional[str] = None  # None = unassign


class MemberRoleUpdate(BaseModel):
    role: Role
