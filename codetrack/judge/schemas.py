from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from codetrack.core.timeutils import to_epoch_seconds


def _count(value: Any) -> int:
    """Judge counts arrive as ints, strings or null; anything odd becomes 0"""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return 0
    return max(number, 0)


# ==================== PROFILE ====================

class JudgeProfile(BaseModel):
    username: Optional[str] = None
    ranking: int = 0
    reputation: int = 0
    total_solved: int = 0
    contribution_points: int = 0

    @classmethod
    def from_api(cls, data: dict) -> "JudgeProfile":
        return cls(
            username=data.get("username"),
            ranking=_count(data.get("ranking")),
            reputation=_count(data.get("reputation")),
            total_solved=_count(data.get("totalSolved")),
            contribution_points=_count(data.get("contributionPoint") or data.get("contributionPoints")),
        )


# ==================== SOLVED COUNTS ====================

class SolvedCounts(BaseModel):
    easy_solved: int = Field(0, ge=0)
    medium_solved: int = Field(0, ge=0)
    hard_solved: int = Field(0, ge=0)
    solved_problem: int = Field(0, ge=0)

    @classmethod
    def from_api(cls, data: dict) -> "SolvedCounts":
        easy = _count(data.get("easySolved"))
        medium = _count(data.get("mediumSolved"))
        hard = _count(data.get("hardSolved"))
        total = _count(data.get("solvedProblem")) or easy + medium + hard
        return cls(easy_solved=easy, medium_solved=medium, hard_solved=hard, solved_problem=total)


# ==================== SUBMISSIONS ====================

class AcceptedSubmission(BaseModel):
    """
    One accepted submission from the judge.
    timestamp is always epoch seconds (normalized on ingestion).
    """
    problem_slug: str
    timestamp: float
    title: Optional[str] = None
    language: Optional[str] = None

    @field_validator("timestamp", mode="before")
    @classmethod
    def epoch_seconds(cls, v):
        return to_epoch_seconds(v)

    @classmethod
    def from_api(cls, data: dict) -> "AcceptedSubmission":
        """
        Raises:
            ValueError: missing slug or unparseable timestamp
        """
        slug = data.get("titleSlug") or data.get("problemSlug")
        if not slug or not isinstance(slug, str):
            raise ValueError(f"Submission without a problem slug: {data!r}")
        return cls(
            problem_slug=slug,
            timestamp=data.get("timestamp"),
            title=data.get("title"),
            language=data.get("lang"),
        )
