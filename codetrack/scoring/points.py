"""
Scoring policy
Points, badges and ranking. Everything here is pure and never raises.
"""

from typing import Any, Dict, Iterable, List

from codetrack.core.config import POINTS_EASY, POINTS_HARD, POINTS_MEDIUM, POINTS_STREAK_BONUS

# One set of weights for profile, leaderboard and overall ranking
POINTS = {
    "easy": POINTS_EASY,
    "medium": POINTS_MEDIUM,
    "hard": POINTS_HARD,
    "streak_bonus": POINTS_STREAK_BONUS,
}

# (threshold, badge name), checked against solved records
BADGE_THRESHOLDS = [
    (10, "Bronze Coder"),
    (50, "Silver Coder"),
    (100, "Gold Coder"),
]

SOLVED_STATUSES = {"Solved", "Done"}


def _non_negative(value: Any) -> int:
    try:
        number = int(value or 0)
    except (TypeError, ValueError):
        return 0
    return max(number, 0)


# ==================== POINTS ====================

def calculate_points(
    easy: Any = 0,
    medium: Any = 0,
    hard: Any = 0,
    streak: Any = 0,
    weights: Dict[str, int] = POINTS
) -> int:
    """easy*W_easy + medium*W_medium + hard*W_hard + streak*W_streak"""
    return (
        _non_negative(easy) * weights["easy"]
        + _non_negative(medium) * weights["medium"]
        + _non_negative(hard) * weights["hard"]
        + _non_negative(streak) * weights["streak_bonus"]
    )


# ==================== BADGES ====================

def count_solved(problems: Iterable[dict]) -> int:
    return sum(
        1 for problem in (problems or [])
        if isinstance(problem, dict) and problem.get("status") in SOLVED_STATUSES
    )


def earned_badges(solved_count: Any) -> List[str]:
    solved = _non_negative(solved_count)
    return [name for threshold, name in BADGE_THRESHOLDS if solved >= threshold]


# ==================== RANKING ====================

def rank_members(records: Iterable[dict], score_key: str = "total_points") -> List[dict]:
    """
    Sort by score descending and attach a 1-based "rank".

    sorted() is stable, so equal scores keep their input order. That is the
    only tie-break.
    """
    ordered = sorted(
        (dict(record) for record in records),
        key=lambda record: _non_negative(record.get(score_key)),
        reverse=True
    )
    for position, record in enumerate(ordered, start=1):
        record["rank"] = position
    return ordered


def rank_by_solved(entries: Iterable[dict]) -> List[dict]:
    """Solved-count ranking used by the weekly report"""
    return rank_members(entries, score_key="solved")
