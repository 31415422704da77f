"""
Tracker Configuration
Judge API, store, scoring and scheduling settings
"""

import os
from typing import List


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return float(raw)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _split_csv(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def require_env(name: str) -> str:
    """Get required environment variable or crash"""
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


# ==================== DOCUMENT STORE ====================

MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "codetrack_db")

# ==================== JUDGE API ====================

JUDGE_API_URL = os.getenv("JUDGE_API_URL", "https://alfa-leetcode-api.onrender.com").rstrip("/")

# Every judge call is bounded by this timeout
JUDGE_TIMEOUT_SECONDS = _env_float("JUDGE_TIMEOUT_SECONDS", 10.0)

# Leaderboard fan-out: at most BATCH_SIZE calls in flight, DELAY between waves
JUDGE_BATCH_SIZE = _env_int("JUDGE_BATCH_SIZE", 3)
JUDGE_BATCH_DELAY_SECONDS = _env_float("JUDGE_BATCH_DELAY_SECONDS", 1.5)

# How many recent accepted submissions verification and sync look at
JUDGE_SUBMISSION_LIMIT = _env_int("JUDGE_SUBMISSION_LIMIT", 20)

# ==================== SCORING ====================

POINTS_EASY = _env_int("POINTS_EASY", 25)
POINTS_MEDIUM = _env_int("POINTS_MEDIUM", 50)
POINTS_HARD = _env_int("POINTS_HARD", 100)
POINTS_STREAK_BONUS = _env_int("POINTS_STREAK_BONUS", 10)

# Score given to contest problems entered as a bare slug
DEFAULT_CONTEST_PROBLEM_SCORE = _env_int("DEFAULT_CONTEST_PROBLEM_SCORE", POINTS_MEDIUM)

# Calendar days for streaks are cut at local midnight in this zone
STREAK_TIMEZONE = os.getenv("STREAK_TIMEZONE", "UTC")

# ==================== LEADERBOARD ====================

LEADERBOARD_CACHE_TTL_MINUTES = _env_int("LEADERBOARD_CACHE_TTL_MINUTES", 60)
REFRESH_COOLDOWN_MINUTES = _env_int("REFRESH_COOLDOWN_MINUTES", 30)

# ==================== AUTH ====================

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# ==================== WEEKLY REPORT ====================

CRON_SECRET = os.getenv("CRON_SECRET", "")
RESEND_API_KEY = os.getenv("RESEND_API_KEY", "")
RESEND_API_URL = os.getenv("RESEND_API_URL", "https://api.resend.com/emails")
REPORT_FROM_ADDRESS = os.getenv("REPORT_FROM_ADDRESS", "Codetrack <reports@codetrack.local>")
WEEKLY_REPORT_ENABLED = _env_bool("WEEKLY_REPORT_ENABLED", False)
WEEKLY_REPORT_INTERVAL_HOURS = _env_float("WEEKLY_REPORT_INTERVAL_HOURS", 168.0)

# ==================== HTTP ====================

ALLOWED_ORIGINS = _split_csv(os.getenv("ALLOWED_ORIGINS", "*"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
