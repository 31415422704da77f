"""
Member service
Profile, personal problem list, judge sync and badges
"""

import logging
import re
from datetime import date, datetime, timedelta
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from codetrack.core.database import strip_many, strip_mongo_id
from codetrack.core.errors import InvalidRequest, NotConfigured, NotFound
from codetrack.core.timeutils import utcnow
from codetrack.judge.client import JudgeOracle
from codetrack.leaderboard.aggregator import collect_member_stats
from codetrack.members.models import Member, ProblemCreate, ProblemStatus, Role, SolveRecord
from codetrack.scoring.points import SOLVED_STATUSES, count_solved, earned_badges
from codetrack.scoring.streaks import calculate_streak, today_in_zone

logger = logging.getLogger(__name__)

_PROFILE_URL = re.compile(r"^(?:https?://)?(?:www\.)?[\w.-]+\.\w+/(?:u/)?([^/?#\s]+)", re.IGNORECASE)
_HANDLE = re.compile(r"^[\w.-]+$")

SYNCABLE_STATUSES = {ProblemStatus.TODO.value, ProblemStatus.ATTEMPTED.value}


async def get_member(db: AsyncIOMotorDatabase, member_id: str) -> dict:
    member = await db.members.find_one({"member_id": member_id})
    if not member:
        raise NotFound("Member not found")
    return strip_mongo_id(member)

# ==================== SIGN-IN ====================

async def ensure_member(
    db: AsyncIOMotorDatabase,
    member_id: str,
    email: Optional[str] = None,
    display_name: Optional[str] = None
) -> dict:
    """Create the member on first sign-in; later calls leave it untouched"""
    defaults = Member(member_id=member_id, email=email, display_name=display_name).model_dump()
    defaults.pop("member_id")

    member = await db.members.find_one_and_update(
        {"member_id": member_id},
        {"$setOnInsert": defaults},
        upsert=True,
        return_document=ReturnDocument.AFTER
    )
    return strip_mongo_id(member)


def next_login_streak(last_login_date: Optional[str], current: int, today: date) -> int:
    """Same day keeps it, the next day adds one, anything else starts over"""
    if not last_login_date:
        return 1
    try:
        last = date.fromisoformat(last_login_date)
    except ValueError:
        return 1
    if last == today:
        return max(current, 1)
    if last == today - timedelta(days=1):
        return current + 1
    return 1


async def record_sign_in(db: AsyncIOMotorDatabase, member_id: str, today: Optional[date] = None) -> dict:
    member = await get_member(db, member_id)
    today = today or today_in_zone(utcnow())

    streak = next_login_streak(member.get("last_login_date"), member.get("login_streak", 0), today)
    await db.members.update_one(
        {"member_id": member_id},
        {"$set": {"login_streak": streak, "last_login_date": today.isoformat()}}
    )
    return {**member, "login_streak": streak, "last_login_date": today.isoformat()}

# ==================== JUDGE LINK ====================

def clean_judge_username(raw: str) -> str:
    """
    Accept a bare handle or a profile URL such as
    https://leetcode.com/u/<handle>/ and return the handle
    """
    text = (raw or "").strip()
    match = _PROFILE_URL.match(text)
    if match:
        text = match.group(1)
    text = text.strip("/@ ")
    if not text or not _HANDLE.match(text):
        raise InvalidRequest("Enter a judge username or profile URL")
    return text


async def link_judge_username(db: AsyncIOMotorDatabase, member_id: str, raw: str) -> dict:
    username = clean_judge_username(raw)
    updated = await db.members.find_one_and_update(
        {"member_id": member_id},
        {"$set": {"judge_username": username, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER
    )
    if not updated:
        raise NotFound("Member not found")
    logger.info("Member %s linked judge username %s", member_id, username)
    return strip_mongo_id(updated)

# ==================== PROBLEM LIST ====================

async def add_problem(db: AsyncIOMotorDatabase, member_id: str, data: ProblemCreate) -> dict:
    record = SolveRecord(**data.model_dump())
    if record.status in SOLVED_STATUSES:
        record.solved_at = utcnow()
    doc = record.model_dump()

    result = await db.members.update_one(
        {"member_id": member_id, "problems.problem_id": {"$ne": record.problem_id}},
        {"$push": {"problems": doc}, "$set": {"updated_at": utcnow()}}
    )
    if result.matched_count == 0:
        await get_member(db, member_id)
        raise InvalidRequest(f"Problem {record.problem_id} is already on your list")

    await award_badges(db, member_id)
    return doc


async def update_problem_status(
    db: AsyncIOMotorDatabase,
    member_id: str,
    problem_id: str,
    status: ProblemStatus
) -> dict:
    problem_id = problem_id.strip().lower()
    member = await get_member(db, member_id)
    problems = member.get("problems") or []

    record = next((p for p in problems if p.get("problem_id") == problem_id), None)
    if record is None:
        raise NotFound(f"Problem {problem_id} is not on your list")

    record["status"] = status.value
    if status.value in SOLVED_STATUSES:
        record["solved_at"] = record.get("solved_at") or utcnow()
    else:
        record["solved_at"] = None

    await db.members.update_one(
        {"member_id": member_id},
        {"$set": {"problems": problems, "updated_at": utcnow()}}
    )
    await award_badges(db, member_id)
    return record

# ==================== BADGES ====================

async def award_badges(db: AsyncIOMotorDatabase, member_id: str) -> List[str]:
    """
    Add any badge the member now qualifies for. Badges are never removed,
    even if the solved count later drops.
    """
    member = await get_member(db, member_id)
    earned = earned_badges(count_solved(member.get("problems")))
    new = [badge for badge in earned if badge not in (member.get("badges") or [])]
    if new:
        await db.members.update_one(
            {"member_id": member_id},
            {"$addToSet": {"badges": {"$each": new}}}
        )
        logger.info("Member %s earned %s", member_id, ", ".join(new))
    return new

# ==================== SYNC ====================

async def sync_member(
    db: AsyncIOMotorDatabase,
    oracle: JudgeOracle,
    member_id: str,
    now: Optional[datetime] = None
) -> dict:
    """
    Pull recent accepted submissions and the calendar from the judge,
    mark matching Todo/Attempted records Solved, cache the streak and
    award badges. Judge failures degrade to "nothing new".
    """
    member = await get_member(db, member_id)
    username = (member.get("judge_username") or "").strip()
    if not username:
        raise NotConfigured()

    now = now or utcnow()
    accepted = await oracle.get_recent_accepted(username)
    accepted_slugs = {s.problem_slug.lower() for s in accepted}

    problems = member.get("problems") or []
    newly_solved = []
    for record in problems:
        if record.get("status") in SYNCABLE_STATUSES and record.get("problem_id", "").lower() in accepted_slugs:
            record["status"] = ProblemStatus.SOLVED.value
            record["solved_at"] = now
            newly_solved.append(record["problem_id"])

    calendar = await oracle.get_calendar(username)
    streak = calculate_streak(calendar, today=today_in_zone(now))["current_streak"]

    await db.members.update_one(
        {"member_id": member_id},
        {"$set": {"problems": problems, "streak": streak, "updated_at": now}}
    )
    badges_awarded = await award_badges(db, member_id)

    logger.info("Synced %s: %d newly solved, streak %d", member_id, len(newly_solved), streak)
    return {"newly_solved": newly_solved, "streak": streak, "badges_awarded": badges_awarded}

# ==================== STATS ====================

async def get_member_stats(
    db: AsyncIOMotorDatabase,
    oracle: JudgeOracle,
    member_id: str,
    now: Optional[datetime] = None
) -> dict:
    """Same numbers the group leaderboard shows, plus skill/language breakdowns"""
    member = await get_member(db, member_id)
    if not (member.get("judge_username") or "").strip():
        raise NotConfigured()

    stats = await collect_member_stats(oracle, member, today_in_zone(now or utcnow()))
    if stats is None:
        raise NotFound("Judge profile not found for this username")

    stats["skills"] = await oracle.get_skill_stats(member["judge_username"])
    stats["languages"] = await oracle.get_language_stats(member["judge_username"])
    return stats

# ==================== ADMIN ====================

async def list_members(db: AsyncIOMotorDatabase, group_id: Optional[str] = None) -> List[dict]:
    query = {"group_id": group_id} if group_id else {}
    cursor = db.members.find(query).sort("created_at", 1)
    return strip_many(await cursor.to_list(length=None))


async def assign_group(db: AsyncIOMotorDatabase, member_id: str, group_id: Optional[str]) -> dict:
    if group_id and not await db.groups.find_one({"group_id": group_id}):
        raise NotFound(f"Group {group_id} not found")

    updated = await db.members.find_one_and_update(
        {"member_id": member_id},
        {"$set": {"group_id": group_id, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER
    )
    if not updated:
        raise NotFound("Member not found")
    return strip_mongo_id(updated)


async def set_role(db: AsyncIOMotorDatabase, member_id: str, role: Role) -> dict:
    updated = await db.members.find_one_and_update(
        {"member_id": member_id},
        {"$set": {"role": role.value, "updated_at": utcnow()}},
        return_document=ReturnDocument.AFTER
    )
    if not updated:
        raise NotFound("Member not found")
    return strip_mongo_id(updated)
