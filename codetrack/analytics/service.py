"""
Supervisor analytics

Per-member skill and difficulty breakdowns for a group, fetched through the
same throttled runner as the leaderboard, plus a short coaching
recommendation derived from the easy/medium/hard mix.
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from codetrack.common.throttle import RateLimitedRunner
from codetrack.core.config import JUDGE_BATCH_DELAY_SECONDS, JUDGE_BATCH_SIZE
from codetrack.core.errors import NotConfigured, NotFound
from codetrack.judge.client import JudgeOracle
from codetrack.leaderboard.aggregator import member_order_key

logger = logging.getLogger(__name__)

ALL_GROUPS = "All"

BEGINNER_SOLVED = 10
EASY_HEAVY_RATIO = 0.7
MEDIUM_COMFORT = 20

NO_DATA = "No data available."


def weakness_report(stats: dict) -> str:
    if stats.get("error") or stats.get("skill_stats") is None:
        return NO_DATA

    total = stats.get("total_solved") or 0
    if total < BEGINNER_SOLVED:
        return "Student is just starting. Encourage solving more Easy problems."

    easy = stats.get("easy_solved") or 0
    medium = stats.get("medium_solved") or 0
    hard = stats.get("hard_solved") or 0

    if easy / total > EASY_HEAVY_RATIO:
        return "Student solves mostly Easy problems. Recommendation: Assign more Medium problems to build depth."
    if hard == 0 and medium > MEDIUM_COMFORT:
        return "Student is comfortable with Mediums. Recommendation: Challenge them with a Hard problem."
    return "Student has a balanced profile. Keep up the good work!"


def _identity(member: dict) -> dict:
    return {
        "member_id": member["member_id"],
        "display_name": member.get("display_name"),
        "judge_username": member["judge_username"],
    }


async def collect_skill_breakdown(oracle: JudgeOracle, member: dict) -> dict:
    """Skill tags plus difficulty split; raises when solved counts are unavailable"""
    username = member["judge_username"]
    skills = await oracle.get_skill_stats(username)
    solved = await oracle.get_solved(username, strict=True)

    stats = {
        **_identity(member),
        "skill_stats": skills,
        "total_solved": solved.solved_problem,
        "easy_solved": solved.easy_solved,
        "medium_solved": solved.medium_solved,
        "hard_solved": solved.hard_solved,
        "error": False,
    }
    stats["recommendation"] = weakness_report(stats)
    return stats

# ==================== GROUP ====================

async def fetch_group_stats(
    db: AsyncIOMotorDatabase,
    oracle: JudgeOracle,
    group_id: str,
    runner: Optional[RateLimitedRunner] = None
) -> dict:
    """
    Breakdown for every member of the group ("All" for everyone) with a
    linked username. A member whose stats fail is kept with error=True.
    """
    runner = runner or RateLimitedRunner(JUDGE_BATCH_SIZE, JUDGE_BATCH_DELAY_SECONDS)

    if group_id != ALL_GROUPS and not await db.groups.find_one({"group_id": group_id}):
        raise NotFound("Group not found")

    query = {} if group_id == ALL_GROUPS else {"group_id": group_id}
    members = await db.members.find(query).to_list(length=None)
    members = sorted(
        (m for m in members if (m.get("judge_username") or "").strip()),
        key=member_order_key
    )

    results = await runner.run(lambda member: collect_skill_breakdown(oracle, member), members)

    entries = []
    failed = []
    for member, result in zip(members, results):
        if isinstance(result, BaseException):
            logger.warning("Analytics: stats for %s unavailable (%r)", member["member_id"], result)
            failed.append(member["member_id"])
            result = {**_identity(member), "skill_stats": None, "error": True, "recommendation": NO_DATA}
        entries.append(result)

    return {"group_id": group_id, "members": entries, "failed_member_ids": failed}

# ==================== MEMBER ====================

async def get_member_insights(db: AsyncIOMotorDatabase, oracle: JudgeOracle, member_id: str) -> dict:
    """Single member breakdown with their recent accepted submissions"""
    member = await db.members.find_one({"member_id": member_id})
    if not member:
        raise NotFound("Member not found")
    if not (member.get("judge_username") or "").strip():
        raise NotConfigured("This member has not linked a judge username.")

    stats = await collect_skill_breakdown(oracle, member)
    recent = await oracle.get_recent_accepted(member["judge_username"])
    stats["recent_accepted"] = [s.model_dump() for s in recent]
    return stats
