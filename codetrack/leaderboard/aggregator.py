"""
Leaderboard aggregation

Overall mode: judge stats per member, cached per group for an hour.
Contest mode: sums of credited contest scores, always computed fresh.
Ranking is a stable sort on points; ties keep member order, which is
(created_at, member_id).
"""

import logging
import math
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from codetrack.common.throttle import RateLimitedRunner
from codetrack.core.config import (
    JUDGE_BATCH_DELAY_SECONDS, JUDGE_BATCH_SIZE, LEADERBOARD_CACHE_TTL_MINUTES,
    REFRESH_COOLDOWN_MINUTES
)
from codetrack.core.errors import AggregationPartialFailure, CooldownActive, InvalidRequest
from codetrack.core.timeutils import utcnow
from codetrack.judge.client import JudgeOracle
from codetrack.leaderboard.cache import LeaderboardCache
from codetrack.scoring.points import calculate_points, rank_members
from codetrack.scoring.streaks import calculate_streak, today_in_zone

logger = logging.getLogger(__name__)

MODES = ("overall", "contest")
ALL_GROUPS = "All"

REFRESH_OK_MESSAGE = "Leaderboard updated!"
REFRESH_FAILED_MESSAGE = "Failed to refresh leaderboard. Please try again later."


def member_order_key(member: dict):
    return (member.get("created_at") or datetime.min, member.get("member_id", ""))


async def collect_member_stats(oracle: JudgeOracle, member: dict, today: Optional[date] = None) -> Optional[dict]:
    """
    Judge stats for one member, or None when the profile is unavailable.
    A failed solved-count call raises rather than ranking the member at zero.
    Calls are made one after another so a wave never has more requests in
    flight than members.
    """
    username = member["judge_username"]

    profile = await oracle.get_profile(username)
    if profile is None:
        return None
    solved = await oracle.get_solved(username, strict=True)
    calendar = await oracle.get_calendar(username)

    streak = calculate_streak(calendar, today=today)
    return {
        "member_id": member["member_id"],
        "display_name": member.get("display_name"),
        "judge_username": username,
        "total_solved": solved.solved_problem,
        "easy_solved": solved.easy_solved,
        "medium_solved": solved.medium_solved,
        "hard_solved": solved.hard_solved,
        "current_streak": streak["current_streak"],
        "longest_streak": streak["longest_streak"],
        "total_points": calculate_points(
            solved.easy_solved, solved.medium_solved, solved.hard_solved, streak["current_streak"]
        ),
        "ranking": profile.ranking,
        "reputation": profile.reputation,
        "badges": list(member.get("badges") or []),
    }


class LeaderboardAggregator:

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        oracle: JudgeOracle,
        runner: Optional[RateLimitedRunner] = None,
        clock: Callable[[], datetime] = utcnow,
        cache_ttl_minutes: int = LEADERBOARD_CACHE_TTL_MINUTES,
        cooldown_minutes: int = REFRESH_COOLDOWN_MINUTES
    ):
        self.db = db
        self.oracle = oracle
        self.runner = runner or RateLimitedRunner(JUDGE_BATCH_SIZE, JUDGE_BATCH_DELAY_SECONDS)
        self.clock = clock
        self.cache = LeaderboardCache(db, cache_ttl_minutes)
        self.cooldown = timedelta(minutes=cooldown_minutes)
        self.last_failures: List[AggregationPartialFailure] = []

    # ==================== ENTRY POINT ====================

    async def get_group_leaderboard(
        self,
        group_id: str,
        mode: str = "overall",
        force_refresh: bool = False
    ) -> dict:
        if mode == "overall":
            return await self._overall(group_id, force_refresh)
        if mode == "contest":
            return await self._contest(group_id)
        raise InvalidRequest(f"Unknown leaderboard mode: {mode}. Use one of {', '.join(MODES)}")

    # ==================== OVERALL ====================

    async def _overall(self, group_id: str, force_refresh: bool) -> dict:
        now = self.clock()

        if not force_refresh:
            entry = await self.cache.get(group_id)
            if self.cache.is_fresh(entry, now):
                return self._board(group_id, "overall", entry, from_cache=True)

        entry = await self._recompute(group_id, now)
        return self._board(group_id, "overall", entry, from_cache=False)

    async def _recompute(self, group_id: str, now: datetime) -> dict:
        members = await self.db.members.find({"group_id": group_id}).to_list(length=None)
        members = sorted(
            (m for m in members if (m.get("judge_username") or "").strip()),
            key=member_order_key
        )
        today = today_in_zone(now)

        async def fetch(member: dict) -> dict:
            try:
                stats = await collect_member_stats(self.oracle, member, today)
            except Exception as exc:
                raise AggregationPartialFailure(member["member_id"], repr(exc)) from exc
            if stats is None:
                raise AggregationPartialFailure(member["member_id"], "profile unavailable")
            return stats

        results = await self.runner.run(fetch, members)

        stats: List[dict] = []
        failures: List[AggregationPartialFailure] = []
        for member, result in zip(members, results):
            if isinstance(result, AggregationPartialFailure):
                failures.append(result)
            elif isinstance(result, BaseException):
                failures.append(AggregationPartialFailure(member["member_id"], repr(result)))
            else:
                stats.append(result)

        for failure in failures:
            logger.warning("Leaderboard %s: excluding %s (%s)", group_id, failure.member_id, failure.reason)
        self.last_failures = failures

        logger.info(
            "Leaderboard %s recomputed: %d ranked, %d excluded",
            group_id, len(stats), len(failures)
        )
        return await self.cache.save(group_id, stats, [f.member_id for f in failures], now)

    # ==================== CONTEST ====================

    async def _contest(self, group_id: str) -> dict:
        now = self.clock()

        contests = await self.db.contests.find(
            {"target_group": {"$in": [group_id, ALL_GROUPS]}}
        ).to_list(length=None)
        contest_ids = [c["contest_id"] for c in contests]

        totals: Dict[str, int] = {}
        solved: Dict[str, int] = {}
        if contest_ids:
            submissions = await self.db.contest_submissions.find(
                {"contest_id": {"$in": contest_ids}}
            ).to_list(length=None)
            for submission in submissions:
                member_id = submission["member_id"]
                totals[member_id] = totals.get(member_id, 0) + int(submission.get("score") or 0)
                solved[member_id] = solved.get(member_id, 0) + 1

        members = sorted(
            await self.db.members.find({"group_id": group_id}).to_list(length=None),
            key=member_order_key
        )
        records = [
            {
                "member_id": m["member_id"],
                "display_name": m.get("display_name"),
                "judge_username": m.get("judge_username"),
                "problems_solved": solved.get(m["member_id"], 0),
                "total_points": totals.get(m["member_id"], 0),
            }
            for m in members
        ]

        entry = {"members": records, "excluded_member_ids": [], "computed_at": now}
        return self._board(group_id, "contest", entry, from_cache=False)

    # ==================== REFRESH ====================

    async def refresh_leaderboard(self, group_id: str, member_id: str) -> dict:
        """
        Forced overall refresh, at most once per cooldown window per member.
        The cooldown is claimed in one conditional write before recomputing,
        so a concurrent second request already sees it.
        """
        now = self.clock()
        threshold = now - self.cooldown

        claimed = await self.db.members.find_one_and_update(
            {
                "member_id": member_id,
                "$or": [
                    {"last_leaderboard_refresh": None},
                    {"last_leaderboard_refresh": {"$lte": threshold}},
                ],
            },
            {"$set": {"last_leaderboard_refresh": now}}
        )

        if claimed is None:
            member = await self.db.members.find_one({"member_id": member_id})
            if member is None:
                return {"success": False, "error": "NotFound", "message": "Member not found"}
            error = CooldownActive(self._minutes_left(member["last_leaderboard_refresh"], now))
            return {**error.to_dict(), "success": False}

        try:
            board = await self.get_group_leaderboard(group_id, "overall", force_refresh=True)
        except Exception:
            logger.exception("Forced refresh of leaderboard %s failed", group_id)
            return {"success": False, "message": REFRESH_FAILED_MESSAGE}

        return {"success": True, "message": REFRESH_OK_MESSAGE, "data": board["members"]}

    def _minutes_left(self, last_refresh: datetime, now: datetime) -> int:
        remaining = self.cooldown - (now - last_refresh)
        return max(1, math.ceil(remaining.total_seconds() / 60))

    # ==================== HELPERS ====================

    @staticmethod
    def _board(group_id: str, mode: str, entry: dict, from_cache: bool) -> dict:
        return {
            "group_id": group_id,
            "mode": mode,
            "computed_at": entry.get("computed_at"),
            "from_cache": from_cache,
            "excluded_member_ids": list(entry.get("excluded_member_ids") or []),
            "members": rank_members(entry.get("members") or []),
        }
