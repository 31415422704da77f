"""
Per-group leaderboard cache

One document per group in leaderboard_cache. Writers overwrite the whole
document; a lost race only costs one extra recomputation.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from codetrack.core.config import LEADERBOARD_CACHE_TTL_MINUTES
from codetrack.core.database import strip_mongo_id


class LeaderboardCache:

    def __init__(self, db: AsyncIOMotorDatabase, ttl_minutes: int = LEADERBOARD_CACHE_TTL_MINUTES):
        self.collection = db.leaderboard_cache
        self.ttl = timedelta(minutes=ttl_minutes)

    async def get(self, group_id: str) -> Optional[dict]:
        return strip_mongo_id(await self.collection.find_one({"group_id": group_id}))

    def is_fresh(self, entry: Optional[dict], now: datetime) -> bool:
        """Reusable while age <= TTL; exactly TTL old still counts as fresh"""
        if not entry or entry.get("computed_at") is None:
            return False
        return now - entry["computed_at"] <= self.ttl

    async def save(
        self,
        group_id: str,
        members: List[dict],
        excluded_member_ids: List[str],
        now: datetime
    ) -> dict:
        """Overwrite the group's entry, even when members is empty"""
        entry = {
            "group_id": group_id,
            "members": members,
            "excluded_member_ids": excluded_member_ids,
            "computed_at": now,
        }
        await self.collection.replace_one({"group_id": group_id}, entry, upsert=True)
        return strip_mongo_id(dict(entry))

    async def drop(self, group_id: str):
        await self.collection.delete_one({"group_id": group_id})
