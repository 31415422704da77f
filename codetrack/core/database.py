"""
Document store session management
MongoDB via motor; all joins happen in application code
"""

import logging
import secrets
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from codetrack.core.config import MONGO_DB_NAME, MONGO_URL

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages MongoDB connection lifecycle"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    def connect(self, mongo_url: str = MONGO_URL, db_name: str = MONGO_DB_NAME):
        """Initialize MongoDB connection"""
        if not mongo_url:
            raise RuntimeError("MONGO_URL environment variable required")

        self.client = AsyncIOMotorClient(mongo_url)
        self.db = self.client[db_name]
        logger.info("MongoDB connected (%s)", db_name)

    def disconnect(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB disconnected")

    def get_database(self) -> AsyncIOMotorDatabase:
        """Get database instance for dependency injection"""
        if self.db is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self.db


# Global database manager
db_manager = DatabaseManager()


def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency for database access"""
    return db_manager.get_database()


# ==================== HELPERS ====================

def generate_id(prefix: str) -> str:
    """Generate unique ID with prefix"""
    return f"{prefix}_{secrets.token_hex(8).upper()}"


def strip_mongo_id(doc: Optional[dict]) -> Optional[dict]:
    if doc is not None:
        doc.pop("_id", None)
    return doc


def strip_many(docs: List[dict]) -> List[dict]:
    return [strip_mongo_id(doc) for doc in docs]


# ==================== INDEXES ====================

async def create_indexes(db: AsyncIOMotorDatabase):
    """
    Create database indexes
    Called during application startup
    """

    # Members
    await db.members.create_index("member_id", unique=True)
    await db.members.create_index("group_id")
    await db.members.create_index([("group_id", 1), ("created_at", 1)])

    # Cohorts
    await db.groups.create_index("group_id", unique=True)
    await db.groups.create_index("track_id")
    await db.tracks.create_index("track_id", unique=True)
    await db.assignments.create_index("assignment_id", unique=True)
    await db.assignments.create_index("target_group")

    # Contests
    await db.contests.create_index("contest_id", unique=True)
    await db.contests.create_index("target_group")

    # One credited submission per (member, contest, problem)
    await db.contest_submissions.create_index(
        [("member_id", 1), ("contest_id", 1), ("problem_slug", 1)],
        unique=True
    )
    await db.contest_submissions.create_index("contest_id")
    await db.contest_submissions.create_index("submission_id", unique=True)

    # Leaderboard cache, one cell per group
    await db.leaderboard_cache.create_index("group_id", unique=True)

    # Weekly report snapshots
    await db.weekly_snapshots.create_index("snapshot_id", unique=True)

    logger.info("Tracker indexes created")
