from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from codetrack.contests.models import Contest, ContestCreate, ContestUpdate
from codetrack.contests.store import ContestStore
from codetrack.core.database import generate_id
from codetrack.core.errors import InvalidRequest, NotFound
from codetrack.core.timeutils import contest_status, utcnow

ALL_GROUPS = "All"


def with_status(contest: dict, now: Optional[datetime] = None) -> dict:
    """Attach the derived status; never persisted"""
    now = now or utcnow()
    return {**contest, "status": contest_status(now, contest["start_time"], contest["end_time"]).value}

# ==================== STAFF CRUD ====================

async def _require_target_group(db: AsyncIOMotorDatabase, target_group: str):
    if target_group != ALL_GROUPS and not await db.groups.find_one({"group_id": target_group}):
        raise NotFound(f"Group {target_group} not found")


async def create_contest(db: AsyncIOMotorDatabase, data: ContestCreate, creator_id: str) -> dict:
    await _require_target_group(db, data.target_group)

    contest = Contest(
        contest_id=generate_id("CON"),
        creator_id=creator_id,
        **data.model_dump()
    ).model_dump()
    await ContestStore(db).insert_contest(contest)
    return with_status(contest)


async def get_contest(db: AsyncIOMotorDatabase, contest_id: str, now: Optional[datetime] = None) -> dict:
    contest = await ContestStore(db).get_contest(contest_id)
    if not contest:
        raise NotFound("Contest not found")
    return with_status(contest, now)


async def list_contests(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> List[dict]:
    now = now or utcnow()
    return [with_status(c, now) for c in await ContestStore(db).list_contests()]


async def update_contest(db: AsyncIOMotorDatabase, contest_id: str, data: ContestUpdate) -> dict:
    store = ContestStore(db)
    existing = await store.get_contest(contest_id)
    if not existing:
        raise NotFound("Contest not found")

    # exclude_unset applies to nested models too; problems need their default scores
    fields = data.model_dump(exclude_unset=True)
    if not fields:
        return with_status(existing)
    if "problems" in fields:
        fields["problems"] = [p.model_dump() for p in data.problems]
    if "target_group" in fields:
        await _require_target_group(db, fields["target_group"])

    start = fields.get("start_time", existing["start_time"])
    end = fields.get("end_time", existing["end_time"])
    if end <= start:
        raise InvalidRequest("end_time must be after start_time")

    updated = await store.update_contest(contest_id, fields)
    return with_status(updated)


async def delete_contest(db: AsyncIOMotorDatabase, contest_id: str):
    if not await ContestStore(db).delete_contest(contest_id):
        raise NotFound("Contest not found")

# ==================== MEMBER VIEWS ====================

async def list_contests_for_member(db: AsyncIOMotorDatabase, member_id: str, now: Optional[datetime] = None) -> List[dict]:
    """Contests targeting the member's group or everyone"""
    member = await db.members.find_one({"member_id": member_id})
    if not member:
        raise NotFound("Member not found")

    targets = [ALL_GROUPS]
    if member.get("group_id"):
        targets.append(member["group_id"])

    now = now or utcnow()
    return [with_status(c, now) for c in await ContestStore(db).list_contests(targets)]


async def get_member_progress(db: AsyncIOMotorDatabase, member_id: str, contest_id: str) -> dict:
    store = ContestStore(db)
    contest = await store.get_contest(contest_id)
    if not contest:
        raise NotFound("Contest not found")

    submissions = await store.member_submissions(member_id, contest_id)
    return {
        "contest_id": contest_id,
        "member_id": member_id,
        "solved_slugs": [s["problem_slug"] for s in submissions],
        "total_score": sum(s["score"] for s in submissions),
        "max_score": sum(p["score"] for p in contest.get("problems", [])),
    }
