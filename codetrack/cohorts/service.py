"""
Cohort management: tracks, groups and assignments
Joins (group -> members, track -> groups) are done here, not in the store.
"""

import logging
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from codetrack.cohorts.models import (
    Assignment, AssignmentCreate, AssignmentUpdate, Group, GroupCreate, GroupUpdate, Track,
    TrackCreate, TrackUpdate
)
from codetrack.core.database import generate_id, strip_many, strip_mongo_id
from codetrack.core.errors import NotFound
from codetrack.core.timeutils import assignment_status, utcnow
from codetrack.leaderboard.cache import LeaderboardCache
from codetrack.scoring.points import SOLVED_STATUSES

logger = logging.getLogger(__name__)

ALL_GROUPS = "All"


async def _require(db: AsyncIOMotorDatabase, collection: str, key: str, value: str, label: str) -> dict:
    doc = await db[collection].find_one({key: value})
    if not doc:
        raise NotFound(f"{label} not found")
    return strip_mongo_id(doc)


async def _update(db: AsyncIOMotorDatabase, collection: str, key: str, value: str, fields: dict, label: str) -> dict:
    if not fields:
        return await _require(db, collection, key, value, label)
    updated = await db[collection].find_one_and_update(
        {key: value},
        {"$set": fields},
        return_document=ReturnDocument.AFTER
    )
    if not updated:
        raise NotFound(f"{label} not found")
    return strip_mongo_id(updated)

# ==================== TRACKS ====================

async def create_track(db: AsyncIOMotorDatabase, data: TrackCreate) -> dict:
    track = Track(track_id=generate_id("TRK"), **data.model_dump()).model_dump()
    await db.tracks.insert_one(dict(track))
    return track


async def list_tracks(db: AsyncIOMotorDatabase) -> List[dict]:
    tracks = strip_many(await db.tracks.find({}).sort("created_at", 1).to_list(length=None))
    for track in tracks:
        track["group_count"] = await db.groups.count_documents({"track_id": track["track_id"]})
    return tracks


async def update_track(db: AsyncIOMotorDatabase, track_id: str, data: TrackUpdate) -> dict:
    return await _update(db, "tracks", "track_id", track_id, data.model_dump(exclude_unset=True), "Track")


async def delete_track(db: AsyncIOMotorDatabase, track_id: str):
    """Groups on the track are kept, just detached"""
    result = await db.tracks.delete_one({"track_id": track_id})
    if result.deleted_count == 0:
        raise NotFound("Track not found")
    await db.groups.update_many({"track_id": track_id}, {"$set": {"track_id": None}})
    logger.info("Track %s deleted", track_id)


async def assign_group_to_track(db: AsyncIOMotorDatabase, group_id: str, track_id: Optional[str]) -> dict:
    if track_id:
        await _require(db, "tracks", "track_id", track_id, "Track")
    return await _update(db, "groups", "group_id", group_id, {"track_id": track_id}, "Group")

# ==================== GROUPS ====================

async def create_group(db: AsyncIOMotorDatabase, data: GroupCreate) -> dict:
    if data.track_id:
        await _require(db, "tracks", "track_id", data.track_id, "Track")
    group = Group(group_id=generate_id("GRP"), **data.model_dump()).model_dump()
    await db.groups.insert_one(dict(group))
    return group


async def list_groups(db: AsyncIOMotorDatabase) -> List[dict]:
    groups = strip_many(await db.groups.find({}).sort("created_at", 1).to_list(length=None))
    for group in groups:
        group["member_count"] = await db.members.count_documents({"group_id": group["group_id"]})
    return groups


async def get_group(db: AsyncIOMotorDatabase, group_id: str) -> dict:
    group = await _require(db, "groups", "group_id", group_id, "Group")
    members = await db.members.find({"group_id": group_id}).sort("created_at", 1).to_list(length=None)
    group["members"] = [
        {
            "member_id": m["member_id"],
            "display_name": m.get("display_name"),
            "judge_username": m.get("judge_username"),
        }
        for m in members
    ]
    return group


async def update_group(db: AsyncIOMotorDatabase, group_id: str, data: GroupUpdate) -> dict:
    return await _update(db, "groups", "group_id", group_id, data.model_dump(exclude_unset=True), "Group")


async def delete_group(db: AsyncIOMotorDatabase, group_id: str):
    """Members are detached, the cached leaderboard goes with the group"""
    result = await db.groups.delete_one({"group_id": group_id})
    if result.deleted_count == 0:
        raise NotFound("Group not found")
    await db.members.update_many({"group_id": group_id}, {"$set": {"group_id": None}})
    await LeaderboardCache(db).drop(group_id)
    logger.info("Group %s deleted", group_id)

# ==================== ASSIGNMENTS ====================

def _with_status(assignment: dict, now: datetime) -> dict:
    return {**assignment, "status": assignment_status(now, assignment.get("deadline"))}


async def create_assignment(db: AsyncIOMotorDatabase, data: AssignmentCreate, creator_id: str) -> dict:
    if data.target_group != ALL_GROUPS:
        await _require(db, "groups", "group_id", data.target_group, "Group")
    assignment = Assignment(
        assignment_id=generate_id("ASG"),
        creator_id=creator_id,
        **data.model_dump()
    ).model_dump()
    await db.assignments.insert_one(dict(assignment))
    return _with_status(assignment, utcnow())


async def list_assignments(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> List[dict]:
    now = now or utcnow()
    cursor = db.assignments.find({}).sort("created_at", -1)
    return [_with_status(a, now) for a in strip_many(await cursor.to_list(length=None))]


async def update_assignment(db: AsyncIOMotorDatabase, assignment_id: str, data: AssignmentUpdate) -> dict:
    fields = data.model_dump(exclude_unset=True)
    if fields.get("target_group") and fields["target_group"] != ALL_GROUPS:
        await _require(db, "groups", "group_id", fields["target_group"], "Group")
    updated = await _update(db, "assignments", "assignment_id", assignment_id, fields, "Assignment")
    return _with_status(updated, utcnow())


async def delete_assignment(db: AsyncIOMotorDatabase, assignment_id: str):
    result = await db.assignments.delete_one({"assignment_id": assignment_id})
    if result.deleted_count == 0:
        raise NotFound("Assignment not found")


async def list_member_assignments(
    db: AsyncIOMotorDatabase,
    member_id: str,
    now: Optional[datetime] = None
) -> List[dict]:
    """
    Assignments for the member's group and for everyone, soonest deadline
    first (no deadline last), each with {solved, total} progress taken from
    the member's own problem list
    """
    member = await _require(db, "members", "member_id", member_id, "Member")
    targets = [ALL_GROUPS] + ([member["group_id"]] if member.get("group_id") else [])

    solved = {
        p.get("problem_id", "").lower()
        for p in member.get("problems") or []
        if p.get("status") in SOLVED_STATUSES
    }

    now = now or utcnow()
    cursor = db.assignments.find({"target_group": {"$in": targets}})
    assignments = strip_many(await cursor.to_list(length=None))
    assignments.sort(key=lambda a: (a.get("deadline") is None, a.get("deadline") or now))

    results = []
    for assignment in assignments:
        problems = assignment.get("problems") or []
        results.append({
            **_with_status(assignment, now),
            "progress": {
                "solved": sum(1 for slug in problems if slug in solved),
                "total": len(problems),
            },
        })
    return results
