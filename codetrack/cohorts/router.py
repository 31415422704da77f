from typing import List

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from codetrack.cohorts import service
from codetrack.cohorts.models import (
    AssignmentCreate, AssignmentUpdate, GroupCreate, GroupUpdate, TrackAssignment, TrackCreate,
    TrackUpdate
)
from codetrack.core.database import get_db
from codetrack.system.auth import Principal, get_current_member_id, require_staff

router = APIRouter(tags=["Cohorts"])

# ==================== TRACKS ====================

@router.get("/tracks", response_model=List[dict])
async def list_tracks(
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.list_tracks(db)


@router.post("/tracks", status_code=201)
async def create_track(
    payload: TrackCreate,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.create_track(db, payload)


@router.patch("/tracks/{track_id}")
async def update_track(
    track_id: str,
    payload: TrackUpdate,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.update_track(db, track_id, payload)


@router.delete("/tracks/{track_id}")
async def delete_track(
    track_id: str,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.delete_track(db, track_id)
    return {"status": "success", "message": "Track deleted"}

# ==================== GROUPS ====================

@router.get("/groups", response_model=List[dict])
async def list_groups(
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.list_groups(db)


@router.post("/groups", status_code=201)
async def create_group(
    payload: GroupCreate,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.create_group(db, payload)


@router.get("/groups/{group_id}")
async def get_group(
    group_id: str,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.get_group(db, group_id)


@router.patch("/groups/{group_id}")
async def update_group(
    group_id: str,
    payload: GroupUpdate,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.update_group(db, group_id, payload)


@router.put("/groups/{group_id}/track")
async def assign_track(
    group_id: str,
    payload: TrackAssignment,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.assign_group_to_track(db, group_id, payload.track_id)


@router.delete("/groups/{group_id}")
async def delete_group(
    group_id: str,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.delete_group(db, group_id)
    return {"status": "success", "message": "Group deleted"}

# ==================== ASSIGNMENTS ====================

@router.get("/assignments/mine", response_model=List[dict])
async def my_assignments(
    member_id: str = Depends(get_current_member_id),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.list_member_assignments(db, member_id)


@router.get("/assignments", response_model=List[dict])
async def list_assignments(
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.list_assignments(db)


@router.post("/assignments", status_code=201)
async def create_assignment(
    payload: AssignmentCreate,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.create_assignment(db, payload, staff.member_id)


@router.patch("/assignments/{assignment_id}")
async def update_assignment(
    assignment_id: str,
    payload: AssignmentUpdate,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.update_assignment(db, assignment_id, payload)


@router.delete("/assignments/{assignment_id}")
async def delete_assignment(
    assignment_id: str,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.delete_assignment(db, assignment_id)
    return {"status": "success", "message": "Assignment deleted"}
