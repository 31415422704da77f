from typing import List

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from codetrack.contests import service
from codetrack.contests.models import ContestCreate, ContestUpdate, VerifyRequest
from codetrack.contests.verification import ContestVerificationEngine
from codetrack.core.database import get_db
from codetrack.core.dependencies import get_verification_engine
from codetrack.system.auth import Principal, get_current_member_id, require_staff

router = APIRouter(prefix="/contests", tags=["Contests"])

# ==================== MEMBER ====================

@router.get("/mine", response_model=List[dict])
async def my_contests(
    member_id: str = Depends(get_current_member_id),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Contests for the caller's group and for everyone, with live status"""
    return await service.list_contests_for_member(db, member_id)


@router.get("/{contest_id}/progress")
async def my_progress(
    contest_id: str,
    member_id: str = Depends(get_current_member_id),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.get_member_progress(db, member_id, contest_id)


@router.post("/{contest_id}/verify")
async def verify_submission(
    contest_id: str,
    payload: VerifyRequest,
    member_id: str = Depends(get_current_member_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
    engine: ContestVerificationEngine = Depends(get_verification_engine)
):
    """
    Claim credit for a contest problem

    Fails with:
    - NotConfigured (409) no judge username linked
    - ContestClosed (409) contest not running
    - DuplicateSubmission (409) already credited
    - NoValidSubmission (422) no accepted submission after the start
    - VerificationUnavailable (503) judge down, try again
    """
    contest = await service.get_contest(db, contest_id)
    return await engine.verify(member_id, contest, payload.problem_slug)

# ==================== STAFF ====================

@router.get("", response_model=List[dict])
async def list_contests(
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.list_contests(db)


@router.post("", status_code=201)
async def create_contest(
    payload: ContestCreate,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.create_contest(db, payload, staff.member_id)


@router.get("/{contest_id}")
async def get_contest(
    contest_id: str,
    member_id: str = Depends(get_current_member_id),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.get_contest(db, contest_id)


@router.patch("/{contest_id}")
async def update_contest(
    contest_id: str,
    payload: ContestUpdate,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.update_contest(db, contest_id, payload)


@router.delete("/{contest_id}")
async def delete_contest(
    contest_id: str,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    await service.delete_contest(db, contest_id)
    return {"status": "success", "message": "Contest deleted"}
