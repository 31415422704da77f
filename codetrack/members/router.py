from typing import List, Optional

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from codetrack.core.database import get_db
from codetrack.core.dependencies import get_oracle
from codetrack.judge.client import JudgeOracle
from codetrack.members import service
from codetrack.members.models import (
    JudgeUsernameLink, MemberGroupUpdate, MemberRoleUpdate, ProblemCreate, ProblemStatusUpdate,
    SignIn
)
from codetrack.system.auth import Principal, get_current_member_id, require_admin, require_staff

router = APIRouter(prefix="/members", tags=["Members"])

# ==================== SELF ====================

@router.post("/me/sign-in")
async def sign_in(
    payload: SignIn,
    member_id: str = Depends(get_current_member_id),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    """Create the member on first visit and bump the login streak"""
    await service.ensure_member(db, member_id, payload.email, payload.display_name)
    return await service.record_sign_in(db, member_id)


@router.get("/me")
async def get_me(
    member_id: str = Depends(get_current_member_id),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.get_member(db, member_id)


@router.put("/me/judge-username")
async def link_judge_username(
    payload: JudgeUsernameLink,
    member_id: str = Depends(get_current_member_id),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.link_judge_username(db, member_id, payload.judge_username)


@router.get("/me/stats")
async def get_my_stats(
    member_id: str = Depends(get_current_member_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
    oracle: JudgeOracle = Depends(get_oracle)
):
    return await service.get_member_stats(db, oracle, member_id)


@router.post("/me/sync")
async def sync_from_judge(
    member_id: str = Depends(get_current_member_id),
    db: AsyncIOMotorDatabase = Depends(get_db),
    oracle: JudgeOracle = Depends(get_oracle)
):
    result = await service.sync_member(db, oracle, member_id)
    return {
        "status": "success",
        "message": f"Synced {len(result['newly_solved'])} new problems",
        "data": result
    }

# ==================== PROBLEM LIST ====================

@router.post("/me/problems", status_code=201)
async def add_problem(
    payload: ProblemCreate,
    member_id: str = Depends(get_current_member_id),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.add_problem(db, member_id, payload)


@router.patch("/me/problems/{problem_id}")
async def update_problem_status(
    problem_id: str,
    payload: ProblemStatusUpdate,
    member_id: str = Depends(get_current_member_id),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.update_problem_status(db, member_id, problem_id, payload.status)

# ==================== ADMIN ====================

@router.get("", response_model=List[dict])
async def list_members(
    group_id: Optional[str] = None,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.list_members(db, group_id)


@router.put("/{member_id}/group")
async def assign_group(
    member_id: str,
    payload: MemberGroupUpdate,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.assign_group(db, member_id, payload.group_id)


@router.put("/{member_id}/role")
async def set_role(
    member_id: str,
    payload: MemberRoleUpdate,
    admin: Principal = Depends(require_admin),
    db: AsyncIOMotorDatabase = Depends(get_db)
):
    return await service.set_role(db, member_id, payload.role)
