from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from codetrack.analytics import service
from codetrack.core.database import get_db
from codetrack.core.dependencies import get_oracle
from codetrack.judge.client import JudgeOracle
from codetrack.system.auth import Principal, require_staff

router = APIRouter(prefix="/analytics", tags=["Analytics"])


@router.get("/groups/{group_id}")
async def group_stats(
    group_id: str,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db),
    oracle: JudgeOracle = Depends(get_oracle)
):
    """Skill and difficulty breakdown per member; "All" covers every group"""
    return await service.fetch_group_stats(db, oracle, group_id)


@router.get("/members/{member_id}")
async def member_insights(
    member_id: str,
    staff: Principal = Depends(require_staff),
    db: AsyncIOMotorDatabase = Depends(get_db),
    oracle: JudgeOracle = Depends(get_oracle)
):
    return await service.get_member_insights(db, oracle, member_id)
