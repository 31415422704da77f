from fastapi import APIRouter, Depends, Query

from codetrack.core.dependencies import get_aggregator
from codetrack.leaderboard.aggregator import LeaderboardAggregator
from codetrack.system.auth import get_current_member_id

router = APIRouter(prefix="/leaderboard", tags=["Leaderboards"])

# ==================== LEADERBOARD QUERIES ====================

@router.get("/groups/{group_id}")
async def group_leaderboard(
    group_id: str,
    mode: str = Query("overall", pattern="^(overall|contest)$"),
    member_id: str = Depends(get_current_member_id),
    aggregator: LeaderboardAggregator = Depends(get_aggregator)
):
    """
    Ranked group leaderboard

    overall: judge stats, served from the hourly cache when fresh
    contest: credited contest scores, always live
    """
    return await aggregator.get_group_leaderboard(group_id, mode)


@router.post("/groups/{group_id}/refresh")
async def refresh_group_leaderboard(
    group_id: str,
    member_id: str = Depends(get_current_member_id),
    aggregator: LeaderboardAggregator = Depends(get_aggregator)
):
    """
    Force a recompute. Limited to once per cooldown window per member;
    a rejected call returns success=false with the minutes left.
    """
    return await aggregator.refresh_leaderboard(group_id, member_id)
