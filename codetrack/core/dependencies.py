from fastapi import Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from codetrack.contests.verification import ContestVerificationEngine
from codetrack.core.database import get_db
from codetrack.judge.client import JudgeOracle
from codetrack.leaderboard.aggregator import LeaderboardAggregator

# ==================== DEPENDENCY FUNCTIONS ====================

def get_oracle(request: Request) -> JudgeOracle:
    """Judge client opened at startup"""
    return request.app.state.oracle


def get_aggregator(
    db: AsyncIOMotorDatabase = Depends(get_db),
    oracle: JudgeOracle = Depends(get_oracle)
) -> LeaderboardAggregator:
    return LeaderboardAggregator(db, oracle)


def get_verification_engine(
    db: AsyncIOMotorDatabase = Depends(get_db),
    oracle: JudgeOracle = Depends(get_oracle)
) -> ContestVerificationEngine:
    return ContestVerificationEngine(db, oracle)
