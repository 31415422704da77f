from fastapi import APIRouter, Depends

from codetrack.core.dependencies import get_oracle
from codetrack.core.timeutils import utcnow
from codetrack.judge.client import JudgeOracle

router = APIRouter(tags=["System"])


@router.get("/health")
async def health():
    return {"status": "UP", "timestamp": utcnow()}


@router.get("/health/judge")
async def judge_health(oracle: JudgeOracle = Depends(get_oracle)):
    """Ping the judge API base URL with the configured timeout"""
    is_up, latency_ms = await oracle.ping()
    return {
        "status": "UP" if is_up else "DOWN",
        "judge_api": oracle.base_url,
        "latency_ms": latency_ms,
        "timestamp": utcnow(),
    }
