import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from codetrack.core import config
from codetrack.core.database import db_manager, get_db
from codetrack.core.dependencies import get_oracle
from codetrack.judge.client import JudgeOracle
from codetrack.reports.mailer import Mailer, ResendMailer
from codetrack.reports.weekly import run_weekly_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cron", tags=["Reports"])


def build_mailer() -> Optional[Mailer]:
    if not config.RESEND_API_KEY:
        return None
    return ResendMailer(config.RESEND_API_KEY)


def verify_cron_secret(authorization: str = Header(None)):
    """Open when CRON_SECRET is unset, bearer-guarded otherwise"""
    if config.CRON_SECRET and authorization != f"Bearer {config.CRON_SECRET}":
        raise HTTPException(status_code=401, detail="Unauthorized")


async def _run_with_configured_mailer(db: AsyncIOMotorDatabase, oracle: JudgeOracle) -> dict:
    mailer = build_mailer()
    try:
        return await run_weekly_report(db, oracle, mailer)
    finally:
        if mailer is not None:
            await mailer.aclose()


@router.post("/weekly-report", dependencies=[Depends(verify_cron_secret)])
async def trigger_weekly_report(
    db: AsyncIOMotorDatabase = Depends(get_db),
    oracle: JudgeOracle = Depends(get_oracle)
):
    """Called by the external weekly scheduler"""
    return await _run_with_configured_mailer(db, oracle)

# ==================== BACKGROUND LOOP ====================

async def weekly_report_loop(oracle: JudgeOracle, interval_hours: float = config.WEEKLY_REPORT_INTERVAL_HOURS):
    """
    In-process alternative to the cron trigger.
    Runs once per interval until cancelled.
    """
    while True:
        await asyncio.sleep(interval_hours * 3600)
        try:
            await _run_with_configured_mailer(db_manager.get_database(), oracle)
        except Exception:
            logger.exception("Weekly report run failed")
