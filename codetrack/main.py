import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from codetrack.analytics.router import router as analytics_router
from codetrack.cohorts.router import router as cohorts_router
from codetrack.contests.router import router as contests_router
from codetrack.core.config import ALLOWED_ORIGINS, WEEKLY_REPORT_ENABLED
from codetrack.core.database import create_indexes, db_manager
from codetrack.core.errors import TrackerError, tracker_error_handler
from codetrack.core.log_setup import setup_logging
from codetrack.judge.client import JudgeOracle
from codetrack.leaderboard.router import router as leaderboard_router
from codetrack.members.router import router as members_router
from codetrack.reports.router import router as reports_router, weekly_report_loop
from codetrack.system.health_router import router as health_router

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Codetrack", version="1.0.0")


@app.on_event("startup")
async def startup_event():
    db_manager.connect()
    await create_indexes(db_manager.get_database())
    app.state.oracle = JudgeOracle()
    app.state.report_task = None
    if WEEKLY_REPORT_ENABLED:
        app.state.report_task = asyncio.create_task(weekly_report_loop(app.state.oracle))
        logger.info("Weekly report loop started")


@app.on_event("shutdown")
async def shutdown_event():
    task = getattr(app.state, "report_task", None)
    if task is not None:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            logger.info("Weekly report loop stopped")
    oracle = getattr(app.state, "oracle", None)
    if oracle is not None:
        await oracle.aclose()
    db_manager.disconnect()


app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(TrackerError, tracker_error_handler)

# ==================== ROUTER REGISTRATION ====================
app.include_router(health_router)
app.include_router(members_router)
app.include_router(cohorts_router)
app.include_router(contests_router)
app.include_router(leaderboard_router)
app.include_router(analytics_router)
app.include_router(reports_router)
# ============================================================
