"""
Weekly report

Ranks every member with a linked judge username by total solved count,
picks the champion (rank 1) and the "kooz" (last place among members who
solved anything), stores a snapshot for the ISO week and emails each member
their standing.
"""

import html
import logging
from datetime import datetime, timedelta
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from codetrack.common.throttle import RateLimitedRunner
from codetrack.core.config import JUDGE_BATCH_DELAY_SECONDS, JUDGE_BATCH_SIZE
from codetrack.core.timeutils import to_epoch_seconds, utcnow
from codetrack.judge.client import JudgeOracle
from codetrack.leaderboard.aggregator import member_order_key
from codetrack.reports.mailer import Mailer
from codetrack.scoring.points import rank_by_solved

logger = logging.getLogger(__name__)

ACTIVE_WINDOW = timedelta(days=7)


def count_active_days(calendar: dict, now: datetime, window: timedelta = ACTIVE_WINDOW) -> int:
    """Calendar entries whose timestamp falls in [now - window, now]"""
    end = to_epoch_seconds(now)
    start = end - window.total_seconds()
    active = 0
    for key in calendar or {}:
        try:
            seconds = to_epoch_seconds(key)
        except ValueError:
            continue
        if start <= seconds <= end:
            active += 1
    return active


def week_id(now: datetime) -> tuple:
    """(iso_year, iso_week, snapshot id like 2026-W42)"""
    iso_year, iso_week, _ = now.isocalendar()
    return iso_year, iso_week, f"{iso_year}-W{iso_week}"

# ==================== BUILD ====================

async def build_weekly_report(
    db: AsyncIOMotorDatabase,
    oracle: JudgeOracle,
    now: Optional[datetime] = None,
    runner: Optional[RateLimitedRunner] = None
) -> dict:
    now = now or utcnow()
    runner = runner or RateLimitedRunner(JUDGE_BATCH_SIZE, JUDGE_BATCH_DELAY_SECONDS)

    members = await db.members.find({}).to_list(length=None)
    members = sorted(
        (m for m in members if (m.get("judge_username") or "").strip()),
        key=member_order_key
    )

    async def fetch(member: dict) -> dict:
        solved = await oracle.get_solved(member["judge_username"])
        calendar = await oracle.get_calendar(member["judge_username"])
        return {"solved": solved.solved_problem, "active_days": count_active_days(calendar, now)}

    results = await runner.run(fetch, members)

    entries = []
    for member, result in zip(members, results):
        if isinstance(result, BaseException):
            logger.warning("Weekly report: stats for %s unavailable (%r)", member["member_id"], result)
            result = {"solved": 0, "active_days": 0}
        entries.append({
            "member_id": member["member_id"],
            "display_name": member.get("display_name") or member["judge_username"],
            "judge_username": member["judge_username"],
            "email": member.get("email"),
            "streak": member.get("streak", 0),
            **result,
        })

    leaderboard = rank_by_solved(entries)
    active = [entry for entry in leaderboard if entry["solved"] > 0]
    iso_year, iso_week, snapshot_id = week_id(now)

    return {
        "snapshot_id": snapshot_id,
        "year": iso_year,
        "week": iso_week,
        "generated_at": now,
        "leaderboard": leaderboard,
        "champion": leaderboard[0] if leaderboard else None,
        "kooz": active[-1] if active else None,
    }


async def save_snapshot(db: AsyncIOMotorDatabase, report: dict) -> dict:
    snapshot = {
        "snapshot_id": report["snapshot_id"],
        "week": report["week"],
        "year": report["year"],
        "generated_at": report["generated_at"],
        "leaderboard": [
            {
                "member_id": e["member_id"],
                "judge_username": e["judge_username"],
                "solved": e["solved"],
                "rank": e["rank"],
            }
            for e in report["leaderboard"]
        ],
    }
    await db.weekly_snapshots.replace_one({"snapshot_id": snapshot["snapshot_id"]}, snapshot, upsert=True)
    return snapshot

# ==================== DELIVERY ====================

def render_report_email(entry: dict, report: dict) -> str:
    esc = html.escape
    champion = report["champion"]
    kooz = report["kooz"]

    rows = "".join(
        f"<tr><td>{e['rank']}</td><td>{esc(str(e['display_name']))}</td><td>{e['solved']}</td></tr>"
        for e in report["leaderboard"]
    )
    kooz_line = (
        f"<p>Kooz of the week: {esc(str(kooz['display_name']))} ({kooz['solved']} solved)</p>"
        if kooz else ""
    )
    return (
        f"<h2>Week {report['week']} report</h2>"
        f"<p>Hi {esc(str(entry['display_name']))}, you ranked #{entry['rank']} "
        f"with {entry['solved']} problems solved, {entry['active_days']} active days "
        f"and a {entry['streak']} day streak.</p>"
        f"<p>Champion: {esc(str(champion['display_name']))} ({champion['solved']} solved)</p>"
        f"{kooz_line}"
        f"<table><tr><th>#</th><th>Name</th><th>Solved</th></tr>{rows}</table>"
    )


async def deliver_weekly_report(report: dict, mailer: Mailer) -> dict:
    """One failed delivery never stops the rest"""
    sent, failed, skipped = 0, 0, 0
    for entry in report["leaderboard"]:
        if not entry.get("email"):
            skipped += 1
            continue
        try:
            await mailer.send(
                entry["email"],
                f"Weekly Report: You ranked #{entry['rank']}!",
                render_report_email(entry, report),
            )
            sent += 1
        except Exception as exc:
            failed += 1
            logger.warning("Weekly report to %s failed: %s", entry["member_id"], exc)
    return {"sent": sent, "failed": failed, "skipped": skipped}


async def run_weekly_report(
    db: AsyncIOMotorDatabase,
    oracle: JudgeOracle,
    mailer: Optional[Mailer] = None,
    now: Optional[datetime] = None,
    runner: Optional[RateLimitedRunner] = None
) -> dict:
    """Build, snapshot, then deliver if a mailer is configured"""
    logger.info("Starting weekly report")
    report = await build_weekly_report(db, oracle, now, runner)
    await save_snapshot(db, report)

    if mailer is None:
        logger.warning("Weekly report %s: no mailer configured, skipping delivery", report["snapshot_id"])
        delivery = None
    else:
        delivery = await deliver_weekly_report(report, mailer)

    logger.info("Weekly report %s done (%d members)", report["snapshot_id"], len(report["leaderboard"]))
    return {
        "success": True,
        "snapshot_id": report["snapshot_id"],
        "processed": len(report["leaderboard"]),
        "delivery": delivery,
    }
