"""
Contest verification

Decides whether a claimed solve counts for a contest. Order matters:

1. contest must target the member's group or "All"
2. member must have a judge username (no I/O on failure)
3. contest must be active right now
4. problem must belong to the contest
5. existing credit -> DuplicateSubmission, judge is not contacted
6. strict judge query; transport/parse failure -> VerificationUnavailable
7. an accepted submission for the slug strictly after start_time
8. insert exactly one credit (unique index closes the check/insert race)

Nothing is written on any failure path.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from codetrack.contests.models import ContestSubmission, normalize_slug
from codetrack.contests.store import ContestStore
from codetrack.core.database import generate_id
from codetrack.core.errors import (
    ContestClosed, DuplicateSubmission, Forbidden, InvalidRequest, NoValidSubmission,
    NotConfigured, NotFound
)
from codetrack.core.timeutils import (
    ContestStatus, contest_status, from_epoch_seconds, to_epoch_seconds, utcnow
)
from codetrack.judge.client import JudgeOracle

logger = logging.getLogger(__name__)

ALL_GROUPS = "All"


class ContestVerificationEngine:

    def __init__(
        self,
        db: AsyncIOMotorDatabase,
        oracle: JudgeOracle,
        clock: Callable[[], datetime] = utcnow,
        store: Optional[ContestStore] = None
    ):
        self.db = db
        self.oracle = oracle
        self.clock = clock
        self.store = store or ContestStore(db)

    async def verify(self, member_id: str, contest: dict, problem_slug: str) -> dict:
        """
        Returns {"success": True, "score", "submission", "message"} or raises
        Forbidden, NotConfigured, ContestClosed, DuplicateSubmission,
        VerificationUnavailable or NoValidSubmission.
        """
        member = await self.db.members.find_one({"member_id": member_id})
        if member is None:
            raise NotFound("Member not found")

        target = contest.get("target_group") or ALL_GROUPS
        if target != ALL_GROUPS and target != member.get("group_id"):
            raise Forbidden("This contest is not open to your group")

        username = (member.get("judge_username") or "").strip()
        if not username:
            raise NotConfigured()

        now = self.clock()
        status = contest_status(now, contest["start_time"], contest["end_time"])
        if status == ContestStatus.ENDED:
            raise ContestClosed("This contest has ended.")
        if status == ContestStatus.UPCOMING:
            raise ContestClosed("This contest has not started yet.")

        slug = normalize_slug(problem_slug)
        problem = next((p for p in contest.get("problems") or [] if p["slug"] == slug), None)
        if problem is None:
            raise InvalidRequest(f"Problem {slug} is not part of this contest")

        contest_id = contest["contest_id"]
        if await self.store.find_submission(member_id, contest_id, slug):
            raise DuplicateSubmission()

        accepted = await self.oracle.get_accepted_submissions(username)

        start_seconds = to_epoch_seconds(contest["start_time"])
        match = next(
            (s for s in accepted if normalize_slug(s.problem_slug) == slug and s.timestamp > start_seconds),
            None
        )
        if match is None:
            logger.info("No post-start accepted submission for %s on %s (%s)", member_id, slug, contest_id)
            raise NoValidSubmission()

        submission = ContestSubmission(
            submission_id=generate_id("SUB"),
            member_id=member_id,
            contest_id=contest_id,
            problem_slug=slug,
            score=problem["score"],
            solved_at=from_epoch_seconds(match.timestamp),
            verified_at=now,
        ).model_dump()
        await self.store.insert_submission(submission)

        logger.info("Credited %s with %d for %s in %s", member_id, problem["score"], slug, contest_id)
        return {
            "success": True,
            "score": problem["score"],
            "submission": submission,
            "message": f"Verified! +{problem['score']} points",
        }
