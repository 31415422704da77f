"""
Contest and contest-submission persistence

The unique index on contest_submissions(member_id, contest_id, problem_slug)
is what guarantees one credit per problem; insert_submission() turns a
collision into DuplicateSubmission.
"""

from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from codetrack.core.errors import DuplicateSubmission
from codetrack.core.database import strip_many, strip_mongo_id


class ContestStore:

    def __init__(self, db: AsyncIOMotorDatabase):
        self.contests = db.contests
        self.submissions = db.contest_submissions

    # ==================== CONTESTS ====================

    async def get_contest(self, contest_id: str) -> Optional[dict]:
        return strip_mongo_id(await self.contests.find_one({"contest_id": contest_id}))

    async def list_contests(self, target_groups: Optional[List[str]] = None) -> List[dict]:
        query = {"target_group": {"$in": target_groups}} if target_groups is not None else {}
        cursor = self.contests.find(query).sort("start_time", -1)
        return strip_many(await cursor.to_list(length=None))

    async def insert_contest(self, contest: dict) -> dict:
        await self.contests.insert_one(dict(contest))
        return contest

    async def update_contest(self, contest_id: str, fields: dict) -> Optional[dict]:
        updated = await self.contests.find_one_and_update(
            {"contest_id": contest_id},
            {"$set": fields},
            return_document=ReturnDocument.AFTER
        )
        return strip_mongo_id(updated)

    async def delete_contest(self, contest_id: str) -> bool:
        result = await self.contests.delete_one({"contest_id": contest_id})
        return result.deleted_count > 0

    # ==================== SUBMISSIONS ====================

    async def find_submission(self, member_id: str, contest_id: str, problem_slug: str) -> Optional[dict]:
        return strip_mongo_id(await self.submissions.find_one({
            "member_id": member_id,
            "contest_id": contest_id,
            "problem_slug": problem_slug,
        }))

    async def insert_submission(self, submission: dict) -> dict:
        """
        Create iff no credit exists for the triple yet.

        Raises:
            DuplicateSubmission: a concurrent verification already inserted it
        """
        try:
            await self.submissions.insert_one(dict(submission))
        except DuplicateKeyError as exc:
            raise DuplicateSubmission() from exc
        return submission

    async def member_submissions(self, member_id: str, contest_id: str) -> List[dict]:
        cursor = self.submissions.find({"member_id": member_id, "contest_id": contest_id})
        return strip_many(await cursor.to_list(length=None))

    async def count_submissions(self, contest_id: str) -> int:
        return await self.submissions.count_documents({"contest_id": contest_id})
