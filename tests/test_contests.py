import unittest
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError

from codetrack.contests import service
from codetrack.contests.models import ContestCreate, ContestUpdate
from codetrack.contests.verification import ContestVerificationEngine
from codetrack.core.config import DEFAULT_CONTEST_PROBLEM_SCORE
from codetrack.core.errors import InvalidRequest, NotFound
from fakes import FakeClock, FakeOracle, make_db, member_doc

START = datetime(2026, 10, 19, 10, 0, 0)
START_TS = int(START.replace(tzinfo=timezone.utc).timestamp())


def contest_payload(**overrides):
    payload = {
        "title": "Weekly Sprint",
        "start_time": START,
        "end_time": START + timedelta(hours=2),
        "problems": ["Two-Sum", {"slug": "lru-cache", "score": 100}],
    }
    payload.update(overrides)
    return ContestCreate(**payload)


class TestContestModels(unittest.TestCase):

    def test_bare_slugs_get_default_score(self):
        data = contest_payload()
        self.assertEqual([p.slug for p in data.problems], ["two-sum", "lru-cache"])
        self.assertEqual(data.problems[0].score, DEFAULT_CONTEST_PROBLEM_SCORE)
        self.assertEqual(data.problems[1].score, 100)

    def test_window_must_be_ordered(self):
        with self.assertRaises(ValidationError):
            contest_payload(end_time=START)

    def test_aware_times_become_naive_utc(self):
        data = contest_payload(start_time="2026-10-19T12:00:00+02:00", end_time="2026-10-19T14:00:00+02:00")
        self.assertEqual(data.start_time, START)
        self.assertIsNone(data.start_time.tzinfo)


class TestContestService(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.db = await make_db()
        await self.db.groups.insert_one({"group_id": "GRP_A", "name": "A"})
        await self.db.members.insert_one(member_doc("alice", "GRP_A"))
        await self.db.members.insert_one(member_doc("bob"))

    async def test_create_and_status(self):
        created = await service.create_contest(self.db, contest_payload(target_group="GRP_A"), "staff")
        self.assertTrue(created["contest_id"].startswith("CON_"))

        before = await service.get_contest(self.db, created["contest_id"], now=START - timedelta(seconds=1))
        during = await service.get_contest(self.db, created["contest_id"], now=START + timedelta(hours=2))
        after = await service.get_contest(self.db, created["contest_id"], now=START + timedelta(hours=3))
        self.assertEqual([before["status"], during["status"], after["status"]], ["upcoming", "active", "ended"])

        stored = await self.db.contests.find_one({"contest_id": created["contest_id"]})
        self.assertNotIn("status", stored)

    async def test_unknown_group_rejected(self):
        with self.assertRaises(NotFound):
            await service.create_contest(self.db, contest_payload(target_group="GRP_NOPE"), "staff")

    async def test_member_sees_group_and_all_contests(self):
        await service.create_contest(self.db, contest_payload(title="Group", target_group="GRP_A"), "staff")
        await service.create_contest(self.db, contest_payload(title="Everyone"), "staff")

        alice = await service.list_contests_for_member(self.db, "alice", now=START)
        bob = await service.list_contests_for_member(self.db, "bob", now=START)

        self.assertEqual(sorted(c["title"] for c in alice), ["Everyone", "Group"])
        self.assertEqual([c["title"] for c in bob], ["Everyone"])
        with self.assertRaises(NotFound):
            await service.list_contests_for_member(self.db, "ghost")

    async def test_update_checks_window(self):
        created = await service.create_contest(self.db, contest_payload(), "staff")

        with self.assertRaises(InvalidRequest):
            await service.update_contest(self.db, created["contest_id"], ContestUpdate(end_time=START))

        updated = await service.update_contest(
            self.db, created["contest_id"], ContestUpdate(title="Renamed", problems=["valid-parentheses"])
        )
        self.assertEqual(updated["title"], "Renamed")
        self.assertEqual(updated["problems"], [{"slug": "valid-parentheses", "score": DEFAULT_CONTEST_PROBLEM_SCORE}])

    async def test_update_keeps_default_scores_for_bare_slugs(self):
        created = await service.create_contest(self.db, contest_payload(problems=["two-sum"]), "staff")
        contest_id = created["contest_id"]

        await service.update_contest(self.db, contest_id, ContestUpdate(problems=["Valid-Parentheses"]))

        stored = await self.db.contests.find_one({"contest_id": contest_id})
        self.assertEqual(stored["problems"], [{"slug": "valid-parentheses", "score": DEFAULT_CONTEST_PROBLEM_SCORE}])

        await self.db.members.update_one({"member_id": "alice"}, {"$set": {"judge_username": "alice_lc"}})
        oracle = FakeOracle()
        oracle.add_accepted("alice_lc", "valid-parentheses", START_TS + 60)
        engine = ContestVerificationEngine(self.db, oracle, clock=FakeClock(START + timedelta(minutes=5)))

        result = await engine.verify("alice", await service.get_contest(self.db, contest_id), "valid-parentheses")
        self.assertEqual(result["score"], DEFAULT_CONTEST_PROBLEM_SCORE)

        progress = await service.get_member_progress(self.db, "alice", contest_id)
        self.assertEqual(progress["max_score"], DEFAULT_CONTEST_PROBLEM_SCORE)

    def test_update_rejects_null_fields(self):
        for field in ["title", "target_group", "start_time", "end_time", "problems"]:
            with self.subTest(field=field):
                with self.assertRaises(ValidationError):
                    ContestUpdate(**{field: None})
        with self.assertRaises(ValidationError):
            ContestUpdate(problems=[])

    async def test_update_checks_target_group(self):
        created = await service.create_contest(self.db, contest_payload(), "staff")

        with self.assertRaises(NotFound):
            await service.update_contest(self.db, created["contest_id"], ContestUpdate(target_group="GRP_NOPE"))

        updated = await service.update_contest(self.db, created["contest_id"], ContestUpdate(target_group="GRP_A"))
        self.assertEqual(updated["target_group"], "GRP_A")

    async def test_progress_and_delete(self):
        created = await service.create_contest(self.db, contest_payload(), "staff")
        contest_id = created["contest_id"]
        await self.db.contest_submissions.insert_one({
            "submission_id": "SUB_1", "member_id": "alice", "contest_id": contest_id,
            "problem_slug": "lru-cache", "score": 100, "solved_at": START,
        })

        progress = await service.get_member_progress(self.db, "alice", contest_id)
        self.assertEqual(progress["solved_slugs"], ["lru-cache"])
        self.assertEqual(progress["total_score"], 100)
        self.assertEqual(progress["max_score"], 100 + DEFAULT_CONTEST_PROBLEM_SCORE)

        await service.delete_contest(self.db, contest_id)
        with self.assertRaises(NotFound):
            await service.get_contest(self.db, contest_id)
        with self.assertRaises(NotFound):
            await service.delete_contest(self.db, contest_id)
        self.assertEqual(await self.db.contest_submissions.count_documents({"contest_id": contest_id}), 1)


if __name__ == "__main__":
    unittest.main()
