import unittest
from datetime import datetime, timedelta, timezone

from codetrack.common.throttle import RateLimitedRunner
from codetrack.core.errors import InvalidRequest
from codetrack.leaderboard.aggregator import LeaderboardAggregator
from fakes import FakeClock, FakeOracle, RecordingSleep, make_db, member_doc

NOW = datetime(2026, 10, 19, 9, 0, 0)


def calendar_key(dt: datetime) -> str:
    return str(int(dt.replace(tzinfo=timezone.utc).timestamp()))


class AggregatorTestCase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.db = await make_db()
        self.oracle = FakeOracle()
        self.clock = FakeClock(NOW)
        self.sleep = RecordingSleep()
        self.aggregator = LeaderboardAggregator(
            self.db,
            self.oracle,
            runner=RateLimitedRunner(3, 1.5, sleep=self.sleep),
            clock=self.clock,
        )

    async def add_member(self, member_id, group_id="GRP_A", judge_username=None, order=0, **stats):
        created = datetime(2026, 1, 1) + timedelta(minutes=order)
        await self.db.members.insert_one(
            member_doc(member_id, group_id, judge_username=judge_username, created_at=created)
        )
        if judge_username:
            self.oracle.add_user(judge_username, **stats)


class TestOverallLeaderboard(AggregatorTestCase):

    async def test_ranks_by_points(self):
        await self.add_member("alice", judge_username="a", order=1, easy=2, medium=1)
        await self.add_member("bob", judge_username="b", order=2, hard=1)
        await self.add_member("carol", judge_username="c", order=3, easy=1)

        board = await self.aggregator.get_group_leaderboard("GRP_A")

        self.assertEqual(
            [(m["member_id"], m["total_points"], m["rank"]) for m in board["members"]],
            [("alice", 100, 1), ("bob", 100, 2), ("carol", 25, 3)]
        )
        self.assertFalse(board["from_cache"])

    async def test_streak_bonus_counts(self):
        calendar = {calendar_key(NOW - timedelta(days=n)): 1 for n in range(3)}
        await self.add_member("alice", judge_username="a", easy=2, medium=1, calendar=calendar)

        board = await self.aggregator.get_group_leaderboard("GRP_A")

        record = board["members"][0]
        self.assertEqual(record["current_streak"], 3)
        self.assertEqual(record["total_points"], 130)

    async def test_members_without_username_are_skipped(self):
        await self.add_member("alice", judge_username="a", easy=1)
        await self.add_member("bob")
        await self.add_member("carol", group_id="GRP_B", judge_username="c", easy=5)

        board = await self.aggregator.get_group_leaderboard("GRP_A")

        self.assertEqual([m["member_id"] for m in board["members"]], ["alice"])
        self.assertEqual(self.oracle.calls_for("profile"), [("profile", "a")])

    async def test_ties_keep_join_order(self):
        await self.add_member("zed", judge_username="z", order=1, medium=2)
        await self.add_member("amy", judge_username="y", order=2, medium=2)
        await self.add_member("max", judge_username="x", order=3, hard=1)

        board = await self.aggregator.get_group_leaderboard("GRP_A")

        self.assertEqual(
            [(m["member_id"], m["rank"]) for m in board["members"]],
            [("zed", 1), ("amy", 2), ("max", 3)]
        )

    async def test_one_broken_member_is_excluded(self):
        for n, name in enumerate(["m1", "m2", "m3", "m4", "m5"]):
            await self.add_member(name, judge_username=name + "_lc", order=n, easy=n + 1)
        self.oracle.broken.add("m3_lc")

        board = await self.aggregator.get_group_leaderboard("GRP_A")

        self.assertEqual(len(board["members"]), 4)
        self.assertNotIn("m3", [m["member_id"] for m in board["members"]])
        self.assertEqual(board["excluded_member_ids"], ["m3"])
        self.assertEqual([f.member_id for f in self.aggregator.last_failures], ["m3"])

    async def test_missing_profile_is_excluded(self):
        await self.add_member("alice", judge_username="a", easy=1)
        await self.add_member("ghost", judge_username="ghost_lc", order=1)
        del self.oracle.profiles["ghost_lc"]

        board = await self.aggregator.get_group_leaderboard("GRP_A")

        self.assertEqual([m["member_id"] for m in board["members"]], ["alice"])
        self.assertEqual(board["excluded_member_ids"], ["ghost"])

    async def test_failed_solved_counts_exclude_member(self):
        await self.add_member("alice", judge_username="a", easy=1)
        await self.add_member("bob", judge_username="b", order=1, hard=3)
        self.oracle.solved_down.add("b")

        board = await self.aggregator.get_group_leaderboard("GRP_A")

        self.assertEqual([m["member_id"] for m in board["members"]], ["alice"])
        self.assertEqual(board["excluded_member_ids"], ["bob"])
        cached = await self.db.leaderboard_cache.find_one({"group_id": "GRP_A"})
        self.assertNotIn("bob", [m["member_id"] for m in cached["members"]])

    async def test_fan_out_is_throttled(self):
        for n in range(7):
            await self.add_member(f"m{n}", judge_username=f"u{n}", order=n, easy=1)

        await self.aggregator.get_group_leaderboard("GRP_A")

        self.assertEqual(self.sleep.calls, [1.5, 1.5])
        self.assertLessEqual(self.oracle.max_in_flight, 3)

    async def test_empty_group_is_cached(self):
        board = await self.aggregator.get_group_leaderboard("GRP_EMPTY")

        self.assertEqual(board["members"], [])
        entry = await self.db.leaderboard_cache.find_one({"group_id": "GRP_EMPTY"})
        self.assertIsNotNone(entry)
        self.assertEqual(entry["members"], [])
        self.assertEqual(entry["computed_at"], NOW)

    async def test_unknown_mode(self):
        with self.assertRaises(InvalidRequest):
            await self.aggregator.get_group_leaderboard("GRP_A", mode="weekly")


class TestLeaderboardCache(AggregatorTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        await self.add_member("alice", judge_username="a", easy=1)
        await self.aggregator.get_group_leaderboard("GRP_A")
        self.oracle.calls.clear()

    async def test_59_minutes_old_is_reused(self):
        self.clock.advance(minutes=59)
        board = await self.aggregator.get_group_leaderboard("GRP_A")

        self.assertTrue(board["from_cache"])
        self.assertEqual(self.oracle.calls, [])
        self.assertEqual(board["members"][0]["rank"], 1)

    async def test_exactly_60_minutes_old_is_reused(self):
        self.clock.advance(minutes=60)
        board = await self.aggregator.get_group_leaderboard("GRP_A")
        self.assertTrue(board["from_cache"])

    async def test_61_minutes_old_is_recomputed(self):
        self.clock.advance(minutes=61)
        board = await self.aggregator.get_group_leaderboard("GRP_A")

        self.assertFalse(board["from_cache"])
        self.assertEqual(len(self.oracle.calls_for("profile")), 1)
        entry = await self.db.leaderboard_cache.find_one({"group_id": "GRP_A"})
        self.assertEqual(entry["computed_at"], NOW + timedelta(minutes=61))

    async def test_force_refresh_skips_fresh_cache(self):
        self.clock.advance(minutes=1)
        board = await self.aggregator.get_group_leaderboard("GRP_A", force_refresh=True)

        self.assertFalse(board["from_cache"])
        self.assertEqual(len(self.oracle.calls_for("profile")), 1)

    async def test_cache_is_overwritten_not_duplicated(self):
        self.clock.advance(minutes=61)
        await self.aggregator.get_group_leaderboard("GRP_A")
        self.assertEqual(await self.db.leaderboard_cache.count_documents({"group_id": "GRP_A"}), 1)


class TestRefreshCooldown(AggregatorTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        await self.add_member("alice", judge_username="a", easy=1)

    async def test_cooldown_sequence(self):
        first = await self.aggregator.refresh_leaderboard("GRP_A", "alice")
        self.assertTrue(first["success"])
        self.assertEqual(first["message"], "Leaderboard updated!")
        self.assertEqual(first["data"][0]["member_id"], "alice")

        self.clock.advance(minutes=5)
        second = await self.aggregator.refresh_leaderboard("GRP_A", "alice")
        self.assertFalse(second["success"])
        self.assertEqual(second["error"], "CooldownActive")
        self.assertEqual(second["retry_after_minutes"], 25)
        self.assertEqual(second["message"], "Please wait 25 minutes before refreshing again.")

        self.clock.advance(minutes=26)
        third = await self.aggregator.refresh_leaderboard("GRP_A", "alice")
        self.assertTrue(third["success"])

    async def test_remaining_minutes_round_up(self):
        await self.aggregator.refresh_leaderboard("GRP_A", "alice")
        self.clock.advance(minutes=29, seconds=30)

        result = await self.aggregator.refresh_leaderboard("GRP_A", "alice")
        self.assertEqual(result["retry_after_minutes"], 1)

    async def test_cooldown_is_claimed_before_recompute(self):
        stamps = []
        original = self.oracle.get_profile

        async def spying_profile(username):
            member = await self.db.members.find_one({"member_id": "alice"})
            stamps.append(member["last_leaderboard_refresh"])
            return await original(username)

        self.oracle.get_profile = spying_profile
        await self.aggregator.refresh_leaderboard("GRP_A", "alice")

        self.assertEqual(stamps, [NOW])

    async def test_rejected_refresh_does_not_touch_judge(self):
        await self.aggregator.refresh_leaderboard("GRP_A", "alice")
        self.oracle.calls.clear()
        self.clock.advance(minutes=1)

        await self.aggregator.refresh_leaderboard("GRP_A", "alice")
        self.assertEqual(self.oracle.calls, [])

    async def test_cooldown_is_per_member(self):
        await self.add_member("bob", judge_username="b", order=1, easy=1)
        await self.aggregator.refresh_leaderboard("GRP_A", "alice")

        result = await self.aggregator.refresh_leaderboard("GRP_A", "bob")
        self.assertTrue(result["success"])

    async def test_unknown_member(self):
        result = await self.aggregator.refresh_leaderboard("GRP_A", "nobody")
        self.assertFalse(result["success"])
        self.assertEqual(result["error"], "NotFound")


class TestContestLeaderboard(AggregatorTestCase):

    async def asyncSetUp(self):
        await super().asyncSetUp()
        await self.add_member("alice", order=1)
        await self.add_member("bob", order=2)
        await self.add_member("carol", order=3)
        await self.add_member("dave", group_id="GRP_B", order=4)

        await self.db.contests.insert_many([
            {"contest_id": "CON_GROUP", "target_group": "GRP_A"},
            {"contest_id": "CON_ALL", "target_group": "All"},
            {"contest_id": "CON_OTHER", "target_group": "GRP_B"},
        ])
        await self.db.contest_submissions.insert_many([
            {"submission_id": "S1", "member_id": "bob", "contest_id": "CON_GROUP", "problem_slug": "a", "score": 50},
            {"submission_id": "S2", "member_id": "bob", "contest_id": "CON_ALL", "problem_slug": "b", "score": 25},
            {"submission_id": "S3", "member_id": "carol", "contest_id": "CON_ALL", "problem_slug": "b", "score": 25},
            {"submission_id": "S4", "member_id": "carol", "contest_id": "CON_OTHER", "problem_slug": "c", "score": 100},
            {"submission_id": "S5", "member_id": "dave", "contest_id": "CON_ALL", "problem_slug": "b", "score": 25},
        ])

    async def test_sums_targeted_contests_and_keeps_zero_members(self):
        board = await self.aggregator.get_group_leaderboard("GRP_A", mode="contest")

        self.assertEqual(
            [(m["member_id"], m["total_points"], m["rank"]) for m in board["members"]],
            [("bob", 75, 1), ("carol", 25, 2), ("alice", 0, 3)]
        )
        self.assertEqual(board["mode"], "contest")
        self.assertEqual(self.oracle.calls, [])

    async def test_never_cached(self):
        await self.aggregator.get_group_leaderboard("GRP_A", mode="contest")
        self.assertIsNone(await self.db.leaderboard_cache.find_one({"group_id": "GRP_A"}))

        await self.db.contest_submissions.insert_one(
            {"submission_id": "S6", "member_id": "alice", "contest_id": "CON_GROUP", "problem_slug": "z", "score": 100}
        )
        board = await self.aggregator.get_group_leaderboard("GRP_A", mode="contest")
        self.assertEqual(board["members"][0]["member_id"], "alice")

    async def test_group_without_contests(self):
        await self.add_member("erin", group_id="GRP_C")
        await self.db.contests.delete_many({"target_group": "All"})

        board = await self.aggregator.get_group_leaderboard("GRP_C", mode="contest")
        self.assertEqual([(m["member_id"], m["total_points"]) for m in board["members"]], [("erin", 0)])


if __name__ == "__main__":
    unittest.main()
