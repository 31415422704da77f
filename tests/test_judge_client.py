import asyncio
import json
import unittest

import httpx

from codetrack.core.errors import VerificationUnavailable
from codetrack.judge.client import JudgeOracle
from codetrack.judge.schemas import AcceptedSubmission

BASE = "https://judge.test"


class TestAcceptedSubmission(unittest.TestCase):

    def test_timestamp_is_seconds_however_built(self):
        for raw in [1760875200, 1760875200000, "1760875200", "1760875200000", "2025-10-19T12:00:00Z"]:
            with self.subTest(raw=raw):
                self.assertEqual(AcceptedSubmission(problem_slug="two-sum", timestamp=raw).timestamp, 1760875200.0)

    def test_bad_timestamp_is_rejected(self):
        with self.assertRaises(ValueError):
            AcceptedSubmission(problem_slug="two-sum", timestamp="soon")


class TestJudgeOracle(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.routes = {}
        self.requests = []

        async def handler(request: httpx.Request):
            self.requests.append(request)
            route = self.routes.get(request.url.path)
            if route is None:
                return httpx.Response(404, json={"errors": "not found"})
            if callable(route):
                return await route(request)
            return route

        self.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        self.oracle = JudgeOracle(base_url=BASE + "/", timeout=0.2, client=self.client)

    async def asyncTearDown(self):
        await self.client.aclose()

    # ==================== SOFT CALLS ====================

    async def test_profile(self):
        self.routes["/alice"] = httpx.Response(200, json={
            "username": "alice", "ranking": 1234, "reputation": 5, "contributionPoint": 7
        })
        profile = await self.oracle.get_profile("alice")
        self.assertEqual(profile.ranking, 1234)
        self.assertEqual(profile.reputation, 5)
        self.assertEqual(profile.contribution_points, 7)

    async def test_profile_failure_is_none(self):
        self.routes["/alice"] = httpx.Response(500)
        self.assertIsNone(await self.oracle.get_profile("alice"))
        self.assertIsNone(await self.oracle.get_profile("nobody"))

    async def test_solved_counts(self):
        self.routes["/alice/solved"] = httpx.Response(200, json={
            "solvedProblem": 12, "easySolved": 6, "mediumSolved": 5, "hardSolved": 1
        })
        solved = await self.oracle.get_solved("alice")
        self.assertEqual(
            (solved.easy_solved, solved.medium_solved, solved.hard_solved, solved.solved_problem),
            (6, 5, 1, 12)
        )

    async def test_solved_defaults_to_zeros(self):
        self.routes["/alice/solved"] = httpx.Response(200, content=b"<html>rate limited</html>")
        solved = await self.oracle.get_solved("alice")
        self.assertEqual(solved.solved_problem, 0)
        self.assertEqual(solved.easy_solved, 0)

    async def test_strict_solved_raises_instead_of_zeros(self):
        self.routes["/alice/solved"] = httpx.Response(503)
        with self.assertRaises(VerificationUnavailable):
            await self.oracle.get_solved("alice", strict=True)

        self.routes["/alice/solved"] = httpx.Response(200, json=["not", "an", "object"])
        with self.assertRaises(VerificationUnavailable):
            await self.oracle.get_solved("alice", strict=True)
        self.assertEqual((await self.oracle.get_solved("alice")).solved_problem, 0)

    async def test_calendar_json_string_is_decoded(self):
        self.routes["/alice/calendar"] = httpx.Response(200, json={
            "submissionCalendar": json.dumps({"1760832000": 3, "1760918400": 1})
        })
        self.assertEqual(
            await self.oracle.get_calendar("alice"),
            {"1760832000": 3, "1760918400": 1}
        )

    async def test_calendar_failure_is_empty(self):
        self.routes["/alice/calendar"] = httpx.Response(503)
        self.assertEqual(await self.oracle.get_calendar("alice"), {})

        self.routes["/alice/calendar"] = httpx.Response(200, json={"submissionCalendar": "{broken"})
        self.assertEqual(await self.oracle.get_calendar("alice"), {})

    async def test_username_is_url_encoded(self):
        self.routes["/a b/solved"] = httpx.Response(200, json={"solvedProblem": 1})
        await self.oracle.get_solved("a b")
        self.assertTrue(self.requests[-1].url.raw_path.startswith(b"/a%20b/solved"))

    # ==================== STRICT SUBMISSIONS ====================

    async def test_accepted_submissions_are_normalized(self):
        self.routes["/alice/acSubmission"] = httpx.Response(200, json={
            "count": 3,
            "submission": [
                {"titleSlug": "two-sum", "timestamp": "1760875200", "statusDisplay": "Accepted"},
                {"titleSlug": "add-two-numbers", "timestamp": 1760875200000, "lang": "python3"},
                {"titleSlug": "lru-cache", "timestamp": "1760875300", "statusDisplay": "Wrong Answer"},
            ]
        })
        accepted = await self.oracle.get_accepted_submissions("alice", limit=5)

        self.assertEqual([s.problem_slug for s in accepted], ["two-sum", "add-two-numbers"])
        self.assertEqual([s.timestamp for s in accepted], [1760875200.0, 1760875200.0])
        self.assertEqual(self.requests[-1].url.params["limit"], "5")

    async def test_accepted_submissions_transport_failure(self):
        self.routes["/alice/acSubmission"] = httpx.Response(502)
        with self.assertRaises(VerificationUnavailable):
            await self.oracle.get_accepted_submissions("alice")

    async def test_accepted_submissions_malformed(self):
        payloads = [
            {"submission": "nope"},
            {"submission": [{"timestamp": "1760875200"}]},
            {"submission": [{"titleSlug": "two-sum", "timestamp": "soon"}]},
            ["not", "an", "object"],
        ]
        for payload in payloads:
            with self.subTest(payload=payload):
                self.routes["/alice/acSubmission"] = httpx.Response(200, json=payload)
                with self.assertRaises(VerificationUnavailable):
                    await self.oracle.get_accepted_submissions("alice")

    async def test_accepted_submissions_timeout(self):
        async def slow(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={"submission": []})

        self.routes["/alice/acSubmission"] = slow
        with self.assertRaises(VerificationUnavailable):
            await self.oracle.get_accepted_submissions("alice")

    async def test_empty_history_is_not_a_failure(self):
        self.routes["/alice/acSubmission"] = httpx.Response(200, json={"count": 0, "submission": []})
        self.assertEqual(await self.oracle.get_accepted_submissions("alice"), [])

    async def test_recent_accepted_is_soft(self):
        self.routes["/alice/acSubmission"] = httpx.Response(500)
        self.assertEqual(await self.oracle.get_recent_accepted("alice"), [])

    # ==================== BREAKDOWNS / HEALTH ====================

    async def test_skill_stats(self):
        self.routes["/alice/skill"] = httpx.Response(200, json={
            "data": {"matchedUser": {"tagProblemCounts": {
                "advanced": [{"tagName": "DP", "problemsSolved": 4}],
                "intermediate": None,
                "fundamental": [],
            }}}
        })
        skills = await self.oracle.get_skill_stats("alice")
        self.assertEqual(skills["advanced"][0]["tagName"], "DP")
        self.assertEqual(skills["intermediate"], [])

    async def test_language_stats_default(self):
        self.routes["/alice/language"] = httpx.Response(200, json={"data": None})
        self.assertEqual(await self.oracle.get_language_stats("alice"), [])

    async def test_ping(self):
        self.routes["/"] = httpx.Response(200)
        is_up, latency = await self.oracle.ping()
        self.assertTrue(is_up)
        self.assertIsNotNone(latency)


if __name__ == "__main__":
    unittest.main()
