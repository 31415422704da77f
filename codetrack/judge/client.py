"""
Judge API adapter

Thin async wrapper over the external problem-judge HTTP API. No business
logic lives here. Every call is bounded by an explicit timeout.

Failure policy:
- profile / solved / calendar / skill / language / recent submissions are
  soft: a failure is logged and a documented default is returned
- get_accepted_submissions() is strict: any failure raises
  VerificationUnavailable so a flaky judge is never read as "not solved"
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from codetrack.core.config import JUDGE_API_URL, JUDGE_SUBMISSION_LIMIT, JUDGE_TIMEOUT_SECONDS
from codetrack.core.errors import VerificationUnavailable
from codetrack.judge.schemas import AcceptedSubmission, JudgeProfile, SolvedCounts

logger = logging.getLogger(__name__)


class JudgeRequestError(Exception):
    """Transport failure, timeout, non-2xx status or unparseable body"""


EMPTY_SKILL_STATS = {"advanced": [], "intermediate": [], "fundamental": []}


class JudgeOracle:

    def __init__(
        self,
        base_url: str = JUDGE_API_URL,
        timeout: float = JUDGE_TIMEOUT_SECONDS,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    # ==================== TRANSPORT ====================

    async def _get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await asyncio.wait_for(
                self._client.get(url, params=params),
                timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except asyncio.TimeoutError as exc:
            raise JudgeRequestError(f"GET {path} timed out after {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            raise JudgeRequestError(f"GET {path} failed: {exc}") from exc
        except ValueError as exc:
            raise JudgeRequestError(f"GET {path} returned invalid JSON") from exc

    @staticmethod
    def _user_path(username: str, suffix: str = "") -> str:
        return f"/{quote(username, safe='')}{suffix}"

    # ==================== PROFILE ====================

    async def get_profile(self, username: str) -> Optional[JudgeProfile]:
        """Profile summary, or None on failure"""
        try:
            data = await self._get_json(self._user_path(username))
        except JudgeRequestError as exc:
            logger.warning("Error fetching profile for %s: %s", username, exc)
            return None

        if not isinstance(data, dict) or data.get("errors"):
            logger.warning("Judge returned no profile for %s", username)
            return None
        return JudgeProfile.from_api(data)

    async def get_solved(self, username: str, strict: bool = False) -> SolvedCounts:
        """
        Solved breakdown (easy/medium/hard); zeros on failure.

        Raises:
            VerificationUnavailable: only with strict=True, instead of zeros
        """
        try:
            data = await self._get_json(self._user_path(username, "/solved"))
            if not isinstance(data, dict):
                raise JudgeRequestError("solved stats payload is not an object")
        except JudgeRequestError as exc:
            logger.warning("Error fetching solved stats for %s: %s", username, exc)
            if strict:
                raise VerificationUnavailable() from exc
            return SolvedCounts()

        return SolvedCounts.from_api(data)

    async def get_calendar(self, username: str) -> Dict[str, int]:
        """
        Submission calendar {unix_seconds: count}; empty on failure.
        The judge ships the calendar as a JSON-encoded string.
        """
        try:
            data = await self._get_json(self._user_path(username, "/calendar"))
        except JudgeRequestError as exc:
            logger.warning("Error fetching calendar for %s: %s", username, exc)
            return {}

        raw = data.get("submissionCalendar", data) if isinstance(data, dict) else {}
        if isinstance(raw, str):
            try:
                raw = json.loads(raw or "{}")
            except ValueError:
                logger.warning("Unparseable calendar for %s", username)
                return {}
        if not isinstance(raw, dict):
            return {}
        return {str(day): count for day, count in raw.items()}

    # ==================== SUBMISSIONS ====================

    def _parse_submissions(self, data: Any) -> List[AcceptedSubmission]:
        if not isinstance(data, dict) or not isinstance(data.get("submission", []), list):
            raise ValueError("Submission payload is not a list")

        accepted = []
        for entry in data.get("submission", []):
            if not isinstance(entry, dict):
                raise ValueError(f"Submission entry is not an object: {entry!r}")
            status = entry.get("statusDisplay")
            if status is not None and status != "Accepted":
                continue
            accepted.append(AcceptedSubmission.from_api(entry))
        return accepted

    async def get_accepted_submissions(
        self,
        username: str,
        limit: int = JUDGE_SUBMISSION_LIMIT
    ) -> List[AcceptedSubmission]:
        """
        Recent accepted submissions, strict.

        Raises:
            VerificationUnavailable: judge unreachable, timed out, or payload malformed
        """
        try:
            data = await self._get_json(self._user_path(username, "/acSubmission"), {"limit": limit})
            return self._parse_submissions(data)
        except JudgeRequestError as exc:
            logger.warning("Accepted submissions unavailable for %s: %s", username, exc)
            raise VerificationUnavailable() from exc
        except ValueError as exc:
            logger.warning("Malformed accepted submissions for %s: %s", username, exc)
            raise VerificationUnavailable() from exc

    async def get_recent_accepted(
        self,
        username: str,
        limit: int = JUDGE_SUBMISSION_LIMIT
    ) -> List[AcceptedSubmission]:
        """Soft variant used by problem sync; empty on failure"""
        try:
            return await self.get_accepted_submissions(username, limit)
        except VerificationUnavailable:
            return []

    # ==================== BREAKDOWNS ====================

    async def get_skill_stats(self, username: str) -> Dict[str, list]:
        """Tag counts grouped by level"""
        try:
            data = await self._get_json(self._user_path(username, "/skill"))
        except JudgeRequestError as exc:
            logger.warning("Error fetching skill stats for %s: %s", username, exc)
            return dict(EMPTY_SKILL_STATS)

        try:
            counts = data["data"]["matchedUser"]["tagProblemCounts"]
        except (KeyError, TypeError):
            return dict(EMPTY_SKILL_STATS)
        return {level: counts.get(level) or [] for level in EMPTY_SKILL_STATS}

    async def get_language_stats(self, username: str) -> List[dict]:
        """Per-language solved counts"""
        try:
            data = await self._get_json(self._user_path(username, "/language"))
        except JudgeRequestError as exc:
            logger.warning("Error fetching language stats for %s: %s", username, exc)
            return []

        try:
            return list(data["data"]["matchedUser"]["languageProblemCount"] or [])
        except (KeyError, TypeError):
            return []

    # ==================== HEALTH ====================

    async def ping(self) -> Tuple[bool, Optional[float]]:
        """(is_up, latency_ms) for the judge base URL"""
        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(self._client.get(self.base_url), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.HTTPError):
            return False, None
        latency_ms = (time.perf_counter() - start) * 1000
        return response.status_code < 500, round(latency_ms, 1)
