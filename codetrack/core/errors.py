"""
Tracker error taxonomy

Every expected failure raised by the services derives from TrackerError and
carries a stable machine-readable code. The HTTP layer turns them into
{"success": false, "error": code, "message": ...} responses.
"""

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import JSONResponse


class TrackerError(Exception):
    """Base class for expected, typed failures"""

    default_code: str = "TRACKER_ERROR"
    default_message: str = "Request could not be completed"
    http_status: int = 400

    def __init__(self, message: Optional[str] = None, *, extra: Optional[Dict[str, Any]] = None):
        self.code = self.default_code
        self.message = message if message is not None else self.default_message
        self.extra = extra or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.code, "message": self.message, **self.extra}


# ==================== VERIFICATION ====================

class NotConfigured(TrackerError):
    """Member has no linked judge username; nothing was sent to the judge"""
    default_code = "NotConfigured"
    default_message = "Link your judge username in your profile first."
    http_status = 409


class DuplicateSubmission(TrackerError):
    default_code = "DuplicateSubmission"
    default_message = "This problem is already credited for this contest."
    http_status = 409


class NoValidSubmission(TrackerError):
    """Judge answered, but no accepted submission after the contest start"""
    default_code = "NoValidSubmission"
    default_message = (
        "No accepted submission found after the contest started. "
        "Solve it on the judge first, then verify again."
    )
    http_status = 422


class VerificationUnavailable(TrackerError):
    """Judge unreachable, timed out or returned unparseable data"""
    default_code = "VerificationUnavailable"
    default_message = "The judge is not reachable right now. Please try again later."
    http_status = 503


class ContestClosed(TrackerError):
    default_code = "ContestClosed"
    default_message = "This contest is not open for submissions."
    http_status = 409


# ==================== LEADERBOARD ====================

class AggregationPartialFailure(TrackerError):
    """
    One member's stats could not be collected during a leaderboard cycle.
    Recorded and logged by the aggregator, never raised to its callers.
    """
    default_code = "AggregationPartialFailure"
    default_message = "Stats for a member could not be fetched"
    http_status = 502

    def __init__(self, member_id: str, reason: str):
        super().__init__(
            f"Stats for member {member_id} could not be fetched: {reason}",
            extra={"member_id": member_id},
        )
        self.member_id = member_id
        self.reason = reason


class CooldownActive(TrackerError):
    default_code = "CooldownActive"
    http_status = 429

    def __init__(self, retry_after_minutes: int):
        super().__init__(
            f"Please wait {retry_after_minutes} minutes before refreshing again.",
            extra={"retry_after_minutes": retry_after_minutes},
        )
        self.retry_after_minutes = retry_after_minutes


# ==================== GENERIC ====================

class NotFound(TrackerError):
    default_code = "NotFound"
    default_message = "Resource not found"
    http_status = 404


class InvalidRequest(TrackerError):
    default_code = "InvalidRequest"
    default_message = "Invalid request"
    http_status = 400


class Unauthorized(TrackerError):
    default_code = "Unauthorized"
    default_message = "Unauthorized"
    http_status = 401


class Forbidden(TrackerError):
    default_code = "Forbidden"
    default_message = "Access denied"
    http_status = 403


async def tracker_error_handler(request: Request, exc: TrackerError) -> JSONResponse:
    """FastAPI exception handler for TrackerError"""
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())
