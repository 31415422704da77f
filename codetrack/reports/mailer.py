"""
Outbound email for the weekly report
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import httpx

from codetrack.core.config import JUDGE_TIMEOUT_SECONDS, REPORT_FROM_ADDRESS, RESEND_API_URL

logger = logging.getLogger(__name__)


class Mailer(ABC):
    """Delivery collaborator; implementations raise on failure"""

    @abstractmethod
    async def send(self, to: str, subject: str, html: str):
        ...

    async def aclose(self):
        pass


class ResendMailer(Mailer):
    """Resend HTTP API (POST /emails)"""

    def __init__(
        self,
        api_key: str,
        from_address: str = REPORT_FROM_ADDRESS,
        url: str = RESEND_API_URL,
        client: Optional[httpx.AsyncClient] = None
    ):
        if not api_key:
            raise ValueError("Resend API key is required")
        self.api_key = api_key
        self.from_address = from_address
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=JUDGE_TIMEOUT_SECONDS)
        self._owns_client = client is None

    async def send(self, to: str, subject: str, html: str):
        response = await self._client.post(
            self.url,
            headers={"Authorization": f"Bearer {self.api_key}"},
            json={"from": self.from_address, "to": [to], "subject": subject, "html": html},
        )
        response.raise_for_status()
        logger.debug("Report sent to %s", to)
        return response.json()

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()
