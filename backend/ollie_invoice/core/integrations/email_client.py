"""
Resend email client.
Thin wrapper over the Resend HTTP API using the shared aiohttp client.
"""

from typing import List, Optional
import logging

import aiohttp

from ollie_invoice.core.exceptions import ExternalServiceError
from ollie_invoice.core.integrations.http.http_client import HttpClient

logger = logging.getLogger(__name__)


class ResendEmailClient:
    """Sends transactional email through Resend."""

    def __init__(
        self,
        api_key: Optional[str],
        from_email: Optional[str],
        base_url: str = "https://api.resend.com",
        http_client: Optional[HttpClient] = None,
    ):
        self.api_key = api_key
        self.from_email = from_email
        self.http_client = http_client or HttpClient(
            base_url=base_url,
            timeout=15,
            headers={"Authorization": f"Bearer {api_key}"} if api_key else None,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.from_email and "@" in self.from_email)

    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        cc: Optional[List[str]] = None,
        reply_to: Optional[str] = None,
    ) -> str:
        """
        Send one email.

        Returns:
            The provider message id

        Raises:
            ExternalServiceError: If Resend is not configured or rejects the message
        """
        if not self.is_configured:
            raise ExternalServiceError("resend", "email sending is not configured")

        payload = {
            "from": self.from_email,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        if cc:
            payload["cc"] = cc
        if reply_to:
            payload["reply_to"] = reply_to

        try:
            response = await self.http_client.post("/emails", json=payload)
        except aiohttp.ClientResponseError as e:
            raise ExternalServiceError("resend", f"request rejected ({e.status})", details={"to": to}) from e
        except (aiohttp.ClientError, TimeoutError) as e:
            raise ExternalServiceError("resend", str(e) or type(e).__name__, details={"to": to}) from e

        message_id = response.get("id")
        logger.info("Email sent", extra={"message_id": message_id, "subject": subject})
        return message_id

    async def close(self) -> None:
        await self.http_client.close()
