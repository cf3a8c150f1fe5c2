from __future__ import annotations

from typing import Optional

import httpx
from loguru import logger

from fpcp.config import Settings, get_settings
from fpcp.notifications.transport import MailTransport


class ResendSender(MailTransport):
    """Send emails via the Resend HTTP API."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.api_key = settings.resend_api_key
        self.api_url = settings.mail_api_url
        self.sender = settings.mail_from
        self.timeout = settings.mail_timeout_seconds

    @classmethod
    def is_configured(cls, settings: Optional[Settings] = None) -> bool:
        """Check if the Resend API key is set."""
        settings = settings or get_settings()
        return bool(settings.resend_api_key)

    def send(self, to: str, subject: str, html: str) -> bool:
        """Send one HTML email.

        Args:
            to: Recipient address.
            subject: Subject line.
            html: Rendered HTML body.

        Returns:
            True if Resend accepted the message, False otherwise.
        """
        payload = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.api_url, json=payload, headers=headers)
                response.raise_for_status()

            logger.info(f"Email sent to {to}: {subject}")
            return True
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Resend API error: {e.response.status_code} - {e.response.text}"
            )
            return False
        except httpx.RequestError as e:
            logger.error(f"Resend request failed: {e}")
            return False
