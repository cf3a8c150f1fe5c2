from __future__ import annotations

from abc import ABC, abstractmethod


class MailTransport(ABC):
    """Outbound mail API used by the email dispatcher."""

    @abstractmethod
    def send(self, to: str, subject: str, html: str) -> bool:
        """Deliver one email. Returns True on success, False otherwise."""
        ...
