"""Outbound notification adapter (webhook to the notification service)."""

import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

import httpx

_logger = logging.getLogger(__name__)


class NotificationClient(Protocol):
    """Interface for delivering a message to a user."""

    async def send(self, user_id: UUID, subject: str, text: str) -> None:
        """Deliver a message to the user's preferred channel."""


@dataclass
class HttpxNotificationClient(NotificationClient):
    """Posts messages to the notification service webhook."""

    webhook_url: str | None
    token: str | None
    http_client: httpx.AsyncClient
    timeout_seconds: float = 10

    @classmethod
    def create(
        cls, webhook_url: str | None, token: str | None
    ) -> "HttpxNotificationClient":
        """Create a client with a managed httpx session."""
        return cls(
            webhook_url=webhook_url, token=token, http_client=httpx.AsyncClient()
        )

    async def send(self, user_id: UUID, subject: str, text: str) -> None:
        """POST the message; skipped with a log line when no webhook is set."""
        if not self.webhook_url:
            _logger.info(
                "Notification service not configured, skipping: user_id=%s subject=%s",
                user_id,
                subject,
            )
            return
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        response = await self.http_client.post(
            self.webhook_url,
            json={"user_id": str(user_id), "subject": subject, "text": text},
            headers=headers,
            timeout=self.timeout_seconds,
        )
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()
