"""Abstract interface for the telety.io channel API.

The session coordinators only need three calls: post an input or comment
to the channel webhook, fetch one message, and list a channel's messages.
Backends implement them over their own transport; the coordinators never
see HTTP details.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from telety.domain.models import Message, WebhookResponse, WebhookType

logger = logging.getLogger(__name__)


class ChannelApi(ABC):
    """Abstract interface to a telety channel.

    Example usage::

        async with HttpChannelApi(webhook_url, auth, channel) as api:
            ack = await api.notify(WebhookType.MESSAGE, {"input": "ls -la"})
            msg = await api.get_message(ack.id)
    """

    @abstractmethod
    async def connect(self) -> None:
        """Open the underlying client. Must be called before any request."""
        ...

    @abstractmethod
    async def disconnect(self) -> None:
        """Release the underlying client. Safe to call multiple times."""
        ...

    @abstractmethod
    async def notify(self, kind: WebhookType, payload: dict[str, Any]) -> WebhookResponse:
        """Post a ``{type, payload}`` record to the channel webhook.

        ``message`` payloads are ``{"input": raw}``; ``comment`` payloads
        are ``{"id": message_id, "comment": text}``.

        Raises:
            ApiError: If the request fails.
        """
        ...

    @abstractmethod
    async def get_message(self, message_id: str) -> Message:
        """Fetch one channel message by id.

        Raises:
            ApiError: If the request fails.
        """
        ...

    @abstractmethod
    async def list_messages(self) -> list[Message]:
        """Fetch every message in the channel, oldest first.

        Raises:
            ApiError: If the request fails.
        """
        ...

    async def __aenter__(self) -> ChannelApi:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type | None, exc_val: Exception | None, exc_tb: object) -> None:
        await self.disconnect()
