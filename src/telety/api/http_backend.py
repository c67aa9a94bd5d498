"""HTTP channel API backend.

Posts webhook records and fetches channel messages with httpx, sending
the bearer token obtained from the token exchange.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from telety.api.base import ChannelApi
from telety.domain.models import AuthResult, Message, WebhookResponse, WebhookType
from telety.errors import ApiError

logger = logging.getLogger(__name__)


class HttpChannelApi(ChannelApi):
    """Talks to the telety.io HTTP API for one channel."""

    def __init__(
        self,
        webhook_url: str,
        auth: AuthResult,
        channel: str = "",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._webhook_url = webhook_url
        self._endpoint = auth.endpoint.rstrip("/")
        self._token = auth.token
        self._channel = channel
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def headers(self) -> dict[str, str]:
        return {"authorization": f"Bearer {self._token}"}

    async def connect(self) -> None:
        """Create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self.headers,
                timeout=self._timeout,
                transport=self._transport,
            )
            logger.debug("HTTP client ready for %s", self._endpoint)

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.debug("HTTP client closed")

    async def notify(self, kind: WebhookType, payload: dict[str, Any]) -> WebhookResponse:
        resp = await self._request(
            "POST", self._webhook_url, json={"type": WebhookType(kind).value, "payload": payload}
        )
        logger.debug("Posted %s to webhook", WebhookType(kind).value)
        return self._parse(WebhookResponse, resp)

    async def get_message(self, message_id: str) -> Message:
        resp = await self._request("GET", self.message_url(message_id))
        return self._parse(Message, resp)

    async def list_messages(self) -> list[Message]:
        resp = await self._request("GET", self.message_url())
        try:
            return [Message.model_validate(item) for item in resp.json()]
        except (ValueError, TypeError, ValidationError) as e:
            raise ApiError(f"Unexpected message list from {resp.url}: {e}") from e

    def message_url(self, message_id: str = "") -> str:
        """Resolve a channel message URL (the collection when no id)."""
        uri = f"/{message_id.lstrip('/')}" if message_id else ""
        return f"{self._endpoint}/channel/{self._channel}/message{uri}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        if self._client is None:
            raise ApiError("HTTP client is not connected")
        try:
            resp = await self._client.request(method, url, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            raise ApiError(
                f"{e.response.status_code}: {e.response.reason_phrase}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise ApiError(f"HTTP request to {url} failed: {e}") from e

    @staticmethod
    def _parse(model: Any, resp: httpx.Response) -> Any:
        try:
            return model.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise ApiError(f"Unexpected response from {resp.url}: {e}") from e
