"""Join mode: observe a channel and recall its messages at the prompt.

Channel history is preloaded into the recall list. New channel messages
arrive over the push channel; each one is fetched over HTTP, appended to
the recall list and rendered above the prompt. While a local command
owns the terminal, inbound messages wait for it to finish.
"""

from __future__ import annotations

import functools
import logging
import re
from typing import Any

from telety.api.base import ChannelApi
from telety.channel.aiohttp_transport import connect_websocket
from telety.channel.base import Clock, Connector
from telety.channel.client import ChannelClient
from telety.config.settings import ChannelConfig, PromptConfig
from telety.domain.models import (
    AuthResult,
    HistoryEntry,
    MessageCreated,
    MessageDeleted,
    MessageType,
)
from telety.errors import ApiError
from telety.session.base import Session
from telety.ui import control_label

logger = logging.getLogger(__name__)


def client_url(endpoint: str) -> str:
    """Push channel URL for an API endpoint (http(s) -> ws(s))."""
    return re.sub(r"^http", "ws", endpoint.rstrip("/")) + "/client"


class JoinSession(Session):
    """Remote-observing session over a ``ChannelClient``.

    Commands typed here still run locally but are not posted to the
    channel, and there are no annotations.
    """

    mode = "join"

    def __init__(
        self,
        api: ChannelApi,
        auth: AuthResult,
        channel_id: str,
        config: PromptConfig | None = None,
        *,
        channel_config: ChannelConfig | None = None,
        print_history: bool = False,
        connector: Connector | None = None,
        clock: Clock | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(config, api=api, **kwargs)
        self.channel_id = channel_id
        self.print_history = print_history
        channel_config = channel_config or ChannelConfig()
        if connector is None:
            connector = functools.partial(
                connect_websocket, verify_tls=channel_config.verify_tls
            )
        self.channel = ChannelClient(
            client_url(auth.endpoint),
            connector,
            headers={"authorization": f"Bearer {auth.token}"},
            heartbeat_interval=channel_config.heartbeat_interval,
            heartbeat_grace=channel_config.heartbeat_grace,
            reconnect_delay=channel_config.reconnect_delay,
            clock=clock,
        )
        self.channel.ready(self._focus)
        self.channel.ready(self._ready)
        self.channel.subscribe(MessageType.MSG, self.receive)
        self.channel.subscribe(MessageType.MSGDEL, self._deleted)

    def controls(self) -> list[tuple[str, str]]:
        return [
            ("|".join(control_label(t) for t in self.config.quit_tokens), "Signal end of transmission: EOT"),
            ("↑ ↓", "Navigate channel messages"),
        ]

    async def start(self) -> None:
        await self.init_messages()
        self.channel.connect()

    async def close(self) -> None:
        await self.channel.shutdown()

    async def init_messages(self) -> None:
        """Load the channel's messages into the recall list."""
        try:
            messages = await self.api.list_messages()
        except ApiError as e:
            logger.warning("Could not load channel history: %s", e)
            self.ui.warn(e)
            return
        for message in messages:
            self.history.append(HistoryEntry(input=message.input))
            if self.print_history:
                self.ui.message(message)
        logger.info("Loaded %d channel messages", len(messages))

    async def receive(self, event: MessageCreated) -> None:
        """Surface a new channel message once the terminal is free."""
        await self.bridge.wait_idle()
        try:
            message = await self.api.get_message(event.data.message)
        except ApiError as e:
            self.ui.warn(e)
            return
        # a command may have started while the fetch was in flight
        await self.bridge.wait_idle()
        if self.prompt is not None:
            self.prompt.add_history(message.input)
        else:
            self.history.append(HistoryEntry(input=message.input))
        self.ui.message(message)
        self.refresh()

    async def _focus(self) -> None:
        await self.channel.send(MessageType.CHFOCUS, self.channel_id)

    def _ready(self) -> None:
        if self.begin():
            self.ui.controls(self.controls())

    def _deleted(self, event: MessageDeleted) -> None:
        logger.info("Channel message %s was deleted", event.data.message)
