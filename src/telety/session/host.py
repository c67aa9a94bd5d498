"""Host mode: run commands locally and publish them to a channel webhook."""

from __future__ import annotations

import logging
import re

from telety.api.base import ChannelApi
from telety.session.base import Session
from telety.ui import control_label

logger = logging.getLogger(__name__)


class HostSession(Session):
    """Pipes every executed input to the channel webhook.

    ``# <comment>`` lines annotate the most recent input instead of
    running, and are kept out of the recall history.
    """

    mode = "host"

    @property
    def bridge_api(self) -> ChannelApi | None:
        return self.api

    @property
    def comment_pattern(self) -> re.Pattern[str]:
        return re.compile(rf"^{re.escape(self.config.comment_prefix)}\s*")

    @property
    def exclusions(self) -> list[re.Pattern[str]]:
        return [self.comment_pattern]

    def controls(self) -> list[tuple[str, str]]:
        return [
            ("|".join(control_label(t) for t in self.config.quit_tokens), "Signal end of transmission: EOT"),
            (f"{self.config.comment_prefix} <comment>", "Add comment to the most recent input"),
        ]

    async def start(self) -> None:
        self.ui.controls(self.controls())
        self.ui.separator()
        logger.info("Hosting session started")
        self.begin()

