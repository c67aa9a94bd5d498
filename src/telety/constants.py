"""Shared constants: control tokens, input patterns and HTTP headers."""

from __future__ import annotations

import re

TELETY = "telety"

# End-of-transmission, produced by Ctrl-D on an empty prompt line
EOT = "\x04"

CONTINUATION_MARKER = "\\"

QUIT_TOKENS: tuple[str, ...] = (EOT, "quit", "exit")
COMMENT_PREFIX = "#"


class REG:
    """Compiled patterns used to normalize and classify prompt input."""

    LF = re.compile(r"\\$")
    TRAILSPC = re.compile(r"\s+$")
    GUID = re.compile(
        r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-5][0-9a-f]{3}-[089ab][0-9a-f]{3}-[0-9a-f]{12}$",
        re.IGNORECASE,
    )
    COMMENT = re.compile(rf"^{re.escape(COMMENT_PREFIX)}\s*")


class HEADERS:
    XAUTH = "X-Auth-Token"
