"""Exception hierarchy for telety.

Only input validation errors (bad credentials) end the process. Transport,
notification and child process failures are recovered where they occur;
the busy errors signal programming mistakes and are never caught.
"""

from __future__ import annotations


class TeletyError(Exception):
    """Base class for telety errors."""


class InvalidTokenError(TeletyError):
    """Raised when the supplied auth token is not a GUID."""


class AuthError(TeletyError):
    """Raised when the token exchange with the API fails."""


class ApiError(TeletyError):
    """Raised when a telety.io HTTP request fails."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AnnotationError(TeletyError):
    """Raised when a comment has no history entry to attach to."""


class ChannelError(TeletyError):
    """Raised when the push channel cannot be opened or written."""


class PromptBusyError(TeletyError):
    """Raised when a second prompt read is requested while one is pending."""


class TerminalBusyError(TeletyError):
    """Raised when the terminal is claimed while another consumer owns it."""
