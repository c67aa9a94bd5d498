"""telety.io HTTP API access.

Public API:
    ChannelApi -- Abstract base class
    HttpChannelApi -- httpx backend
"""

from telety.api.base import ChannelApi
from telety.api.http_backend import HttpChannelApi

__all__ = ["ChannelApi", "HttpChannelApi"]
