"""Interactive session coordinators.

Public API:
    Session -- prompt loop, teardown and signal handling
    HostSession -- runs commands and posts them to a channel webhook
    JoinSession -- observes a channel over the push connection
"""

from telety.session.base import Session
from telety.session.host import HostSession
from telety.session.join import JoinSession

__all__ = ["HostSession", "JoinSession", "Session"]
