"""Session store module."""

from chat_key_proxy.sessions.models import SessionPayload, SessionRecord, SessionStats
from chat_key_proxy.sessions.store import SessionStore

__all__ = ["SessionPayload", "SessionRecord", "SessionStats", "SessionStore"]
