"""Data models for session records."""

from dataclasses import dataclass
from typing import Any

from chat_key_proxy.crypto import EncryptedCredential


@dataclass(frozen=True, slots=True)
class SessionPayload:
    """What setup hands to the store: the encrypted key and its endpoints."""

    encrypted_api_key: EncryptedCredential
    chat_endpoint: str
    completion_endpoint: str | None = None


@dataclass(slots=True)
class SessionRecord:
    """A stored session. Timestamps come from the store's clock."""

    encrypted_api_key: EncryptedCredential
    chat_endpoint: str
    completion_endpoint: str | None
    created_at: float
    last_used_at: float


@dataclass(frozen=True, slots=True)
class SessionStats:
    """Read-only snapshot of the store for health checks."""

    count: int
    max_age: float
    sweep_interval: float

    def as_dict(self) -> dict[str, Any]:
        return {
            "totalSessions": self.count,
            "maxAge": self.max_age,
            "cleanupInterval": self.sweep_interval,
        }
