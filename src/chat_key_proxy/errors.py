"""Error taxonomy shared by the cipher, session, upstream and HTTP layers.

Every error carries a short machine-readable ``category`` and a
human-readable message. Messages must never contain credentials, key
material or decrypted plaintext: they are returned to the browser verbatim.
"""

from __future__ import annotations

from typing import Any


class ProxyError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    category: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert the error to the JSON body sent to the client."""
        return {"error": self.category, "message": self.message}


class ValidationError(ProxyError):
    """Malformed or missing request input."""

    status_code = 400
    category = "validation_error"
    default_message = "Invalid request"


class AuthError(ProxyError):
    """Missing, unknown or expired session."""

    status_code = 401
    category = "auth_error"
    default_message = "Authentication required"


class UpstreamError(ProxyError):
    """The upstream chat API returned non-success or was unreachable."""

    status_code = 502
    category = "upstream_error"
    default_message = "Upstream API request failed"

    def __init__(
        self,
        message: str | None = None,
        upstream_status: int | None = None,
    ) -> None:
        self.upstream_status = upstream_status
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.upstream_status is not None:
            result["upstreamStatus"] = self.upstream_status
        return result


class CryptoError(ProxyError):
    """A cryptographic operation failed (bad key, wrong key, tampered data)."""

    status_code = 500
    category = "crypto_error"
    default_message = "Cryptographic operation failed"


class CiphertextFormatError(CryptoError):
    """The serialized encrypted credential could not be parsed."""

    default_message = "Malformed encrypted credential"


class KeyMaterialError(CryptoError):
    """The encryption key is missing or malformed."""

    default_message = "Encryption key is missing or malformed"


class InternalError(ProxyError):
    """Anything unanticipated."""
