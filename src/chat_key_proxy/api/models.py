"""Request body models for the proxy API.

Field aliases follow the browser client's camelCase JSON. Validation
failures are reported by field name only: pydantic's own error details
echo the rejected input, which may be the API key.
"""

from __future__ import annotations

from typing import Any, ClassVar

from pydantic import (
    AnyHttpUrl,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    TypeAdapter,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError

from chat_key_proxy.errors import ValidationError
from chat_key_proxy.upstream.models import ChatMessage

_HTTP_URL = TypeAdapter(AnyHttpUrl)


def _check_url(value: str) -> str:
    try:
        _HTTP_URL.validate_python(value)
    except PydanticValidationError:
        raise ValueError("must be an absolute http(s) URL") from None
    return value


def _invalid_fields(err: PydanticValidationError) -> list[str]:
    fields: list[str] = []
    for error in err.errors():
        loc = error.get("loc") or ("body",)
        name = str(loc[0])
        if name not in fields:
            fields.append(name)
    return fields


class _RequestModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    error_message: ClassVar[str] = "Invalid request"

    @classmethod
    def from_payload(cls, payload: Any):
        """Validate a decoded JSON body or raise the API's ValidationError."""
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        try:
            return cls.model_validate(payload)
        except PydanticValidationError as err:
            fields = ", ".join(_invalid_fields(err))
            raise ValidationError(
                f"{cls.error_message}: {fields}"
            ) from None


class SetupRequest(_RequestModel):
    """Body of ``POST /api/setup``."""

    error_message: ClassVar[str] = "Missing or invalid fields"

    api_key: SecretStr = Field(..., alias="apiKey")
    chat_endpoint: str = Field(..., alias="chatEndpoint")
    completion_endpoint: str | None = Field(None, alias="completionEndpoint")

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value().strip():
            raise ValueError("apiKey is required")
        return SecretStr(v.get_secret_value().strip())

    @field_validator("chat_endpoint")
    @classmethod
    def validate_chat_endpoint(cls, v: str) -> str:
        return _check_url(v.strip())

    @field_validator("completion_endpoint", mode="before")
    @classmethod
    def validate_completion_endpoint(cls, v: Any) -> Any:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        if not isinstance(v, str):
            raise ValueError("completionEndpoint must be a string")
        return _check_url(v.strip())


class ChatRequest(_RequestModel):
    """Body of ``POST /api/chat``."""

    error_message: ClassVar[str] = "Invalid request"

    message: str
    history: list[ChatMessage] = Field(default_factory=list)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("message is required")
        return v

    @field_validator("history", mode="before")
    @classmethod
    def default_history(cls, v: Any) -> Any:
        return [] if v is None else v
