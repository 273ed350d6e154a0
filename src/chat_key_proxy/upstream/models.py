"""Data models for upstream chat requests and responses."""

from typing import Any, Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """One turn of a conversation in the upstream wire format."""

    role: Literal["system", "user", "assistant"]
    content: str


class ChatReply(BaseModel):
    """Parsed response from the upstream chat endpoint."""

    reply: str
    model: str
    usage: dict[str, Any] | None = Field(default=None)
