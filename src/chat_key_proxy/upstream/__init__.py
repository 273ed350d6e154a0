"""Upstream chat API client module."""

from chat_key_proxy.upstream.client import UpstreamClient
from chat_key_proxy.upstream.models import ChatMessage, ChatReply

__all__ = ["UpstreamClient", "ChatMessage", "ChatReply"]
