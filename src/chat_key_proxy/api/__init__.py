"""HTTP API: handlers, request models and middlewares."""

from chat_key_proxy.api.handlers import ProxyHandler
from chat_key_proxy.api.middleware import access_log_middleware, error_middleware
from chat_key_proxy.api.models import ChatRequest, SetupRequest

__all__ = [
    "ProxyHandler",
    "ChatRequest",
    "SetupRequest",
    "access_log_middleware",
    "error_middleware",
]
