"""HTTP handlers for key setup, chat relay, logout and health.

The browser only ever holds an opaque session ID in an HTTP-only cookie.
The API key is decrypted inside ``chat`` for the duration of the upstream
call and is never written to a response, a log line or the session store.
"""

from __future__ import annotations

import time
from typing import Any

import structlog
from aiohttp import web

from chat_key_proxy.api.models import ChatRequest, SetupRequest
from chat_key_proxy.config import Settings
from chat_key_proxy.crypto import Cipher
from chat_key_proxy.errors import AuthError, ValidationError
from chat_key_proxy.sessions import SessionPayload, SessionStore
from chat_key_proxy.upstream import ChatMessage, UpstreamClient

logger = structlog.get_logger()

NO_SESSION_MESSAGE = "No session found. Please configure your API key first."
INVALID_SESSION_MESSAGE = "Session expired or invalid. Please reconfigure your API key."


async def _read_json(request: web.Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        raise ValidationError("Request body must be valid JSON") from None


class ProxyHandler:
    """Ties the session cookie to decrypt-and-forward on every chat call."""

    def __init__(
        self,
        settings: Settings,
        store: SessionStore,
        cipher: Cipher,
        upstream: UpstreamClient,
    ) -> None:
        self._settings = settings
        self._store = store
        self._cipher = cipher
        self._upstream = upstream
        self._started_at = time.monotonic()

    @property
    def cookie_name(self) -> str:
        return self._settings.session_cookie_name

    def _set_session_cookie(self, response: web.Response, session_id: str) -> None:
        response.set_cookie(
            self.cookie_name,
            session_id,
            max_age=int(self._store.max_age),
            path="/",
            secure=self._settings.is_production,
            httponly=True,
            samesite="Lax",
        )

    async def health(self, request: web.Request) -> web.Response:
        """Health check endpoint - no authentication required."""
        return web.json_response({
            "status": "healthy",
            "uptime": round(time.monotonic() - self._started_at, 3),
            "environment": self._settings.app_env,
            **self._store.stats().as_dict(),
        })

    async def setup(self, request: web.Request) -> web.Response:
        """Encrypt the submitted API key and bind it to a new session cookie."""
        body = SetupRequest.from_payload(await _read_json(request))

        encrypted = self._cipher.encrypt(body.api_key.get_secret_value())
        session_id = self._store.create(SessionPayload(
            encrypted_api_key=encrypted,
            chat_endpoint=body.chat_endpoint,
            completion_endpoint=body.completion_endpoint,
        ))
        # Reconfiguring replaces the caller's previous session.
        replaced = self._store.delete(request.cookies.get(self.cookie_name))

        response = web.json_response({
            "success": True,
            "message": "Configuration saved securely",
        })
        self._set_session_cookie(response, session_id)
        logger.info(
            "setup_complete",
            chat_endpoint=body.chat_endpoint,
            has_completion_endpoint=body.completion_endpoint is not None,
            replaced_session=replaced,
        )
        return response

    async def chat(self, request: web.Request) -> web.Response:
        """Relay a chat message upstream using the session's stored key."""
        session_id = request.cookies.get(self.cookie_name)
        if not session_id:
            raise AuthError(NO_SESSION_MESSAGE)

        session = self._store.get(session_id)
        if session is None:
            raise AuthError(INVALID_SESSION_MESSAGE)

        body = ChatRequest.from_payload(await _read_json(request))
        messages = [
            *body.history,
            ChatMessage(role="user", content=body.message),
        ]

        api_key = self._cipher.decrypt_text(session.encrypted_api_key)
        reply = await self._upstream.chat(session.chat_endpoint, api_key, messages)
        return web.json_response(reply.model_dump())

    async def logout(self, request: web.Request) -> web.Response:
        """Delete the session, if any, and clear the cookie. Always succeeds."""
        session_id = request.cookies.get(self.cookie_name)
        deleted = self._store.delete(session_id) if session_id else False

        response = web.json_response({
            "success": True,
            "message": "Session cleared successfully",
        })
        response.del_cookie(self.cookie_name, path="/")
        logger.info("logout_complete", session_deleted=deleted)
        return response
