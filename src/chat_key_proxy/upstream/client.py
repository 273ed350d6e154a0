"""Client for an upstream OpenAI-style chat completions endpoint."""

from __future__ import annotations

from collections.abc import Sequence

import httpx
import structlog

from chat_key_proxy.errors import UpstreamError
from chat_key_proxy.upstream.models import ChatMessage, ChatReply

logger = structlog.get_logger()

_ERROR_BODY_LOG_LIMIT = 500


class UpstreamClient:
    """Relays chat requests to the endpoint configured for a session.

    The API key is passed per call and only lives in the Authorization
    header of the outgoing request. Requests are sent once, without retry.
    """

    def __init__(
        self,
        model: str = "codestral-latest",
        timeout: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model = model
        self._timeout = timeout
        self._http_client = http_client

    @property
    def model(self) -> str:
        return self._model

    async def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def chat(
        self,
        endpoint: str,
        api_key: str,
        messages: Sequence[ChatMessage],
    ) -> ChatReply:
        """Send the conversation upstream and return the reply text.

        Raises:
            UpstreamError: On non-2xx status, transport failure or an
                unparseable response body.
        """
        client = await self._get_http_client()
        payload = {
            "model": self._model,
            "messages": [m.model_dump() for m in messages],
        }

        logger.info(
            "upstream_chat_start",
            endpoint=endpoint,
            model=self._model,
            message_count=len(messages),
        )

        try:
            response = await client.post(
                endpoint,
                json=payload,
                headers={
                    "Authorization": f"Bearer {api_key}",
                    "Content-Type": "application/json",
                },
            )
        except httpx.TimeoutException:
            logger.error("upstream_timeout", endpoint=endpoint)
            raise UpstreamError("Upstream API request timed out") from None
        except httpx.HTTPError as err:
            logger.error(
                "upstream_unreachable",
                endpoint=endpoint,
                error_type=type(err).__name__,
            )
            raise UpstreamError("Upstream API is unreachable") from None

        if not response.is_success:
            logger.error(
                "upstream_error",
                endpoint=endpoint,
                status=response.status_code,
                body=_redact(response.text, api_key)[:_ERROR_BODY_LOG_LIMIT],
            )
            raise UpstreamError(
                f"Upstream API error ({response.status_code}): "
                f"{response.reason_phrase}",
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError:
            logger.error("upstream_invalid_json", endpoint=endpoint)
            raise UpstreamError(
                "Upstream API returned an invalid response",
            ) from None

        reply = _extract_reply(data)
        usage = data.get("usage") if isinstance(data, dict) else None
        model = data.get("model") if isinstance(data, dict) else None

        logger.info(
            "upstream_chat_complete",
            model=model or self._model,
            reply_length=len(reply),
        )
        return ChatReply(
            reply=reply,
            model=model or self._model,
            usage=usage if isinstance(usage, dict) else None,
        )

    async def close(self) -> None:
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()


def _extract_reply(data: object) -> str:
    """Return ``choices[0].message.content`` or an empty string."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    message = first.get("message")
    if not isinstance(message, dict):
        return ""
    content = message.get("content")
    return content if isinstance(content, str) else ""


def _redact(text: str, secret: str) -> str:
    if not secret:
        return text
    return text.replace(secret, "[REDACTED]")
