"""aiohttp middlewares: JSON error responses and access logging."""

import time

import structlog
from aiohttp import web

from chat_key_proxy.errors import InternalError, ProxyError

logger = structlog.get_logger()


@web.middleware
async def error_middleware(request: web.Request, handler) -> web.StreamResponse:
    """Render every failure as ``{"error": <category>, "message": <text>}``.

    Only the error's own message reaches the client; exception details and
    tracebacks stay out of both the response and the log.
    """
    try:
        return await handler(request)
    except ProxyError as err:
        log = logger.warning if err.status_code < 500 else logger.error
        log(
            "request_failed",
            method=request.method,
            path=request.path,
            status=err.status_code,
            category=err.category,
        )
        return web.json_response(err.to_dict(), status=err.status_code)
    except web.HTTPException as exc:
        if exc.status < 400:
            raise
        if exc.status == 404:
            body = {"error": "not_found", "message": "Endpoint not found"}
        else:
            body = {"error": "http_error", "message": exc.reason}
        return web.json_response(body, status=exc.status, headers=_allow_header(exc))
    except Exception as err:
        logger.error(
            "unhandled_error",
            method=request.method,
            path=request.path,
            error_type=type(err).__name__,
        )
        internal = InternalError()
        return web.json_response(internal.to_dict(), status=internal.status_code)


def _allow_header(exc: web.HTTPException) -> dict[str, str] | None:
    allow = exc.headers.get("Allow")
    return {"Allow": allow} if allow else None


@web.middleware
async def access_log_middleware(request: web.Request, handler) -> web.StreamResponse:
    start = time.perf_counter()
    response = await handler(request)
    logger.info(
        "request_handled",
        method=request.method,
        path=request.path,
        status=response.status,
        duration_ms=round((time.perf_counter() - start) * 1000, 2),
    )
    return response
