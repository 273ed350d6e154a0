"""Application entrypoint - aiohttp server for the API key custody proxy."""

import logging
from collections.abc import AsyncIterator

import aiohttp_cors
import structlog
from aiohttp.web import AppKey, Application, run_app

from chat_key_proxy.api import ProxyHandler, access_log_middleware, error_middleware
from chat_key_proxy.config import Settings, get_settings
from chat_key_proxy.crypto import Cipher
from chat_key_proxy.errors import KeyMaterialError
from chat_key_proxy.sessions import SessionStore
from chat_key_proxy.upstream import UpstreamClient

STORE_KEY = AppKey("session_store", SessionStore)
UPSTREAM_KEY = AppKey("upstream_client", UpstreamClient)

# Event keys that must never reach a log sink.
_SECRET_KEYS = frozenset({
    "api_key",
    "apikey",
    "authorization",
    "encryption_key",
    "plaintext",
    "session_id",
})


def drop_secret_fields(logger, method_name, event_dict):
    """structlog processor that masks fields named like secrets."""
    for key in list(event_dict):
        if key.lower() in _SECRET_KEYS:
            event_dict[key] = "[REDACTED]"
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    log_file: str = "",
    log_file_max_bytes: int = 10_485_760,
    log_file_backup_count: int = 5,
) -> None:
    """Configure structlog and standard library logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file. Empty string = console only.
        log_file_max_bytes: Max size per log file before rotation (default: 10 MB)
        log_file_backup_count: Number of rotated backup files to keep (default: 5)
    """
    from logging.handlers import RotatingFileHandler
    from pathlib import Path

    level = getattr(logging, log_level.upper(), logging.INFO)

    root_logger = logging.root
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=log_file,
            maxBytes=log_file_max_bytes,
            backupCount=log_file_backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        root_logger.addHandler(file_handler)

    # aiohttp's own access log duplicates access_log_middleware
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            drop_secret_fields,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            # Use JSONRenderer for file, ConsoleRenderer for console
            structlog.processors.JSONRenderer() if log_file else structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()


async def session_lifecycle(app: Application) -> AsyncIterator[None]:
    """Run the session sweep while the app is up; release clients on shutdown."""
    store = app[STORE_KEY]
    store.start()
    yield
    await store.close()
    await app[UPSTREAM_KEY].close()


def create_app(
    settings: Settings | None = None,
    *,
    cipher: Cipher | None = None,
    store: SessionStore | None = None,
    upstream: UpstreamClient | None = None,
) -> Application:
    """Create and configure the aiohttp application.

    Raises:
        KeyMaterialError: If no cipher is given and ENCRYPTION_KEY is
            missing or malformed.
    """
    settings = settings or get_settings()

    if cipher is None:
        cipher = Cipher.from_hex(settings.encryption_key.get_secret_value())
    if store is None:
        store = SessionStore(
            max_age=settings.session_max_age,
            sweep_interval=settings.session_sweep_interval,
        )
    if upstream is None:
        upstream = UpstreamClient(
            model=settings.upstream_model,
            timeout=settings.upstream_timeout,
        )

    handler = ProxyHandler(settings, store, cipher, upstream)

    app = Application(middlewares=[access_log_middleware, error_middleware])
    app[STORE_KEY] = store
    app[UPSTREAM_KEY] = upstream
    app.cleanup_ctx.append(session_lifecycle)

    app.router.add_get("/api/health", handler.health)
    app.router.add_post("/api/setup", handler.setup)
    app.router.add_post("/api/chat", handler.chat)
    app.router.add_post("/api/logout", handler.logout)

    cors = aiohttp_cors.setup(app, defaults={
        settings.frontend_url: aiohttp_cors.ResourceOptions(
            allow_credentials=True,
            allow_headers="*",
            allow_methods=["GET", "POST"],
        ),
    })
    for route in list(app.router.routes()):
        cors.add(route)

    return app


def main() -> None:
    """Run the proxy server."""
    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        log_file=settings.log_file,
        log_file_max_bytes=settings.log_file_max_bytes,
        log_file_backup_count=settings.log_file_backup_count,
    )

    try:
        app = create_app(settings)
    except KeyMaterialError as err:
        logger.critical("encryption_key_invalid", reason=err.message)
        raise SystemExit(1) from None

    logger.info(
        "starting_proxy_server",
        host=settings.host,
        port=settings.port,
        environment=settings.app_env,
        frontend_url=settings.frontend_url,
        log_level=settings.log_level,
    )

    run_app(app, host=settings.host, port=settings.port, print=None)


if __name__ == "__main__":
    main()
