"""In-memory session store with sliding expiry and background sweep."""

from __future__ import annotations

import asyncio
import dataclasses
import math
import secrets
import threading
import time
from collections.abc import Callable

import structlog
from cachetools import TTLCache

from chat_key_proxy.sessions.models import SessionPayload, SessionRecord, SessionStats

logger = structlog.get_logger()

SESSION_ID_BYTES = 32  # 256 bits of entropy, 64 hex characters


def generate_session_id() -> str:
    return secrets.token_hex(SESSION_ID_BYTES)


class SessionStore:
    """Maps opaque session IDs to encrypted-credential records.

    Records live in an unbounded ``TTLCache`` whose timer is the store's
    clock. A session expires once it has been idle for ``max_age`` seconds;
    each successful ``get`` re-inserts the record, restarting its TTL.
    Expired records are dropped on lookup and periodically by a sweep task
    started with ``start()`` and stopped with ``close()``.

    ``TTLCache`` is not thread-safe, so every operation holds ``_lock`` for
    the cache access only; callers decrypt and talk to the network after the
    lock is released.
    """

    def __init__(
        self,
        max_age: float = 86400,
        sweep_interval: float = 3600,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_age <= 0:
            raise ValueError("max_age must be positive")
        if sweep_interval <= 0:
            raise ValueError("sweep_interval must be positive")
        self._max_age = max_age
        self._sweep_interval = sweep_interval
        self._clock = clock
        self._cache: TTLCache[str, SessionRecord] = TTLCache(
            maxsize=math.inf, ttl=max_age, timer=clock
        )
        self._lock = threading.Lock()
        self._sweep_task: asyncio.Task | None = None
        logger.info(
            "session_store_initialized",
            max_age=max_age,
            sweep_interval=sweep_interval,
        )

    @property
    def max_age(self) -> float:
        return self._max_age

    @property
    def sweep_interval(self) -> float:
        return self._sweep_interval

    def __len__(self) -> int:
        with self._lock:
            self._cache.expire()
            return len(self._cache)

    def create(self, payload: SessionPayload) -> str:
        """Store a new session and return its identifier."""
        session_id = generate_session_id()
        with self._lock:
            now = self._clock()
            self._cache[session_id] = SessionRecord(
                encrypted_api_key=payload.encrypted_api_key,
                chat_endpoint=payload.chat_endpoint,
                completion_endpoint=payload.completion_endpoint,
                created_at=now,
                last_used_at=now,
            )
            total = len(self._cache)
        logger.info("session_created", total_sessions=total)
        return session_id

    def get(self, session_id: str | None) -> SessionRecord | None:
        """Return a copy of the session, or None if unknown or expired.

        A hit refreshes ``last_used_at`` and the record's TTL; an expired
        record is evicted.
        """
        if not session_id:
            return None
        with self._lock:
            expired = any(sid == session_id for sid, _ in self._cache.expire())
            record = self._cache.get(session_id)
            if record is not None:
                record.last_used_at = max(record.last_used_at, self._clock())
                self._cache[session_id] = record
                record = dataclasses.replace(record)
        if expired:
            logger.info("session_expired")
        return record

    def delete(self, session_id: str | None) -> bool:
        """Remove a session. Returns True if one was removed."""
        if not session_id:
            return False
        with self._lock:
            self._cache.expire()
            deleted = self._cache.pop(session_id, None) is not None
            total = len(self._cache)
        if deleted:
            logger.info("session_deleted", total_sessions=total)
        return deleted

    def sweep(self) -> int:
        """Remove every idle session. Returns the number removed."""
        with self._lock:
            removed = len(self._cache.expire())
            remaining = len(self._cache)
        if removed:
            logger.info(
                "sessions_swept",
                removed=removed,
                remaining=remaining,
            )
        return removed

    def stats(self) -> SessionStats:
        return SessionStats(
            count=len(self),
            max_age=self._max_age,
            sweep_interval=self._sweep_interval,
        )

    # ------------------------------------------------------------------
    # Background sweep
    # ------------------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.running:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(
            self._sweep_forever(), name="session-sweep"
        )
        logger.info("session_sweep_started", interval=self._sweep_interval)

    async def close(self) -> None:
        """Stop the periodic sweep and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            # Only the sweep task's own cancellation is expected here.
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
        logger.info("session_sweep_stopped")

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.sweep()
            except Exception:
                logger.exception("session_sweep_failed")
