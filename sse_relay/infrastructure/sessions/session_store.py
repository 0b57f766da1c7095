"""
In-Memory Session Store

Holds the chat requests registered by ``POST /prepare`` until the client opens
``GET /stream/{id}``. Sessions are ephemeral: they live in this process only,
are read at most once by a stream attempt, and are swept after a fixed
time-to-live when the client never shows up.

Implementation Details:
- Plain dict guarded by an asyncio.Lock (one event loop, many connections)
- ``claim`` removes and returns a session atomically, so two concurrent
  stream requests can never relay the same session
- The periodic sweep is an explicit task owned by the store; ``stop()``
  cancels it on shutdown
- The sweep takes the lock once per expired entry, never for the whole scan
"""

import asyncio
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sse_relay.core.config.constants import Stage
from sse_relay.core.exceptions import InvalidInputError
from sse_relay.core.logging.logger import get_logger, log_stage

logger = get_logger(__name__)

SESSION_ID_BYTES = 16  # 128 bits


@dataclass
class Session:
    """
    A pending chat request.

    Attributes:
        id: Opaque, unguessable session identifier
        model: Requested upstream model id
        messages: Ordered conversation turns ({role, content})
        created_at: Creation time (seconds, from the store's clock)
    """

    id: str
    model: str
    messages: list[dict[str, Any]]
    created_at: float = field(default_factory=time.time)

    def age(self, now: float) -> float:
        return now - self.created_at


def normalize_messages(
    messages: list[dict[str, Any]] | None,
    system_prompt: str,
    placeholder_user_message: str,
) -> list[dict[str, Any]]:
    """
    Make sure a conversation has a system turn first and a user turn last.

    Upstream providers reject conversations without a user turn; the system
    preamble keeps free-tier models on track. Existing turns are kept in order.
    """
    normalized = [dict(message) for message in (messages or [])]

    if not any(message.get("role") == "system" for message in normalized):
        normalized.insert(0, {"role": "system", "content": system_prompt})

    if not any(message.get("role") == "user" for message in normalized):
        normalized.append({"role": "user", "content": placeholder_user_message})

    return normalized


class SessionStore:
    """
    Concurrency-safe in-memory session registry with TTL expiry.

    STAGE-1: Session storage

    Usage:
        store = SessionStore(default_model="...", ttl=600, sweep_interval=300)
        store.start()

        session = await store.create(None, [])
        claimed = await store.claim(session.id)   # exactly once
        await store.delete(session.id)            # idempotent

        await store.stop()
    """

    def __init__(
        self,
        default_model: str,
        ttl: float = 600.0,
        sweep_interval: float = 300.0,
        system_prompt: str = "You are a helpful assistant.",
        placeholder_user_message: str = "Hello",
        clock: Callable[[], float] = time.time,
    ):
        self._default_model = default_model
        self._ttl = ttl
        self._sweep_interval = sweep_interval
        self._system_prompt = system_prompt
        self._placeholder_user_message = placeholder_user_message
        self._clock = clock

        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()
        self._sweep_task: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, settings) -> "SessionStore":
        """Build a store from the relay section of the settings."""
        relay = settings.relay
        return cls(
            default_model=relay.DEFAULT_MODEL,
            ttl=relay.SESSION_TTL,
            sweep_interval=relay.SESSION_SWEEP_INTERVAL,
            system_prompt=relay.DEFAULT_SYSTEM_PROMPT,
            placeholder_user_message=relay.PLACEHOLDER_USER_MESSAGE,
        )

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create(self, model: Any, messages: list[dict[str, Any]] | None) -> Session:
        """
        Register a new session and return it.

        An absent, blank or non-string model falls back to the default model;
        the message list is normalized (system turn first, user turn last).

        Raises:
            InvalidInputError: ``messages`` is not a list of objects
        """
        if messages is not None and (
            not isinstance(messages, list) or not all(isinstance(m, dict) for m in messages)
        ):
            raise InvalidInputError(
                "messages must be an array of {role, content} objects",
                details={"messages_type": type(messages).__name__},
            )

        if not isinstance(model, str) or not model.strip():
            model = self._default_model

        session = Session(
            id=secrets.token_urlsafe(SESSION_ID_BYTES),
            model=model.strip(),
            messages=normalize_messages(
                messages, self._system_prompt, self._placeholder_user_message
            ),
            created_at=self._clock(),
        )

        async with self._lock:
            self._sessions[session.id] = session

        log_stage(
            logger,
            Stage.PREPARE,
            "Session created",
            session_id=session.id,
            model=session.model,
            message_count=len(session.messages),
        )
        return session

    async def get(self, session_id: str) -> Session | None:
        """Return the session, or None if unknown or expired."""
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return None
            if self._is_expired(session, self._clock()):
                del self._sessions[session_id]
                return None
            return session

    async def claim(self, session_id: str) -> Session | None:
        """
        Remove and return the session in one step.

        This is how a stream attempt reads its session: whatever happens next,
        the id can no longer be used.
        """
        async with self._lock:
            session = self._sessions.pop(session_id, None)

        if session is None or self._is_expired(session, self._clock()):
            return None
        return session

    async def delete(self, session_id: str) -> bool:
        """Delete a session. Returns True if it existed. Safe to call repeatedly."""
        async with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    # ------------------------------------------------------------------
    # Expiry
    # ------------------------------------------------------------------

    def _is_expired(self, session: Session, now: float) -> bool:
        return session.age(now) > self._ttl

    async def sweep(self, now: float | None = None) -> int:
        """
        Remove every session older than the TTL.

        STAGE-S: Session sweep

        Returns:
            Number of sessions removed
        """
        now = self._clock() if now is None else now
        removed = 0

        for session_id in list(self._sessions.keys()):
            async with self._lock:
                session = self._sessions.get(session_id)
                if session is not None and self._is_expired(session, now):
                    del self._sessions[session_id]
                    removed += 1

        if removed:
            log_stage(
                logger, Stage.SESSION_SWEEP, "Expired sessions removed",
                removed=removed, remaining=len(self._sessions),
            )
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(
                    "Session sweep failed",
                    stage=Stage.SESSION_SWEEP.value,
                    error_type=type(e).__name__,
                    error=str(e),
                )

    def start(self) -> None:
        """Start the periodic sweep task (idempotent). Needs a running loop."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop())
            log_stage(
                logger, Stage.SESSION_SWEEP, "Session sweeper started",
                interval=self._sweep_interval, ttl=self._ttl,
            )

    async def stop(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

        log_stage(logger, Stage.SESSION_SWEEP, "Session sweeper stopped")

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()
