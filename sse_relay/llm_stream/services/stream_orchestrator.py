"""
Stream Orchestrator Service
===========================

WHAT IS THE STREAM ORCHESTRATOR?
---------------------------------
The StreamOrchestrator drives one ``GET /stream/{session_id}`` request from the
moment the session is claimed until exactly one terminal event has been
produced. It owns the candidate fallback policy, the per-attempt timeout and
the cleanup protocol; it does not know anything about HTTP.

THE REQUEST LIFECYCLE:
----------------------

┌─────────────────────────────────────────────────────────────────┐
│ STAGE 1: SESSION CLAIM                                          │
│ - Remove the session from the store (exactly once)              │
│ - Unknown, consumed or expired id → single ``error`` event      │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 2: CANDIDATE SELECTION                                    │
│ - [session.model, *FALLBACK_MODELS], duplicates removed         │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 3: UPSTREAM CONNECT (per candidate)                       │
│ - Non-2xx or transport failure → next candidate, silently       │
│ - 2xx with a readable body → STAGE 4                            │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 4: STREAMING                                              │
│ - Parse ``data:`` payloads, extract content, emit ``chunk``     │
│ - [DONE], finish_reason or end of body → ``done``               │
│ - Attempt timer (not reset per chunk) → ``done``                │
│ - Read error → ``error`` (no fallback, output already sent)     │
│ - Client gone → stop, no further events                         │
└─────────────────────────────────────────────────────────────────┘
                            ↓ (only if no candidate reached STAGE 4)
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 5: FINAL FALLBACK                                         │
│ - One non-streaming call on the session's original model        │
│ - Success → one ``chunk`` + ``done``; failure → one ``error``   │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 6: CLEANUP                                                │
│ - Session deleted, counters updated, correlation id cleared     │
│ - Runs on every exit path, including client disconnect          │
└─────────────────────────────────────────────────────────────────┘

ASYNC GENERATOR CONTRACT:
-------------------------
``stream()`` yields ``SSEEvent`` objects. Consumers must close the generator
(``aclose()``) when they stop early; the Client SSE Writer does so. Closing
or cancelling the generator while an upstream response is open closes that
response.
"""

import asyncio
import time
from collections.abc import AsyncGenerator, AsyncIterator, Awaitable, Callable, Sequence
from contextlib import aclosing
from dataclasses import dataclass
from typing import Any

from sse_relay.core.config.constants import AttemptState, MalformedPayloadPolicy, Stage
from sse_relay.core.config.settings import Settings, get_settings
from sse_relay.core.exceptions import (
    AllProvidersDownError,
    ProviderError,
    SessionNotFoundError,
    StreamingError,
    StreamingTimeoutError,
)
from sse_relay.core.logging.logger import clear_thread_id, get_logger, log_stage, set_thread_id
from sse_relay.infrastructure.sessions.session_store import Session, SessionStore
from sse_relay.llm_stream.models.sse_event import SSEEvent
from sse_relay.llm_stream.parsing.content_extractors import (
    DEFAULT_EXTRACTORS,
    ContentExtractor,
    extract_content,
    finish_reason,
)
from sse_relay.llm_stream.parsing.sse_parser import SSEFrameParser, SSEPayload
from sse_relay.llm_stream.providers.upstream_client import UpstreamClient

logger = get_logger(__name__)

INVALID_SESSION_MESSAGE = "invalid sessionId"
STREAM_ERROR_MESSAGE = "stream error"
ALL_MODELS_FAILED_MESSAGE = "all models failed"

DisconnectProbe = Callable[[], Awaitable[bool]]


@dataclass
class StreamAttempt:
    """
    Bookkeeping for one upstream attempt.

    State machine: connecting → streaming → completed | failed | timed_out | client_closed
    """

    session_id: str
    model: str
    number: int
    state: AttemptState = AttemptState.CONNECTING
    chunks: int = 0
    started_at: float | None = None

    def transition(self, state: AttemptState, **kwargs) -> None:
        previous, self.state = self.state, state
        level = "warning" if state in (AttemptState.FAILED, AttemptState.TIMED_OUT) else "info"
        log_stage(
            logger,
            Stage.STREAMING if previous == AttemptState.STREAMING else Stage.UPSTREAM_CONNECT,
            f"Attempt {state.value}",
            level=level,
            model=self.model,
            attempt=self.number,
            previous_state=previous.value,
            chunks=self.chunks,
            **kwargs,
        )


class StreamOrchestrator:
    """
    Central coordinator for the relay of one session.

    Usage:
        orchestrator = StreamOrchestrator(session_store, upstream_client, settings)

        async for event in orchestrator.stream(session_id, referer, request.is_disconnected):
            ...  # chunk events, then exactly one done / error

    THREAD SAFETY:
    --------------
    Runs on the single event loop. The only state shared between concurrent
    streams is the session store (which has its own lock) and the counters
    below, which are only touched between await points.
    """

    def __init__(
        self,
        session_store: SessionStore,
        upstream_client: UpstreamClient,
        settings: Settings | None = None,
        extractors: Sequence[ContentExtractor] = DEFAULT_EXTRACTORS,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize orchestrator with dependency injection.

        Args:
            session_store: Pending sessions registered by ``POST /prepare``
            upstream_client: Upstream chat-completion client
            settings: Application configuration (fallback models, timeout, policy)
            extractors: Content extraction strategies, tried in order
            clock: Monotonic clock for the attempt timer
        """
        self._store = session_store
        self._upstream = upstream_client
        self.settings = settings or get_settings()
        self._extractors = tuple(extractors)
        self._clock = clock

        relay = self.settings.relay
        self._fallback_models = list(relay.FALLBACK_MODELS)
        self._stream_timeout = relay.STREAM_TIMEOUT
        self._malformed_policy = MalformedPayloadPolicy(relay.MALFORMED_PAYLOAD_POLICY)

        self._active_streams = 0
        self._outcomes: dict[str, int] = {
            "invalid_session": 0,
            "final_fallback": 0,
            **{state.value: 0 for state in AttemptState if state.is_terminal},
        }

        logger.info(
            "StreamOrchestrator initialized",
            fallback_models=self._fallback_models,
            stream_timeout=self._stream_timeout,
            malformed_payload_policy=self._malformed_policy.value,
        )

    # ========================================================================
    # MAIN STREAMING METHOD
    # ========================================================================

    async def stream(
        self,
        session_id: str,
        referer: str | None = None,
        is_disconnected: DisconnectProbe | None = None,
    ) -> AsyncGenerator[SSEEvent, None]:
        """
        Relay one session as a sequence of SSE events.

        Args:
            session_id: Id returned by ``POST /prepare``
            referer: Client origin, used for the upstream ``Referer`` header
            is_disconnected: Optional probe polled before each upstream read

        Yields:
            Zero or more ``chunk`` events, then exactly one ``done`` or ``error``
            (nothing more once the client has gone away)
        """
        set_thread_id(session_id)
        self._active_streams += 1

        try:
            # STAGE 1: Session claim
            session = await self._store.claim(session_id)
            if session is None:
                error = SessionNotFoundError(INVALID_SESSION_MESSAGE, thread_id=session_id)
                self._outcomes["invalid_session"] += 1
                log_stage(
                    logger, Stage.SESSION_CLAIM, "Unknown or expired session",
                    level="warning", session_id=session_id, error=error.to_dict(),
                )
                yield SSEEvent.error(error.message)
                return

            log_stage(
                logger, Stage.SESSION_CLAIM, "Session claimed",
                session_id=session_id, model=session.model,
            )

            async with aclosing(self._relay_session(session, referer, is_disconnected)) as events:
                async for event in events:
                    yield event

        finally:
            # STAGE 6: Cleanup (claim already removed it; delete is idempotent)
            await self._store.delete(session_id)
            self._active_streams -= 1
            log_stage(logger, Stage.CLEANUP, "Stream finished", session_id=session_id)
            clear_thread_id()

    def candidate_models(self, session: Session) -> list[str]:
        """Session model first, then the fallbacks; duplicates removed, order kept."""
        return list(dict.fromkeys([session.model, *self._fallback_models]))

    # ========================================================================
    # FALLBACK POLICY
    # ========================================================================

    async def _relay_session(
        self, session: Session, referer: str | None, is_disconnected: DisconnectProbe | None
    ) -> AsyncGenerator[SSEEvent, None]:
        # STAGE 2: Candidate selection
        candidates = self.candidate_models(session)
        log_stage(logger, Stage.CANDIDATE_SELECTION, "Candidates selected", candidates=candidates)

        failures: list[str] = []

        for number, model in enumerate(candidates, start=1):
            if is_disconnected is not None and await is_disconnected():
                self._outcomes[AttemptState.CLIENT_CLOSED.value] += 1
                log_stage(logger, Stage.UPSTREAM_CONNECT, "Client gone before upstream connect")
                return

            attempt = StreamAttempt(session_id=session.id, model=model, number=number)

            # STAGE 3: Upstream connect
            try:
                async with self._upstream.open_stream(model, session.messages, referer) as body:
                    # STAGE 4: Streaming; no fallback past this point
                    events = self._stream_attempt(attempt, body, is_disconnected)
                    async with aclosing(events):
                        async for event in events:
                            yield event
                    return

            except ProviderError as e:
                attempt.transition(
                    AttemptState.FAILED,
                    error_type=type(e).__name__,
                    error=e.message,
                    status_code=e.details.get("status_code"),
                )
                failures.append(f"{model}: {e.message}")

        # STAGE 5: Final fallback
        async with aclosing(self._final_fallback(session, referer, failures)) as events:
            async for event in events:
                yield event

    async def _final_fallback(
        self, session: Session, referer: str | None, failures: list[str]
    ) -> AsyncGenerator[SSEEvent, None]:
        self._outcomes["final_fallback"] += 1
        log_stage(
            logger, Stage.FINAL_FALLBACK, "All streaming candidates failed, trying non-streaming call",
            level="warning", model=session.model, failures=failures,
        )

        try:
            text = await self._upstream.complete(session.model, session.messages, referer)
        except ProviderError as e:
            failures.append(f"{session.model} (non-streaming): {e.message}")
            error = AllProvidersDownError(
                ALL_MODELS_FAILED_MESSAGE,
                thread_id=session.id,
                details={"failures": failures},
            )
            self._outcomes[AttemptState.FAILED.value] += 1
            log_stage(
                logger, Stage.FINAL_FALLBACK, "Final fallback failed",
                level="error", error=error.to_dict(),
            )
            yield SSEEvent.error(error.message, detail="; ".join(failures))
            return

        self._outcomes[AttemptState.COMPLETED.value] += 1
        log_stage(logger, Stage.FINAL_FALLBACK, "Final fallback succeeded", content_length=len(text))

        if text.strip():
            yield SSEEvent.chunk(text)
        yield SSEEvent.done()

    # ========================================================================
    # PER-ATTEMPT STREAMING LOOP
    # ========================================================================

    async def _stream_attempt(
        self,
        attempt: StreamAttempt,
        body: AsyncIterator[bytes],
        is_disconnected: DisconnectProbe | None,
    ) -> AsyncGenerator[SSEEvent, None]:
        """
        Relay one upstream body that already answered 2xx.

        The deadline is armed once, when the attempt enters the streaming
        state, and bounds the whole attempt rather than idle gaps.
        """
        attempt.started_at = self._clock()
        attempt.transition(AttemptState.STREAMING)
        deadline = attempt.started_at + self._stream_timeout

        parser = SSEFrameParser()
        reader = aiter(body)

        try:
            while True:
                if is_disconnected is not None and await is_disconnected():
                    self._finish(attempt, AttemptState.CLIENT_CLOSED)
                    return

                remaining = deadline - self._clock()
                if remaining <= 0:
                    self._time_out(attempt)
                    yield SSEEvent.done()
                    return

                body_ended = False
                try:
                    data = await asyncio.wait_for(anext(reader), timeout=remaining)
                except StopAsyncIteration:
                    body_ended = True
                    if parser.pending:
                        log_stage(
                            logger, Stage.STREAMING, "Body ended inside a block",
                            level="debug", model=attempt.model, pending_length=len(parser.pending),
                        )
                    payloads = parser.flush()
                except asyncio.TimeoutError:
                    self._time_out(attempt)
                    yield SSEEvent.done()
                    return
                except StreamingError as e:
                    detail = e.details.get("original_message") or e.message
                    self._finish(attempt, AttemptState.FAILED, error=e.message, detail=detail)
                    yield SSEEvent.error(STREAM_ERROR_MESSAGE, detail=detail)
                    return
                else:
                    payloads = parser.feed(data)

                for payload in payloads:
                    events, terminal = self._handle_payload(attempt, payload)
                    if terminal:
                        # Must be recorded before the terminal event is yielded
                        self._finish(attempt, AttemptState.COMPLETED)
                    for event in events:
                        yield event
                    if terminal:
                        return

                if body_ended:
                    self._finish(attempt, AttemptState.COMPLETED, reason="end_of_body")
                    yield SSEEvent.done()
                    return

        except (asyncio.CancelledError, GeneratorExit):
            if not attempt.state.is_terminal:
                self._finish(attempt, AttemptState.CLIENT_CLOSED)
            raise

    def _handle_payload(self, attempt: StreamAttempt, payload: SSEPayload) -> tuple[list[SSEEvent], bool]:
        """
        Map one upstream payload to client events.

        Returns:
            (events to emit, whether the attempt is complete)
        """
        if payload.done:
            return [SSEEvent.done()], True

        if payload.is_malformed:
            log_stage(
                logger, Stage.STREAMING, "Malformed upstream payload",
                level="warning", model=attempt.model, raw=payload.raw[:200], parse_error=payload.error,
            )
            if self._malformed_policy == MalformedPayloadPolicy.DIAGNOSTIC:
                return [SSEEvent.diagnostic(payload.raw, payload.error)], False
            return [], False

        events = []
        content = extract_content(payload.data, self._extractors)
        if content and content.strip():
            attempt.chunks += 1
            events.append(SSEEvent.chunk(content))

        reason = finish_reason(payload.data)
        if reason is not None:
            log_stage(logger, Stage.STREAMING, "Upstream finished", level="debug", finish_reason=reason)
            events.append(SSEEvent.done())
            return events, True

        return events, False

    def _finish(self, attempt: StreamAttempt, state: AttemptState, **kwargs: Any) -> None:
        duration = None
        if attempt.started_at is not None:
            duration = round(self._clock() - attempt.started_at, 3)
        self._outcomes[state.value] += 1
        attempt.transition(state, duration_seconds=duration, **kwargs)

    def _time_out(self, attempt: StreamAttempt) -> None:
        # Timed-out attempts end with done, never error
        error = StreamingTimeoutError(
            f"Stream attempt exceeded {self._stream_timeout}s",
            thread_id=attempt.session_id,
            details={"timeout": self._stream_timeout},
        )
        self._finish(attempt, AttemptState.TIMED_OUT, error=error.to_dict())

    # ========================================================================
    # PROPERTIES AND STATS
    # ========================================================================

    @property
    def active_streams(self) -> int:
        """Number of streams currently being relayed."""
        return self._active_streams

    def get_stats(self) -> dict[str, Any]:
        """Snapshot for the health endpoint."""
        return {
            "active_streams": self._active_streams,
            "outcomes": dict(self._outcomes),
        }
