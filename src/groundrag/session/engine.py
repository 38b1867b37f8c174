"""Per-connection chat session: query streaming, cancellation and action confirmation.

A session is either idle or streaming. A ``message`` frame runs the query
pipeline in a background task and streams the answer word by word, so that
``cancel`` and ``confirm_action`` frames arriving meanwhile are handled
without waiting for the stream to finish. Cancellation is observed at chunk
boundaries only.

Action proposals follow two time windows measured on the injected clock: a
proposal older than the validity window can no longer be executed, and an
executed proposal is remembered for the replay window so that a repeated
confirmation is reported as ignored instead of running twice.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping
from uuid import uuid4

from groundrag.config import Settings
from groundrag.metrics.observability import SessionMetrics, get_logger
from groundrag.models import ActionProposal, CandidateAnswer, SuggestedAction
from groundrag.services.actions import ActionExecutor
from groundrag.services.generation import stream_words
from groundrag.services.query import QueryService
from groundrag.session.frames import (
    ActionExecutedFrame,
    ActionSuggestionFrame,
    CancelFrame,
    CitationModel,
    ErrorFrame,
    FrameError,
    MessageFrame,
    OutboundFrame,
    ResponseFrame,
    StreamEndFrame,
    StreamFrame,
    dump_frame,
    parse_inbound,
)
from groundrag.session.state import CancellationToken, Clock, SessionState, SystemClock

Send = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass(frozen=True)
class SessionConfig:
    """Timing parameters for a session."""

    stream_delay_seconds: float = 0.05
    action_validity_seconds: float = 30.0
    action_replay_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionConfig":
        return cls(
            stream_delay_seconds=settings.stream_delay_seconds,
            action_validity_seconds=settings.action_validity_seconds,
            action_replay_seconds=settings.action_replay_seconds,
        )


class SessionEngine:
    """Drives one connection's state machine."""

    def __init__(
        self,
        query_service: QueryService,
        send: Send,
        *,
        executor: ActionExecutor | None = None,
        config: SessionConfig | None = None,
        clock: Clock | None = None,
        session_id: str | None = None,
    ) -> None:
        self._query_service = query_service
        self._send = send
        self._executor = executor or ActionExecutor()
        self._config = config or SessionConfig()
        self._clock = clock or SystemClock()
        self.session_id = session_id or uuid4().hex
        self.state = SessionState()
        self._task: asyncio.Task[None] | None = None
        self._closed = False
        self._logger = get_logger("session").bind(session_id=self.session_id)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    async def dispatch(self, raw: str | bytes | Mapping[str, Any]) -> None:
        """Handle one inbound frame."""

        if self._closed:
            self._logger.debug("session.frame_after_close")
            return
        try:
            frame = parse_inbound(raw)
        except FrameError as exc:
            preview = raw[:100] if isinstance(raw, (str, bytes)) else str(raw)[:100]
            self._logger.warning("session.invalid_frame", data=str(preview), detail=str(exc)[:200])
            await self._emit(ErrorFrame(message="Invalid message format"))
            return

        if isinstance(frame, MessageFrame):
            await self._accept_message(frame)
        elif isinstance(frame, CancelFrame):
            self._handle_cancel()
        else:
            await self._handle_confirm(frame.suggestion_id)

    async def wait_idle(self) -> None:
        """Wait until the in-flight message, if any, has been fully processed."""

        task = self._task
        if task is not None and not task.done():
            await task

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.state.cancellation.cancel()
        self.state.pending_action = None
        self._logger.info("session.closed", streaming=self.state.streaming)
        await self.wait_idle()

    async def _emit(self, frame: OutboundFrame) -> None:
        if self._closed:
            return
        await self._send(dump_frame(frame))
        self._logger.debug("session.sent", type=frame.type)

    async def _accept_message(self, frame: MessageFrame) -> None:
        if self.busy:
            self._logger.warning(
                "session.message_rejected",
                message_id=frame.id,
                current_message_id=self.state.current_message_id,
            )
            await self._emit(ErrorFrame(message=f"Still answering message {self.state.current_message_id}"))
            return
        token = self.state.begin_message(frame.id)
        self._task = asyncio.create_task(self._run_message(frame.id, frame.text, token))

    async def _run_message(self, message_id: str, text: str, token: CancellationToken) -> None:
        self._logger.info("session.message_received", message_id=message_id, text_length=len(text))
        start = time.perf_counter()
        try:
            answer = self._query_service.answer(text)
            await self._stream_answer(answer, token)
            self._logger.info(
                "session.message_processed",
                message_id=message_id,
                duration_seconds=time.perf_counter() - start,
            )
        except Exception as exc:
            self._logger.exception("session.message_failed", message_id=message_id)
            await self._emit(ErrorFrame(message=str(exc) or exc.__class__.__name__))
        finally:
            self.state.finish_message()

    async def _stream_answer(self, answer: CandidateAnswer, token: CancellationToken) -> None:
        sent: list[str] = []
        async for chunk in stream_words(answer.text, token, self._config.stream_delay_seconds):
            if token.cancelled:
                break
            await self._emit(StreamFrame(delta=chunk))
            sent.append(chunk)

        reason = "cancelled" if token.cancelled else "done"
        self.state.end_stream()
        await self._emit(StreamEndFrame(reason=reason))
        SessionMetrics.observe_stream_end(reason, len(sent))
        if reason == "cancelled":
            self._logger.info("session.stream_cancelled", chunks_streamed=len(sent))

        final_text = "".join(sent).strip() if reason == "cancelled" else answer.text
        citations = [CitationModel.from_citation(citation) for citation in answer.citations]
        await self._emit(ResponseFrame(text=final_text, citations=citations))

        if reason == "done" and answer.suggested_action is not None:
            await self._propose(answer.suggested_action)

    async def _propose(self, suggestion: SuggestedAction) -> None:
        if self._closed:
            self._logger.debug("session.action_dropped_on_close", action=suggestion.action)
            return
        proposal = ActionProposal(
            suggestion_id=f"action_{uuid4().hex[:12]}",
            action=suggestion.action,
            payload=dict(suggestion.payload),
            created_at=self._clock.now(),
        )
        previous = self.state.pending_action
        if previous is not None:
            self._logger.info("session.action_superseded", suggestion_id=previous.suggestion_id)
        self.state.pending_action = proposal
        await self._emit(
            ActionSuggestionFrame(
                suggestion_id=proposal.suggestion_id,
                action=proposal.action,
                payload=dict(proposal.payload),
            ),
        )
        self._logger.info("session.action_suggested", action=proposal.action, suggestion_id=proposal.suggestion_id)

    def _handle_cancel(self) -> None:
        if not self.state.streaming:
            self._logger.debug("session.cancel_ignored")
            return
        self._logger.info("session.cancel_requested", message_id=self.state.current_message_id)
        self.state.cancellation.cancel()

    async def _handle_confirm(self, suggestion_id: str) -> None:
        self._logger.info("session.confirmation_received", suggestion_id=suggestion_id)
        now = self._clock.now()
        self.state.sweep_confirmed(now, self._config.action_replay_seconds)

        if suggestion_id in self.state.confirmed_actions:
            self._logger.warning("session.duplicate_confirmation", suggestion_id=suggestion_id)
            SessionMetrics.observe_action("ignored")
            await self._emit(ActionExecutedFrame(suggestion_id=suggestion_id, result={"ignored": True}))
            return

        pending = self.state.pending_action
        if pending is None or pending.suggestion_id != suggestion_id:
            self._logger.warning(
                "session.invalid_confirmation",
                suggestion_id=suggestion_id,
                has_pending=pending is not None,
            )
            SessionMetrics.observe_action("invalid")
            await self._emit(ErrorFrame(message=f"Invalid action: {suggestion_id}"))
            return

        age = now - pending.created_at
        if age > self._config.action_validity_seconds:
            self._logger.warning("session.action_expired", suggestion_id=suggestion_id, age_seconds=age)
            self.state.pending_action = None
            SessionMetrics.observe_action("expired")
            await self._emit(ErrorFrame(message=f"Action expired: {suggestion_id}"))
            return

        result = self._executor.execute(pending.action, pending.payload)
        self.state.confirmed_actions[suggestion_id] = now
        self.state.pending_action = None
        SessionMetrics.observe_action("executed")
        await self._emit(ActionExecutedFrame(suggestion_id=suggestion_id, result=result))
