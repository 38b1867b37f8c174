"""Per-connection session state."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

from groundrag.models import ActionProposal


class Clock(Protocol):
    def now(self) -> float:
        """Seconds on a monotonically increasing scale."""


class SystemClock:
    def now(self) -> float:
        return time.monotonic()


class CancellationToken:
    """Cooperative cancellation flag checked once per streamed chunk."""

    __slots__ = ("_cancelled",)

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class SessionState:
    """Mutable state owned by exactly one connection."""

    current_message_id: Optional[str] = None
    streaming: bool = False
    cancellation: CancellationToken = field(default_factory=CancellationToken)
    pending_action: Optional[ActionProposal] = None
    # suggestion id -> clock time the action was executed
    confirmed_actions: Dict[str, float] = field(default_factory=dict)

    @property
    def cancelled(self) -> bool:
        return self.cancellation.cancelled

    def begin_message(self, message_id: str) -> CancellationToken:
        self.current_message_id = message_id
        self.streaming = True
        self.cancellation = CancellationToken()
        return self.cancellation

    def end_stream(self) -> None:
        self.streaming = False

    def finish_message(self) -> None:
        self.streaming = False
        self.current_message_id = None

    def sweep_confirmed(self, now: float, window: float) -> None:
        expired = [sid for sid, executed_at in self.confirmed_actions.items() if now - executed_at >= window]
        for sid in expired:
            del self.confirmed_actions[sid]
