"""Chat session protocol and state machine."""

from .engine import SessionConfig, SessionEngine
from .frames import FrameError, parse_inbound
from .state import CancellationToken, Clock, SessionState, SystemClock

__all__ = [
    "CancellationToken",
    "Clock",
    "FrameError",
    "SessionConfig",
    "SessionEngine",
    "SessionState",
    "SystemClock",
    "parse_inbound",
]
