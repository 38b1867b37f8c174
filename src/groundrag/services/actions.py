"""Execution stubs for confirmed actions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping
from uuid import uuid4

from groundrag.metrics.observability import get_logger
from groundrag.models import ACTION_KINDS

ActionResult = Dict[str, Any]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ActionExecutor:
    """Dispatches a confirmed action by kind and returns a result payload.

    The handlers only simulate their side effects. An unknown kind produces a
    ``success: False`` payload instead of an exception so the session can relay
    it to the client unchanged.
    """

    def __init__(self) -> None:
        self._logger = get_logger("actions")
        self._handlers: Mapping[str, Callable[[Mapping[str, Any]], ActionResult]] = {
            kind: getattr(self, f"_{kind}") for kind in ACTION_KINDS
        }

    def execute(self, action: str, payload: Mapping[str, Any]) -> ActionResult:
        handler = self._handlers.get(action)
        if handler is None:
            self._logger.warning("action.unknown", action=action)
            return {"success": False, "message": f"Unknown action: {action}"}
        self._logger.info("action.executing", action=action)
        return handler(payload)

    def _schedule_callback(self, payload: Mapping[str, Any]) -> ActionResult:
        return {"success": True, "message": "Callback scheduled", "scheduledAt": _now_iso()}

    def _send_message(self, payload: Mapping[str, Any]) -> ActionResult:
        return {"success": True, "message": "Message sent", "sentAt": _now_iso()}

    def _create_ticket(self, payload: Mapping[str, Any]) -> ActionResult:
        ticket_id = f"TICKET-{uuid4().hex[:10].upper()}"
        self._logger.debug("action.ticket_created", ticket_id=ticket_id)
        return {"success": True, "message": "Ticket created", "ticketId": ticket_id}
