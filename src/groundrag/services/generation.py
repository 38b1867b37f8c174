"""Answer composition backends for groundrag."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Protocol, Sequence

from groundrag.metrics.observability import get_logger
from groundrag.models import ActionKind, Passage, SuggestedAction
from groundrag.services.hallucination import HallucinationInjector

LOGGER = get_logger("generation")

ANSWER_PREFIX = "Based on the knowledge base: "

# Checked in order; the first phrase found in the lower-cased query wins.
ACTION_TRIGGERS: tuple[tuple[tuple[str, ...], ActionKind], ...] = (
    (("call me", "call person"), "schedule_callback"),
    (("sms", "text me"), "send_message"),
    (("ticket", "support"), "create_ticket"),
)


@dataclass(frozen=True)
class ComposedDraft:
    """Draft answer text plus an optional action hint."""

    text: str
    suggested_action: SuggestedAction | None = None


class ResponseComposer(Protocol):
    """Protocol describing answer composition."""

    def compose(self, *, query: str, passages: Sequence[Passage]) -> ComposedDraft:
        """Return a draft answer for the query built from the ranked passages."""


class CancellationSignal(Protocol):
    @property
    def cancelled(self) -> bool: ...


def detect_action(query: str) -> SuggestedAction | None:
    lowered = query.lower()
    for phrases, action in ACTION_TRIGGERS:
        if any(phrase in lowered for phrase in phrases):
            return SuggestedAction(
                action=action,
                payload={"requestedAt": datetime.now(timezone.utc).isoformat()},
            )
    return None


class TemplateComposer:
    """Deterministic composer that quotes the best passage verbatim."""

    def __init__(self, hallucinator: HallucinationInjector | None = None) -> None:
        self._hallucinator = hallucinator

    @property
    def hallucinates(self) -> bool:
        return self._hallucinator is not None

    def compose(self, *, query: str, passages: Sequence[Passage]) -> ComposedDraft:
        if not passages:
            return ComposedDraft(text="")
        text = f"{ANSWER_PREFIX}{passages[0].snippet.strip()}"
        if self._hallucinator is not None:
            LOGGER.warning("generation.hallucination_enabled")
            text = self._hallucinator.inject(text, passages)
        action = detect_action(query)
        if action is not None:
            LOGGER.debug("generation.action_detected", action=action.action)
        return ComposedDraft(text=text, suggested_action=action)


def split_chunks(text: str) -> list[str]:
    """Split on single spaces; each chunk gets its trailing space back."""

    return [f"{word} " for word in text.split(" ")]


async def stream_words(
    text: str,
    signal: CancellationSignal | None = None,
    delay_seconds: float = 0.0,
) -> AsyncIterator[str]:
    """Yield the answer word by word, stopping at the first chunk boundary after cancellation."""

    for chunk in split_chunks(text):
        if signal is not None and signal.cancelled:
            return
        yield chunk
        # sleep(0) still yields to the loop so a pending cancel can land
        await asyncio.sleep(delay_seconds)
