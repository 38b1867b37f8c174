"""Shared domain models used across the groundrag pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Mapping, Sequence, get_args

ActionKind = Literal["schedule_callback", "send_message", "create_ticket"]
ACTION_KINDS: tuple[str, ...] = get_args(ActionKind)


@dataclass(frozen=True)
class Document:
    """A knowledge-base document, loaded once and never mutated."""

    source: str
    content: str


@dataclass(frozen=True)
class Passage:
    """Scored window of lines around a query match."""

    source: str
    snippet: str
    score: int

    def to_citation(self) -> "Citation":
        return Citation(source=self.source, snippet=self.snippet)


@dataclass(frozen=True)
class Citation:
    """Snippet of corpus text backing a composed answer."""

    source: str
    snippet: str


@dataclass(frozen=True)
class SuggestedAction:
    """Side-effecting action the composer would like to offer the user."""

    action: ActionKind
    payload: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CandidateAnswer:
    """Answer text plus the citations that ground it."""

    text: str
    citations: Sequence[Citation]
    suggested_action: SuggestedAction | None = None


@dataclass(frozen=True)
class ActionProposal:
    """Action offered to the client and awaiting confirmation."""

    suggestion_id: str
    action: str
    payload: Mapping[str, Any]
    created_at: float
