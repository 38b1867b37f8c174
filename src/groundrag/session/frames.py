"""Pydantic models for the frames exchanged over a chat session."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Mapping, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from groundrag.models import Citation


class _Frame(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# Client -> session


class MessageFrame(_Frame):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    type: Literal["message"]
    id: str = Field(..., min_length=1, description="Client-chosen message identifier")
    text: str = Field(..., min_length=1, description="End-user question")


class CancelFrame(_Frame):
    type: Literal["cancel"]


class ConfirmActionFrame(_Frame):
    type: Literal["confirm_action"]
    suggestion_id: str = Field(..., alias="suggestionId", min_length=1)


InboundFrame = Annotated[Union[MessageFrame, CancelFrame, ConfirmActionFrame], Field(discriminator="type")]

_INBOUND = TypeAdapter(InboundFrame)


class FrameError(ValueError):
    """Raised when an inbound frame cannot be parsed or validated."""


def parse_inbound(raw: str | bytes | Mapping[str, Any]) -> MessageFrame | CancelFrame | ConfirmActionFrame:
    try:
        if isinstance(raw, (str, bytes)):
            return _INBOUND.validate_json(raw)
        return _INBOUND.validate_python(dict(raw))
    except (ValidationError, TypeError, ValueError) as exc:
        raise FrameError(str(exc)) from exc


# Session -> client


class CitationModel(_Frame):
    file: str
    snippet: str

    @classmethod
    def from_citation(cls, citation: Citation) -> "CitationModel":
        return cls(file=citation.source, snippet=citation.snippet)


class StreamFrame(_Frame):
    type: Literal["stream"] = "stream"
    delta: str


class StreamEndFrame(_Frame):
    type: Literal["stream_end"] = "stream_end"
    reason: Literal["done", "cancelled"]


class ResponseFrame(_Frame):
    type: Literal["response"] = "response"
    text: str
    citations: List[CitationModel]


class ActionSuggestionFrame(_Frame):
    type: Literal["action_suggestion"] = "action_suggestion"
    suggestion_id: str = Field(..., alias="suggestionId")
    action: str
    payload: Dict[str, Any]


class ActionExecutedFrame(_Frame):
    type: Literal["action_executed"] = "action_executed"
    suggestion_id: str = Field(..., alias="suggestionId")
    result: Dict[str, Any]


class ErrorFrame(_Frame):
    type: Literal["error"] = "error"
    message: str


OutboundFrame = Union[
    StreamFrame,
    StreamEndFrame,
    ResponseFrame,
    ActionSuggestionFrame,
    ActionExecutedFrame,
    ErrorFrame,
]


def dump_frame(frame: OutboundFrame) -> dict[str, Any]:
    return frame.model_dump(by_alias=True)
