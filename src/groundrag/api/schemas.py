"""Pydantic models for the groundrag HTTP API."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field


class QueryRequest(BaseModel):
    question: str = Field(..., min_length=1, description="End-user question to answer")
    top_k: Optional[int] = Field(
        default=None,
        ge=1,
        le=20,
        description="Override the number of retrieved passages",
    )


class CitationModel(BaseModel):
    file: str = Field(..., description="Knowledge-base document the snippet comes from")
    snippet: str = Field(..., description="Lines of the document backing the answer")


class QueryResponse(BaseModel):
    query_id: str
    answer: str
    citations: List[CitationModel]
    latency_ms: float
    suggested_action: Optional[str] = Field(
        default=None,
        description="Action the assistant would offer over a chat session; not executed over HTTP",
    )


class ReadinessResponse(BaseModel):
    status: str
    documents: int = Field(..., ge=0)
