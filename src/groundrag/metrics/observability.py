"""Observability helpers for groundrag."""

from __future__ import annotations

import logging
from typing import Iterable

import structlog
from prometheus_client import Counter, Gauge, Histogram

_logger_configured = False


def configure_logging(level: int | str = logging.INFO) -> None:
    global _logger_configured  # noqa: PLW0603 - module-level guard
    if _logger_configured:
        return
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logging.basicConfig(level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _logger_configured = True


def bind_correlation_id(correlation_id: str) -> None:
    structlog.contextvars.bind_contextvars(correlation_id=correlation_id)


def clear_correlation_id() -> None:
    structlog.contextvars.clear_contextvars()


def bind_session_id(session_id: str) -> None:
    """Attach the connection's session id to every log line in this context."""

    structlog.contextvars.bind_contextvars(session_id=session_id)


def clear_session_id() -> None:
    structlog.contextvars.unbind_contextvars("session_id")


def get_logger(name: str = "groundrag") -> structlog.BoundLogger:
    configure_logging()
    return structlog.get_logger(name)


class PipelineMetrics:
    """Prometheus metrics for the retrieve/compose/guard pipeline."""

    retrieval_latency = Histogram(
        "groundrag_retrieval_duration_seconds",
        "Time spent scanning the knowledge base.",
        buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5),
    )
    retrieved_passage_count = Histogram(
        "groundrag_retrieved_passage_count",
        "Number of passages returned by retrieval.",
        buckets=(0, 1, 2, 3, 5, 8, 13),
    )
    passage_score = Histogram(
        "groundrag_passage_score",
        "Lexical score of returned passages.",
        buckets=(1, 2, 3, 5, 8),
    )
    composition_latency = Histogram(
        "groundrag_composition_duration_seconds",
        "Time spent composing draft answers.",
        buckets=(0.0005, 0.001, 0.005, 0.01, 0.05, 0.1),
    )
    guardrail_verdicts = Counter(
        "groundrag_guardrail_verdicts_total",
        "Grounding guardrail outcomes.",
        ["verdict"],
    )

    @classmethod
    def observe_retrieval(cls, duration_seconds: float, passage_count: int, scores: Iterable[int]) -> None:
        cls.retrieval_latency.observe(duration_seconds)
        cls.retrieved_passage_count.observe(passage_count)
        for score in scores:
            cls.passage_score.observe(score)

    @classmethod
    def observe_composition(cls, duration_seconds: float) -> None:
        cls.composition_latency.observe(duration_seconds)

    @classmethod
    def observe_verdict(cls, verdict: str) -> None:
        cls.guardrail_verdicts.labels(verdict=verdict).inc()


class SessionMetrics:
    """Prometheus metrics for WebSocket sessions."""

    active_sessions = Gauge(
        "groundrag_active_sessions",
        "Currently open chat sessions.",
    )
    streamed_chunks = Counter(
        "groundrag_streamed_chunks_total",
        "Answer chunks sent to clients.",
    )
    stream_outcomes = Counter(
        "groundrag_stream_outcomes_total",
        "Terminal stream markers by reason.",
        ["reason"],
    )
    action_outcomes = Counter(
        "groundrag_action_confirmations_total",
        "Action confirmation outcomes.",
        ["outcome"],
    )

    @classmethod
    def observe_stream_end(cls, reason: str, chunk_count: int) -> None:
        cls.streamed_chunks.inc(chunk_count)
        cls.stream_outcomes.labels(reason=reason).inc()

    @classmethod
    def observe_action(cls, outcome: str) -> None:
        cls.action_outcomes.labels(outcome=outcome).inc()


__all__ = [
    "PipelineMetrics",
    "SessionMetrics",
    "bind_correlation_id",
    "bind_session_id",
    "clear_correlation_id",
    "clear_session_id",
    "configure_logging",
    "get_logger",
]
