"""Query orchestration combining retrieval, composition and the grounding guardrail."""

from __future__ import annotations

import time

from groundrag.metrics.observability import PipelineMetrics, get_logger
from groundrag.models import CandidateAnswer
from groundrag.retrieval.service import Retriever
from groundrag.services.generation import ResponseComposer, TemplateComposer
from groundrag.services.guardrail import no_sources_answer, refusal_answer, verify_answer


class QueryService:
    """Runs retrieve -> compose -> guard for incoming questions."""

    def __init__(
        self,
        retriever: Retriever,
        composer: ResponseComposer | None = None,
        *,
        max_results: int = 3,
    ) -> None:
        self._retriever = retriever
        self._composer = composer or TemplateComposer()
        self._max_results = max_results
        self._logger = get_logger("query")

    def answer(self, query: str, *, max_results: int | None = None) -> CandidateAnswer:
        limit = self._max_results if max_results is None else max_results
        retrieval_start = time.perf_counter()
        passages = self._retriever.search(query, limit)
        retrieval_duration = time.perf_counter() - retrieval_start
        PipelineMetrics.observe_retrieval(retrieval_duration, len(passages), (p.score for p in passages))
        self._logger.info(
            "retrieval.complete",
            passage_count=len(passages),
            duration_seconds=retrieval_duration,
            max_results=limit,
        )

        if not passages:
            PipelineMetrics.observe_verdict("no_sources")
            self._logger.info("query.no_sources", query=query[:50])
            return no_sources_answer()

        citations = tuple(passage.to_citation() for passage in passages)
        composition_start = time.perf_counter()
        draft = self._composer.compose(query=query, passages=passages)
        composition_duration = time.perf_counter() - composition_start
        PipelineMetrics.observe_composition(composition_duration)
        self._logger.info(
            "composition.complete",
            duration_seconds=composition_duration,
            text_length=len(draft.text),
            has_action=draft.suggested_action is not None,
        )

        verification = verify_answer(draft.text, citations)
        if not verification.valid:
            PipelineMetrics.observe_verdict("rejected")
            self._logger.warning("guardrail.rejected", unverified_numbers=list(verification.unverified_numbers))
            return refusal_answer(verification.unverified_numbers, citations)

        PipelineMetrics.observe_verdict("accepted")
        return CandidateAnswer(text=draft.text, citations=citations, suggested_action=draft.suggested_action)
