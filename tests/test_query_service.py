"""Tests for the retrieve -> compose -> guard pipeline."""

from __future__ import annotations

from typing import Sequence

from groundrag.models import Document, Passage, SuggestedAction
from groundrag.retrieval.service import KnowledgeBase
from groundrag.services.generation import ComposedDraft, TemplateComposer
from groundrag.services.guardrail import NO_SOURCES_TEXT, REFUSAL_PREFIX
from groundrag.services.query import QueryService

DOCUMENTS = [
    Document(source="kb/policies.md", content="# Policies\nRefunds are available within 30 days.\nUptime is 99,9%."),
]


class FixedComposer:
    def __init__(self, text: str, action: SuggestedAction | None = None) -> None:
        self.text = text
        self.action = action
        self.seen: list[Sequence[Passage]] = []

    def compose(self, *, query: str, passages: Sequence[Passage]) -> ComposedDraft:
        self.seen.append(passages)
        return ComposedDraft(text=self.text, suggested_action=self.action)


def test_no_passages_skips_composer():
    composer = FixedComposer("never used")
    answer = QueryService(KnowledgeBase(DOCUMENTS), composer).answer("zebra")
    assert answer.text == NO_SOURCES_TEXT
    assert list(answer.citations) == []
    assert composer.seen == []


def test_grounded_answer_keeps_text_citations_and_action():
    action = SuggestedAction(action="create_ticket", payload={"requestedAt": "t"})
    composer = FixedComposer("Refunds within 30 days, uptime 99.9%.", action)
    answer = QueryService(KnowledgeBase(DOCUMENTS), composer).answer("refund uptime")

    assert answer.text == "Refunds within 30 days, uptime 99.9%."
    assert [citation.source for citation in answer.citations] == ["kb/policies.md", "kb/policies.md"]
    assert answer.suggested_action == action


def test_ungrounded_answer_becomes_refusal_without_action():
    action = SuggestedAction(action="create_ticket")
    composer = FixedComposer("Refunds within 90 days.", action)
    answer = QueryService(KnowledgeBase(DOCUMENTS), composer).answer("refund")

    assert answer.text == f"{REFUSAL_PREFIX}90"
    assert answer.citations
    assert answer.suggested_action is None


def test_citations_mirror_passages():
    answer = QueryService(KnowledgeBase(DOCUMENTS), TemplateComposer()).answer("refund")
    assert answer.citations[0].snippet == "# Policies\nRefunds are available within 30 days.\nUptime is 99,9%."


def test_max_results_override():
    content = "\n".join(f"refund rule {index}" for index in range(6))
    service = QueryService(KnowledgeBase([Document(source="r.md", content=content)]), max_results=2)
    assert len(service.answer("refund").citations) == 2
    assert len(service.answer("refund", max_results=4).citations) == 4
