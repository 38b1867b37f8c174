"""Lexical retrieval over the in-memory knowledge base."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterable, Mapping, Protocol, Sequence

from groundrag.metrics.observability import get_logger
from groundrag.models import Document, Passage

# Canonical term -> synonym phrases. A phrase may span several words.
SYNONYMS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "price": ("cost", "pricing", "costs", "fee", "fees", "rate", "rates", "much"),
        "plan": ("plans", "tier", "tiers", "package", "packages", "subscription"),
        "refund": ("refunds", "money back", "return", "returns", "reimburse"),
        "contact": ("phone", "call", "email", "reach", "support"),
        "policy": ("policies", "terms", "rules", "guidelines"),
        "discount": ("discounts", "off", "save", "savings", "promotion", "deal"),
        "uptime": ("availability", "reliable", "reliability", "sla"),
    },
)

MIN_TERM_LENGTH = 3


def _triggers(word: str, synonyms: Iterable[str]) -> bool:
    return any(word == phrase or word in phrase.split(" ") for phrase in synonyms)


def rewrite_query(query: str, synonyms: Mapping[str, Sequence[str]] = SYNONYMS) -> str:
    """Expand a query with the canonical term of every synonym group it touches.

    Original tokens are kept (deduplicated, in order); each canonical term is
    appended once, right after the first token that triggers it.
    """

    expanded: list[str] = []
    for word in query.lower().split():
        if word not in expanded:
            expanded.append(word)
        for canonical, phrases in synonyms.items():
            if canonical not in expanded and _triggers(word, phrases):
                expanded.append(canonical)
    return " ".join(expanded)


@dataclass(frozen=True)
class RetrievalConfig:
    """Configuration for retrieval."""

    max_results: int = 3
    context_lines: int = 1


class Retriever(Protocol):
    """Retrieve scored passages for a query string."""

    def search(self, query: str, max_results: int | None = None) -> Sequence[Passage]:
        """Return at most ``max_results`` passages, best first."""


class KnowledgeBase:
    """Line-oriented lexical search over a fixed set of documents."""

    def __init__(
        self,
        documents: Iterable[Document] = (),
        config: RetrievalConfig | None = None,
        synonyms: Mapping[str, Sequence[str]] = SYNONYMS,
    ) -> None:
        self._config = config or RetrievalConfig()
        self._synonyms = synonyms
        self._documents: tuple[Document, ...] = tuple(documents)
        self._logger = get_logger("retrieval")

    def load(self, documents: Iterable[Document]) -> None:
        self._documents = tuple(documents)
        self._logger.info(
            "knowledge_base.loaded",
            document_count=len(self._documents),
            total_size=sum(len(doc.content) for doc in self._documents),
        )

    @property
    def documents(self) -> Sequence[Document]:
        return self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def search(self, query: str, max_results: int | None = None) -> Sequence[Passage]:
        limit = self._config.max_results if max_results is None else max_results
        if not self._documents:
            self._logger.warning("retrieval.empty_corpus")
            return []

        rewritten = rewrite_query(query, self._synonyms)
        terms = [term for term in rewritten.split() if len(term) >= MIN_TERM_LENGTH]
        self._logger.debug(
            "retrieval.search",
            query=query[:50],
            rewritten=rewritten[:80],
            term_count=len(terms),
        )

        results: list[Passage] = []
        window = self._config.context_lines
        for document in self._documents:
            lines = document.content.split("\n")
            for index, line in enumerate(lines):
                lowered = line.lower()
                score = sum(1 for term in terms if term in lowered)
                if score <= 0:
                    continue
                start = max(0, index - window)
                end = min(len(lines), index + window + 1)
                results.append(Passage(source=document.source, snippet="\n".join(lines[start:end]), score=score))

        # sorted() is stable, so ties keep discovery order
        ranked = sorted(results, key=lambda passage: passage.score, reverse=True)[: max(limit, 0)]
        self._logger.debug(
            "retrieval.complete",
            total_matches=len(results),
            returned=len(ranked),
            top_score=ranked[0].score if ranked else 0,
            sources=sorted({passage.source for passage in ranked}),
        )
        return ranked
