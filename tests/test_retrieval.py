"""Tests for query rewriting and lexical search."""

from __future__ import annotations

import pytest

from groundrag.models import Document
from groundrag.retrieval.service import SYNONYMS, KnowledgeBase, RetrievalConfig, rewrite_query

PRICES = Document(
    source="kb/prices.md",
    content=(
        "# Pricing\n"
        "Basic Plan: $9.99 per month.\n"
        "Pro Plan: $49 per month with a 20% discount on annual billing.\n"
        "Students get a 50% discount."
    ),
)
CONTACT = Document(
    source="kb/contact.md",
    content="# Contact\nSupport phone: +46 123 456 789\nEmail us any time.",
)


def test_rewrite_appends_canonical_term_after_trigger():
    assert rewrite_query("what is the cost") == "what is the cost price"


def test_rewrite_adds_every_triggered_group():
    rewritten = rewrite_query("pricing tiers").split()
    assert rewritten == ["pricing", "price", "tiers", "plan"]


def test_rewrite_never_repeats_canonical_terms():
    rewritten = rewrite_query("cost price fees").split()
    assert rewritten.count("price") == 1
    assert rewritten == ["cost", "price", "fees"]


def test_rewrite_matches_single_word_of_multi_word_synonym():
    assert rewrite_query("Money please") == "money refund please"


def test_rewrite_lowercases_and_deduplicates_tokens():
    assert rewrite_query("Plan plan PLAN") == "plan"


def test_synonym_table_is_read_only():
    assert "price" in SYNONYMS
    with pytest.raises(TypeError):
        SYNONYMS["new"] = ("x",)  # type: ignore[index]


def test_search_results_sorted_by_score():
    kb = KnowledgeBase([PRICES, CONTACT])
    results = kb.search("plan discount", max_results=10)
    assert results
    scores = [passage.score for passage in results]
    assert scores == sorted(scores, reverse=True)
    assert results[0].snippet.splitlines()[1].startswith("Pro Plan")


def test_search_unmatchable_query_returns_empty_list():
    kb = KnowledgeBase([PRICES, CONTACT])
    assert kb.search("zebra quantum xylophone") == []


def test_search_empty_corpus_returns_empty_list():
    assert KnowledgeBase().search("plan") == []


def test_search_ignores_short_terms():
    kb = KnowledgeBase([Document(source="a.md", content="an is at\nnothing")])
    assert kb.search("an is at") == []


def test_search_uses_substring_containment():
    kb = KnowledgeBase([Document(source="a.md", content="Our planning guide")])
    results = kb.search("plan")
    assert len(results) == 1
    assert results[0].score == 1


def test_snippet_includes_neighbours_clamped_at_edges():
    kb = KnowledgeBase([PRICES])
    first = kb.search("pricing", max_results=1)[0]
    assert first.snippet == "# Pricing\nBasic Plan: $9.99 per month."

    last = kb.search("students", max_results=1)[0]
    assert last.snippet.endswith("Students get a 50% discount.")
    assert last.snippet.count("\n") == 1


def test_ties_keep_discovery_order():
    docs = [
        Document(source="first.md", content="email"),
        Document(source="second.md", content="email"),
    ]
    results = KnowledgeBase(docs).search("email")
    assert [passage.source for passage in results] == ["first.md", "second.md"]


def test_max_results_defaults_from_config():
    content = "\n".join(f"plan line {index}" for index in range(10))
    kb = KnowledgeBase([Document(source="many.md", content=content)], RetrievalConfig(max_results=2))
    assert len(kb.search("plan")) == 2
    assert len(kb.search("plan", max_results=5)) == 5


def test_load_replaces_documents():
    kb = KnowledgeBase()
    kb.load([PRICES])
    assert len(kb) == 1
    assert kb.documents[0].source == "kb/prices.md"
