"""Tests for the numeric grounding guardrail."""

from __future__ import annotations

from groundrag.models import Citation
from groundrag.services.guardrail import (
    NO_SOURCES_TEXT,
    REFUSAL_PREFIX,
    extract_numbers,
    no_sources_answer,
    normalize_number,
    number_in_citations,
    refusal_answer,
    verify_answer,
)


def _cite(snippet: str) -> Citation:
    return Citation(source="kb/prices.md", snippet=snippet)


def test_normalize_treats_comma_and_period_alike():
    assert normalize_number("12,5") == normalize_number("12.5") == "12.5"


def test_normalize_strips_whitespace_in_phone_numbers():
    assert normalize_number("+46 123 456") == "+46123456"


def test_normalize_is_idempotent():
    once = normalize_number("+1 555,0 12")
    assert normalize_number(once) == once


def test_extract_numbers_keeps_original_form():
    text = "Pay 12,5% today, or $1,000.50 later. Call +46 123 456 now. Ref 2025-12-12."
    assert extract_numbers(text) == ["12,5%", "1,000.50", "+46 123 456", "2025", "12", "12"]


def test_verify_accepts_number_present_in_citation():
    result = verify_answer("The Basic plan costs $9.99 per month.", [_cite("Basic Plan: $9.99 per month.")])
    assert result.valid is True
    assert list(result.unverified_numbers) == []


def test_verify_matches_across_all_citations():
    citations = [_cite("Basic Plan: $9.99"), _cite("Annual billing saves 20%")]
    assert verify_answer("9.99 and 20%", citations).valid is True


def test_verify_comma_decimal_matches_period_decimal():
    assert verify_answer("Uptime is 99.9%", [_cite("uptime guarantee is 99,9%")]).valid is True


def test_verify_compares_strings_not_values():
    result = verify_answer("It costs 9.99", [_cite("It costs 09.99")])
    assert result.valid is False
    assert list(result.unverified_numbers) == ["9.99"]


def test_verify_reports_unverified_in_order_with_duplicates():
    result = verify_answer("Save 35% now, 45% later, 35% again, 20% always.", [_cite("Annual billing saves 20%")])
    assert result.valid is False
    assert list(result.unverified_numbers) == ["35%", "45%", "35%"]


def test_verify_percent_sign_is_significant():
    assert verify_answer("20", [_cite("20%")]).valid is False


def test_verify_phone_number_with_spacing_differences():
    assert verify_answer("Call +46123456", [_cite("Support phone: +46 123 456")]).valid is True


def test_verify_answer_without_numbers_is_valid():
    assert verify_answer("We are happy to help.", []).valid is True


def test_number_in_citations():
    citations = [_cite("Refunds within 30 days")]
    assert number_in_citations("30", citations) is True
    assert number_in_citations("90", citations) is False


def test_refusal_names_every_number_and_keeps_citations():
    citations = [_cite("Basic Plan: $9.99")]
    answer = refusal_answer(["4.99", "35%"], citations)
    assert answer.text == f"{REFUSAL_PREFIX}4.99, 35%"
    assert list(answer.citations) == citations
    assert answer.suggested_action is None


def test_no_sources_answer_is_fixed():
    answer = no_sources_answer()
    assert answer.text == NO_SOURCES_TEXT
    assert list(answer.citations) == []
