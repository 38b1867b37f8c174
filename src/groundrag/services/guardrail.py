"""Numeric grounding guardrail.

Every number in a composed answer must appear in at least one cited snippet.
Numbers are compared as normalised strings, not numeric values: ``12,5`` and
``12.5`` match, ``9.99`` and ``09.99`` do not.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Sequence

from groundrag.models import CandidateAnswer, Citation

# Integers, decimals with "." or ",", thousands groups, percentages, and
# phone-like tokens such as "+46 123 456" or "+1-555-0100".
NUMBER_PATTERN = re.compile(r"\d+(?:[.,]\d+)*%?|\+\d[\d\s-]*")

NO_SOURCES_TEXT = "I couldn't find any references to this in the knowledge base."
REFUSAL_PREFIX = (
    "I cannot verify that information. "
    "The following numbers could not be found in the knowledge base: "
)


@dataclass(frozen=True)
class Verification:
    valid: bool
    unverified_numbers: Sequence[str] = field(default_factory=tuple)


def normalize_number(value: str) -> str:
    return re.sub(r"\s", "", value.replace(",", "."))


def extract_numbers(text: str) -> list[str]:
    """Return numeric tokens as they appear in ``text``."""

    return [match.rstrip() for match in NUMBER_PATTERN.findall(text)]


def _normalized_numbers(texts: Iterable[str]) -> set[str]:
    return {normalize_number(number) for text in texts for number in extract_numbers(text)}


def number_in_citations(number: str, citations: Sequence[Citation]) -> bool:
    return normalize_number(number) in _normalized_numbers(c.snippet for c in citations)


def verify_answer(text: str, citations: Sequence[Citation]) -> Verification:
    grounded = _normalized_numbers(citation.snippet for citation in citations)
    unverified = [number for number in extract_numbers(text) if normalize_number(number) not in grounded]
    return Verification(valid=not unverified, unverified_numbers=tuple(unverified))


def refusal_answer(unverified_numbers: Sequence[str], citations: Sequence[Citation]) -> CandidateAnswer:
    """Replacement answer naming every number the guardrail could not ground."""

    return CandidateAnswer(text=REFUSAL_PREFIX + ", ".join(unverified_numbers), citations=tuple(citations))


def no_sources_answer() -> CandidateAnswer:
    return CandidateAnswer(text=NO_SOURCES_TEXT, citations=())
