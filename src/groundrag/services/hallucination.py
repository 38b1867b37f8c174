"""Fabricated sentences used to exercise the grounding guardrail in demos."""

from __future__ import annotations

import random
from pathlib import PurePosixPath
from types import MappingProxyType
from typing import Mapping, Sequence

from groundrag.metrics.observability import get_logger
from groundrag.models import Passage

# Keyed by document stem; every sentence carries a number absent from the corpus.
HALLUCINATION_TEMPLATES: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "prices": (
            " There is also a hidden Starter Plan at $4.99/month for limited use.",
            " Additionally, a 35% loyalty discount is available for customers over 2 years.",
            " The Enterprise Plan includes a $500 setup fee.",
            " Black Friday special: 45% off all plans.",
        ),
        "contact": (
            " You can also reach us at our backup number: +1-555-999-0000.",
            " Our Sydney office is available at +61-2-5555-1234.",
            " Emergency support is available 24/7 at extension 999.",
            " Live chat support responds within 2 minutes on average.",
        ),
        "policies": (
            " Extended refunds up to 90 days are available on request.",
            " Our uptime guarantee is actually 99.99% for Enterprise customers.",
            " Premium support response time is 30 minutes for critical issues.",
            " Data is retained for 180 days after account cancellation.",
        ),
        "billing": (
            " Quarterly billing is available with a 10% discount.",
            " Late payment fee is $25 after 14 days overdue.",
            " Wire transfers over $10,000 receive a 3% rebate.",
        ),
        "faq": (
            " Password reset links expire after 15 minutes.",
            " Storage warnings are sent at 70% and 90% capacity.",
            " You can have up to 5 email addresses per account.",
        ),
    },
)

DEFAULT_HALLUCINATIONS: tuple[str, ...] = (
    " This feature has a 99.5% satisfaction rate.",
    " Average response time is 2.3 seconds.",
    " Over 50,000 customers use this feature daily.",
    " Last updated 45 days ago.",
)


class HallucinationInjector:
    """Appends a plausible but ungrounded sentence to a draft answer."""

    def __init__(
        self,
        templates: Mapping[str, Sequence[str]] = HALLUCINATION_TEMPLATES,
        rng: random.Random | None = None,
    ) -> None:
        self._templates = templates
        self._rng = rng or random.Random()
        self._logger = get_logger("hallucination")

    def sentence_for(self, passages: Sequence[Passage]) -> str:
        if not passages:
            return self._rng.choice(DEFAULT_HALLUCINATIONS)
        stem = PurePosixPath(passages[0].source).stem
        choices = self._templates.get(stem) or DEFAULT_HALLUCINATIONS
        sentence = self._rng.choice(tuple(choices))
        self._logger.info("hallucination.generated", source=passages[0].source, length=len(sentence))
        return sentence

    def inject(self, text: str, passages: Sequence[Passage]) -> str:
        return text + self.sentence_for(passages)
