"""Service layer orchestrations for groundrag."""

from .actions import ActionExecutor
from .generation import ComposedDraft, ResponseComposer, TemplateComposer, detect_action, stream_words
from .guardrail import Verification, extract_numbers, normalize_number, verify_answer
from .hallucination import HallucinationInjector
from .query import QueryService

__all__ = [
    "ActionExecutor",
    "ComposedDraft",
    "HallucinationInjector",
    "QueryService",
    "ResponseComposer",
    "TemplateComposer",
    "Verification",
    "detect_action",
    "extract_numbers",
    "normalize_number",
    "stream_words",
    "verify_answer",
]
