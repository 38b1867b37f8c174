"""Evaluation harness for groundrag retrieval and guardrail coverage."""

from .cli import EvaluationResult, main, run_evaluation

__all__ = ["EvaluationResult", "main", "run_evaluation"]
