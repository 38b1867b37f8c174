from __future__ import annotations

import json
from pathlib import Path

from groundrag.eval.cli import main, run_evaluation


def _write_dataset(path: Path) -> Path:
    dataset = {
        "documents": [
            {"id": "prices", "content": "Basic Plan: $9.99 per month.\nPro Plan: $49 per month."},
            {"id": "policies", "content": "Refunds are available within 14 days."},
        ],
        "queries": [
            {"question": "basic plan", "relevant_document_ids": ["prices"]},
            {"question": "refunds", "relevant_document_ids": ["policies"]},
            {"question": "zebra", "relevant_document_ids": ["policies"]},
        ],
    }
    path.write_text(json.dumps(dataset), encoding="utf-8")
    return path


def test_run_evaluation_reports_recall_and_catch_rate(tmp_path: Path) -> None:
    dataset = _write_dataset(tmp_path / "dataset.json")
    markdown = tmp_path / "report.md"

    result = run_evaluation(dataset, top_k=2, markdown_out=markdown)

    assert result.total_queries == 3
    assert result.hits == 2
    assert result.mean_reciprocal_rank == 2 / 3
    assert result.hallucinated_answers == 2
    assert result.caught_hallucinations == 2
    assert result.catch_rate == 1.0
    assert "Recall@k" in markdown.read_text(encoding="utf-8")


def test_main_fails_when_thresholds_not_met(tmp_path: Path) -> None:
    dataset = _write_dataset(tmp_path / "dataset.json")
    assert main(["--dataset", str(dataset), "--min-recall", "0.5"]) == 0
    assert main(["--dataset", str(dataset), "--min-recall", "0.9"]) == 1
