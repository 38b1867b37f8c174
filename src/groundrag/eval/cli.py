"""CLI for evaluating groundrag retrieval accuracy and guardrail coverage."""

from __future__ import annotations

import argparse
import json
import random
import statistics
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from groundrag.config import Settings, get_settings
from groundrag.models import Document
from groundrag.retrieval.service import KnowledgeBase, RetrievalConfig
from groundrag.services.generation import TemplateComposer
from groundrag.services.guardrail import REFUSAL_PREFIX
from groundrag.services.hallucination import HallucinationInjector
from groundrag.services.query import QueryService


@dataclass(frozen=True)
class QueryFixture:
    question: str
    relevant_document_ids: Sequence[str]


@dataclass(frozen=True)
class EvaluationResult:
    total_queries: int
    hits: int
    recall_at_k: float
    mean_reciprocal_rank: float
    average_latency_ms: float
    hallucinated_answers: int
    caught_hallucinations: int
    catch_rate: float
    details: List[dict]

    def to_dict(self) -> dict:
        return {
            "total_queries": self.total_queries,
            "hits": self.hits,
            "recall_at_k": self.recall_at_k,
            "mean_reciprocal_rank": self.mean_reciprocal_rank,
            "average_latency_ms": self.average_latency_ms,
            "hallucinated_answers": self.hallucinated_answers,
            "caught_hallucinations": self.caught_hallucinations,
            "catch_rate": self.catch_rate,
            "details": self.details,
        }


def load_dataset(path: Path) -> tuple[list[Document], list[QueryFixture]]:
    """Read ``{"documents": [{id, content}], "queries": [{question, relevant_document_ids}]}``."""

    data = json.loads(path.read_text(encoding="utf-8"))
    documents = [Document(source=item["id"], content=item["content"]) for item in data["documents"]]
    queries = [
        QueryFixture(
            question=item["question"],
            relevant_document_ids=item.get("relevant_document_ids", []),
        )
        for item in data["queries"]
    ]
    return documents, queries


def run_evaluation(
    dataset_path: Path,
    *,
    top_k: int = 3,
    seed: int = 0,
    json_out: Path | None = None,
    markdown_out: Path | None = None,
) -> EvaluationResult:
    documents, queries = load_dataset(dataset_path)
    knowledge_base = KnowledgeBase(documents, RetrievalConfig(max_results=top_k))
    grounded = QueryService(knowledge_base, TemplateComposer(), max_results=top_k)
    hallucinating = QueryService(
        knowledge_base,
        TemplateComposer(hallucinator=HallucinationInjector(rng=random.Random(seed))),
        max_results=top_k,
    )

    hits = 0
    reciprocal_ranks: list[float] = []
    latencies: list[float] = []
    hallucinated = 0
    caught = 0
    details: list[dict] = []

    for query in queries:
        start = time.perf_counter()
        passages = knowledge_base.search(query.question, top_k)
        answer = grounded.answer(query.question)
        latencies.append((time.perf_counter() - start) * 1000)

        retrieved_ids: list[str] = []
        for passage in passages:
            if passage.source not in retrieved_ids:
                retrieved_ids.append(passage.source)
        relevant_set = set(query.relevant_document_ids)
        rank = None
        for index, doc_id in enumerate(retrieved_ids, start=1):
            if doc_id in relevant_set:
                rank = index
                break
        if rank is not None:
            hits += 1
            reciprocal_ranks.append(1 / rank)
        else:
            reciprocal_ranks.append(0.0)

        refused = None
        if passages:
            hallucinated += 1
            refused = hallucinating.answer(query.question).text.startswith(REFUSAL_PREFIX)
            if refused:
                caught += 1

        details.append(
            {
                "question": query.question,
                "retrieved": retrieved_ids,
                "relevant": list(query.relevant_document_ids),
                "answer": answer.text,
                "hallucination_refused": refused,
            },
        )

    total = len(queries)
    result = EvaluationResult(
        total_queries=total,
        hits=hits,
        recall_at_k=hits / total if total else 0.0,
        mean_reciprocal_rank=statistics.fmean(reciprocal_ranks) if reciprocal_ranks else 0.0,
        average_latency_ms=statistics.fmean(latencies) if latencies else 0.0,
        hallucinated_answers=hallucinated,
        caught_hallucinations=caught,
        catch_rate=caught / hallucinated if hallucinated else 1.0,
        details=details,
    )

    if json_out:
        json_out.write_text(json.dumps(result.to_dict(), indent=2), encoding="utf-8")
    if markdown_out:
        markdown_out.write_text(_format_markdown(result), encoding="utf-8")
    return result


def _format_markdown(result: EvaluationResult) -> str:
    lines = [
        "# groundrag Evaluation Report",
        "",
        f"- Total queries: {result.total_queries}",
        f"- Hits: {result.hits}",
        f"- Recall@k: {result.recall_at_k:.2f}",
        f"- MRR: {result.mean_reciprocal_rank:.2f}",
        f"- Guardrail catch rate: {result.catch_rate:.2f} ({result.caught_hallucinations}/{result.hallucinated_answers})",
        f"- Avg latency (ms): {result.average_latency_ms:.2f}",
        "",
        "| Question | Retrieved | Relevant |",
        "| --- | --- | --- |",
    ]
    for item in result.details:
        retrieved = ", ".join(item["retrieved"]) if item["retrieved"] else "-"
        relevant = ", ".join(item["relevant"]) if item["relevant"] else "-"
        lines.append(f"| {item['question']} | {retrieved} | {relevant} |")
    return "\n".join(lines)


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate groundrag retrieval accuracy and guardrail coverage.")
    parser.add_argument(
        "--dataset",
        type=Path,
        default=Path("evaluations/fixtures/sample.json"),
        help="Path to evaluation dataset JSON file.",
    )
    parser.add_argument("--top-k", type=int, default=3, help="Number of passages retrieved per query")
    parser.add_argument("--seed", type=int, default=0, help="Seed for hallucination sampling")
    parser.add_argument("--json-out", type=Path, default=None, help="Optional path to write JSON report")
    parser.add_argument("--markdown-out", type=Path, default=None, help="Optional path to write Markdown report")
    parser.add_argument("--min-recall", type=float, default=None, help="Override recall threshold")
    parser.add_argument("--min-mrr", type=float, default=None, help="Override MRR threshold")
    parser.add_argument("--min-catch-rate", type=float, default=None, help="Override guardrail catch-rate threshold")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None, settings: Settings | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    settings = settings or get_settings()
    min_recall = args.min_recall if args.min_recall is not None else settings.evaluation_min_recall
    min_mrr = args.min_mrr if args.min_mrr is not None else settings.evaluation_min_mrr
    min_catch = args.min_catch_rate if args.min_catch_rate is not None else settings.evaluation_min_catch_rate

    result = run_evaluation(
        args.dataset,
        top_k=args.top_k,
        seed=args.seed,
        json_out=args.json_out,
        markdown_out=args.markdown_out,
    )
    print(json.dumps(result.to_dict(), indent=2))

    if result.recall_at_k < min_recall or result.mean_reciprocal_rank < min_mrr or result.catch_rate < min_catch:
        print(
            f"Evaluation failed thresholds (recall {result.recall_at_k:.2f} vs {min_recall}, "
            f"MRR {result.mean_reciprocal_rank:.2f} vs {min_mrr}, "
            f"catch rate {result.catch_rate:.2f} vs {min_catch})",
            file=sys.stderr,
        )
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    sys.exit(main())
