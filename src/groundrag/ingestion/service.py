"""Knowledge-base loading for groundrag."""

from __future__ import annotations

import time
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import List, Sequence

from langchain_community.document_loaders import TextLoader

from groundrag.metrics.observability import get_logger
from groundrag.models import Document


class IngestionError(RuntimeError):
    """Raised when a knowledge-base file cannot be loaded."""


@dataclass(frozen=True)
class LoaderConfig:
    """Configuration for knowledge-base loading."""

    directory: Path = Path("./kb")
    pattern: str = "*.md"
    label: str = "kb"
    encoding: str = "utf-8"


def _normalize_text(raw: str) -> str:
    # Line structure is kept intact: retrieval scores individual lines.
    normalized = unicodedata.normalize("NFKC", raw)
    normalized = normalized.replace("\r\n", "\n").replace("\u00a0", " ")
    return normalized


class KnowledgeBaseLoader:
    """Load markdown documents from a directory via LangChain's TextLoader."""

    _logger = get_logger("ingestion")

    def __init__(self, config: LoaderConfig | None = None) -> None:
        self._config = config or LoaderConfig()

    def load(self) -> Sequence[Document]:
        directory = self._config.directory
        if not directory.is_dir():
            self._logger.warning("ingestion.missing_directory", path=str(directory))
            return []

        start = time.perf_counter()
        documents: List[Document] = []
        for path in sorted(directory.glob(self._config.pattern)):
            if path.is_file():
                documents.append(self._load_single(path))

        self._logger.info(
            "ingestion.complete",
            path=str(directory),
            document_count=len(documents),
            total_size=sum(len(doc.content) for doc in documents),
            duration_seconds=time.perf_counter() - start,
        )
        return documents

    def _load_single(self, path: Path) -> Document:
        try:
            loaded = TextLoader(str(path), encoding=self._config.encoding).load()
        except Exception as exc:
            raise IngestionError(f"Failed to load {path}: {exc}") from exc
        content = "".join(doc.page_content for doc in loaded)
        source = f"{self._config.label}/{path.name}" if self._config.label else path.name
        return Document(source=source, content=_normalize_text(content))


def load_directory(directory: Path, *, pattern: str = "*.md", label: str = "kb") -> Sequence[Document]:
    """Convenience helper for tests and ad-hoc loading."""

    loader = KnowledgeBaseLoader(LoaderConfig(directory=directory, pattern=pattern, label=label))
    return loader.load()
