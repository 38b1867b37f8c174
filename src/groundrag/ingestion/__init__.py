"""Knowledge-base loading."""

from .service import IngestionError, KnowledgeBaseLoader, LoaderConfig, load_directory

__all__ = [
    "IngestionError",
    "KnowledgeBaseLoader",
    "LoaderConfig",
    "load_directory",
]
