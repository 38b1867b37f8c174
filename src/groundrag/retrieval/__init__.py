"""Retrieval components."""

from .service import SYNONYMS, KnowledgeBase, RetrievalConfig, Retriever, rewrite_query

__all__ = ["SYNONYMS", "KnowledgeBase", "RetrievalConfig", "Retriever", "rewrite_query"]
