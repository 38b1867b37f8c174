"""Runtime configuration for the groundrag services."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed configuration model."""

    model_config = SettingsConfigDict(env_prefix="groundrag_", env_file=".env", case_sensitive=False)

    environment: Literal["dev", "test", "prod"] = "dev"
    log_level: str = "INFO"

    # Knowledge base
    kb_dir: Path = Path("./kb")
    kb_pattern: str = "*.md"
    kb_label: str = "kb"  # prefix used for document identifiers, e.g. kb/prices.md

    max_results: int = 3

    # Streaming
    stream_delay_ms: int = 50
    # Demo mode: append unverifiable numbers so the guardrail has something to catch
    hallucinate: bool = False

    # Action lifecycle
    action_validity_seconds: float = 30.0
    action_replay_seconds: float = 30.0

    evaluation_min_recall: float = 0.5
    evaluation_min_mrr: float = 0.5
    evaluation_min_catch_rate: float = 0.9

    # CORS
    cors_allow_origins: tuple[str, ...] = ()
    cors_allow_credentials: bool = False
    cors_allow_methods: tuple[str, ...] = ("GET", "POST", "OPTIONS")
    cors_allow_headers: tuple[str, ...] = ("*",)

    @property
    def stream_delay_seconds(self) -> float:
        return max(self.stream_delay_ms, 0) / 1000.0


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return Settings()


def get_settings(override: Optional[dict[str, object]] = None) -> Settings:
    """Return settings, optionally overriding values without mutating cache."""

    if override:
        return Settings(**override)
    return _cached_settings()
