"""
Application configuration using pydantic-settings.

Loads configuration from environment variables (prefixed ``LEDGERMAP_``) with
the classification thresholds used by the engine as defaults.
"""
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGERMAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Grouping-first strategy
    grouping_match_threshold: float = Field(0.50, ge=0.0, le=1.0)
    grouping_accept_floor: float = Field(0.60, ge=0.0, le=1.0)
    line_item_match_threshold: float = Field(0.55, ge=0.0, le=1.0)

    # Minor head fallback
    minor_head_match_threshold: float = Field(0.50, ge=0.0, le=1.0)
    minor_head_accept_floor: float = Field(0.55, ge=0.0, le=1.0)
    minor_head_grouping_threshold: float = Field(0.50, ge=0.0, le=1.0)
    minor_head_confidence_scale: float = Field(0.9, ge=0.0, le=1.0)

    # Keyword-filtered fallback
    keyword_match_threshold: float = Field(0.40, ge=0.0, le=1.0)
    keyword_confidence_scale: float = Field(0.8, ge=0.0, le=1.0)
    keyword_bonus: float = Field(0.1, ge=0.0, le=1.0)

    # Arbitration
    ai_accept_floor: float = Field(0.85, ge=0.0, le=1.0)
    fuzzy_accept_floor: float = Field(0.55, ge=0.0, le=1.0)

    # Batch orchestration
    batch_concurrency: int = Field(3, ge=1, le=32)

    # External suggestion provider
    llm_provider: Literal["none", "openai", "ollama"] = "none"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2:3b"
    llm_timeout_seconds: float = 30.0

    # Taxonomy
    taxonomy_path: Path = Path(__file__).parent.parent / "data" / "schedule_iii_taxonomy.yaml"

    # Application
    debug: bool = False
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
