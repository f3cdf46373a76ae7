"""Configuration models for the intent routing agent."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class IntentRoutingConfig(BaseModel):
    """Thresholds for rule/embedding classification and their merge."""

    use_embedding_disambiguation: bool = True
    # Minimum embedding confidence trusted when the rules are unsure.
    embedding_confidence_threshold: float = Field(default=0.45, ge=0.0, le=1.0)
    # Top-2 confidences closer than this are treated as ambiguous.
    ambiguity_margin: float = Field(default=0.05, ge=0.0, le=1.0)
    rules_only_threshold: float = Field(default=0.80, ge=0.0, le=1.0)
    rule_override_threshold: float = Field(default=0.65, ge=0.0, le=1.0)
    ambiguous_fallback_confidence: float = Field(default=0.50, ge=0.0, le=1.0)


class BackendConfig(BaseModel):
    """Configures the chat/embedding backend."""

    provider: Literal["openai", "offline"] = "openai"
    base_url: str | None = "http://localhost:11434/v1"
    api_key: str = "ollama"
    chat_model: str = "llama3.2:3b"
    embedding_model: str = "nomic-embed-text:latest"
    temperature: float = Field(default=0.0, ge=0.0, le=2.0)
    embedding_dimension: int = Field(default=256, ge=8)


class AppSettings(BaseSettings):
    """Process-wide settings, read once at startup from `IRA_*` variables."""

    model_config = SettingsConfigDict(
        env_prefix="IRA_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    max_input_chars: int = Field(default=2000, ge=1)
    tool_timeout_ms: int = Field(default=1500, ge=1)
    compose_timeout_ms: int = Field(default=4000, ge=1)
    request_timeout_ms: int = Field(default=20000, ge=1)
    search_top_k: int = Field(default=3, ge=1, le=10)
    corpus_path: Path | None = None
    log_level: str = "INFO"

    intent_routing: IntentRoutingConfig = Field(default_factory=IntentRoutingConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)

    @property
    def tool_timeout_seconds(self) -> float:
        return self.tool_timeout_ms / 1000.0

    @property
    def compose_timeout_seconds(self) -> float:
        return self.compose_timeout_ms / 1000.0

    @property
    def request_timeout_seconds(self) -> float:
        return self.request_timeout_ms / 1000.0


@lru_cache
def get_settings() -> AppSettings:
    return AppSettings()
