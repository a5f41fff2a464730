"""Configuration models for the document Q&A system."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field

PLACEHOLDER_API_KEY = "YOUR_GEMINI_API_KEY_HERE"
DEFAULT_API_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/"
    "gemini-1.5-flash:generateContent"
)


class BackoffConfig(BaseModel):
    """Configures the process-wide adaptive cooldown between upstream calls."""

    min_interval_ms: int = Field(default=10_000, ge=0)
    max_interval_ms: int = Field(default=300_000, ge=0)
    max_exponent: int = Field(default=30, ge=0, le=62)


class GenerationConfig(BaseModel):
    """Sampling parameters forwarded to the upstream model."""

    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    top_k: int = Field(default=40, ge=1)
    top_p: float = Field(default=0.95, gt=0.0, le=1.0)
    max_output_tokens: int = Field(default=4096, ge=1)


class GatewayConfig(BaseModel):
    """Configures the upstream endpoint, credentials and timeouts."""

    api_url: str = DEFAULT_API_URL
    api_key: str | None = None
    use_mock: bool = False
    connect_timeout_seconds: float = Field(default=30.0, gt=0.0)
    write_timeout_seconds: float = Field(default=30.0, gt=0.0)
    read_timeout_seconds: float = Field(default=90.0, gt=0.0)
    pool_timeout_seconds: float = Field(default=30.0, gt=0.0)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    rate_limit_phrases: tuple[str, ...] = (
        "rate limit exceeded",
        "high demand",
        "too many requests",
        "quota exceeded",
    )

    @property
    def is_configured(self) -> bool:
        key = (self.api_key or "").strip()
        return bool(key) and key != PLACEHOLDER_API_KEY


class IngestConfig(BaseModel):
    """Configures upload limits."""

    max_file_size_bytes: int = Field(default=10 * 1024 * 1024, ge=1)


class AppConfig(BaseModel):
    backoff: BackoffConfig = Field(default_factory=BackoffConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    ingest: IngestConfig = Field(default_factory=IngestConfig)
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build configuration from `GEMINI_*`, `AI_USE_MOCK` and `DOCQA_LOG_LEVEL`."""
        return cls(
            gateway=GatewayConfig(
                api_url=os.getenv("GEMINI_API_URL", DEFAULT_API_URL),
                api_key=os.getenv("GEMINI_API_KEY"),
                use_mock=_env_flag("AI_USE_MOCK"),
            ),
            log_level=os.getenv("DOCQA_LOG_LEVEL", "INFO").upper(),
        )


def _env_flag(name: str) -> bool:
    return os.getenv(name, "false").strip().lower() in {"1", "true", "yes", "on"}
