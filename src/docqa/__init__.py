"""Multi-document question answering over an adaptive rate-limited LLM gateway."""

from .config import AppConfig, BackoffConfig, GatewayConfig
from .service import DocumentQAService

__all__ = ["AppConfig", "BackoffConfig", "DocumentQAService", "GatewayConfig"]
