"""Facade exposing ingestion and querying to the controller layer."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from loguru import logger

from docqa.config import AppConfig
from docqa.errors import IngestionError
from docqa.gateway.backoff import BackoffController
from docqa.gateway.gateway import AIGateway
from docqa.ingest.parser import ParserRegistry
from docqa.ingest.pipeline import IngestPipeline
from docqa.store.document_store import DocumentStore
from docqa.types import AnswerResult, BatchIngestReport, IngestReport


class DocumentQAService:
    """Wires store, ingest pipeline, backoff controller and gateway together.

    One instance is shared by every request thread. The backoff controller is
    deliberately process-wide: all callers share one upstream quota.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        store: DocumentStore | None = None,
        parser_registry: ParserRegistry | None = None,
        backoff: BackoffController | None = None,
        gateway: AIGateway | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.store = store or DocumentStore()
        if gateway is not None:
            self.backoff = gateway.backoff
            self.gateway = gateway
        else:
            self.backoff = backoff or BackoffController(self.config.backoff)
            self.gateway = AIGateway(self.config.gateway, self.backoff)
        self.pipeline = IngestPipeline(
            parser_registry or ParserRegistry(), self.store, self.config.ingest
        )

    def ingest(self, data: bytes, filename: str) -> IngestReport:
        try:
            record = self.pipeline.ingest_bytes(data, filename)
        except IngestionError as exc:
            logger.warning(f"Upload of {filename} failed: {exc.reason}")
            return IngestReport(filename=filename, success=False, message=str(exc))
        return IngestReport(
            filename=filename,
            success=True,
            message=f"Document processed successfully: {filename}",
            document_id=record.id,
            size_bytes=record.file_size_bytes,
        )

    def batch_ingest(self, files: Iterable[tuple[str, bytes]]) -> BatchIngestReport:
        return self.pipeline.ingest_many(files)

    def document_count(self) -> int:
        return self.store.count()

    def document_names(self) -> list[str]:
        return self.store.names()

    def ask(self, question: str | None) -> AnswerResult:
        return self.gateway.ask(question, self.store)

    def summarize(self) -> AnswerResult:
        return self.gateway.summarize(self.store)

    def clear_all(self) -> int:
        cleared = self.store.clear()
        self.gateway.reset_state()
        return cleared

    def reset_ai_state(self) -> None:
        """Forget cooldown and failure history; stored documents are kept."""
        self.gateway.reset_state()

    def is_available(self) -> bool:
        return self.gateway.is_available()

    def seconds_until_available(self) -> int:
        return self.gateway.seconds_until_available()

    def status(self) -> dict[str, Any]:
        count = self.store.count()
        return {
            "total_documents": count,
            "document_names": self.store.names(),
            "ready": count > 0,
            "ai_configured": self.config.gateway.is_configured
            and not self.config.gateway.use_mock,
            "mock_mode": self.config.gateway.use_mock,
            "ai_available": self.is_available(),
            "seconds_until_available": self.seconds_until_available(),
            "upstream_calls": self.gateway.call_log.summary(),
        }
