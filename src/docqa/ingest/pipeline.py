"""Upload ingestion: validate -> extract -> store."""

from __future__ import annotations

from collections.abc import Iterable

from loguru import logger

from docqa.config import IngestConfig
from docqa.errors import EmptyContent, FileTooLarge, IngestionError
from docqa.ingest.parser import ParserRegistry
from docqa.store.document_store import DocumentStore
from docqa.types import BatchIngestReport, DocumentRecord


class IngestPipeline:
    """Coordinates parser registry and document store.

    Failures are per file: `ingest_many` records an `IngestionError` against
    the offending file and carries on with the rest. A
    `StorageInvariantViolation` is not an ingestion error and propagates.
    """

    def __init__(
        self,
        parser_registry: ParserRegistry,
        store: DocumentStore,
        config: IngestConfig | None = None,
    ) -> None:
        self._parser_registry = parser_registry
        self._store = store
        self.config = config or IngestConfig()

    def ingest_bytes(self, data: bytes, filename: str) -> DocumentRecord:
        """Ingest a single upload and return the stored record."""

        if not data:
            raise EmptyContent(filename)
        if len(data) > self.config.max_file_size_bytes:
            raise FileTooLarge(filename, len(data), self.config.max_file_size_bytes)

        parsed = self._parser_registry.parse(data, filename)
        record = self._store.put(
            parsed.filename,
            parsed.text,
            parsed.file_type,
            len(data),
        )
        logger.info(f"Ingested {filename} ({len(data)} bytes, {len(parsed.text)} chars)")
        return record

    def ingest_many(self, files: Iterable[tuple[str, bytes]]) -> BatchIngestReport:
        """Ingest `(filename, data)` pairs, tolerating per-file failures."""

        items = list(files)
        report = BatchIngestReport(total_files=len(items))
        for filename, data in items:
            try:
                record = self.ingest_bytes(data, filename)
            except IngestionError as exc:
                logger.warning(f"Skipping {filename}: {exc.reason}")
                report.failed_files.append(f"{filename} ({exc.reason})")
                continue
            report.success_files.append(record.filename)
            report.total_upload_size += record.file_size_bytes

        report.total_documents = self._store.count()
        report.document_names = self._store.names()
        logger.info(f"{report.message}; store holds {report.total_documents} documents")
        return report
