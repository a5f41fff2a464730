"""Exception hierarchy for ingestion and storage failures.

Upstream LLM trouble (rate limits, transport errors, bad credentials) is not
represented here: the gateway reports it as an `AnswerResult` value instead.
"""

from __future__ import annotations


class DocQAError(Exception):
    """Base class for all errors raised by the package."""


class IngestionError(DocQAError):
    """A single file could not be ingested. Never aborts a batch."""

    def __init__(self, filename: str, reason: str) -> None:
        super().__init__(f"{filename}: {reason}")
        self.filename = filename
        self.reason = reason


class EmptyContent(IngestionError):
    def __init__(self, filename: str) -> None:
        super().__init__(filename, "no content extracted")


class UnsupportedFileType(IngestionError):
    def __init__(self, filename: str, supported: tuple[str, ...]) -> None:
        super().__init__(
            filename,
            "unsupported file type; supported formats: "
            + ", ".join(ext.lstrip(".").upper() for ext in supported),
        )


class ExtractionFailure(IngestionError):
    pass


class FileTooLarge(IngestionError):
    def __init__(self, filename: str, size_bytes: int, limit_bytes: int) -> None:
        super().__init__(
            filename, f"file too large: {size_bytes} bytes (limit {limit_bytes})"
        )
        self.size_bytes = size_bytes


class StorageInvariantViolation(DocQAError):
    """A just-inserted record could not be read back intact."""

    def __init__(self, document_id: str, filename: str, reason: str) -> None:
        super().__init__(f"storage check failed for {filename} ({document_id}): {reason}")
        self.document_id = document_id
        self.filename = filename
