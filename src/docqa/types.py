"""Shared domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


@dataclass(slots=True, frozen=True)
class DocumentRecord:
    """An ingested document. Owned by `DocumentStore`; never mutated."""

    id: str
    filename: str
    content: str
    file_type: str
    file_size_bytes: int
    upload_timestamp: datetime


@dataclass(slots=True)
class ParsedDocument:
    """Plain text extracted from an uploaded file."""

    filename: str
    text: str
    file_type: str


class OutcomeKind(str, Enum):
    SUCCESS = "success"
    RATE_LIMITED = "rate_limited"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"


@dataclass(slots=True)
class UpstreamOutcome:
    """Classified result of a single upstream call."""

    kind: OutcomeKind
    text: str = ""
    status_code: int | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is OutcomeKind.SUCCESS


class AnswerStatus(str, Enum):
    SUCCESS = "success"
    MOCK = "mock"
    INVALID_QUESTION = "invalid_question"
    NO_CONTEXT = "no_context"
    NOT_CONFIGURED = "not_configured"
    COOLING_DOWN = "cooling_down"
    RATE_LIMITED = "rate_limited"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"


@dataclass(slots=True)
class AnswerResult:
    """Caller-facing result of `ask`/`summarize`. `text` is always displayable."""

    status: AnswerStatus
    text: str
    question: str | None = None
    retry_after_seconds: int | None = None
    documents_analyzed: int = 0

    @property
    def answered(self) -> bool:
        return self.status in (AnswerStatus.SUCCESS, AnswerStatus.MOCK)


@dataclass(slots=True)
class IngestReport:
    filename: str
    success: bool
    message: str
    document_id: str | None = None
    size_bytes: int = 0


@dataclass(slots=True)
class BatchIngestReport:
    """Partial-failure summary of a multi-file upload."""

    total_files: int
    success_files: list[str] = field(default_factory=list)
    failed_files: list[str] = field(default_factory=list)
    total_upload_size: int = 0
    total_documents: int = 0
    document_names: list[str] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return len(self.success_files)

    @property
    def fail_count(self) -> int:
        return len(self.failed_files)

    @property
    def message(self) -> str:
        return f"Processed {self.success_count} out of {self.total_files} files"
