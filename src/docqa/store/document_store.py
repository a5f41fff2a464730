"""Thread-safe in-memory document storage."""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from loguru import logger

from docqa.errors import EmptyContent, StorageInvariantViolation
from docqa.types import DocumentRecord


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentStore:
    """Insertion-ordered document map guarded by a single lock.

    Every read returns a snapshot taken under the lock, so readers see either
    the full set before a `clear()` or the empty set after it, never a mix.
    The store lives for the lifetime of the process and is not persisted.
    """

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._records: dict[str, DocumentRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def put(
        self,
        filename: str,
        content: str | None,
        file_type: str,
        size_bytes: int,
    ) -> DocumentRecord:
        """Insert a document and verify it can be read back.

        Raises:
            EmptyContent: `content` is missing or whitespace only.
            StorageInvariantViolation: the record is absent or blank right
                after insertion.
        """

        if content is None or not content.strip():
            raise EmptyContent(filename)

        record = DocumentRecord(
            id=str(uuid.uuid4()),
            filename=filename,
            content=content,
            file_type=file_type,
            file_size_bytes=size_bytes,
            upload_timestamp=self._clock(),
        )

        with self._lock:
            self._records[record.id] = record
            stored = self._records.get(record.id)
            if stored is None:
                reason = "record missing after insert"
            elif not stored.content.strip():
                reason = "record content blank after insert"
            else:
                reason = None
            if reason is not None:
                self._records.pop(record.id, None)
                logger.error(f"Storage invariant violated for {filename}: {reason}")
                raise StorageInvariantViolation(record.id, filename, reason)
            total = len(self._records)

        logger.debug(
            f"Stored {filename} ({len(content)} chars) as {record.id}; {total} documents"
        )
        return record

    def get(self, document_id: str) -> DocumentRecord | None:
        with self._lock:
            return self._records.get(document_id)

    def remove(self, document_id: str) -> bool:
        with self._lock:
            removed = self._records.pop(document_id, None)
        if removed is not None:
            logger.debug(f"Removed {removed.filename} ({document_id})")
        return removed is not None

    def clear(self) -> int:
        """Drop every document and return how many were removed."""
        with self._lock:
            cleared = len(self._records)
            self._records = {}
        logger.info(f"Cleared {cleared} documents")
        return cleared

    def restore(self, records: Iterable[DocumentRecord]) -> int:
        """Atomically replace the store contents, skipping blank records."""
        restored: dict[str, DocumentRecord] = {}
        for record in records:
            if not record.content.strip():
                logger.warning(f"Skipping restore of {record.filename}: no content")
                continue
            restored[record.id] = record
        with self._lock:
            self._records = restored
        logger.info(f"Restored {len(restored)} documents")
        return len(restored)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def names(self) -> list[str]:
        with self._lock:
            return [record.filename for record in self._records.values()]

    def all(self) -> list[DocumentRecord]:
        with self._lock:
            return list(self._records.values())
