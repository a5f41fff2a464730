"""Serializes every stored document into one prompt-ready context blob."""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

from loguru import logger

from docqa.store.document_store import DocumentStore
from docqa.types import DocumentRecord

ANALYSIS_HEADER = "=== MULTI-DOCUMENT ANALYSIS ==="
_BLOCK_HEADER = re.compile(r"^=== DOCUMENT \d+: ", flags=re.MULTILINE)


@dataclass(slots=True, frozen=True)
class AggregatedContext:
    """Context text plus the number of documents taken from the same snapshot."""

    text: str
    document_count: int


class ContextAggregator:
    """Builds the aggregated context the gateway embeds in every prompt.

    Layout:
    - A global header with the document count and generation timestamp.
    - One block per document, in store insertion order, opened by
      `=== DOCUMENT <i>: <filename> ===` plus type/size/upload-time/length
      lines, followed by the verbatim content and closed by
      `=== END OF DOCUMENT <i> ===`.

    Content is never truncated. Given the same store contents, two builds
    differ only in the `Analysis Timestamp` line.
    """

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def build(self, store: DocumentStore) -> str | None:
        """Return the aggregated context, or `None` when the store is empty."""
        aggregated = self.aggregate(store)
        return None if aggregated is None else aggregated.text

    def aggregate(self, store: DocumentStore) -> AggregatedContext | None:
        records = store.all()
        if not records:
            logger.debug("No documents stored; no context available")
            return None

        parts: list[str] = [
            f"{ANALYSIS_HEADER}\n",
            f"Total Documents: {len(records)}\n",
            f"Analysis Timestamp: {self._clock().isoformat()}\n\n",
        ]
        for index, record in enumerate(records, start=1):
            parts.append(_document_block(index, record))

        context = "".join(parts)
        logger.debug(f"Aggregated {len(records)} documents into {len(context)} characters")
        return AggregatedContext(text=context, document_count=len(records))


def _document_block(index: int, record: DocumentRecord) -> str:
    header = (
        f"=== DOCUMENT {index}: {record.filename} ===\n"
        f"File Type: {record.file_type}\n"
        f"File Size: {record.file_size_bytes} bytes\n"
        f"Upload Time: {record.upload_timestamp.isoformat()}\n"
        f"Content Length: {len(record.content)} characters\n\n"
    )
    footer = f"\n=== END OF DOCUMENT {index} ===\n\n"
    return header + record.content + footer


def count_document_blocks(context: str) -> int:
    """Count block headers in an aggregated context. Used by mock mode only."""
    return len(_BLOCK_HEADER.findall(context))
