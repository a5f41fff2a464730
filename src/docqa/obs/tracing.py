"""Upstream call timing and accounting."""

from __future__ import annotations

import re
import threading
import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone

from docqa.types import OutcomeKind

_TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]", flags=re.UNICODE)


@dataclass(slots=True, frozen=True)
class UpstreamCallRecord:
    timestamp_utc: str
    kind: OutcomeKind
    latency_ms: float
    prompt_tokens: int
    answer_tokens: int
    consecutive_failures: int


class UpstreamCallLog:
    """Bounded in-memory log of upstream calls, shared across request threads."""

    def __init__(self, max_records: int = 500) -> None:
        self._records: list[UpstreamCallRecord] = []
        self._max_records = max_records
        self._lock = threading.Lock()

    def record(
        self,
        *,
        kind: OutcomeKind,
        latency_ms: float,
        prompt: str,
        answer: str,
        consecutive_failures: int,
    ) -> UpstreamCallRecord:
        entry = UpstreamCallRecord(
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            kind=kind,
            latency_ms=latency_ms,
            prompt_tokens=estimate_token_count(prompt),
            answer_tokens=estimate_token_count(answer),
            consecutive_failures=consecutive_failures,
        )
        with self._lock:
            self._records.append(entry)
            if len(self._records) > self._max_records:
                del self._records[: len(self._records) - self._max_records]
        return entry

    def recent(self, limit: int = 20) -> list[UpstreamCallRecord]:
        with self._lock:
            return self._records[-limit:]

    def summary(self) -> dict[str, object]:
        """Aggregate counts and latency over the retained records."""
        with self._lock:
            records = list(self._records)
        if not records:
            return {"total_calls": 0, "by_outcome": {}, "avg_latency_ms": 0.0, "total_prompt_tokens": 0}

        by_outcome = Counter(record.kind.value for record in records)
        return {
            "total_calls": len(records),
            "by_outcome": dict(by_outcome),
            "avg_latency_ms": sum(record.latency_ms for record in records) / len(records),
            "total_prompt_tokens": sum(record.prompt_tokens for record in records),
        }


class Timer:
    """Context timer around a single upstream call."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0


def estimate_token_count(text: str) -> int:
    return len(_TOKEN_PATTERN.findall(text))
