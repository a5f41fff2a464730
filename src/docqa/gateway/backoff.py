"""Adaptive cooldown shared by every upstream call in the process."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from loguru import logger

from docqa.config import BackoffConfig
from docqa.types import OutcomeKind

_FAILURE_KINDS = frozenset(
    {OutcomeKind.RATE_LIMITED, OutcomeKind.SERVER_ERROR, OutcomeKind.NETWORK_ERROR}
)
_RESET_KINDS = frozenset({OutcomeKind.SUCCESS, OutcomeKind.CLIENT_ERROR})


def _monotonic_ms() -> float:
    return time.monotonic() * 1000.0


@dataclass(slots=True, frozen=True)
class Ready:
    pass


@dataclass(slots=True, frozen=True)
class Cooling:
    remaining_ms: float

    @property
    def remaining_seconds(self) -> int:
        return math.ceil(self.remaining_ms / 1000.0)


GateDecision = Ready | Cooling


@dataclass(slots=True, frozen=True)
class BackoffState:
    last_request_ms: float | None
    consecutive_failures: int
    min_interval_ms: int
    max_interval_ms: int
    in_flight: bool


class BackoffController:
    """Two-state gate (READY / COOLING) with exponential backoff.

    The required gap between upstream calls is `min_interval_ms` while the
    failure streak is zero and `min(min_interval_ms * 2**n, max_interval_ms)`
    after `n` consecutive failures. The gate is READY once that gap has
    elapsed since the last attempted call.

    Only `report_outcome`, called once per attempted upstream call, moves the
    request clock. `check_and_reserve` hands out at most one reservation at a
    time: while a reserved call is in flight every other caller sees COOLING
    for the full required delay. Callers are never queued.
    """

    def __init__(
        self,
        config: BackoffConfig | None = None,
        *,
        clock: Callable[[], float] = _monotonic_ms,
    ) -> None:
        self.config = config or BackoffConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._last_request_ms: float | None = None
        self._consecutive_failures = 0
        self._in_flight = False

    def required_delay_ms(self, failures: int | None = None) -> int:
        with self._lock:
            n = self._consecutive_failures if failures is None else failures
        return self._required_delay(n)

    def peek(self) -> GateDecision:
        """Report the gate state without reserving anything."""
        with self._lock:
            return self._decide(self._clock())

    def check_and_reserve(self) -> GateDecision:
        """Return READY and take the reservation, or COOLING with the wait."""
        with self._lock:
            decision = self._decide(self._clock())
            if isinstance(decision, Ready):
                self._in_flight = True
            return decision

    def release(self) -> None:
        """Drop a reservation whose upstream call was never attempted."""
        with self._lock:
            self._in_flight = False

    def report_outcome(self, kind: OutcomeKind) -> BackoffState:
        with self._lock:
            self._in_flight = False
            self._last_request_ms = self._clock()
            if kind in _RESET_KINDS:
                self._consecutive_failures = 0
            elif kind in _FAILURE_KINDS:
                self._consecutive_failures = min(
                    self._consecutive_failures + 1, self.config.max_exponent
                )
            state = self._state()

        if kind in _FAILURE_KINDS:
            logger.warning(
                f"Upstream {kind.value}; failure streak {state.consecutive_failures}, "
                f"next delay {self._required_delay(state.consecutive_failures)}ms"
            )
        return state

    def seconds_until_available(self) -> int:
        decision = self.peek()
        if isinstance(decision, Cooling):
            return decision.remaining_seconds
        return 0

    def reset(self) -> None:
        with self._lock:
            self._last_request_ms = None
            self._consecutive_failures = 0
            self._in_flight = False
        logger.info("Backoff state reset")

    def snapshot(self) -> BackoffState:
        with self._lock:
            return self._state()

    def _decide(self, now_ms: float) -> GateDecision:
        required = self._required_delay(self._consecutive_failures)
        if self._in_flight:
            return Cooling(remaining_ms=float(required))
        if self._last_request_ms is None:
            return Ready()
        elapsed = now_ms - self._last_request_ms
        if elapsed < required:
            return Cooling(remaining_ms=required - elapsed)
        return Ready()

    def _required_delay(self, failures: int) -> int:
        if failures <= 0:
            return self.config.min_interval_ms
        exponent = min(failures, self.config.max_exponent)
        return min(self.config.min_interval_ms * (2**exponent), self.config.max_interval_ms)

    def _state(self) -> BackoffState:
        return BackoffState(
            last_request_ms=self._last_request_ms,
            consecutive_failures=self._consecutive_failures,
            min_interval_ms=self.config.min_interval_ms,
            max_interval_ms=self.config.max_interval_ms,
            in_flight=self._in_flight,
        )
