import threading

import pytest

from docqa.config import BackoffConfig
from docqa.gateway.backoff import BackoffController, Cooling, Ready
from docqa.types import OutcomeKind


@pytest.mark.parametrize(
    ("failures", "expected_ms"),
    [(0, 10_000), (1, 20_000), (3, 80_000), (5, 300_000), (10, 300_000)],
)
def test_required_delay_doubles_and_caps(failures: int, expected_ms: int) -> None:
    controller = BackoffController(BackoffConfig(min_interval_ms=10_000, max_interval_ms=300_000))

    assert controller.required_delay_ms(failures) == expected_ms


def test_fresh_controller_is_ready(clock) -> None:
    controller = BackoffController(clock=clock)

    assert isinstance(controller.check_and_reserve(), Ready)


def test_cooling_after_reported_call(clock) -> None:
    controller = BackoffController(clock=clock)
    controller.check_and_reserve()
    controller.report_outcome(OutcomeKind.SUCCESS)

    clock.advance(2_500)
    decision = controller.check_and_reserve()

    assert isinstance(decision, Cooling)
    assert decision.remaining_ms == pytest.approx(7_500)
    assert decision.remaining_seconds == 8

    clock.advance(7_500)
    assert isinstance(controller.check_and_reserve(), Ready)


def test_checks_do_not_advance_request_clock(clock) -> None:
    controller = BackoffController(clock=clock)
    controller.report_outcome(OutcomeKind.SUCCESS)

    remaining = []
    for _ in range(5):
        clock.advance(1_000)
        decision = controller.check_and_reserve()
        remaining.append(decision.remaining_ms)

    assert remaining == [9_000, 8_000, 7_000, 6_000, 5_000]
    assert controller.snapshot().last_request_ms == 1_000_000


def test_success_resets_then_rate_limit_counts_one(clock) -> None:
    controller = BackoffController(clock=clock)
    controller.report_outcome(OutcomeKind.RATE_LIMITED)
    controller.report_outcome(OutcomeKind.RATE_LIMITED)
    assert controller.snapshot().consecutive_failures == 2

    controller.report_outcome(OutcomeKind.SUCCESS)
    assert controller.snapshot().consecutive_failures == 0

    state = controller.report_outcome(OutcomeKind.RATE_LIMITED)
    assert state.consecutive_failures == 1


@pytest.mark.parametrize("kind", [OutcomeKind.SERVER_ERROR, OutcomeKind.NETWORK_ERROR])
def test_transport_and_server_failures_extend_backoff(clock, kind: OutcomeKind) -> None:
    controller = BackoffController(clock=clock)

    controller.report_outcome(kind)

    assert controller.snapshot().consecutive_failures == 1
    assert controller.check_and_reserve().remaining_ms == 20_000


def test_client_error_resets_failure_streak(clock) -> None:
    controller = BackoffController(clock=clock)
    controller.report_outcome(OutcomeKind.RATE_LIMITED)
    assert controller.snapshot().consecutive_failures == 1

    state = controller.report_outcome(OutcomeKind.CLIENT_ERROR)

    assert state.consecutive_failures == 0
    assert state.last_request_ms == 1_000_000
    assert controller.required_delay_ms() == 10_000


def test_failure_streak_is_capped(clock) -> None:
    controller = BackoffController(BackoffConfig(max_exponent=30), clock=clock)

    for _ in range(100):
        controller.report_outcome(OutcomeKind.RATE_LIMITED)

    assert controller.snapshot().consecutive_failures == 30
    assert controller.required_delay_ms() == 300_000


def test_only_one_reservation_at_a_time(clock) -> None:
    controller = BackoffController(clock=clock)

    first = controller.check_and_reserve()
    second = controller.check_and_reserve()

    assert isinstance(first, Ready)
    assert isinstance(second, Cooling)
    assert second.remaining_ms == 10_000

    controller.release()
    assert isinstance(controller.check_and_reserve(), Ready)


def test_concurrent_callers_get_single_reservation(clock) -> None:
    controller = BackoffController(clock=clock)
    barrier = threading.Barrier(8)
    decisions = []
    lock = threading.Lock()

    def _caller() -> None:
        barrier.wait()
        decision = controller.check_and_reserve()
        with lock:
            decisions.append(decision)

    threads = [threading.Thread(target=_caller) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sum(isinstance(d, Ready) for d in decisions) == 1


def test_peek_does_not_reserve(clock) -> None:
    controller = BackoffController(clock=clock)

    assert isinstance(controller.peek(), Ready)
    assert isinstance(controller.peek(), Ready)
    assert controller.seconds_until_available() == 0


def test_reset_returns_to_ready(clock) -> None:
    controller = BackoffController(clock=clock)
    controller.report_outcome(OutcomeKind.RATE_LIMITED)
    controller.check_and_reserve()

    controller.reset()

    state = controller.snapshot()
    assert state.consecutive_failures == 0
    assert state.last_request_ms is None
    assert isinstance(controller.check_and_reserve(), Ready)
