"""Unit tests for the fixed-window RateLimiter

Tests cover:
- Admission up to the ceiling, denial after
- Retry-after bounded by the remaining window
- Window reset
- Per-client and per-class isolation
- Refunds (stale windows ignored)
- Atomic admission under concurrent callers
"""

from __future__ import annotations

import threading

import pytest

from journalq.api.middleware.rate_limit import (
    DEFAULT_POLICIES,
    Allowed,
    Denied,
    EndpointClass,
    RateLimiter,
    RatePolicy,
    classify_path,
)


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return RateLimiter(clock=clock)


def test_default_policies_per_endpoint_class():
    assert DEFAULT_POLICIES[EndpointClass.REALTIME_ANALYSIS] == RatePolicy(60, 30, True)
    assert DEFAULT_POLICIES[EndpointClass.SUGGESTIONS] == RatePolicy(300, 20)
    assert DEFAULT_POLICIES[EndpointClass.CONTEXT] == RatePolicy(60, 10)
    assert DEFAULT_POLICIES[EndpointClass.GENERAL] == RatePolicy(900, 100)


def test_classify_path():
    assert classify_path("/ai/analyze-journal") is EndpointClass.REALTIME_ANALYSIS
    assert classify_path("/ai/journal-prompt") is EndpointClass.SUGGESTIONS
    assert classify_path("/journal/context/") is EndpointClass.CONTEXT
    assert classify_path("/journal/preferences") is EndpointClass.GENERAL
    assert classify_path("/journal") is EndpointClass.GENERAL


def test_thirty_first_realtime_call_denied(limiter, clock):
    for i in range(30):
        outcome = limiter.admit("1.2.3.4", EndpointClass.REALTIME_ANALYSIS)
        assert isinstance(outcome, Allowed)
        assert outcome.remaining == 29 - i
        clock.advance(0.5)

    outcome = limiter.admit("1.2.3.4", EndpointClass.REALTIME_ANALYSIS)

    assert isinstance(outcome, Denied)
    assert outcome.retry_after == pytest.approx(60 - 15)
    assert 0 < outcome.retry_after <= 60


def test_window_resets_after_expiry(limiter, clock):
    for _ in range(10):
        limiter.admit("client", EndpointClass.CONTEXT)
    assert isinstance(limiter.admit("client", EndpointClass.CONTEXT), Denied)

    clock.advance(60)

    outcome = limiter.admit("client", EndpointClass.CONTEXT)
    assert isinstance(outcome, Allowed)
    assert outcome.remaining == 9


def test_clients_are_isolated(limiter):
    for _ in range(10):
        limiter.admit("a", EndpointClass.CONTEXT)

    assert isinstance(limiter.admit("a", EndpointClass.CONTEXT), Denied)
    assert isinstance(limiter.admit("b", EndpointClass.CONTEXT), Allowed)


def test_endpoint_classes_are_isolated(limiter):
    for _ in range(10):
        limiter.admit("a", EndpointClass.CONTEXT)

    assert isinstance(limiter.admit("a", EndpointClass.CONTEXT), Denied)
    assert isinstance(limiter.admit("a", EndpointClass.GENERAL), Allowed)
    assert isinstance(limiter.admit("a", EndpointClass.SUGGESTIONS), Allowed)


def test_refund_returns_slot(limiter):
    outcome = limiter.admit("a", EndpointClass.REALTIME_ANALYSIS)
    assert limiter.count("a", EndpointClass.REALTIME_ANALYSIS) == 1

    limiter.refund("a", EndpointClass.REALTIME_ANALYSIS, outcome.window_start)

    assert limiter.count("a", EndpointClass.REALTIME_ANALYSIS) == 0


def test_refund_for_previous_window_is_ignored(limiter, clock):
    old = limiter.admit("a", EndpointClass.REALTIME_ANALYSIS)
    clock.advance(61)
    limiter.admit("a", EndpointClass.REALTIME_ANALYSIS)

    limiter.refund("a", EndpointClass.REALTIME_ANALYSIS, old.window_start)

    assert limiter.count("a", EndpointClass.REALTIME_ANALYSIS) == 1


def test_refund_never_goes_negative(limiter):
    outcome = limiter.admit("a", EndpointClass.GENERAL)
    limiter.refund("a", EndpointClass.GENERAL, outcome.window_start)
    limiter.refund("a", EndpointClass.GENERAL, outcome.window_start)

    assert limiter.count("a", EndpointClass.GENERAL) == 0


def test_reset_clears_buckets(limiter):
    for _ in range(10):
        limiter.admit("a", EndpointClass.CONTEXT)

    limiter.reset()

    assert limiter.count("a", EndpointClass.CONTEXT) == 0
    assert isinstance(limiter.admit("a", EndpointClass.CONTEXT), Allowed)


def test_concurrent_admission_never_exceeds_ceiling():
    limiter = RateLimiter(policies={EndpointClass.GENERAL: RatePolicy(60, 50)})
    outcomes: list[Allowed | Denied] = []
    lock = threading.Lock()

    def worker():
        for _ in range(20):
            outcome = limiter.admit("shared", EndpointClass.GENERAL)
            with lock:
                outcomes.append(outcome)

    threads = [threading.Thread(target=worker) for _ in range(10)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(outcomes) == 200
    assert sum(isinstance(o, Allowed) for o in outcomes) == 50
