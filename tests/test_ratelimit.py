"""
Tests for fixed-window rate limiting.
"""

import threading

import pytest

from toolgate.auth.ratelimit import InMemoryRateLimiter, RateLimitDecision


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(clock):
    return InMemoryRateLimiter(limit=100, window_seconds=60, clock=clock)


class TestFixedWindow:
    """Tests for the window algorithm."""

    def test_first_call_creates_entry(self, limiter, clock):
        """First sight of a key starts a window with count 1."""
        decision = limiter.check_and_increment("client-a")

        assert decision.allowed is True
        assert decision.count == 1

        entry = limiter.get_entry("client-a")
        assert entry.count == 1
        assert entry.window_start == clock.now

    def test_hundred_calls_allowed_then_limited(self, limiter, clock):
        """100 calls inside a window pass; the 101st is limited."""
        for i in range(100):
            assert limiter.check_and_increment("client-a").allowed, f"call {i + 1} was limited"
            clock.advance(0.5)

        decision = limiter.check_and_increment("client-a")
        assert decision.allowed is False
        assert decision.remaining == 0

    def test_limited_call_does_not_increment(self, limiter):
        """Rejected calls leave the counter at the limit."""
        for _ in range(100):
            limiter.check_and_increment("client-a")

        for _ in range(5):
            assert not limiter.check_and_increment("client-a").allowed

        assert limiter.get_entry("client-a").count == 100

    def test_window_resets_after_expiry(self, limiter, clock):
        """A client that exhausted its budget at t+59 is allowed again at t+61."""
        limiter.check_and_increment("client-a")
        clock.advance(59)
        for _ in range(99):
            limiter.check_and_increment("client-a")
        assert not limiter.check_and_increment("client-a").allowed

        clock.advance(2)  # t+61
        decision = limiter.check_and_increment("client-a")

        assert decision.allowed is True
        assert decision.count == 1
        assert limiter.get_entry("client-a").window_start == clock.now

    def test_window_boundary_is_inclusive(self, limiter, clock):
        """Exactly WINDOW seconds after the start is still the same window."""
        for _ in range(100):
            limiter.check_and_increment("client-a")

        clock.advance(60)
        assert not limiter.check_and_increment("client-a").allowed

        clock.advance(0.001)
        assert limiter.check_and_increment("client-a").allowed

    def test_retry_after(self, limiter, clock):
        """Limited decisions say how long until the window ends."""
        for _ in range(100):
            limiter.check_and_increment("client-a")

        clock.advance(45)
        decision = limiter.check_and_increment("client-a")

        assert decision.allowed is False
        assert decision.retry_after == pytest.approx(15)

    def test_clients_are_independent(self, limiter):
        """One client's budget does not affect another's."""
        for _ in range(100):
            limiter.check_and_increment("client-a")

        assert not limiter.check_and_increment("client-a").allowed
        assert limiter.check_and_increment("client-b").allowed

    def test_burst_across_boundary(self, clock):
        """Fixed windows allow up to twice the limit across a boundary."""
        limiter = InMemoryRateLimiter(limit=10, window_seconds=60, clock=clock)

        limiter.check_and_increment("client-a")
        clock.advance(59)
        allowed = sum(limiter.check_and_increment("client-a").allowed for _ in range(9))
        clock.advance(2)
        allowed += sum(limiter.check_and_increment("client-a").allowed for _ in range(10))

        assert allowed + 1 == 20


class TestMaintenance:
    """Tests for eviction, reset and validation."""

    def test_evicts_expired_entries(self, clock):
        """Stale keys are dropped once the map grows past max_keys."""
        limiter = InMemoryRateLimiter(limit=5, window_seconds=60, max_keys=3, clock=clock)

        for key in ("a", "b", "c"):
            limiter.check_and_increment(key)

        clock.advance(120)
        limiter.check_and_increment("d")

        assert limiter.get_entry("a") is None
        assert limiter.get_entry("d") is not None
        assert limiter.stats()["tracked_clients"] == 1

    def test_eviction_keeps_live_entries(self, clock):
        """Entries still inside their window survive eviction."""
        limiter = InMemoryRateLimiter(limit=5, window_seconds=60, max_keys=2, clock=clock)

        limiter.check_and_increment("a")
        limiter.check_and_increment("b")
        limiter.check_and_increment("c")

        assert limiter.stats()["tracked_clients"] == 3

    def test_reset(self, limiter):
        limiter.check_and_increment("client-a")
        limiter.reset()

        assert limiter.get_entry("client-a") is None

    def test_invalid_settings(self):
        with pytest.raises(ValueError):
            InMemoryRateLimiter(limit=0)
        with pytest.raises(ValueError):
            InMemoryRateLimiter(window_seconds=0)

    def test_decision_remaining(self):
        decision = RateLimitDecision(allowed=True, count=40, limit=100)
        assert decision.remaining == 60


class TestAtomicity:
    """The counter never passes the limit under concurrent callers."""

    def test_threads_never_exceed_limit(self):
        limiter = InMemoryRateLimiter(limit=100, window_seconds=60)
        allowed = []
        lock = threading.Lock()

        def worker():
            count = 0
            for _ in range(50):
                if limiter.check_and_increment("shared").allowed:
                    count += 1
            with lock:
                allowed.append(count)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sum(allowed) == 100
        assert limiter.get_entry("shared").count == 100
