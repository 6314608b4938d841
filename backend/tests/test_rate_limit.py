import json

import pytest

from app.services.rate_limit import RateLimitExceededError, RateLimiter


class _Clock:
    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_limit_is_reached_after_quota_increments() -> None:
    clock = _Clock()
    limiter = RateLimiter(limit=2, window_seconds=3600, clock=clock)

    limiter.increment()
    assert limiter.remaining_requests == 1
    assert not limiter.is_rate_limited

    limiter.increment()
    assert limiter.remaining_requests == 0
    assert limiter.is_rate_limited
    assert limiter.reset_time == clock.now + 3600
    with pytest.raises(RateLimitExceededError) as excinfo:
        limiter.ensure_available()
    assert excinfo.value.reset_time == clock.now + 3600
    assert "try again after" in str(excinfo.value)


def test_window_expiry_resets_the_count() -> None:
    clock = _Clock()
    limiter = RateLimiter(limit=1, window_seconds=60, clock=clock)
    limiter.increment()
    assert limiter.is_rate_limited

    clock.now += 61

    assert not limiter.is_rate_limited
    assert limiter.remaining_requests == 1
    assert limiter.reset_time is None
    limiter.ensure_available()


def test_state_survives_reload(tmp_path) -> None:
    clock = _Clock()
    state_path = tmp_path / "rate_limit.json"
    first = RateLimiter(limit=5, window_seconds=3600, state_path=state_path, clock=clock)
    first.increment()
    first.increment()

    second = RateLimiter(limit=5, window_seconds=3600, state_path=state_path, clock=clock)
    second.load()

    assert second.status() == {
        "is_rate_limited": False,
        "remaining_requests": 3,
        "reset_time": clock.now + 3600,
        "limit": 5,
    }


def test_expired_state_is_discarded_on_load(tmp_path) -> None:
    clock = _Clock()
    state_path = tmp_path / "rate_limit.json"
    state_path.write_text(json.dumps({"count": 10, "reset": clock.now - 1}), encoding="utf-8")

    limiter = RateLimiter(limit=10, window_seconds=3600, state_path=state_path, clock=clock)
    limiter.load()

    assert limiter.remaining_requests == 10
    assert not state_path.exists()


def test_unreadable_state_is_ignored(tmp_path) -> None:
    state_path = tmp_path / "rate_limit.json"
    state_path.write_text("{broken", encoding="utf-8")

    limiter = RateLimiter(limit=3, state_path=state_path, clock=_Clock())
    limiter.load()

    assert limiter.remaining_requests == 3
