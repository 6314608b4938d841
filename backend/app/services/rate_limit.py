from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable


logger = logging.getLogger(__name__)


class RateLimitExceededError(RuntimeError):
    def __init__(self, reset_time: float | None) -> None:
        if reset_time is None:
            message = "Rate limit reached. Please try again later."
        else:
            reset_label = datetime.fromtimestamp(reset_time, tz=timezone.utc).strftime("%H:%M UTC")
            message = f"Rate limit reached. Please try again after {reset_label}."
        super().__init__(message)
        self.reset_time = reset_time


@dataclass
class RateLimiter:
    """Fixed quota per rolling window; the count drops to zero once the window has passed."""

    limit: int = 10
    window_seconds: int = 3600
    state_path: Path | None = None
    clock: Callable[[], float] = time.time
    _count: int = field(default=0, init=False)
    _reset_time: float | None = field(default=None, init=False)

    def load(self) -> None:
        if self.state_path is None or not self.state_path.exists():
            return
        try:
            payload = json.loads(self.state_path.read_text(encoding="utf-8"))
            count = int(payload["count"])
            reset = float(payload["reset"])
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable rate limit state %s: %s", self.state_path, exc)
            return
        self._count = max(0, count)
        self._reset_time = reset
        self._expire_window()

    @property
    def is_rate_limited(self) -> bool:
        self._expire_window()
        return self._count >= self.limit

    @property
    def remaining_requests(self) -> int:
        self._expire_window()
        return max(0, self.limit - self._count)

    @property
    def reset_time(self) -> float | None:
        self._expire_window()
        return self._reset_time

    def ensure_available(self) -> None:
        if self.is_rate_limited:
            raise RateLimitExceededError(self._reset_time)

    def increment(self) -> None:
        now = self.clock()
        if self._reset_time is None or now > self._reset_time:
            self._count = 0
            self._reset_time = now + self.window_seconds
        self._count += 1
        self._save()

    def status(self) -> dict:
        return {
            "is_rate_limited": self.is_rate_limited,
            "remaining_requests": self.remaining_requests,
            "reset_time": self.reset_time,
            "limit": self.limit,
        }

    def _expire_window(self) -> None:
        if self._reset_time is not None and self.clock() > self._reset_time:
            self._count = 0
            self._reset_time = None
            if self.state_path is not None:
                self.state_path.unlink(missing_ok=True)

    def _save(self) -> None:
        if self.state_path is None:
            return
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        self.state_path.write_text(json.dumps({"count": self._count, "reset": self._reset_time}), encoding="utf-8")
