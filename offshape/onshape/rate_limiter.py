"""Process-wide request pacing for Onshape calls.

Responsibilities:
- Admit at most `capacity` requests in any rolling `period_seconds` window.
- Stay correct when several threads share one limiter instance.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
import threading
from time import monotonic, sleep
from typing import Callable


DEFAULT_REQUESTS_PER_SECOND = 4


@dataclass(slots=True)
class RateLimiter:
    """Token gate where each consumed token returns one period after use.

    Unlike a continuously refilled bucket, a full burst cannot be followed
    by further admissions inside the same window.
    """

    capacity: int = DEFAULT_REQUESTS_PER_SECOND
    period_seconds: float = 1.0
    clock: Callable[[], float] = monotonic
    sleeper: Callable[[float], None] = sleep
    _admitted_at: deque[float] = field(default_factory=deque, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __post_init__(self) -> None:
        if self.capacity <= 0:
            raise ValueError("`capacity` must be a positive integer.")

    def acquire(self) -> None:
        """Block until a token is available, then consume it."""

        while True:
            wait_seconds = self._try_admit()
            if wait_seconds <= 0.0:
                return
            self.sleeper(wait_seconds)

    def _try_admit(self) -> float:
        """Admit the caller when possible; otherwise return the wait in seconds."""

        with self._lock:
            now = self.clock()
            while self._admitted_at and now - self._admitted_at[0] >= self.period_seconds:
                self._admitted_at.popleft()
            if len(self._admitted_at) < self.capacity:
                self._admitted_at.append(now)
                return 0.0
            return self._admitted_at[0] + self.period_seconds - now
