"""Request rate limiting and measurement."""

from __future__ import annotations

import threading
import time
from collections import deque
from datetime import datetime

_MAX_RATE_INTERVAL = 1e-6  # about a million requests per second


class RateThrottle:
    """Paces requests to the configured rate and measures the actual rate."""

    def __init__(self, conf):
        self.config = conf
        self._lock = threading.Lock()
        self._ticks: deque[int] = deque()
        self._interval = _MAX_RATE_INTERVAL
        self._next = 0.0
        self._configure(int(conf.rate))

    def _configure(self, rate: int) -> None:
        if rate > 0:
            self._interval = 1.0 / rate
            self._ticks = deque(maxlen=rate * 5)
        else:
            self._interval = _MAX_RATE_INTERVAL
            self._ticks = deque(maxlen=max(self.config.threads * 5, 0))
        self._next = time.monotonic() + self._interval

    def current_rate(self) -> int:
        """Return the requests per second measured over the recorded ticks."""
        with self._lock:
            ticks = list(self._ticks)
        if not ticks:
            return 0
        elapsed_ms = (max(ticks) - min(ticks)) // 1000
        if elapsed_ms > 1:
            return 1000 * len(ticks) // elapsed_ms
        return 0

    def change_rate(self, rate: int) -> None:
        """Switch to a new rate (0 or less means unlimited) and reset the measurements."""
        with self._lock:
            self._configure(rate)
        self.config.rate = rate

    def tick(self, start: datetime, end: datetime) -> None:
        """Record a finished request."""
        micros = round(end.timestamp() * 1_000_000)
        with self._lock:
            self._ticks.append(micros)

    def wait(self) -> None:
        """Block until the next request may be sent, or until the job is cancelled."""
        with self._lock:
            now = time.monotonic()
            slot = max(now, self._next)
            self._next = slot + self._interval
        delay = slot - now
        if delay > 0:
            self.config.stop_event.wait(delay)