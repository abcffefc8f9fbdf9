"""Inter-call delay for enrichment requests.

Only enrichment calls go through the throttle; the deterministic analysis
path is never delayed.
"""

from __future__ import annotations

import threading
import time
from typing import Callable


class EnrichmentThrottle:
    """Enforces a minimum gap between consecutive enrichment calls."""

    def __init__(
        self,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_call: float | None = None

    def wait(self) -> float:
        """Block until the next call is allowed. Returns seconds slept."""
        if self.min_interval_seconds <= 0:
            return 0.0
        with self._lock:
            slept = 0.0
            if self._last_call is not None:
                remaining = self._last_call + self.min_interval_seconds - self._clock()
                if remaining > 0:
                    self._sleep(remaining)
                    slept = remaining
            self._last_call = self._clock()
            return slept
