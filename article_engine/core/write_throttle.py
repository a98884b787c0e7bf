"""Time-based throttle for partial content write-back."""

import time
from collections.abc import Callable


class WriteThrottle:
    """
    Allows at most one write per interval.

    The caller asks ``should_write(now)`` before a partial save and calls
    ``record_write(now)`` after it. Unconditional writes (placeholder, final)
    still call ``record_write`` so the next partial save is spaced from them.
    """

    def __init__(self, interval_ms: int = 500, clock: Callable[[], float] | None = None):
        """
        Initialize throttle.

        Args:
            interval_ms: Minimum gap between writes in milliseconds
            clock: Monotonic clock returning seconds (defaults to time.monotonic)
        """
        self.interval = interval_ms / 1000.0
        self._clock = clock or time.monotonic
        self._last_write: float | None = None

    def now(self) -> float:
        return self._clock()

    def should_write(self, now: float | None = None) -> bool:
        """True if a write at ``now`` would respect the interval."""
        if self._last_write is None:
            return True
        current = self.now() if now is None else now
        return current - self._last_write >= self.interval

    def record_write(self, now: float | None = None) -> None:
        """Mark that a write happened at ``now``."""
        self._last_write = self.now() if now is None else now

    @property
    def last_write(self) -> float | None:
        return self._last_write
