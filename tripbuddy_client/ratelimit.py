"""Client-side request budget."""

from typing import Callable

from .cache.base import now_ms


class TokenBucket:
    """Fixed-window token bucket.

    Holds ``capacity`` tokens and refills to full once every
    ``refill_interval_ms``. Refill happens lazily on the next call, so no
    timer task is needed.
    """

    def __init__(self, capacity: int = 85, refill_interval_ms: int = 60_000,
                 clock: Callable[[], int] = now_ms):
        self.capacity = capacity
        self.refill_interval_ms = refill_interval_ms
        self._clock = clock
        self.tokens = capacity
        self._window_start = clock()

    def _refill(self) -> None:
        now = self._clock()
        if now - self._window_start >= self.refill_interval_ms:
            elapsed_windows = (now - self._window_start) // self.refill_interval_ms
            self._window_start += elapsed_windows * self.refill_interval_ms
            self.tokens = self.capacity

    def try_remove_token(self) -> bool:
        self._refill()
        if self.tokens > 0:
            self.tokens -= 1
            return True
        return False

    def retry_after_ms(self) -> int:
        """Milliseconds until the next refill."""
        self._refill()
        return max(0, self._window_start + self.refill_interval_ms - self._clock())
