"""Fixed-window rate limiting."""

import time
from collections.abc import Callable


class FixedWindowRateLimiter:
    """Admit at most ``requests`` calls per ``window`` seconds.

    The counter resets once the current window has elapsed. Not safe for
    concurrent use by several callers.
    """

    def __init__(
        self,
        requests: int,
        window: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.requests = requests
        self.window = window
        self._clock = clock
        self._count = 0
        self._reset_at = 0.0

    def _roll(self) -> None:
        now = self._clock()
        if now >= self._reset_at:
            self._count = 0
            self._reset_at = now + self.window

    def try_acquire(self) -> bool:
        """Count one request if the window still has room."""
        self._roll()
        if self._count >= self.requests:
            return False
        self._count += 1
        return True

    @property
    def remaining(self) -> int:
        now = self._clock()
        if now >= self._reset_at:
            return self.requests
        return max(0, self.requests - self._count)

    @property
    def reset_in(self) -> float:
        """Seconds until the current window ends."""
        return max(0.0, self._reset_at - self._clock())

    def reset(self) -> None:
        self._count = 0
        self._reset_at = 0.0
