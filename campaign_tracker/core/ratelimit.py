import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from campaign_tracker.core.config import settings

# Shared bucket for requests whose client address could not be determined.
UNKNOWN_CLIENT = "unknown"


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    retry_after: int = 0


class RateLimiter:
    """
    Admit/reject interface used by the ingestion route.
    A multi-process deployment swaps in an implementation backed by a
    shared counter store; the route only ever calls hit().
    """

    def hit(self, key: Optional[str]) -> RateLimitDecision:
        raise NotImplementedError

    def reset(self) -> None:
        raise NotImplementedError


class MemoryRateLimiter(RateLimiter):
    """
    Fixed-window counter kept in process memory. Not shared across workers.

    Windows are kept in the order they started. All windows have the same
    length, so the expired ones are always at the front: pruning pops from
    the front and stops at the first live window. At most `max_keys`
    windows are held; when a new identifier arrives with the map full of
    live windows, the oldest window is evicted and that client starts over.
    """

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60,
        max_keys: int = 10000,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.max_keys = max_keys
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (count, window_reset_at), oldest window first
        self._windows: "OrderedDict[str, Tuple[int, float]]" = OrderedDict()

    def hit(self, key: Optional[str]) -> RateLimitDecision:
        key = key or UNKNOWN_CLIENT
        now = self._clock()

        with self._lock:
            entry = self._windows.get(key)

            if entry is None or now >= entry[1]:
                self._prune(now)
                if key not in self._windows and len(self._windows) >= self.max_keys:
                    self._windows.popitem(last=False)
                self._windows[key] = (1, now + self.window_seconds)
                self._windows.move_to_end(key)
                return RateLimitDecision(True, self.max_requests - 1)

            count, reset_at = entry
            if count < self.max_requests:
                self._windows[key] = (count + 1, reset_at)
                return RateLimitDecision(True, self.max_requests - count - 1)

            return RateLimitDecision(False, 0, max(1, math.ceil(reset_at - now)))

    def _prune(self, now: float) -> None:
        while self._windows:
            key, (_count, reset_at) = next(iter(self._windows.items()))
            if reset_at > now:
                break
            del self._windows[key]

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def __len__(self) -> int:
        return len(self._windows)


limiter: RateLimiter = MemoryRateLimiter(
    max_requests=settings.rate_limit_max,
    window_seconds=settings.rate_limit_window_seconds,
    max_keys=settings.rate_limit_max_keys,
)


def get_rate_limiter() -> RateLimiter:
    return limiter
