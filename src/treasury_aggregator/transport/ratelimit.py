"""Token-bucket rate limiting per upstream lane."""

import logging
import threading
import time
from collections.abc import Callable, Mapping

from treasury_aggregator.config import RateLimitConfig

logger = logging.getLogger(__name__)


class TokenBucket:
    """
    Token bucket that blocks callers until a token is available.

    Parameters
    ----------
    rate : float
        Tokens added per second
    burst : float
        Bucket capacity; the bucket starts full
    clock : Callable[[], float]
        Monotonic clock
    sleep : Callable[[float], None]
        Sleep function

    """

    def __init__(
        self,
        rate: float,
        burst: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if rate <= 0:
            msg = "rate must be positive"
            raise ValueError(msg)
        self.rate = rate
        self.burst = max(burst, 1.0)
        self._clock = clock
        self._sleep = sleep
        self._tokens = self.burst
        self._updated = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock()
        self._tokens = min(self.burst, self._tokens + (now - self._updated) * self.rate)
        self._updated = now

    def acquire(self, tokens: float = 1.0) -> float:
        """
        Take tokens, waiting for the bucket to refill when needed.

        Parameters
        ----------
        tokens : float
            Tokens to take

        Returns
        -------
        float
            Seconds spent waiting

        """
        with self._lock:
            self._refill()
            wait = 0.0
            if self._tokens < tokens:
                wait = (tokens - self._tokens) / self.rate
                self._sleep(wait)
                self._refill()
                # the sleep may be shorter than the clock advance (or faked)
                self._tokens = max(self._tokens, tokens)
            self._tokens -= tokens
            return wait


class RateLimiter:
    """
    Registry of token buckets keyed by lane name.

    Acquiring an unconfigured lane never blocks.

    Parameters
    ----------
    limits : Mapping[str, RateLimitConfig]
        Bucket parameters per lane
    clock : Callable[[], float]
        Monotonic clock shared by all buckets
    sleep : Callable[[float], None]
        Sleep function shared by all buckets

    """

    def __init__(
        self,
        limits: Mapping[str, RateLimitConfig] | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._buckets = {
            lane: TokenBucket(cfg.rate, cfg.burst, clock=clock, sleep=sleep) for lane, cfg in (limits or {}).items()
        }

    def acquire(self, lane: str | None) -> float:
        if lane is None:
            return 0.0
        bucket = self._buckets.get(lane)
        if bucket is None:
            return 0.0
        waited = bucket.acquire()
        if waited:
            logger.debug("Rate limit lane %s waited %.2fs", lane, waited)
        return waited

    @property
    def lanes(self) -> list[str]:
        return list(self._buckets)
