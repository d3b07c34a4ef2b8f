"""Retry with backoff for rate-limited upstream endpoints."""

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from treasury_aggregator.config import RetrySchedule
from treasury_aggregator.transport.fetch import BoundedFetcher, FetchResult

logger = logging.getLogger(__name__)


class RetryConfig:
    """
    Configuration for retry behavior.

    Parameters
    ----------
    delays : Sequence[float]
        Seconds to sleep before each attempt; its length is the attempt count
    attempt_timeout : float
        Timeout of one attempt in seconds
    budget : float
        Wall-clock budget for all attempts, sleeps included

    """

    def __init__(
        self,
        delays: Sequence[float] = (0.0,),
        attempt_timeout: float = 10.0,
        budget: float = 25.0,
    ) -> None:
        self.delays = tuple(float(d) for d in delays) or (0.0,)
        self.attempt_timeout = attempt_timeout
        self.budget = budget

    @classmethod
    def from_schedule(cls, schedule: RetrySchedule, ceiling: float | None = None) -> "RetryConfig":
        """
        Build from a catalogue schedule, clipping the budget to the platform ceiling.

        Parameters
        ----------
        schedule : RetrySchedule
            Catalogue retry schedule
        ceiling : float | None
            Usable platform budget in seconds

        Returns
        -------
        RetryConfig
            Retry configuration

        """
        budget = schedule.budget if ceiling is None else min(schedule.budget, ceiling)
        return cls(schedule.delays, schedule.attempt_timeout, budget)

    @property
    def max_attempts(self) -> int:
        return len(self.delays)

    def get_delay(self, attempt: int) -> float:
        """
        Delay before a given attempt.

        Parameters
        ----------
        attempt : int
            Attempt number (0-indexed)

        Returns
        -------
        float
            Delay in seconds

        """
        return self.delays[min(attempt, len(self.delays) - 1)]


@dataclass
class RetryOutcome:
    """
    Result of a retried request.

    Attributes
    ----------
    result : FetchResult | None
        Last response received, None if no attempt got a response
    attempts : int
        Attempts actually made
    aborted : bool
        True when a non-retryable status stopped the loop

    """

    result: FetchResult | None
    attempts: int
    aborted: bool = False

    @property
    def succeeded(self) -> bool:
        return self.result is not None and self.result.ok

    @property
    def rate_limited(self) -> bool:
        return self.result is not None and self.result.rate_limited


class RetryManager:
    """
    Runs GET requests against a rate-limited endpoint with increasing delays.

    A 429 response, a timeout or a transport error is retried; any other
    non-success status aborts immediately. An attempt is only started while
    both the budget and the request deadline allow it, and its timeout is
    clipped to whichever leaves less time.

    Parameters
    ----------
    fetcher : BoundedFetcher
        Bounded fetcher
    config : RetryConfig
        Retry schedule
    sleep : Callable[[float], None]
        Sleep function
    clock : Callable[[], float]
        Monotonic clock
    deadline : float | None
        Clock value by which the whole invocation must finish

    """

    def __init__(
        self,
        fetcher: BoundedFetcher,
        config: RetryConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        deadline: float | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.config = config
        self.deadline = deadline
        self._sleep = sleep
        self._clock = clock

    def get(
        self,
        url: str,
        *,
        lane: str | None = None,
        label: str = "request",
        deadline: float | None = None,
    ) -> RetryOutcome:
        """
        GET ``url`` following the retry schedule.

        Parameters
        ----------
        url : str
            Absolute URL
        lane : str | None
            Rate-limit lane
        label : str
            Name used in log messages
        deadline : float | None
            Request deadline overriding the one given at construction

        Returns
        -------
        RetryOutcome
            Final outcome

        """
        start = self._clock()
        deadline = self.deadline if deadline is None else deadline
        last: FetchResult | None = None
        attempts = 0

        for attempt in range(self.config.max_attempts):
            delay = self.config.get_delay(attempt)
            now = self._clock()
            left = self.config.budget - (now - start)
            if deadline is not None:
                left = min(left, deadline - now)
            remaining = left - delay
            if remaining <= 0:
                logger.warning("%s: retry budget of %.0fs exhausted after %d attempts", label, self.config.budget, attempts)
                break

            if delay > 0:
                logger.info("%s: retry %d, sleeping %.0fs", label, attempt, delay)
                self._sleep(delay)

            attempts += 1
            result = self.fetcher.request(
                "GET",
                url,
                timeout=min(self.config.attempt_timeout, remaining),
                lane=lane,
            )
            if result is None:
                logger.warning("%s: attempt %d got no response", label, attempts)
                continue
            last = result
            if result.ok:
                return RetryOutcome(result, attempts)
            if result.rate_limited:
                logger.warning("%s: 429 on attempt %d", label, attempts)
                continue

            logger.warning("%s: HTTP %s on attempt %d, not retrying", label, result.status_code, attempts)
            return RetryOutcome(result, attempts, aborted=True)

        return RetryOutcome(last, attempts)
