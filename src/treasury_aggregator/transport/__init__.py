"""Outbound HTTP: bounded fetch, retry with backoff, rate limiting and parallel groups."""

from treasury_aggregator.transport.fetch import BoundedFetcher, FetchResult
from treasury_aggregator.transport.parallel import run_parallel
from treasury_aggregator.transport.ratelimit import RateLimiter, TokenBucket
from treasury_aggregator.transport.retry import RetryConfig, RetryManager, RetryOutcome

__all__ = [
    "BoundedFetcher",
    "FetchResult",
    "RateLimiter",
    "RetryConfig",
    "RetryManager",
    "RetryOutcome",
    "TokenBucket",
    "run_parallel",
]
