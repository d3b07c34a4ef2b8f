"""Bounded upstream HTTP fetch."""

import json
import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any

import httpx

from treasury_aggregator.transport.ratelimit import RateLimiter

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; treasury-aggregator)",
    "Accept": "application/json",
}


@dataclass(frozen=True)
class FetchResult:
    """
    Completed upstream response.

    Attributes
    ----------
    status_code : int
        HTTP status
    data : Any
        Parsed JSON body, or None when the body is empty or not JSON

    """

    status_code: int
    data: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def rate_limited(self) -> bool:
        return self.status_code == 429


MAX_IN_FLIGHT = 64


def _short(url: str) -> str:
    return url if len(url) <= 96 else url[:93] + "..."


class BoundedFetcher:
    """
    Issues HTTP requests that resolve within an explicit deadline.

    Timeouts, transport errors and deadline overruns resolve to ``None``
    instead of raising, so callers can fall through to the next source.
    The exchange runs on a worker thread so the caller is released at the
    deadline even when an upstream keeps trickling bytes.

    Parameters
    ----------
    client : httpx.Client | None
        HTTP client (a new one is created if None)
    limiter : RateLimiter | None
        Lane limiter consulted before each request
    clock : Callable[[], float]
        Monotonic clock used for the overall deadline

    """

    def __init__(
        self,
        client: httpx.Client | None = None,
        limiter: RateLimiter | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._owns_client = client is None
        self.client = client or httpx.Client(follow_redirects=True)
        self.limiter = limiter or RateLimiter()
        self._clock = clock
        self._executor = ThreadPoolExecutor(max_workers=MAX_IN_FLIGHT, thread_name_prefix="fetch")

    def request(
        self,
        method: str,
        url: str,
        *,
        timeout: float,
        lane: str | None = None,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> FetchResult | None:
        """
        Issue a request bounded by ``timeout`` seconds.

        Parameters
        ----------
        method : str
            HTTP method
        url : str
            Absolute URL
        timeout : float
            Maximum seconds for the whole exchange, body included
        lane : str | None
            Rate-limit lane to acquire before sending
        params : dict[str, Any] | None
            Query parameters
        json_body : Any
            JSON request body
        headers : dict[str, str] | None
            Extra headers

        Returns
        -------
        FetchResult | None
            Response for any status code, None on timeout or transport failure

        """
        self.limiter.acquire(lane)
        merged_headers = {**DEFAULT_HEADERS, **(headers or {})}
        abandoned = threading.Event()

        future = self._executor.submit(
            self._exchange,
            method,
            url,
            timeout,
            abandoned,
            params=params,
            json=json_body,
            headers=merged_headers,
        )
        try:
            status, body = future.result(timeout=timeout)
        except FutureTimeout:
            abandoned.set()
            future.cancel()
            logger.warning("%s %s failed: deadline of %.1fs exceeded", method, _short(url), timeout)
            return None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("%s %s failed: %s", method, _short(url), str(e) or type(e).__name__)
            return None

        data = None
        if body:
            try:
                data = json.loads(body)
            except ValueError:
                logger.debug("%s %s returned a non-JSON body", method, _short(url))
        return FetchResult(status_code=status, data=data)

    def _exchange(
        self,
        method: str,
        url: str,
        timeout: float,
        abandoned: threading.Event,
        **kwargs: Any,
    ) -> tuple[int, bytes]:
        # connect and each read are capped at the whole timeout; the caller stops waiting at the deadline
        deadline = self._clock() + timeout
        with self.client.stream(method, url, timeout=httpx.Timeout(timeout), **kwargs) as response:
            body = bytearray()
            for chunk in response.iter_bytes():
                if abandoned.is_set() or self._clock() > deadline:
                    msg = f"deadline of {timeout:.1f}s exceeded"
                    raise httpx.ReadTimeout(msg, request=response.request)
                body.extend(chunk)
            return response.status_code, bytes(body)

    def get_json(self, url: str, *, timeout: float, **kwargs: Any) -> Any | None:
        """
        GET a JSON document.

        Returns
        -------
        Any | None
            Parsed body of a 2xx response, None otherwise

        """
        result = self.request("GET", url, timeout=timeout, **kwargs)
        if result is None or not result.ok:
            return None
        return result.data

    def post_json(self, url: str, body: Any, *, timeout: float, **kwargs: Any) -> Any | None:
        """POST a JSON body and return the parsed 2xx response, None otherwise."""
        result = self.request("POST", url, timeout=timeout, json_body=body, **kwargs)
        if result is None or not result.ok:
            return None
        return result.data

    def close(self) -> None:
        """Stop the worker threads and close the HTTP client if this fetcher created it."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        if self._owns_client:
            self.client.close()

    def __enter__(self) -> "BoundedFetcher":
        """Context manager entry."""
        return self

    def __exit__(self, exc_type: type, exc_val: Exception, exc_tb: object) -> None:
        """Context manager exit."""
        self.close()
