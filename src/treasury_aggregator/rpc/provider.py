"""JSON-RPC client with endpoint rotation."""

import logging
import threading
import time
from collections.abc import Callable, Sequence
from typing import Any

from treasury_aggregator.config import RpcConfig
from treasury_aggregator.transport.fetch import BoundedFetcher

logger = logging.getLogger(__name__)


class RotationPolicy:
    """
    Round-robin selection among RPC endpoints, scoped to one client.

    Parameters
    ----------
    endpoints : Sequence[str]
        RPC URLs in preference order
    max_attempts : int
        Attempts of a single call across endpoints
    rotation_delay : float
        Pause in seconds before retrying on the next endpoint
    start : int
        Index of the first endpoint to use

    """

    def __init__(
        self,
        endpoints: Sequence[str],
        max_attempts: int = 3,
        rotation_delay: float = 0.15,
        start: int = 0,
    ) -> None:
        if not endpoints:
            msg = "At least one RPC endpoint is required"
            raise ValueError(msg)
        self.endpoints = list(endpoints)
        self.max_attempts = max(1, max_attempts)
        self.rotation_delay = rotation_delay
        self._index = start % len(self.endpoints)
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config: RpcConfig) -> "RotationPolicy":
        return cls(config.endpoints, config.max_attempts, config.rotation_delay)

    def current(self) -> str:
        with self._lock:
            return self.endpoints[self._index]

    def advance(self) -> str:
        """Move to the next endpoint and return it."""
        with self._lock:
            self._index = (self._index + 1) % len(self.endpoints)
            return self.endpoints[self._index]


class JsonRpcClient:
    """
    Minimal EVM JSON-RPC client over a bounded fetcher.

    Single calls fail over to the next endpoint of the rotation policy;
    batches go to the current endpoint only and advance the policy on failure.

    Parameters
    ----------
    fetcher : BoundedFetcher
        Bounded HTTP fetcher
    policy : RotationPolicy
        Endpoint rotation owned by this client
    call_timeout : float
        Timeout of a single call in seconds
    batch_timeout : float
        Timeout of a batch request in seconds
    lane : str | None
        Rate-limit lane acquired before each batch
    sleep : Callable[[float], None]
        Sleep function used between rotations

    """

    def __init__(
        self,
        fetcher: BoundedFetcher,
        policy: RotationPolicy,
        call_timeout: float = 6.0,
        batch_timeout: float = 10.0,
        lane: str | None = "base-rpc",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.fetcher = fetcher
        self.policy = policy
        self.call_timeout = call_timeout
        self.batch_timeout = batch_timeout
        self.lane = lane
        self._sleep = sleep
        self._next_id = 1

    def _payload(self, method: str, params: list[Any], request_id: int | None = None) -> dict[str, Any]:
        if request_id is None:
            request_id = self._next_id
            self._next_id += 1
        return {"jsonrpc": "2.0", "id": request_id, "method": method, "params": params}

    def call(self, method: str, params: list[Any]) -> Any | None:
        """
        Make a single RPC call, rotating endpoints on failure.

        Parameters
        ----------
        method : str
            RPC method name (e.g., 'eth_call')
        params : list[Any]
            Method parameters

        Returns
        -------
        Any | None
            ``result`` member of the response, None once every attempt failed

        """
        payload = self._payload(method, params)

        for attempt in range(self.policy.max_attempts):
            endpoint = self.policy.current()
            data = self.fetcher.post_json(endpoint, payload, timeout=self.call_timeout)
            if isinstance(data, dict) and "result" in data and not data.get("error"):
                return data["result"]

            reason = data.get("error") if isinstance(data, dict) else "no response"
            logger.debug(
                "RPC %s failed on %s (attempt %d/%d): %s",
                method,
                endpoint,
                attempt + 1,
                self.policy.max_attempts,
                reason,
            )
            self.policy.advance()
            if attempt < self.policy.max_attempts - 1:
                self._sleep(self.policy.rotation_delay)

        logger.warning("RPC %s failed after %d attempts", method, self.policy.max_attempts)
        return None

    def eth_call(self, to: str, data: str) -> str | None:
        """Read-only contract call at the latest block."""
        result = self.call("eth_call", [{"to": to, "data": data}, "latest"])
        return result if isinstance(result, str) else None

    def eth_call_payload(self, request_id: int, to: str, data: str) -> dict[str, Any]:
        """Request object for an ``eth_call`` inside a batch."""
        return self._payload("eth_call", [{"to": to, "data": data}, "latest"], request_id)

    def batch(self, payload: list[dict[str, Any]]) -> list[dict[str, Any]] | None:
        """
        Send a JSON-RPC batch to the current endpoint.

        Parameters
        ----------
        payload : list[dict[str, Any]]
            Request objects with caller-assigned ids

        Returns
        -------
        list[dict[str, Any]] | None
            Response objects, None when the endpoint did not answer with a batch

        """
        endpoint = self.policy.current()
        data = self.fetcher.post_json(endpoint, payload, timeout=self.batch_timeout, lane=self.lane)
        if isinstance(data, list):
            return [item for item in data if isinstance(item, dict)]

        logger.warning("RPC batch of %d calls failed on %s", len(payload), endpoint)
        self.policy.advance()
        return None
