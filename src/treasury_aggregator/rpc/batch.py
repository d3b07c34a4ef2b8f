"""Batched resolution of read-only contract calls."""

import logging
from dataclasses import dataclass

from treasury_aggregator.rpc.provider import JsonRpcClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchCall:
    """
    One ``eth_call`` in a batch.

    Attributes
    ----------
    id : int
        Caller-assigned identifier used to reassemble results
    to : str
        Contract address
    data : str
        ABI-encoded call data

    """

    id: int
    to: str
    data: str


class BatchCallResolver:
    """
    Collects contract calls and resolves them in one JSON-RPC batch.

    Results come back keyed by the caller's identifier. A failed batch
    resolves every call to None; a lone call is sent on its own so it gets
    endpoint failover.

    Parameters
    ----------
    client : JsonRpcClient
        JSON-RPC client

    """

    def __init__(self, client: JsonRpcClient) -> None:
        self.client = client
        self._calls: list[BatchCall] = []

    def add_call(self, call_id: int, to: str, data: str) -> None:
        """
        Add a contract call to the batch.

        Parameters
        ----------
        call_id : int
            Identifier the result will be keyed by
        to : str
            Target contract address
        data : str
            Call data (selector plus encoded arguments)

        """
        self._calls.append(BatchCall(call_id, to, data))

    def execute(self) -> dict[int, str | None]:
        """
        Execute all pending calls.

        Returns
        -------
        dict[int, str | None]
            Raw hex result per call identifier (None if the call failed)

        """
        calls, self._calls = self._calls, []
        if not calls:
            return {}

        if len(calls) == 1:
            call = calls[0]
            return {call.id: self.client.eth_call(call.to, call.data)}

        results: dict[int, str | None] = {call.id: None for call in calls}
        payload = [self.client.eth_call_payload(call.id, call.to, call.data) for call in calls]
        responses = self.client.batch(payload)
        if responses is None:
            return results

        for response in responses:
            call_id = response.get("id")
            if call_id not in results or response.get("error"):
                continue
            result = response.get("result")
            results[call_id] = result if isinstance(result, str) else None

        logger.debug("Resolved %d/%d batched calls", sum(r is not None for r in results.values()), len(calls))
        return results

    def clear(self) -> None:
        """Clear all pending calls without executing."""
        self._calls = []

    @property
    def call_count(self) -> int:
        return len(self._calls)
