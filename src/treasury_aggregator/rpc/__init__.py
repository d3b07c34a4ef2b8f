"""JSON-RPC layer with endpoint rotation and batched contract calls."""

from treasury_aggregator.rpc.batch import BatchCall, BatchCallResolver
from treasury_aggregator.rpc.provider import JsonRpcClient, RotationPolicy

__all__ = [
    "BatchCall",
    "BatchCallResolver",
    "JsonRpcClient",
    "RotationPolicy",
]
