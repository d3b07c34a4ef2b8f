"""Top incentivised liquidity pools from Merkl."""

import logging
from typing import TYPE_CHECKING

from treasury_aggregator.handlers.base import AGGREGATE_CACHE, Request, Response, endpoint, json_response

if TYPE_CHECKING:
    from treasury_aggregator.services import Services

logger = logging.getLogger(__name__)


@endpoint(AGGREGATE_CACHE)
def handle_pools(request: Request, services: "Services") -> Response:
    """Bare list of the top pools; the static list when Merkl is unavailable."""
    try:
        pools = services.merkl.top_pools()
    except Exception as e:
        logger.warning("Merkl unavailable, serving fallback pools: %s", e)
        pools = services.merkl.fallback_pools()
    return json_response(200, [pool.to_json() for pool in pools])


@endpoint(AGGREGATE_CACHE)
def handle_proxy(request: Request, services: "Services") -> Response:
    """``{pools}`` with pair and chain name; an empty list when Merkl is unavailable."""
    try:
        pools = services.merkl.top_pools(with_chain=True)
    except Exception as e:
        logger.warning("Merkl unavailable: %s", e)
        pools = []
    return json_response(200, {"pools": [pool.to_json() for pool in pools]})
