"""Path-based dispatch of requests to endpoint handlers."""

import logging
from typing import TYPE_CHECKING

from treasury_aggregator.handlers import (
    address_proxy,
    collections,
    market_prices,
    path_proxy,
    pools,
    save,
    treasury,
)
from treasury_aggregator.handlers.base import Handler, Request, Response, json_response

if TYPE_CHECKING:
    from treasury_aggregator.services import Services

logger = logging.getLogger(__name__)

ROUTES: dict[str, Handler] = {
    "/api/save": save.handle,
    "/api/chia-address-proxy": address_proxy.handle,
    "/api/chia-cat-prices": market_prices.handle,
    "/api/chia-collections": collections.handle,
    "/api/treasury-comprehensive": treasury.handle,
    "/api/spacescan-proxy": path_proxy.handle,
    "/api/merkl-pools": pools.handle_pools,
    "/api/merkl-proxy": pools.handle_proxy,
}


def resolve(path: str) -> Handler | None:
    """Handler registered for a path, ignoring a trailing slash."""
    return ROUTES.get(path.rstrip("/") or "/")


def dispatch(request: Request, services: "Services") -> Response:
    """
    Route a request to its handler.

    Parameters
    ----------
    request : Request
        Incoming request
    services : Services
        Service container of this invocation

    Returns
    -------
    Response
        Handler response, or 404 for an unknown path

    """
    handler = resolve(request.path)
    if handler is None:
        logger.info("No route for %s", request.path)
        return json_response(404, {"error": "Not found"})
    return handler(request, services)
