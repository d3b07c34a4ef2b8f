"""Pass-through of arbitrary Spacescan paths."""

from typing import TYPE_CHECKING

from treasury_aggregator.core.errors import UpstreamError
from treasury_aggregator.handlers.base import PROXY_CACHE, Request, Response, endpoint, json_response

if TYPE_CHECKING:
    from treasury_aggregator.services import Services


@endpoint()
def handle(request: Request, services: "Services") -> Response:
    """
    Forward ``?path=`` to the Spacescan API root.

    A failing upstream status is passed through; only successful responses
    carry an edge cache directive.
    """
    path = request.param("path")
    if not path:
        return json_response(400, {"error": "Missing path parameter"})

    result = services.spacescan.raw(path)
    if result is None:
        msg = "Spacescan did not respond"
        raise UpstreamError(msg)
    if not result.ok:
        msg = f"Spacescan returned {result.status_code}"
        raise UpstreamError(msg, status_code=result.status_code)
    return json_response(200, result.data, cache_control=PROXY_CACHE)
