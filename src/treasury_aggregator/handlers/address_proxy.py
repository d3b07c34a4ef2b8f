"""Forwarding of whitelisted Spacescan address endpoints."""

from typing import TYPE_CHECKING

from treasury_aggregator.core.errors import UpstreamError
from treasury_aggregator.handlers.base import Request, Response, endpoint, json_response
from treasury_aggregator.integrations.spacescan import ADDRESS_ENDPOINTS

if TYPE_CHECKING:
    from treasury_aggregator.services import Services

TOKEN_BALANCE_TIMEOUT = 30.0
DEFAULT_TIMEOUT = 12.0


@endpoint()
def handle(request: Request, services: "Services") -> Response:
    """Proxy ``{endpoint, address}`` from the query (GET) or JSON body (POST)."""
    if request.method.upper() == "POST":
        body = request.json_body()
        name, address = body.get("endpoint"), body.get("address")
    else:
        name, address = request.param("endpoint"), request.param("address")

    if not name or not address:
        return json_response(400, {"error": "Missing endpoint or address"})
    if name not in ADDRESS_ENDPOINTS:
        return json_response(400, {"error": "Invalid endpoint"})

    timeout = TOKEN_BALANCE_TIMEOUT if name == "token-balance" else DEFAULT_TIMEOUT
    result = services.spacescan.address_endpoint(name, str(address), timeout)
    if result is None:
        msg = "Spacescan did not respond"
        raise UpstreamError(msg)
    if not result.ok:
        msg = f"Spacescan returned {result.status_code}"
        raise UpstreamError(msg)
    return json_response(200, result.data)
