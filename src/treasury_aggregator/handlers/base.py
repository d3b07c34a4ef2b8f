"""Request/response envelope shared by all endpoint handlers."""

import functools
import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field

from treasury_aggregator.core.errors import BadRequestError, TreasuryError

if TYPE_CHECKING:
    from treasury_aggregator.services import Services

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
}

AGGREGATE_CACHE = "s-maxage=60, stale-while-revalidate=300"
PROXY_CACHE = "s-maxage=120, stale-while-revalidate=60"


class Request(BaseModel):
    """
    Incoming HTTP request, independent of the hosting framework.

    Attributes
    ----------
    method : str
        HTTP method
    path : str
        Request path
    query : dict[str, str]
        Query string parameters
    body : Any
        Raw body (text or bytes) or an already-parsed JSON value
    headers : dict[str, str]
        Request headers

    """

    method: str = "GET"
    path: str = "/"
    query: dict[str, str] = Field(default_factory=dict)
    body: Any = None
    headers: dict[str, str] = Field(default_factory=dict)

    def param(self, name: str) -> str | None:
        """Query parameter with surrounding whitespace removed, None when absent or blank."""
        value = self.query.get(name)
        if value is None:
            return None
        value = str(value).strip()
        return value or None

    def json_body(self) -> dict[str, Any]:
        """
        Body as a JSON object.

        Returns
        -------
        dict[str, Any]
            Parsed object, empty when there is no body

        Raises
        ------
        BadRequestError
            If the body is not a JSON object

        """
        body = self.body
        if body is None or body in ("", b""):
            return {}
        if isinstance(body, bytes | str):
            try:
                body = json.loads(body)
            except ValueError as e:
                msg = "Invalid JSON body"
                raise BadRequestError(msg) from e
        if not isinstance(body, dict):
            msg = "JSON body must be an object"
            raise BadRequestError(msg)
        return body


class Response(BaseModel):
    """Outgoing HTTP response with a JSON-serialisable body (None for an empty body)."""

    status_code: int = 200
    headers: dict[str, str] = Field(default_factory=dict)
    body: Any = None

    def text(self) -> str:
        return "" if self.body is None else json.dumps(self.body)


Handler = Callable[[Request, "Services"], Response]


def json_response(status_code: int, body: Any, cache_control: str | None = None) -> Response:
    """
    Build a JSON response carrying the CORS headers.

    Parameters
    ----------
    status_code : int
        HTTP status
    body : Any
        JSON-serialisable body
    cache_control : str | None
        Edge cache directive

    Returns
    -------
    Response
        Response envelope

    """
    headers = {**CORS_HEADERS, "Content-Type": "application/json"}
    if cache_control:
        headers["Cache-Control"] = cache_control
    return Response(status_code=status_code, headers=headers, body=body)


def endpoint(cache_control: str | None = None) -> Callable[[Handler], Handler]:
    """
    Decorate a handler with the behaviour every endpoint shares.

    ``OPTIONS`` short-circuits with 200 and an empty body. Errors that escape
    the handler become JSON errors: a ``TreasuryError`` keeps its status code,
    anything else becomes 500. The cache directive is attached to every
    response that does not set its own.

    Parameters
    ----------
    cache_control : str | None
        Edge cache directive

    Returns
    -------
    Callable[[Handler], Handler]
        Decorator

    """

    def decorator(func: Handler) -> Handler:
        @functools.wraps(func)
        def wrapper(request: Request, services: "Services") -> Response:
            if request.method.upper() == "OPTIONS":
                return Response(status_code=200, headers=dict(CORS_HEADERS))

            try:
                response = func(request, services)
            except TreasuryError as e:
                logger.warning("%s %s: %s", request.method, request.path, e)
                response = json_response(e.status_code, {"error": str(e)})
            except Exception as e:
                logger.exception("%s %s failed", request.method, request.path)
                response = json_response(500, {"error": str(e) or type(e).__name__})

            if cache_control and "Cache-Control" not in response.headers:
                response.headers["Cache-Control"] = cache_control
            return response

        return wrapper

    return decorator
