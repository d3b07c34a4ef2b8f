"""Flask adapter serving the endpoint handlers locally under ``/api/<name>``."""

import logging
import time

import httpx
from flask import Flask
from flask import Response as FlaskResponse
from flask import request

from treasury_aggregator.config import Settings, load_settings
from treasury_aggregator.handlers.base import Request
from treasury_aggregator.handlers.router import dispatch
from treasury_aggregator.logging_setup import configure_logging
from treasury_aggregator.services import Services

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, client: httpx.Client | None = None) -> Flask:
    """
    Build the Flask application.

    Each request gets its own service container, so rate-limit buckets and
    the RPC rotation never leak between requests. Only the HTTP connection
    pool is shared.

    Parameters
    ----------
    settings : Settings | None
        Settings; loaded from the catalogue and environment if None
    client : httpx.Client | None
        HTTP client shared by all requests

    Returns
    -------
    Flask
        Configured application

    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    shared = client or httpx.Client(follow_redirects=True)

    app = Flask(__name__)

    @app.route("/api/<name>", methods=["GET", "POST", "OPTIONS"])
    def api(name: str) -> FlaskResponse:
        deadline = time.monotonic() + settings.platform.usable_budget
        incoming = Request(
            method=request.method,
            path=f"/api/{name}",
            query=request.args.to_dict(),
            body=request.get_data(as_text=True) or None,
            headers=dict(request.headers),
        )
        with Services.create(settings=settings, client=shared, deadline=deadline) as services:
            response = dispatch(incoming, services)
        logger.debug("%s %s -> %d", incoming.method, incoming.path, response.status_code)
        return FlaskResponse(response.text(), status=response.status_code, headers=response.headers)

    return app
