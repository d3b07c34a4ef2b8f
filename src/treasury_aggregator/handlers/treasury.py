"""Wallet holdings per chain: Base, Chia tokens, Chia NFTs or both Chia wallets combined."""

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from treasury_aggregator.core.models import FullPortfolio, WireModel
from treasury_aggregator.core.outcome import Outcome
from treasury_aggregator.handlers.base import AGGREGATE_CACHE, Request, Response, endpoint, json_response

if TYPE_CHECKING:
    from treasury_aggregator.services import Services

logger = logging.getLogger(__name__)


def _collapse(fetch: Callable[[], Outcome[WireModel]]) -> Response:
    """Run an aggregation and answer 200 whatever happened."""
    try:
        outcome = fetch()
    except Exception as e:
        logger.exception("Holdings aggregation failed")
        outcome = Outcome.failed(FullPortfolio(), str(e))
    if not outcome.is_ok:
        logger.info("Aggregation %s: %s", outcome.status, outcome.error or "; ".join(outcome.warnings))
    return json_response(200, outcome.to_body())


@endpoint(AGGREGATE_CACHE)
def handle(request: Request, services: "Services") -> Response:
    """
    Route on ``chain`` and ``type``.

    - ``chain=chia&type=full&address1=A[&address2=B]``
    - ``chain=base&address=A``
    - ``chain=chia[&type=tokens|nfts]&address=A``
    """
    chain = request.param("chain")
    kind = request.param("type")

    if chain == "chia" and kind == "full":
        address1 = request.param("address1") or request.param("address")
        if not address1:
            return json_response(400, {"error": "Missing address1"})
        address2 = request.param("address2")
        return _collapse(lambda: services.chia.fetch_full(address1, address2))

    if not chain:
        return json_response(400, {"error": "Missing chain"})

    address = request.param("address")
    if chain == "base":
        if not address:
            return json_response(400, {"error": "Missing address"})
        return _collapse(lambda: services.base.fetch(address))

    if chain == "chia":
        if not address:
            return json_response(400, {"error": "Missing address"})
        kind = kind or "tokens"
        if kind == "tokens":
            return _collapse(lambda: services.chia.fetch_tokens(address))
        if kind == "nfts":
            return _collapse(lambda: services.chia.fetch_nfts(address))

    return json_response(400, {"error": "Invalid chain/type"})
