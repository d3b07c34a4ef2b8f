"""Market prices for the configured CAT list, or a raw treasury wallet snapshot."""

import logging
from typing import TYPE_CHECKING

from treasury_aggregator.core.models import MarketPrices, TreasurySnapshot
from treasury_aggregator.core.outcome import Outcome
from treasury_aggregator.handlers.base import AGGREGATE_CACHE, Request, Response, endpoint, json_response

if TYPE_CHECKING:
    from treasury_aggregator.services import Services

logger = logging.getLogger(__name__)


@endpoint(AGGREGATE_CACHE)
def handle(request: Request, services: "Services") -> Response:
    """
    Default mode answers ``{prices, changes, mcaps, xch_usd, sources, success}``.

    ``?mode=treasury&wallets=A,B`` answers ``{ok, wallets, elapsed_ms}``.
    Both modes always answer 200.
    """
    wallets_param = request.param("wallets")
    if request.param("mode") == "treasury" and wallets_param:
        wallets = [w.strip() for w in wallets_param.split(",") if w.strip()]
        try:
            snapshot = services.chia.fetch_treasury_wallets(wallets)
        except Exception as e:
            logger.exception("Treasury snapshot failed")
            snapshot = Outcome.failed(TreasurySnapshot(ok=False), str(e))
        return json_response(200, snapshot.to_body())

    try:
        outcome = services.prices.resolve(services.settings.market_asset_ids)
    except Exception as e:
        logger.exception("Market price resolution failed")
        fallback = MarketPrices(xch_usd=services.settings.default_prices.get("chia", 0.0), success=False)
        outcome = Outcome.failed(fallback, str(e))
    return json_response(200, outcome.to_body())
