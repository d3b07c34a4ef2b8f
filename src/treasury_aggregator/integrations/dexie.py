"""Dexie exchange client: aggregated tickers and order-book offers."""

import logging

from treasury_aggregator.config import ProviderConfig
from treasury_aggregator.core.models import PriceQuote, PriceSource, parse_float
from treasury_aggregator.transport.fetch import BoundedFetcher

logger = logging.getLogger(__name__)


class DexieClient:
    """
    Client for the Dexie API.

    Prices on Dexie are quoted in XCH; callers convert with the XCH/USD rate.

    Parameters
    ----------
    fetcher : BoundedFetcher
        Bounded HTTP fetcher
    provider : ProviderConfig
        Base URL and default timeout

    """

    TICKERS_TIMEOUT = 8.0

    def __init__(self, fetcher: BoundedFetcher, provider: ProviderConfig) -> None:
        self.fetcher = fetcher
        self.base_url = provider.base_url.rstrip("/")
        self.timeout = provider.timeout

    def tickers(self) -> dict[str, float]:
        """
        Fetch last traded prices of all tickers.

        Returns
        -------
        dict[str, float]
            Lowercase base asset id to last price in XCH (positive prices only)

        """
        data = self.fetcher.get_json(f"{self.base_url}/v2/prices/tickers", timeout=self.TICKERS_TIMEOUT)
        tickers = data.get("tickers") if isinstance(data, dict) else None
        if not isinstance(tickers, list):
            logger.info("Dexie tickers unavailable")
            return {}

        prices: dict[str, float] = {}
        for tick in tickers:
            if not isinstance(tick, dict):
                continue
            base_id = str(tick.get("base_id") or "").lower()
            last = parse_float(tick.get("last_price"))
            if base_id and last > 0:
                prices[base_id] = last
        return prices

    def best_ask(self, asset_id: str, xch_usd: float) -> PriceQuote | None:
        """
        Quote a CAT from the cheapest open offer selling it for XCH.

        Parameters
        ----------
        asset_id : str
            CAT asset identifier
        xch_usd : float
            XCH/USD rate

        Returns
        -------
        PriceQuote | None
            Lowest ask converted to USD, None when there is no priced offer

        """
        data = self.fetcher.get_json(
            f"{self.base_url}/v1/offers",
            params={
                "offered": asset_id,
                "requested": "xch",
                "page": 1,
                "page_size": 5,
                "sort": "price",
                "order": "asc",
            },
            timeout=self.timeout,
        )
        offers = data.get("offers") if isinstance(data, dict) else None
        if not isinstance(offers, list):
            return None

        asks = [parse_float(o.get("price")) for o in offers if isinstance(o, dict)]
        asks = [a for a in asks if a > 0]
        if not asks:
            return None
        return PriceQuote(price=min(asks) * xch_usd, source=PriceSource.DEXIE)
