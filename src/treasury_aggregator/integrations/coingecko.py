"""CoinGecko client for native coin USD rates."""

import logging

from treasury_aggregator.config import ProviderConfig
from treasury_aggregator.core.models import parse_float
from treasury_aggregator.transport.fetch import BoundedFetcher

logger = logging.getLogger(__name__)


class CoinGeckoClient:
    """
    Fetches simple USD prices from CoinGecko.

    Parameters
    ----------
    fetcher : BoundedFetcher
        Bounded HTTP fetcher
    provider : ProviderConfig
        Base URL and timeout

    """

    def __init__(self, fetcher: BoundedFetcher, provider: ProviderConfig) -> None:
        self.fetcher = fetcher
        self.base_url = provider.base_url.rstrip("/")
        self.timeout = provider.timeout

    def get_usd_price(self, coin_id: str) -> float | None:
        """
        Fetch the USD price of a coin.

        Parameters
        ----------
        coin_id : str
            CoinGecko coin id (e.g., 'chia', 'ethereum')

        Returns
        -------
        float | None
            Positive USD price, None when unavailable

        """
        data = self.fetcher.get_json(
            f"{self.base_url}/simple/price",
            params={"ids": coin_id, "vs_currencies": "usd"},
            timeout=self.timeout,
        )
        entry = data.get(coin_id) if isinstance(data, dict) else None
        price = parse_float(entry.get("usd")) if isinstance(entry, dict) else 0.0
        if price <= 0:
            logger.info("No CoinGecko price for %s", coin_id)
            return None
        return price
