"""DexScreener client for DEX pair data."""

import logging
from typing import Any

from treasury_aggregator.config import ProviderConfig
from treasury_aggregator.transport.fetch import BoundedFetcher

logger = logging.getLogger(__name__)


class DexScreenerClient:
    """
    Fetches pairs traded against a set of token addresses.

    Parameters
    ----------
    fetcher : BoundedFetcher
        Bounded HTTP fetcher
    provider : ProviderConfig
        Base URL and timeout
    chain : str
        DexScreener chain id

    """

    def __init__(self, fetcher: BoundedFetcher, provider: ProviderConfig, chain: str = "base") -> None:
        self.fetcher = fetcher
        self.base_url = provider.base_url.rstrip("/")
        self.timeout = provider.timeout
        self.chain = chain

    def pairs(self, addresses: list[str], lane: str | None = "dexscreener") -> list[dict[str, Any]]:
        """
        Fetch pairs for up to 30 token addresses.

        The chain-scoped v1 endpoint is tried first; the legacy search
        endpoint is used when it yields nothing.

        Parameters
        ----------
        addresses : list[str]
            Token contract addresses
        lane : str | None
            Rate-limit lane

        Returns
        -------
        list[dict[str, Any]]
            Raw pair records (possibly from several chains)

        """
        if not addresses:
            return []
        joined = ",".join(addresses)

        data = self.fetcher.get_json(f"{self.base_url}/tokens/v1/{self.chain}/{joined}", timeout=self.timeout, lane=lane)
        pairs = _pairs_of(data)
        if pairs:
            return pairs

        logger.debug("DexScreener v1 returned no pairs, trying legacy endpoint")
        data = self.fetcher.get_json(f"{self.base_url}/latest/dex/tokens/{joined}", timeout=self.timeout)
        return _pairs_of(data)


def _pairs_of(data: Any) -> list[dict[str, Any]]:
    if isinstance(data, dict):
        data = data.get("pairs")
    if not isinstance(data, list):
        return []
    return [pair for pair in data if isinstance(pair, dict)]
