"""Blockscout client for Base native and ERC-20 balances."""

import logging
from typing import Any

from treasury_aggregator.config import ProviderConfig
from treasury_aggregator.core.models import parse_float
from treasury_aggregator.transport.fetch import BoundedFetcher

logger = logging.getLogger(__name__)

WEI_PER_ETH = 10**18


class BlockscoutClient:
    """
    Client for the Blockscout v2 REST API.

    Parameters
    ----------
    fetcher : BoundedFetcher
        Bounded HTTP fetcher
    provider : ProviderConfig
        Base URL and token-list timeout

    """

    ADDRESS_TIMEOUT = 8.0

    def __init__(self, fetcher: BoundedFetcher, provider: ProviderConfig) -> None:
        self.fetcher = fetcher
        self.base_url = provider.base_url.rstrip("/")
        self.timeout = provider.timeout

    def coin_balance(self, address: str) -> float | None:
        """
        Fetch the native ETH balance.

        Parameters
        ----------
        address : str
            EVM address

        Returns
        -------
        float | None
            Balance in ETH, None when the request failed

        """
        data = self.fetcher.get_json(f"{self.base_url}/addresses/{address}", timeout=self.ADDRESS_TIMEOUT)
        if not isinstance(data, dict):
            return None
        return parse_float(data.get("coin_balance")) / WEI_PER_ETH

    def token_balances(self, address: str) -> list[dict[str, Any]] | None:
        """
        Fetch the ERC-20 balances of an address.

        Returns
        -------
        list[dict[str, Any]] | None
            Raw items with ``token`` and raw ``value``, None on failure

        """
        data = self.fetcher.get_json(f"{self.base_url}/addresses/{address}/token-balances", timeout=self.timeout)
        if isinstance(data, dict):
            data = data.get("items") or []
        if not isinstance(data, list):
            return None
        return [item for item in data if isinstance(item, dict)]
