"""Spacescan client for Chia balances, NFTs and CAT metadata."""

import logging
from typing import Any

from treasury_aggregator.config import ProviderConfig
from treasury_aggregator.core.models import PriceQuote, PriceSource, parse_float
from treasury_aggregator.transport.fetch import BoundedFetcher, FetchResult
from treasury_aggregator.transport.retry import RetryManager

logger = logging.getLogger(__name__)

ADDRESS_ENDPOINTS = ("balance", "nft-balance", "token-balance")


class SpacescanClient:
    """
    Client for the Spacescan REST API.

    Wallet list endpoints return ``None`` when the data could not be fetched
    and an empty list when the wallet simply holds nothing.

    Parameters
    ----------
    fetcher : BoundedFetcher
        Bounded HTTP fetcher
    provider : ProviderConfig
        Base URL and default timeout

    """

    CAT_INFO_TIMEOUT = 5.0
    TOKEN_BALANCE_TIMEOUT = 25.0
    NFT_BALANCE_TIMEOUT = 20.0
    PROXY_TIMEOUT = 15.0

    def __init__(self, fetcher: BoundedFetcher, provider: ProviderConfig) -> None:
        self.fetcher = fetcher
        self.base_url = provider.base_url.rstrip("/")
        self.timeout = provider.timeout

    def address_url(self, endpoint: str, address: str) -> str:
        return f"{self.base_url}/address/{endpoint}/{address}"

    def xch_balance(self, address: str) -> float | None:
        """
        Fetch the XCH balance of a wallet.

        Parameters
        ----------
        address : str
            Chia address

        Returns
        -------
        float | None
            Balance in XCH, None when the request failed

        """
        data = self.fetcher.get_json(self.address_url("xch-balance", address), timeout=self.timeout)
        if not isinstance(data, dict):
            return None
        return parse_float(data.get("xch"))

    def token_balance(
        self,
        address: str,
        retry: RetryManager | None = None,
        timeout: float | None = None,
        lane: str | None = None,
    ) -> list[dict[str, Any]] | None:
        """
        Fetch the CAT balances of a wallet.

        Parameters
        ----------
        address : str
            Chia address
        retry : RetryManager | None
            Retry schedule; a single attempt is made if None
        timeout : float | None
            Timeout of the single attempt
        lane : str | None
            Rate-limit lane

        Returns
        -------
        list[dict[str, Any]] | None
            Raw CAT records, None when every attempt failed

        """
        url = self.address_url("token-balance", address)
        data = self._wallet_list(url, retry, timeout or self.TOKEN_BALANCE_TIMEOUT, lane, "token-balance")
        if not isinstance(data, dict):
            return None
        cats = data.get("data")
        return [c for c in cats if isinstance(c, dict)] if isinstance(cats, list) else []

    def nft_balance(
        self,
        address: str,
        retry: RetryManager | None = None,
        timeout: float | None = None,
        lane: str | None = None,
    ) -> list[dict[str, Any]] | None:
        """
        Fetch the NFTs held by a wallet.

        Returns
        -------
        list[dict[str, Any]] | None
            Raw NFT records, None when every attempt failed

        """
        url = self.address_url("nft-balance", address)
        data = self._wallet_list(url, retry, timeout or self.NFT_BALANCE_TIMEOUT, lane, "nft-balance")
        if not isinstance(data, dict):
            return None
        nfts = data.get("balance")
        return [n for n in nfts if isinstance(n, dict)] if isinstance(nfts, list) else []

    def _wallet_list(
        self,
        url: str,
        retry: RetryManager | None,
        timeout: float,
        lane: str | None,
        label: str,
    ) -> Any | None:
        if retry is not None:
            outcome = retry.get(url, lane=lane, label=label)
            return outcome.result.data if outcome.succeeded else None

        result = self.fetcher.request("GET", url, timeout=timeout, lane=lane)
        if result is None:
            return None
        if not result.ok:
            logger.warning("%s HTTP %s", label, result.status_code)
            return None
        return result.data

    def cat_info(self, asset_id: str, lane: str | None = "spacescan") -> PriceQuote | None:
        """
        Fetch a direct USD quote for a CAT.

        Parameters
        ----------
        asset_id : str
            CAT asset identifier
        lane : str | None
            Rate-limit lane shared by per-asset lookups

        Returns
        -------
        PriceQuote | None
            Quote with change and market cap, None unless the price is positive

        """
        data = self.fetcher.get_json(f"{self.base_url}/cat/info/{asset_id}", timeout=self.CAT_INFO_TIMEOUT, lane=lane)
        info = data.get("data") if isinstance(data, dict) else None
        if not isinstance(info, dict):
            return None

        price = parse_float(info.get("amount_price"))
        if price <= 0:
            return None
        return PriceQuote(
            price=price,
            change=parse_float(info.get("pricepercentage")),
            market_cap=parse_float(info.get("circulating_supply")) * price,
            source=PriceSource.SPACESCAN,
        )

    def address_endpoint(self, endpoint: str, address: str, timeout: float) -> FetchResult | None:
        """Forward one of the whitelisted address endpoints."""
        return self.fetcher.request("GET", self.address_url(endpoint, address), timeout=timeout)

    def raw(self, path: str, timeout: float | None = None) -> FetchResult | None:
        """GET an arbitrary path below the API root."""
        return self.fetcher.request("GET", f"{self.base_url}/{path.lstrip('/')}", timeout=timeout or self.PROXY_TIMEOUT)
