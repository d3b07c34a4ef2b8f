"""Merkl client for incentivised liquidity pool opportunities."""

import logging
import re
from typing import Any

from treasury_aggregator.config import MerklConfig, ProviderConfig
from treasury_aggregator.core.errors import UpstreamError
from treasury_aggregator.core.models import MerklPool, parse_float
from treasury_aggregator.transport.fetch import BoundedFetcher

logger = logging.getLogger(__name__)

_PROVIDE_PREFIX = re.compile(r"^Provide liquidity to\s+", re.IGNORECASE)
_TRAILING_PERCENT = re.compile(r"\s*\d+(\.\d+)?%\s*$")
_VENUE = re.compile(r"NINEMM\s*", re.IGNORECASE)
_PAIR_SEPARATOR = re.compile(r"[-/]")

TOP_POOLS = 3


def clean_pool_name(raw: str) -> str:
    """
    Turn a Merkl opportunity title into an ``A / B`` pair name.

    Parameters
    ----------
    raw : str
        Title such as ``"Provide liquidity to NINEMM WETH-SPROUT 1%"``

    Returns
    -------
    str
        Display name such as ``"WETH / SPROUT"``

    """
    name = _PROVIDE_PREFIX.sub("", raw)
    name = _TRAILING_PERCENT.sub("", name)
    name = _VENUE.sub("", name, count=1).strip()
    parts = [part.strip() for part in _PAIR_SEPARATOR.split(name) if part.strip()]
    return f"{parts[0]} / {parts[1]}" if len(parts) >= 2 else name


class MerklClient:
    """
    Fetches and ranks Merkl opportunities.

    Parameters
    ----------
    fetcher : BoundedFetcher
        Bounded HTTP fetcher
    provider : ProviderConfig
        Base URL and timeout
    config : MerklConfig
        Search term, app link and fallback list

    """

    def __init__(self, fetcher: BoundedFetcher, provider: ProviderConfig, config: MerklConfig) -> None:
        self.fetcher = fetcher
        self.base_url = provider.base_url.rstrip("/")
        self.timeout = provider.timeout
        self.config = config

    def opportunities(self) -> list[dict[str, Any]]:
        """
        Fetch raw opportunities matching the configured search.

        Raises
        ------
        UpstreamError
            If Merkl did not answer with a success status

        """
        result = self.fetcher.request(
            "GET",
            f"{self.base_url}/opportunities",
            params={"search": self.config.search, "test": "true"},
            timeout=self.timeout,
        )
        if result is None or not result.ok:
            status = result.status_code if result is not None else "timeout"
            msg = f"Merkl API {status}"
            raise UpstreamError(msg)

        data = result.data
        if isinstance(data, dict):
            data = data.get("items") or data.get("opportunities") or []
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict)]

    def top_pools(self, *, with_chain: bool = False, limit: int = TOP_POOLS) -> list[MerklPool]:
        """
        Highest-APR opportunities with a positive APR and TVL.

        Parameters
        ----------
        with_chain : bool
            Include ``pair`` and ``chainName`` in each record
        limit : int
            Number of pools to keep

        Returns
        -------
        list[MerklPool]
            Pools sorted by APR, highest first

        """
        pools = []
        for item in self.opportunities():
            apr = parse_float(item.get("apr"))
            tvl = parse_float(item.get("tvl"))
            if apr <= 0 or tvl <= 0:
                continue
            name = clean_pool_name(str(item.get("name") or item.get("identifier") or "Pool"))
            pools.append(
                MerklPool(
                    name=name,
                    symbol=name,
                    apr=apr,
                    tvl=tvl,
                    url=self.config.app_url,
                    pair=name if with_chain else None,
                    chain_name=self.config.chain_name if with_chain else None,
                )
            )
        pools.sort(key=lambda p: p.apr, reverse=True)
        logger.info("Merkl returned %d qualifying pools", len(pools))
        return pools[:limit]

    def fallback_pools(self) -> list[MerklPool]:
        """Static pool list served when Merkl is unavailable."""
        return [
            MerklPool(name=pool.name, symbol=pool.name, apr=pool.apr, tvl=pool.tvl, url=self.config.app_url)
            for pool in self.config.fallback_pools
        ]
