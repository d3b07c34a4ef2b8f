"""EVM token prices from DEX pair liquidity."""

import logging
from collections.abc import Iterable

from treasury_aggregator.core.models import DexPrice, parse_float
from treasury_aggregator.integrations.dexscreener import DexScreenerClient

logger = logging.getLogger(__name__)

BATCH_SIZE = 20


class DexPriceResolver:
    """
    Prices tokens from the most liquid DEX pair they are the base token of.

    Parameters
    ----------
    client : DexScreenerClient
        Pair data provider
    batch_size : int
        Addresses per request

    """

    def __init__(self, client: DexScreenerClient, batch_size: int = BATCH_SIZE) -> None:
        self.client = client
        self.batch_size = batch_size

    def prices(self, addresses: Iterable[str | None]) -> dict[str, DexPrice]:
        """
        Fetch USD prices for token addresses.

        Parameters
        ----------
        addresses : Iterable[str | None]
            Token addresses; empty entries and duplicates are ignored

        Returns
        -------
        dict[str, DexPrice]
            Lowercase address to the price of its highest-liquidity pair

        """
        unique = list(dict.fromkeys(a.lower() for a in addresses if a))
        found: dict[str, DexPrice] = {}

        for start in range(0, len(unique), self.batch_size):
            batch = unique[start : start + self.batch_size]
            for pair in self.client.pairs(batch):
                chain_id = pair.get("chainId")
                if chain_id and chain_id != self.client.chain:
                    continue
                base = pair.get("baseToken") if isinstance(pair.get("baseToken"), dict) else {}
                address = str(base.get("address") or "").lower()
                price = parse_float(pair.get("priceUsd"))
                liquidity_info = pair.get("liquidity") if isinstance(pair.get("liquidity"), dict) else {}
                liquidity = parse_float(liquidity_info.get("usd"))
                if not address or price <= 0:
                    continue
                current = found.get(address)
                if current is None or liquidity > current.liquidity:
                    found[address] = DexPrice(price=price, liquidity=liquidity, symbol=str(base.get("symbol") or ""))

        logger.debug("DEX prices for %d/%d tokens", len(found), len(unique))
        return found
