"""Per-asset USD price resolution across an ordered list of providers."""

import logging
from collections import Counter
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor

from treasury_aggregator.core.models import MarketPrices, PriceQuote, PriceSource
from treasury_aggregator.core.outcome import Outcome
from treasury_aggregator.integrations.coingecko import CoinGeckoClient
from treasury_aggregator.integrations.dexie import DexieClient
from treasury_aggregator.integrations.spacescan import SpacescanClient
from treasury_aggregator.pricing.defaults import default_price, usd_rate
from treasury_aggregator.transport.parallel import collect, run_parallel

logger = logging.getLogger(__name__)


class FallbackPriceResolver:
    """
    Resolves CAT prices from Spacescan, then Dexie tickers, then Dexie offers.

    The first positive price wins; a lower-priority provider is never asked
    for an asset that a higher one already priced. The XCH/USD rate and the
    ticker list are fetched in the background while the per-asset Spacescan
    lookups run, so the fallback data never delays the happy path.

    Parameters
    ----------
    spacescan : SpacescanClient
        Per-asset metadata provider (tier 1)
    dexie : DexieClient
        Ticker list (tier 2) and order book (tier 3)
    coingecko : CoinGeckoClient
        XCH/USD rate
    default_prices : Mapping[str, float]
        Fallback rates when CoinGecko is unavailable
    max_workers : int
        Threads for the order-book lookups

    """

    def __init__(
        self,
        spacescan: SpacescanClient,
        dexie: DexieClient,
        coingecko: CoinGeckoClient,
        default_prices: Mapping[str, float],
        max_workers: int = 6,
    ) -> None:
        self.spacescan = spacescan
        self.dexie = dexie
        self.coingecko = coingecko
        self.default_prices = default_prices
        self.max_workers = max_workers

    def resolve(self, asset_ids: Sequence[str]) -> Outcome[MarketPrices]:
        """
        Price every asset.

        Parameters
        ----------
        asset_ids : Sequence[str]
            CAT asset identifiers

        Returns
        -------
        Outcome[MarketPrices]
            Partial when the XCH rate fell back to its default or an asset stayed unpriced

        """
        fallback_rate = (default_price(self.default_prices, "chia"), PriceSource.DEFAULT)

        with ThreadPoolExecutor(max_workers=2) as executor:
            rate_future = executor.submit(usd_rate, self.coingecko, self.default_prices, "chia")
            tickers_future = executor.submit(self.dexie.tickers)

            first_tier = {asset_id: self.spacescan.cat_info(asset_id) for asset_id in asset_ids}

            xch_usd, rate_source = collect(rate_future, fallback_rate)
            tickers = collect(tickers_future, {})

        quotes: dict[str, PriceQuote] = {}
        needed: list[str] = []
        for asset_id in asset_ids:
            quote = first_tier.get(asset_id)
            if quote is not None:
                quotes[asset_id] = quote
                continue
            last_price = tickers.get(asset_id.lower(), 0.0)
            if last_price > 0:
                quotes[asset_id] = PriceQuote(price=last_price * xch_usd, source=PriceSource.DEXIE)
            else:
                needed.append(asset_id)

        if needed:
            asks = run_parallel(
                [lambda asset_id=asset_id: self.dexie.best_ask(asset_id, xch_usd) for asset_id in needed],
                default=None,
                max_workers=self.max_workers,
            )
            for asset_id, quote in zip(needed, asks, strict=True):
                quotes[asset_id] = quote or PriceQuote()

        warnings = [f"{asset_id}: no price from any source" for asset_id in asset_ids if quotes[asset_id].price <= 0]
        if rate_source is PriceSource.DEFAULT:
            warnings.insert(0, "xch_usd: default rate used")

        by_source = Counter(str(quote.source) for quote in quotes.values())
        logger.info("Priced %d assets (sources: %s), XCH=$%.2f", len(asset_ids), dict(by_source), xch_usd)
        return Outcome.from_warnings(MarketPrices.from_quotes(quotes, xch_usd), warnings)
