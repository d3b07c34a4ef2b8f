"""Pricing services: fallback chains, DEX prices and default rates."""

from treasury_aggregator.pricing.defaults import default_price, usd_rate
from treasury_aggregator.pricing.dex import DexPriceResolver
from treasury_aggregator.pricing.fallback import FallbackPriceResolver

__all__ = [
    "DexPriceResolver",
    "FallbackPriceResolver",
    "default_price",
    "usd_rate",
]
