"""Per-chain wallet holding services."""

from treasury_aggregator.chains.base import BasePortfolioService
from treasury_aggregator.chains.chia import ChiaPortfolioService, CollectionEnricher

__all__ = [
    "BasePortfolioService",
    "ChiaPortfolioService",
    "CollectionEnricher",
]
