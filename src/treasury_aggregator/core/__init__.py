"""Core data model, tagged outcomes and aggregation logic."""

from treasury_aggregator.core.aggregator import (
    UNCATEGORIZED,
    apply_enrichment,
    finalize_collections,
    merge_token_holdings,
    tally_collections,
    total_value,
)
from treasury_aggregator.core.models import (
    ChainPortfolio,
    CollectionMeta,
    FullPortfolio,
    HoldingType,
    LpPoolMeta,
    NftCollection,
    NftPortfolio,
    PriceQuote,
    PriceSource,
    TokenHolding,
    TokenInfo,
)
from treasury_aggregator.core.outcome import Outcome, OutcomeStatus

__all__ = [
    "UNCATEGORIZED",
    "ChainPortfolio",
    "CollectionMeta",
    "FullPortfolio",
    "HoldingType",
    "LpPoolMeta",
    "NftCollection",
    "NftPortfolio",
    "Outcome",
    "OutcomeStatus",
    "PriceQuote",
    "PriceSource",
    "TokenHolding",
    "TokenInfo",
    "apply_enrichment",
    "finalize_collections",
    "merge_token_holdings",
    "tally_collections",
    "total_value",
]
