"""Position valuation."""

from treasury_aggregator.valuation.lp import LpPosition, LpValuation, LpValuator, is_lp_token, value_pool

__all__ = [
    "LpPosition",
    "LpValuation",
    "LpValuator",
    "is_lp_token",
    "value_pool",
]
