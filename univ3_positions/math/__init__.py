"""Exact tick, price and amount math"""

from .tick_math import get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio
from .price import (
    price_to_tick,
    tick_to_price,
    sqrt_price_x96_to_price,
    validate_price_range,
    ticks_for_price_range,
)
from .amounts import (
    calculate_optimal_amounts,
    calculate_minimum_amounts,
    expected_mint_amounts,
    position_amounts,
    token_distribution,
)

__all__ = [
    "get_sqrt_ratio_at_tick",
    "get_tick_at_sqrt_ratio",
    "price_to_tick",
    "tick_to_price",
    "sqrt_price_x96_to_price",
    "validate_price_range",
    "ticks_for_price_range",
    "calculate_optimal_amounts",
    "calculate_minimum_amounts",
    "expected_mint_amounts",
    "position_amounts",
    "token_distribution",
]
