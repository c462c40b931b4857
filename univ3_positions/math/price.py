"""
Price <-> tick conversion.

Prices are human-readable "quote token units per one base token". The pool
always quotes token1 per token0 in smallest units, so every conversion goes
through two steps: orientation (invert when the base token is token1) and
decimal normalization (10 ** (decimals difference)).

All arithmetic is Decimal in a 78-digit context plus exact integer TickMath;
binary floats lose whole ticks near the bounds and for 18/6-decimal pairs.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal, localcontext

from ..core.exceptions import InvalidInputError, InvalidRangeError, OutOfRangeError
from ..core.types import (
    MAX_SQRT_RATIO,
    MAX_TICK,
    MIN_SQRT_RATIO,
    MIN_TICK,
    Q96,
    FeeTier,
    sort_tokens,
    to_decimal,
)
from .tick_math import PRECISION, check_tick, get_tick_at_sqrt_ratio


logger = logging.getLogger(__name__)

_TICK_BASE = Decimal("1.0001")


def _base_is_token0(base_token, quote_token):
    token0, _ = sort_tokens(base_token, quote_token)
    return token0 == base_token


def _pool_ratio(price, base_token, quote_token):
    """Human quote-per-base price -> raw token1/token0 ratio in smallest units"""
    if _base_is_token0(base_token, quote_token):
        return price * Decimal(10) ** quote_token.decimals / Decimal(10) ** base_token.decimals
    # base is token1: the pool quotes base per quote
    return (1 / price) * Decimal(10) ** base_token.decimals / Decimal(10) ** quote_token.decimals


def _human_price(raw_ratio, base_token, quote_token):
    """Raw token1/token0 ratio -> human quote-per-base price"""
    token0, token1 = sort_tokens(base_token, quote_token)
    token1_per_token0 = raw_ratio * Decimal(10) ** token0.decimals / Decimal(10) ** token1.decimals
    if token0 == base_token:
        return token1_per_token0
    return 1 / token1_per_token0


def quantize_tick(tick, tick_spacing):
    """
    Round a raw tick to the nearest multiple of tick_spacing (halves away
    from zero), pulling it back inside [MIN_TICK, MAX_TICK] when rounding
    overshoots a bound.
    """
    steps = (Decimal(tick) / tick_spacing).to_integral_value(rounding=ROUND_HALF_UP)
    rounded = int(steps) * tick_spacing

    max_aligned = (MAX_TICK // tick_spacing) * tick_spacing
    min_aligned = -max_aligned
    return max(min_aligned, min(max_aligned, rounded))


def price_to_sqrt_price_x96(price, base_token, quote_token):
    """
    Convert a human price to the pool's sqrtPriceX96 (floored).

    Raises:
        InvalidInputError: price is not a positive number
        OutOfRangeError: the price maps outside the protocol's sqrt ratio bounds
    """
    price = to_decimal(price, "price")
    if price <= 0:
        raise InvalidInputError(f"Price must be greater than 0, got {price}")

    with localcontext() as ctx:
        ctx.prec = PRECISION
        ratio = _pool_ratio(price, base_token, quote_token)
        sqrt_price_x96 = int(ratio.sqrt() * Q96)

    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise OutOfRangeError(
            f"Price {price} {quote_token.symbol}/{base_token.symbol} is outside the pool's representable range"
        )
    return sqrt_price_x96


def price_to_tick(price, base_token, quote_token, fee_tier):
    """
    Convert a price to the nearest usable tick for a fee tier.

    Args:
        price: Quote-token units per one base-token unit (e.g. 1800 USDC per WETH)
        base_token: Token being priced
        quote_token: Token the price is expressed in
        fee_tier: FeeTier, fee int or tier name

    Returns:
        Tick aligned to the fee tier's spacing, within [MIN_TICK, MAX_TICK]
    """
    fee_tier = FeeTier.from_value(fee_tier)
    sqrt_price_x96 = price_to_sqrt_price_x96(price, base_token, quote_token)
    raw_tick = get_tick_at_sqrt_ratio(sqrt_price_x96)
    tick = quantize_tick(raw_tick, fee_tier.tick_spacing)

    logger.debug(
        "price_to_tick price=%s pair=%s/%s fee=%s raw_tick=%s tick=%s",
        price, base_token.symbol, quote_token.symbol, fee_tier.value, raw_tick, tick,
    )
    return tick


def tick_to_price(tick, base_token, quote_token):
    """
    Convert a tick back to a human price (quote per base).

    Inverse of price_to_tick up to tick quantization.
    """
    check_tick(tick)
    with localcontext() as ctx:
        ctx.prec = PRECISION
        raw_ratio = _TICK_BASE ** tick
        price = _human_price(raw_ratio, base_token, quote_token)
    return +price


def sqrt_price_x96_to_price(sqrt_price_x96, base_token, quote_token):
    """Convert a pool sqrtPriceX96 to a human price (quote per base)"""
    if sqrt_price_x96 <= 0:
        raise InvalidInputError(f"sqrtPriceX96 must be positive, got {sqrt_price_x96}")
    with localcontext() as ctx:
        ctx.prec = PRECISION
        raw_ratio = (Decimal(sqrt_price_x96) / Q96) ** 2
        price = _human_price(raw_ratio, base_token, quote_token)
    return +price


def validate_price_range(lower, upper):
    """
    Check that a price range is ordered and positive.

    Raises:
        InvalidRangeError: lower >= upper
        InvalidInputError: either bound <= 0 or not a number
    """
    lower = to_decimal(lower, "price_lower")
    upper = to_decimal(upper, "price_upper")
    if lower >= upper:
        raise InvalidRangeError(f"Lower price must be less than upper price ({lower} >= {upper})")
    if lower <= 0 or upper <= 0:
        raise InvalidInputError("Prices must be greater than 0")
    return True


def ticks_for_price_range(price_lower, price_upper, base_token, quote_token, fee_tier):
    """
    Convert a validated price range into an ordered (tick_lower, tick_upper).

    When the base token is token1 higher prices map to lower ticks, so the
    converted bounds are swapped.
    """
    validate_price_range(price_lower, price_upper)
    tick_a = price_to_tick(price_lower, base_token, quote_token, fee_tier)
    tick_b = price_to_tick(price_upper, base_token, quote_token, fee_tier)
    tick_lower, tick_upper = min(tick_a, tick_b), max(tick_a, tick_b)

    if tick_lower == tick_upper:
        raise InvalidRangeError(
            f"Price range {price_lower}-{price_upper} is narrower than one tick spacing "
            f"({FeeTier.from_value(fee_tier).tick_spacing} ticks)"
        )
    return tick_lower, tick_upper
