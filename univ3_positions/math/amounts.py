"""
Token amount and liquidity calculations for concentrated-liquidity ranges.

Integer ports of SqrtPriceMath / LiquidityAmounts. Every division floors, so
the amounts here never exceed what the pool would require for the same
liquidity.
"""

from decimal import ROUND_FLOOR, Decimal, localcontext

from ..core.exceptions import (
    InvalidInputError,
    InvalidPositionError,
    InvalidRangeError,
    InvalidTickAlignmentError,
)
from ..core.types import Q96, AmountPair, FeeTier, MinimumAmounts, to_decimal
from .tick_math import PRECISION, check_tick, get_sqrt_ratio_at_tick


# Size inputs are ether-style decimals: 1.5 -> 1.5e18 liquidity units
SIZE_SCALE = 10 ** 18
BPS = 10000


def liquidity_from_size(size_input):
    """Liquidity implied by a decimal size input, floored"""
    size = to_decimal(size_input, "size_input")
    if size <= 0:
        raise InvalidInputError(f"Size must be a positive number, got {size_input!r}")
    with localcontext() as ctx:
        ctx.prec = PRECISION
        liquidity = int((size * SIZE_SCALE).to_integral_value(rounding=ROUND_FLOOR))
    if liquidity <= 0:
        raise InvalidInputError(f"Size {size_input} is below the smallest liquidity unit")
    return liquidity


def _ordered(sqrt_a, sqrt_b):
    return (sqrt_a, sqrt_b) if sqrt_a <= sqrt_b else (sqrt_b, sqrt_a)


def get_amount0_delta(sqrt_a, sqrt_b, liquidity):
    """token0 covering `liquidity` between two sqrt prices: L*(B-A)/(A*B)"""
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)
    if sqrt_a <= 0:
        raise InvalidInputError("sqrt price must be positive")
    return (liquidity * Q96 * (sqrt_b - sqrt_a) // sqrt_b) // sqrt_a


def get_amount1_delta(sqrt_a, sqrt_b, liquidity):
    """token1 covering `liquidity` between two sqrt prices: L*(B-A)"""
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)
    return liquidity * (sqrt_b - sqrt_a) // Q96


def get_amounts_for_liquidity(sqrt_price_x96, sqrt_a, sqrt_b, liquidity):
    """
    Token amounts backing `liquidity` at the current price.

    Below the range only token0 is held, above it only token1, inside a mix
    set by the distance to each boundary.
    """
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)

    if sqrt_price_x96 <= sqrt_a:
        return AmountPair(get_amount0_delta(sqrt_a, sqrt_b, liquidity), 0)
    if sqrt_price_x96 < sqrt_b:
        return AmountPair(
            get_amount0_delta(sqrt_price_x96, sqrt_b, liquidity),
            get_amount1_delta(sqrt_a, sqrt_price_x96, liquidity),
        )
    return AmountPair(0, get_amount1_delta(sqrt_a, sqrt_b, liquidity))


def get_liquidity_for_amount0(sqrt_a, sqrt_b, amount0):
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)
    intermediate = sqrt_a * sqrt_b // Q96
    return amount0 * intermediate // (sqrt_b - sqrt_a)


def get_liquidity_for_amount1(sqrt_a, sqrt_b, amount1):
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)
    return amount1 * Q96 // (sqrt_b - sqrt_a)


def get_liquidity_for_amounts(sqrt_price_x96, sqrt_a, sqrt_b, amount0, amount1):
    """Largest liquidity mintable from (amount0, amount1) at the current price"""
    sqrt_a, sqrt_b = _ordered(sqrt_a, sqrt_b)

    if sqrt_price_x96 <= sqrt_a:
        return get_liquidity_for_amount0(sqrt_a, sqrt_b, amount0)
    if sqrt_price_x96 < sqrt_b:
        liquidity0 = get_liquidity_for_amount0(sqrt_price_x96, sqrt_b, amount0)
        liquidity1 = get_liquidity_for_amount1(sqrt_a, sqrt_price_x96, amount1)
        return min(liquidity0, liquidity1)
    return get_liquidity_for_amount1(sqrt_a, sqrt_b, amount1)


def check_tick_range(tick_lower, tick_upper, fee_tier):
    """
    Validate a tick range for a fee tier.

    Raises:
        InvalidRangeError: tick_lower >= tick_upper
        InvalidTickAlignmentError: a tick is not a multiple of the spacing
        OutOfRangeError: a tick is outside [MIN_TICK, MAX_TICK]
    """
    spacing = FeeTier.from_value(fee_tier).tick_spacing
    for tick in (tick_lower, tick_upper):
        if isinstance(tick, bool) or not isinstance(tick, int):
            raise InvalidInputError(f"Tick must be an integer, got {tick!r}")

    if tick_lower >= tick_upper:
        raise InvalidRangeError(f"tick_lower must be less than tick_upper ({tick_lower} >= {tick_upper})")
    for tick in (tick_lower, tick_upper):
        if tick % spacing != 0:
            raise InvalidTickAlignmentError(f"Tick {tick} is not a multiple of tick spacing {spacing}")
    check_tick(tick_lower)
    check_tick(tick_upper)


def calculate_optimal_amounts(pool_state, tick_lower, tick_upper, size_input, fee_tier):
    """
    Token amounts needed to open a position of the given size.

    Args:
        pool_state: PoolState of the target pool
        tick_lower: Lower tick, aligned to the fee tier's spacing
        tick_upper: Upper tick, aligned to the fee tier's spacing
        size_input: Decimal position size (scaled by 1e18 into liquidity)
        fee_tier: FeeTier of the pool

    Returns:
        AmountPair in smallest units
    """
    check_tick_range(tick_lower, tick_upper, fee_tier)
    liquidity = liquidity_from_size(size_input)

    amounts = get_amounts_for_liquidity(
        pool_state.sqrt_price_x96,
        get_sqrt_ratio_at_tick(tick_lower),
        get_sqrt_ratio_at_tick(tick_upper),
        liquidity,
    )
    if amounts.is_zero:
        raise InvalidPositionError(
            f"Range [{tick_lower}, {tick_upper}] requires no tokens for size {size_input}",
            params={"tick_lower": tick_lower, "tick_upper": tick_upper, "current_tick": pool_state.tick},
        )
    return amounts


def slippage_multiplier(slippage_tolerance):
    """floor((1 - slippage) * 10000) as an int of basis points"""
    slippage = to_decimal(slippage_tolerance, "slippage_tolerance")
    if slippage < 0 or slippage >= 1:
        raise InvalidInputError(f"Slippage tolerance must be in [0, 1), got {slippage}")
    return int(((1 - slippage) * BPS).to_integral_value(rounding=ROUND_FLOOR))


def calculate_minimum_amounts(amount0, amount1, slippage_tolerance=Decimal("0.005")):
    """
    Apply slippage tolerance to desired amounts.

    Args:
        amount0: Desired token0 amount (smallest units)
        amount1: Desired token1 amount (smallest units)
        slippage_tolerance: Fraction in [0, 1), 0.005 = 0.5%

    Returns:
        MinimumAmounts, each <= its desired amount
    """
    for name, amount in (("amount0", amount0), ("amount1", amount1)):
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise InvalidInputError(f"{name} must be a non-negative integer, got {amount!r}")

    multiplier = slippage_multiplier(slippage_tolerance)
    return MinimumAmounts(
        amount0_min=amount0 * multiplier // BPS,
        amount1_min=amount1 * multiplier // BPS,
    )


def expected_mint_amounts(pool_state, tick_lower, tick_upper, amount0_desired, amount1_desired):
    """
    Amounts a mint with the given desired amounts will actually pull in.

    The pool mints the largest liquidity both amounts cover, so the surplus
    side is left in the wallet.
    """
    sqrt_a = get_sqrt_ratio_at_tick(tick_lower)
    sqrt_b = get_sqrt_ratio_at_tick(tick_upper)
    liquidity = get_liquidity_for_amounts(pool_state.sqrt_price_x96, sqrt_a, sqrt_b, amount0_desired, amount1_desired)
    return get_amounts_for_liquidity(pool_state.sqrt_price_x96, sqrt_a, sqrt_b, liquidity)


def position_amounts(pool_state, tick_lower, tick_upper, liquidity):
    """Token amounts currently backing a position's liquidity"""
    return get_amounts_for_liquidity(
        pool_state.sqrt_price_x96,
        get_sqrt_ratio_at_tick(tick_lower),
        get_sqrt_ratio_at_tick(tick_upper),
        liquidity,
    )


def token_distribution(current_price, lower_price, upper_price):
    """
    Approximate base/quote split of a position by where the price sits in
    its range: all base below the range, all quote above, linear in between.

    Returns:
        (base_percent, quote_percent) as Decimals summing to 100
    """
    low, high = min(lower_price, upper_price), max(lower_price, upper_price)
    if current_price <= low:
        return Decimal(100), Decimal(0)
    if current_price >= high:
        return Decimal(0), Decimal(100)

    with localcontext() as ctx:
        ctx.prec = PRECISION
        quote_percent = (Decimal(current_price) - low) / (high - low) * 100
    return 100 - quote_percent, quote_percent
