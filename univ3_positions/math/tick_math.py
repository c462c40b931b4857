"""
Exact integer TickMath for Uniswap V3 style pools.

    sqrtPriceX96(tick) = sqrt(1.0001 ** tick) * 2**96

get_sqrt_ratio_at_tick reproduces the on-chain bit-by-bit product so ticks
computed here agree with the contract. get_tick_at_sqrt_ratio is its exact
inverse: the greatest tick whose sqrt ratio is <= the input.
"""

from decimal import ROUND_FLOOR, Decimal, localcontext

from ..core.exceptions import InvalidInputError, OutOfRangeError
from ..core.types import MAX_SQRT_RATIO, MAX_TICK, MIN_SQRT_RATIO, MIN_TICK, Q96


PRECISION = 78

# ratio multipliers for each bit of |tick|, Q128.128
_BIT_MULTIPLIERS = (
    (0x2, 0xfff97272373d413259a46990580e213a),
    (0x4, 0xfff2e50f5f656932ef12357cf3c7fdcc),
    (0x8, 0xffe5caca7e10e4e61c3624eaa0941cd0),
    (0x10, 0xffcb9843d60f6159c9db58835c926644),
    (0x20, 0xff973b41fa98c081472e6896dfb254c0),
    (0x40, 0xff2ea16466c96a3843ec78b326b52861),
    (0x80, 0xfe5dee046a99a2a811c461f1969c3053),
    (0x100, 0xfcbe86c7900a88aedcffc83b479aa3a4),
    (0x200, 0xf987a7253ac413176f2b074cf7815e54),
    (0x400, 0xf3392b0822b70005940c7a398e4b70f3),
    (0x800, 0xe7159475a2c29b7443b29c7fa6e889d9),
    (0x1000, 0xd097f3bdfd2022b8845ad8f792aa5825),
    (0x2000, 0xa9f746462d870fdf8a65dc1f90e061e5),
    (0x4000, 0x70d869a156d2a1b890bb3df62baf32f7),
    (0x8000, 0x31be135f97d08fd981231505542fcfa6),
    (0x10000, 0x9aa508b5b7a84e1c677de54f3e99bc9),
    (0x20000, 0x5d6af8dedb81196699c329225ee604),
    (0x40000, 0x2216e584f5fa1ea926041bedfe98),
    (0x80000, 0x48a170391f7dc42444e8fa2),
)

_LOG_BASE = Decimal("1.0001")


def check_tick(tick):
    """Raise unless tick is an int within [MIN_TICK, MAX_TICK]"""
    if isinstance(tick, bool) or not isinstance(tick, int):
        raise InvalidInputError(f"Tick must be an integer, got {tick!r}")
    if tick < MIN_TICK or tick > MAX_TICK:
        raise OutOfRangeError(f"Tick {tick} out of range [{MIN_TICK}, {MAX_TICK}]")


def get_sqrt_ratio_at_tick(tick):
    """
    Calculate sqrtPriceX96 for a tick, rounded up as on-chain.

    Args:
        tick: Tick index in [MIN_TICK, MAX_TICK]

    Returns:
        sqrtPriceX96 (Q64.96)
    """
    check_tick(tick)
    abs_tick = abs(tick)

    if abs_tick & 0x1:
        ratio = 0xfffcb933bd6fad37aa2d162d1a594001
    else:
        ratio = 0x100000000000000000000000000000000

    for bit, multiplier in _BIT_MULTIPLIERS:
        if abs_tick & bit:
            ratio = (ratio * multiplier) >> 128

    if tick > 0:
        ratio = (2 ** 256 - 1) // ratio

    # Q128.128 -> Q64.96, rounding up
    return (ratio >> 32) + (1 if ratio % (1 << 32) else 0)


def get_tick_at_sqrt_ratio(sqrt_price_x96):
    """
    Greatest tick such that get_sqrt_ratio_at_tick(tick) <= sqrt_price_x96.

    A logarithm gives the estimate; the exact integer ratios settle the last
    tick either way.
    """
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise OutOfRangeError(
            f"sqrtPriceX96 {sqrt_price_x96} out of range [{MIN_SQRT_RATIO}, {MAX_SQRT_RATIO})"
        )

    with localcontext() as ctx:
        ctx.prec = PRECISION
        price = (Decimal(sqrt_price_x96) / Q96) ** 2
        estimate = int((price.ln() / _LOG_BASE.ln()).to_integral_value(rounding=ROUND_FLOOR))

    tick = max(MIN_TICK, min(MAX_TICK, estimate))
    while tick > MIN_TICK and get_sqrt_ratio_at_tick(tick) > sqrt_price_x96:
        tick -= 1
    while tick < MAX_TICK and get_sqrt_ratio_at_tick(tick + 1) <= sqrt_price_x96:
        tick += 1
    return tick
