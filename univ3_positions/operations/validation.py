"""Input validation for the position workflows. Nothing here touches the chain."""

import re
from decimal import Decimal

from ..core.exceptions import InvalidInputError, InvalidRangeError
from ..core.types import FeeTier, to_decimal
from ..math.price import validate_price_range


ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")
MAX_PRICE = Decimal(1000000)
# Upper bound must exceed lower by at least 0.01%
MIN_RANGE_WIDTH = Decimal("0.0001")


def validate_address(address, name="address"):
    if not isinstance(address, str) or not ADDRESS_PATTERN.match(address):
        raise InvalidInputError(f"Invalid {name} format: {address!r}")
    return address


def validate_token_id(token_id):
    if isinstance(token_id, bool) or not isinstance(token_id, int) or token_id <= 0:
        raise InvalidInputError(f"Token ID must be a positive integer, got {token_id!r}")
    return token_id


def validate_slippage(slippage_tolerance):
    """Slippage as a fraction in [0, 1)"""
    slippage = to_decimal(slippage_tolerance, "slippage_tolerance")
    if slippage < 0 or slippage >= 1:
        raise InvalidInputError(f"Slippage tolerance must be in [0, 1), got {slippage}")
    return slippage


def validate_positive_amount(amount, name="amount"):
    value = to_decimal(amount, name)
    if value <= 0:
        raise InvalidInputError(f"{name.capitalize()} must be a positive number, got {amount!r}")
    return value


def validate_bounded_range(price_lower, price_upper):
    """Ordered positive range, capped at MAX_PRICE and at least 0.01% wide"""
    if price_lower is None or price_upper is None:
        raise InvalidInputError("Price range must be specified")
    validate_price_range(price_lower, price_upper)

    lower = to_decimal(price_lower, "price_lower")
    upper = to_decimal(price_upper, "price_upper")
    if lower > MAX_PRICE or upper > MAX_PRICE:
        raise InvalidInputError(f"Price exceeds maximum allowed value of {MAX_PRICE}")
    if upper - lower < lower * MIN_RANGE_WIDTH:
        raise InvalidRangeError(f"Price range {lower}-{upper} is too narrow (minimum width 0.01%)")
    return lower, upper


def validate_open_params(params):
    """
    Check an OpenPositionParams whose defaults are already resolved.

    Raises:
        InvalidInputError: bad tokens, fee tier, amount, address, slippage or bound
        InvalidRangeError: bounds inverted or too close together
    """
    if params.base_token is None or params.quote_token is None:
        raise InvalidInputError("Both tokens must be specified")
    if params.base_token == params.quote_token:
        raise InvalidInputError("Tokens must be different")

    FeeTier.from_value(params.fee_tier)
    validate_positive_amount(params.amount)
    validate_bounded_range(params.price_lower, params.price_upper)

    if params.pool_address:
        validate_address(params.pool_address, "pool address")
    if params.slippage_tolerance is not None:
        validate_slippage(params.slippage_tolerance)


def validate_rebalance_params(params):
    """Check a RebalanceParams: new bounds and optional slippage"""
    validate_bounded_range(params.new_price_lower, params.new_price_upper)

    if params.slippage_tolerance is not None:
        validate_slippage(params.slippage_tolerance)


def validate_withdraw_options(options):
    """
    Check WithdrawOptions.

    Returns:
        percentage as a Decimal in (0, 100]
    """
    percentage = to_decimal(options.percentage, "percentage")
    if percentage <= 0 or percentage > 100:
        raise InvalidInputError(f"Percentage must be in (0, 100], got {options.percentage}")
    if options.slippage_tolerance is not None:
        validate_slippage(options.slippage_tolerance)
    return percentage
