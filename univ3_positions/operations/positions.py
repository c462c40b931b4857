"""Read-only position inspection"""

import logging
from dataclasses import dataclass
from decimal import Decimal

from ..core.exceptions import InvalidPositionError, error_context
from ..core.types import AmountPair, sort_tokens
from ..math.amounts import position_amounts, token_distribution
from ..math.price import sqrt_price_x96_to_price, tick_to_price
from ..utils.log import log_event
from .validation import validate_token_id


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PositionSnapshot:
    """
    Point-in-time view of a position. Prices are quote per base; amounts are
    smallest units in pool (token0/token1) order.
    """

    token_id: int
    liquidity: int
    fee_growth_inside0_last_x128: int
    fee_growth_inside1_last_x128: int
    tokens_owed0: int
    tokens_owed1: int
    tick_lower: int
    tick_upper: int
    current_tick: int
    current_price: Decimal
    lower_price: Decimal
    upper_price: Decimal
    in_range: bool
    base_percent: Decimal
    quote_percent: Decimal
    amounts: AmountPair
    base_symbol: str = ""
    quote_symbol: str = ""

    def to_dict(self):
        return {
            "token_id": self.token_id,
            "liquidity": self.liquidity,
            "fee_growth_inside0_last_x128": self.fee_growth_inside0_last_x128,
            "fee_growth_inside1_last_x128": self.fee_growth_inside1_last_x128,
            "tokens_owed0": self.tokens_owed0,
            "tokens_owed1": self.tokens_owed1,
            "tick_lower": self.tick_lower,
            "tick_upper": self.tick_upper,
            "current_tick": self.current_tick,
            "current_price": str(self.current_price),
            "lower_price": str(self.lower_price),
            "upper_price": str(self.upper_price),
            "in_range": self.in_range,
            "base_percent": str(self.base_percent),
            "quote_percent": str(self.quote_percent),
            "amount0": self.amounts.amount0,
            "amount1": self.amounts.amount1,
            "pair": f"{self.base_symbol}/{self.quote_symbol}",
        }


class PositionQuery:
    """Inspect positions in the configured pool"""

    def __init__(self, config, client):
        """
        Args:
            config: Config instance
            client: LedgerClient implementation
        """
        self.config = config
        self.client = client

    def inspect(self, token_id):
        """
        Read a position and the pool and derive prices, range status and
        token split. Makes no writes.

        Raises:
            NotFoundError: unknown token ID
            InvalidPositionError: position belongs to a different pool
        """
        ctx = {"operation": "inspect", "token_id": token_id}
        base, quote = self.config.base_token, self.config.quote_token

        with error_context("inspect", ctx):
            validate_token_id(token_id)

            ctx["stage"] = "fetching_position"
            position = self.client.read_position(token_id)
            pool = self.config.pool
            if not pool.matches(position.token0, position.token1, position.fee):
                raise InvalidPositionError(
                    f"Position {token_id} is not in the configured {base.symbol}/{quote.symbol} pool",
                    params={"token0": position.token0, "token1": position.token1, "fee": position.fee},
                )

            ctx["stage"] = "fetching_pool_state"
            pool_state = self.client.read_pool_state(self.config.pool_address)

            ctx["stage"] = "computing_derived"
            current_price = sqrt_price_x96_to_price(pool_state.sqrt_price_x96, base, quote)
            price_a = tick_to_price(position.tick_lower, base, quote)
            price_b = tick_to_price(position.tick_upper, base, quote)
            lower_price, upper_price = min(price_a, price_b), max(price_a, price_b)
            base_percent, quote_percent = token_distribution(current_price, lower_price, upper_price)

            snapshot = PositionSnapshot(
                token_id=token_id,
                liquidity=position.liquidity,
                fee_growth_inside0_last_x128=position.fee_growth_inside0_last_x128,
                fee_growth_inside1_last_x128=position.fee_growth_inside1_last_x128,
                tokens_owed0=position.tokens_owed0,
                tokens_owed1=position.tokens_owed1,
                tick_lower=position.tick_lower,
                tick_upper=position.tick_upper,
                current_tick=pool_state.tick,
                current_price=current_price,
                lower_price=lower_price,
                upper_price=upper_price,
                in_range=position.tick_lower <= pool_state.tick < position.tick_upper,
                base_percent=base_percent,
                quote_percent=quote_percent,
                amounts=position_amounts(pool_state, position.tick_lower, position.tick_upper, position.liquidity),
                base_symbol=base.symbol,
                quote_symbol=quote.symbol,
            )
            ctx["stage"] = "done"
            log_event(
                logger, "Position inspected", token_id=token_id, tick=pool_state.tick,
                in_range=snapshot.in_range, liquidity=position.liquidity,
            )
            return snapshot


def _human(amount, decimals):
    return Decimal(amount).scaleb(-decimals)


def format_position_status(snapshot, base_token, quote_token):
    """Human summary of a PositionSnapshot"""
    token0, _ = sort_tokens(base_token, quote_token)
    if token0 == base_token:
        owed_base, owed_quote = snapshot.tokens_owed0, snapshot.tokens_owed1
        held_base, held_quote = snapshot.amounts.amount0, snapshot.amounts.amount1
    else:
        owed_base, owed_quote = snapshot.tokens_owed1, snapshot.tokens_owed0
        held_base, held_quote = snapshot.amounts.amount1, snapshot.amounts.amount0

    unit = f"{quote_token.symbol} per {base_token.symbol}"
    active = "Yes" if snapshot.in_range else "No"
    return (
        f"Position Status for Token ID: {snapshot.token_id}\n"
        f"----------------------------------------\n"
        f"Current Pool Price: {snapshot.current_price:,.6f} {unit}\n"
        f"\n"
        f"Your Position:\n"
        f"- Price Range: {snapshot.lower_price:,.6f} to {snapshot.upper_price:,.6f} {unit}\n"
        f"- Ticks: {snapshot.tick_lower} to {snapshot.tick_upper} (current {snapshot.current_tick})\n"
        f"- Liquidity: {snapshot.liquidity}\n"
        f"- Token Distribution: {snapshot.base_percent:.2f}% {base_token.symbol}, "
        f"{snapshot.quote_percent:.2f}% {quote_token.symbol}\n"
        f"- Holdings: {_human(held_base, base_token.decimals)} {base_token.symbol}, "
        f"{_human(held_quote, quote_token.decimals)} {quote_token.symbol}\n"
        f"- Active: {active}\n"
        f"\n"
        f"Your Uncollected Fees:\n"
        f"- {base_token.symbol}: {_human(owed_base, base_token.decimals)}\n"
        f"- {quote_token.symbol}: {_human(owed_quote, quote_token.decimals)}\n"
    )
