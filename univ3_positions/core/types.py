"""Immutable domain types: tokens, fee tiers, pools, positions, amounts"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import IntEnum

from .exceptions import InvalidInputError


# Protocol constants
Q96 = 2 ** 96
MAX_UINT128 = 2 ** 128 - 1
MAX_UINT256 = 2 ** 256 - 1
MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_RATIO = 4295128739
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342


def to_decimal(value, name="value"):
    """
    Parse a user-supplied number into a finite Decimal.

    Floats go through str() so 0.005 becomes Decimal("0.005") rather than
    its binary expansion.
    """
    if isinstance(value, bool) or value is None:
        raise InvalidInputError(f"{name} must be a number, got {value!r}")
    try:
        if isinstance(value, float):
            result = Decimal(str(value))
        else:
            result = Decimal(value.strip() if isinstance(value, str) else value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInputError(f"{name} must be a number, got {value!r}")
    if not result.is_finite():
        raise InvalidInputError(f"{name} must be finite, got {value!r}")
    return result


class FeeTier(IntEnum):
    """Pool fee tier in hundredths of a basis point"""

    LOW = 500
    MEDIUM = 3000
    HIGH = 10000

    @property
    def tick_spacing(self):
        return TICK_SPACINGS[self]

    @property
    def percent(self):
        """Human fee, e.g. '0.30%'"""
        return f"{self.value / 10000:.2f}%"

    @classmethod
    def from_value(cls, value):
        """
        Resolve a fee tier from an int fee (3000), a numeric string ("3000")
        or a tier name ("MEDIUM").
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            name = value.strip().upper()
            if name in cls.__members__:
                return cls[name]
            if name.isdigit():
                value = int(name)
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                pass
        valid = ", ".join(f"{t.name}={t.value}" for t in cls)
        raise InvalidInputError(f"Invalid fee tier: {value!r}. Must be one of: {valid}")


TICK_SPACINGS = {
    FeeTier.LOW: 10,
    FeeTier.MEDIUM: 60,
    FeeTier.HIGH: 200,
}


@dataclass(frozen=True, eq=False)
class Token:
    """ERC20 token descriptor. Identity is the address, case-insensitive."""

    chain_id: int
    address: str
    decimals: int
    symbol: str
    name: str = ""

    def __post_init__(self):
        if not isinstance(self.decimals, int) or self.decimals < 0:
            raise InvalidInputError(f"Token decimals must be a non-negative int, got {self.decimals!r}")

    def __eq__(self, other):
        if not isinstance(other, Token):
            return NotImplemented
        return self.address.lower() == other.address.lower()

    def __hash__(self):
        return hash(self.address.lower())

    def sorts_before(self, other):
        """True if this token is token0 of a pair with `other`"""
        return int(self.address, 16) < int(other.address, 16)

    @classmethod
    def from_dict(cls, data, chain_id):
        return cls(
            chain_id=chain_id,
            address=data["address"],
            decimals=int(data["decimals"]),
            symbol=data["symbol"],
            name=data.get("name", ""),
        )


def sort_tokens(token_a, token_b):
    """Return (token0, token1) ordered by address"""
    if token_a == token_b:
        raise InvalidInputError(f"Tokens must be different: {token_a.symbol}/{token_b.symbol}")
    if token_a.sorts_before(token_b):
        return token_a, token_b
    return token_b, token_a


@dataclass(frozen=True)
class PoolReference:
    """A deployed pool: ordered token pair, fee tier and contract address"""

    token0: Token
    token1: Token
    fee_tier: FeeTier
    address: str

    @classmethod
    def for_pair(cls, token_a, token_b, fee_tier, address):
        token0, token1 = sort_tokens(token_a, token_b)
        return cls(token0, token1, FeeTier.from_value(fee_tier), address)

    @property
    def tick_spacing(self):
        return self.fee_tier.tick_spacing

    def matches(self, token0_address, token1_address, fee):
        """True if a position's (token0, token1, fee) belongs to this pool"""
        return (
            token0_address.lower() == self.token0.address.lower()
            and token1_address.lower() == self.token1.address.lower()
            and int(fee) == int(self.fee_tier)
        )


@dataclass(frozen=True)
class PoolState:
    """Pool slot0 snapshot"""

    sqrt_price_x96: int
    tick: int
    liquidity: int = 0


@dataclass(frozen=True)
class PositionInfo:
    """Position registry entry. Fee-growth fields are opaque on-chain values."""

    token_id: int
    nonce: int
    operator: str
    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    liquidity: int
    fee_growth_inside0_last_x128: int
    fee_growth_inside1_last_x128: int
    tokens_owed0: int
    tokens_owed1: int

    @classmethod
    def from_tuple(cls, token_id, pos):
        """Build from the raw `positions(tokenId)` return tuple"""
        return cls(token_id, *pos)

    @property
    def has_owed_tokens(self):
        return self.tokens_owed0 > 0 or self.tokens_owed1 > 0


@dataclass(frozen=True)
class AmountPair:
    """Token amounts in smallest units"""

    amount0: int
    amount1: int

    @property
    def is_zero(self):
        return self.amount0 == 0 and self.amount1 == 0


@dataclass(frozen=True)
class MinimumAmounts:
    """Slippage-deflated lower bounds for a transaction"""

    amount0_min: int
    amount1_min: int
