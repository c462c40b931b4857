"""Shared fixtures: Sepolia WETH/USDC tokens, a config and a fake ledger at 1800 USDC/WETH"""

from decimal import Decimal

import pytest

from fakes import FakeLedger
from univ3_positions.core.config import Config
from univ3_positions.core.types import FeeTier, PoolState, Token
from univ3_positions.math.price import price_to_sqrt_price_x96
from univ3_positions.math.tick_math import get_tick_at_sqrt_ratio
from univ3_positions.operations.liquidity import LiquidityManager
from univ3_positions.operations.positions import PositionQuery


CHAIN_ID = 11155111
ACCOUNT = "0x00000000000000000000000000000000000A11CE"
OTHER = "0x0000000000000000000000000000000000000B0B"
REGISTRY = "0x1238536071E1c677A632429e3655c799b22cDA52"
POOL = "0x3289680dD4d6C10bb19b899729cda5eEF58AEfF1"

WETH = Token(CHAIN_ID, "0x7b79995e5f793A07Bc00c21412e50Ecae098E7f9", 18, "WETH", "Wrapped Ether")
USDC = Token(CHAIN_ID, "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238", 6, "USDC", "USD Coin")

# Equal-decimal pair with a known order: TKA is token0
TKA = Token(1, "0x0000000000000000000000000000000000000001", 18, "TKA")
TKB = Token(1, "0x0000000000000000000000000000000000000002", 18, "TKB")


def pool_state_at(price, base=WETH, quote=USDC, liquidity=10 ** 20):
    sqrt_price_x96 = price_to_sqrt_price_x96(price, base, quote)
    return PoolState(sqrt_price_x96, get_tick_at_sqrt_ratio(sqrt_price_x96), liquidity)


@pytest.fixture
def config():
    return Config(
        network="sepolia",
        chain_id=CHAIN_ID,
        nfpm_address=REGISTRY,
        pool_address=POOL,
        base_token=WETH,
        quote_token=USDC,
        fee_tier=FeeTier.MEDIUM,
        slippage_tolerance=Decimal("0.005"),
        deadline_minutes=10,
    )


@pytest.fixture
def ledger():
    return FakeLedger(ACCOUNT, REGISTRY, POOL, pool_state_at(Decimal(1800)))


@pytest.fixture
def manager(config, ledger):
    return LiquidityManager(config, ledger, clock=lambda: ledger.now)


@pytest.fixture
def query(config, ledger):
    return PositionQuery(config, ledger)
