"""
univ3-positions - Manage a single Uniswap V3 concentrated-liquidity position
"""

from .core.config import Config
from .core.exceptions import PositionManagerError, error_context
from .contracts.base import LedgerClient
from .contracts.client import Web3LedgerClient
from .operations.liquidity import LiquidityManager
from .operations.positions import PositionQuery

__version__ = "0.1.0"
__all__ = [
    "Config",
    "PositionManagerError",
    "error_context",
    "LedgerClient",
    "Web3LedgerClient",
    "LiquidityManager",
    "PositionQuery",
]
