"""Position workflows"""

from .liquidity import (
    LiquidityManager,
    OpenPositionParams,
    OpenResult,
    RebalanceParams,
    RebalanceResult,
    WithdrawOptions,
    WithdrawResult,
)
from .positions import PositionQuery, PositionSnapshot, format_position_status

__all__ = [
    "LiquidityManager",
    "OpenPositionParams",
    "OpenResult",
    "RebalanceParams",
    "RebalanceResult",
    "WithdrawOptions",
    "WithdrawResult",
    "PositionQuery",
    "PositionSnapshot",
    "format_position_status",
]
