"""Core module - types, configuration, connection and exceptions"""

from .config import Config
from .connection import Web3Manager
from .exceptions import (
    PositionManagerError,
    InvalidInputError,
    InvalidRangeError,
    InvalidTickAlignmentError,
    OutOfRangeError,
    InvalidPositionError,
    NotFoundError,
    NetworkError,
    ConfigError,
    TransactionRevertedError,
    UnknownError,
    error_context,
)
from .types import FeeTier, Token, PoolReference, PoolState, PositionInfo, AmountPair, MinimumAmounts

__all__ = [
    "Config",
    "Web3Manager",
    "PositionManagerError",
    "InvalidInputError",
    "InvalidRangeError",
    "InvalidTickAlignmentError",
    "OutOfRangeError",
    "InvalidPositionError",
    "NotFoundError",
    "NetworkError",
    "ConfigError",
    "TransactionRevertedError",
    "UnknownError",
    "error_context",
    "FeeTier",
    "Token",
    "PoolReference",
    "PoolState",
    "PositionInfo",
    "AmountPair",
    "MinimumAmounts",
]
