"""Ledger interface, call descriptors and web3 contract wrappers"""

from .base import LedgerClient
from .calls import (
    MintCall,
    DecreaseLiquidityCall,
    CollectCall,
    ApproveCall,
    SetApprovalForAllCall,
    PendingTx,
    Receipt,
)
from .client import Web3LedgerClient, ledger_errors
from .erc20 import ERC20
from .nfpm import NFPM
from .pool import Pool

__all__ = [
    "LedgerClient",
    "MintCall",
    "DecreaseLiquidityCall",
    "CollectCall",
    "ApproveCall",
    "SetApprovalForAllCall",
    "PendingTx",
    "Receipt",
    "Web3LedgerClient",
    "ledger_errors",
    "ERC20",
    "NFPM",
    "Pool",
]
