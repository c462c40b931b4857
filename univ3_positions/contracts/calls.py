"""Typed descriptors for registry/token writes and their confirmed receipts"""

from dataclasses import dataclass
from typing import ClassVar, Optional


@dataclass(frozen=True)
class MintCall:
    """NonfungiblePositionManager.mint(MintParams)"""

    operation: ClassVar[str] = "mint"

    token0: str
    token1: str
    fee: int
    tick_lower: int
    tick_upper: int
    amount0_desired: int
    amount1_desired: int
    amount0_min: int
    amount1_min: int
    recipient: str
    deadline: int

    def as_tuple(self):
        return (
            self.token0,
            self.token1,
            self.fee,
            self.tick_lower,
            self.tick_upper,
            self.amount0_desired,
            self.amount1_desired,
            self.amount0_min,
            self.amount1_min,
            self.recipient,
            self.deadline,
        )


@dataclass(frozen=True)
class DecreaseLiquidityCall:
    """NonfungiblePositionManager.decreaseLiquidity(DecreaseLiquidityParams)"""

    operation: ClassVar[str] = "decreaseLiquidity"

    token_id: int
    liquidity: int
    amount0_min: int
    amount1_min: int
    deadline: int

    def as_tuple(self):
        return (self.token_id, self.liquidity, self.amount0_min, self.amount1_min, self.deadline)


@dataclass(frozen=True)
class CollectCall:
    """NonfungiblePositionManager.collect(CollectParams)"""

    operation: ClassVar[str] = "collect"

    token_id: int
    recipient: str
    amount0_max: int
    amount1_max: int

    def as_tuple(self):
        return (self.token_id, self.recipient, self.amount0_max, self.amount1_max)


@dataclass(frozen=True)
class ApproveCall:
    """ERC20.approve(spender, amount) on `token`"""

    operation: ClassVar[str] = "approve"

    token: str
    spender: str
    amount: int


@dataclass(frozen=True)
class SetApprovalForAllCall:
    """NonfungiblePositionManager.setApprovalForAll(operator, approved)"""

    operation: ClassVar[str] = "setApprovalForAll"

    operator: str
    approved: bool = True


@dataclass(frozen=True)
class PendingTx:
    """A submitted, not yet confirmed transaction"""

    tx_hash: str
    operation: str


@dataclass(frozen=True)
class Receipt:
    """
    Confirmed transaction. Event-derived fields are filled for mint,
    decreaseLiquidity and collect and left None otherwise.
    """

    tx_hash: str
    block_number: int
    status: int
    operation: str
    token_id: Optional[int] = None
    liquidity: Optional[int] = None
    amount0: Optional[int] = None
    amount1: Optional[int] = None

    @property
    def succeeded(self):
        return self.status == 1

    def to_dict(self):
        return {
            "tx_hash": self.tx_hash,
            "block_number": self.block_number,
            "status": self.status,
            "operation": self.operation,
            "token_id": self.token_id,
            "liquidity": self.liquidity,
            "amount0": self.amount0,
            "amount1": self.amount1,
        }
