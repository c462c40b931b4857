"""Abstract ledger collaborator used by the position workflows"""

from abc import ABC, abstractmethod

from ..core.types import PoolState, PositionInfo
from .calls import (
    ApproveCall,
    CollectCall,
    DecreaseLiquidityCall,
    MintCall,
    PendingTx,
    Receipt,
    SetApprovalForAllCall,
)


class LedgerClient(ABC):
    """
    Reads and writes against the position registry, its pools and tokens.

    Workflows only ever talk to this interface. Writes return a PendingTx
    immediately; wait() blocks until it is confirmed.
    """

    @property
    @abstractmethod
    def account_address(self) -> str:
        """Address that signs and receives"""
        pass

    @property
    @abstractmethod
    def registry_address(self) -> str:
        """Position registry (NonfungiblePositionManager) address"""
        pass

    @abstractmethod
    def read_pool_state(self, pool_address: str) -> PoolState:
        pass

    @abstractmethod
    def read_position(self, token_id: int) -> PositionInfo:
        """
        Read a position from the registry.

        Raises:
            NotFoundError: token_id does not exist
        """
        pass

    @abstractmethod
    def allowance(self, token: str, owner: str, spender: str) -> int:
        pass

    @abstractmethod
    def owner_of(self, token_id: int) -> str:
        pass

    @abstractmethod
    def is_approved_for_all(self, owner: str, operator: str) -> bool:
        pass

    @abstractmethod
    def get_approved(self, token_id: int) -> str:
        pass

    @abstractmethod
    def submit_open(self, call: MintCall) -> PendingTx:
        pass

    @abstractmethod
    def submit_decrease_liquidity(self, call: DecreaseLiquidityCall) -> PendingTx:
        pass

    @abstractmethod
    def submit_collect(self, call: CollectCall) -> PendingTx:
        pass

    @abstractmethod
    def submit_approve(self, call: ApproveCall) -> PendingTx:
        pass

    @abstractmethod
    def submit_set_approval_for_all(self, call: SetApprovalForAllCall) -> PendingTx:
        pass

    @abstractmethod
    def wait(self, pending: PendingTx) -> Receipt:
        """
        Block until a submitted transaction is mined.

        Raises:
            TransactionRevertedError: the transaction reverted
            NetworkError: no receipt within the configured timeout
        """
        pass
