"""Uniswap V3 Pool contract wrapper"""

from ..core.types import PoolState


class Pool:
    """Read-only wrapper for pool state"""

    def __init__(self, manager, address):
        """
        Args:
            manager: Web3Manager instance
            address: Pool contract address
        """
        self.manager = manager
        self.address = manager.checksum(address)
        self.contract = manager.get_contract(self.address, "pool")

    def slot0(self):
        """
        Returns: (sqrtPriceX96, tick, observationIndex, observationCardinality,
                  observationCardinalityNext, feeProtocol, unlocked)
        """
        return self.contract.functions.slot0().call()

    def liquidity(self):
        """Current in-range pool liquidity"""
        return self.contract.functions.liquidity().call()

    def state(self):
        """Current PoolState"""
        slot0 = self.slot0()
        return PoolState(sqrt_price_x96=slot0[0], tick=slot0[1], liquidity=self.liquidity())
