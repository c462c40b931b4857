"""Uniswap V3 NonfungiblePositionManager contract wrapper"""

from web3.logs import DISCARD

from ..core.types import PositionInfo


# Events that carry the amounts for each write
RECEIPT_EVENTS = {
    "mint": "IncreaseLiquidity",
    "decreaseLiquidity": "DecreaseLiquidity",
    "collect": "Collect",
}


class NFPM:
    """Wrapper for position registry reads and writes"""

    def __init__(self, manager, address, tx_builder=None):
        """
        Args:
            manager: Web3Manager instance
            address: NonfungiblePositionManager address
            tx_builder: TransactionBuilder for writes (None = read-only)
        """
        self.manager = manager
        self.address = manager.checksum(address)
        self.contract = manager.get_contract(self.address, "nfpm")
        self.tx_builder = tx_builder

    def positions(self, token_id):
        """Position data by token ID; reverts for unknown IDs"""
        pos = self.contract.functions.positions(token_id).call()
        return PositionInfo.from_tuple(token_id, pos)

    def owner_of(self, token_id):
        return self.contract.functions.ownerOf(token_id).call()

    def get_approved(self, token_id):
        return self.contract.functions.getApproved(token_id).call()

    def is_approved_for_all(self, owner, operator):
        return self.contract.functions.isApprovedForAll(
            self.manager.checksum(owner), self.manager.checksum(operator)
        ).call()

    def mint(self, call):
        """Submit mint(MintParams); returns the tx hash"""
        params = (
            self.manager.checksum(call.token0),
            self.manager.checksum(call.token1),
            *call.as_tuple()[2:9],
            self.manager.checksum(call.recipient),
            call.deadline,
        )
        return self.tx_builder.send(self.contract.functions.mint(params), call.operation)

    def decrease_liquidity(self, call):
        return self.tx_builder.send(
            self.contract.functions.decreaseLiquidity(call.as_tuple()), call.operation
        )

    def collect(self, call):
        params = (call.token_id, self.manager.checksum(call.recipient), call.amount0_max, call.amount1_max)
        return self.tx_builder.send(self.contract.functions.collect(params), call.operation)

    def set_approval_for_all(self, call):
        contract_func = self.contract.functions.setApprovalForAll(
            self.manager.checksum(call.operator), call.approved
        )
        return self.tx_builder.send(contract_func, call.operation)

    def parse_event(self, receipt, operation):
        """
        Args of the registry event emitted by `operation`, or None.

        Logs from other contracts in the same receipt (token transfers) are
        skipped.
        """
        event_name = RECEIPT_EVENTS.get(operation)
        if event_name is None:
            return None
        events = getattr(self.contract.events, event_name)().process_receipt(receipt, errors=DISCARD)
        for event in events:
            if event["address"].lower() == self.address.lower():
                return event["args"]
        return None
