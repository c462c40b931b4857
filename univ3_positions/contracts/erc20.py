"""ERC20 token contract wrapper"""


class ERC20:
    """Wrapper for the ERC20 calls the workflows need"""

    def __init__(self, manager, address, tx_builder=None):
        """
        Args:
            manager: Web3Manager instance
            address: Token contract address
            tx_builder: TransactionBuilder for writes (None = read-only)
        """
        self.manager = manager
        self.address = manager.checksum(address)
        self.contract = manager.get_contract(self.address, "erc20")
        self.tx_builder = tx_builder

    def allowance(self, owner, spender):
        return self.contract.functions.allowance(
            self.manager.checksum(owner), self.manager.checksum(spender)
        ).call()

    def approve(self, spender, amount):
        """Submit approve(spender, amount); returns the tx hash"""
        contract_func = self.contract.functions.approve(self.manager.checksum(spender), amount)
        return self.tx_builder.send(contract_func, "approve")
