"""Build, sign, send and await EIP-1559 transactions"""

import logging

from web3 import Web3

from .gas import GasManager


logger = logging.getLogger(__name__)


class TransactionBuilder:
    """Sends contract calls from the manager's signing account"""

    def __init__(self, manager, gas_manager=None, gas_buffer=1.2):
        """
        Args:
            manager: Web3Manager instance with a signer
            gas_manager: GasManager instance (created if None)
            gas_buffer: Multiplier on the gas estimate
        """
        self.manager = manager
        self.gas_manager = gas_manager or GasManager(manager)
        self.gas_buffer = gas_buffer

    def build(self, contract_func, operation):
        """Build an unsigned type-2 transaction for a contract call"""
        fee_params = self.gas_manager.fee_params()
        estimated_gas = self.gas_manager.estimate_gas(contract_func, self.manager.address, operation)

        tx = {
            "from": self.manager.address,
            "nonce": self.manager.get_nonce(),
            "gas": int(estimated_gas * self.gas_buffer),
            "maxFeePerGas": fee_params["maxFeePerGas"],
            "maxPriorityFeePerGas": fee_params["maxPriorityFeePerGas"],
            "chainId": self.manager.chain_id,
            "type": 2,
        }
        return contract_func.build_transaction(tx)

    def send(self, contract_func, operation):
        """
        Build, sign and broadcast a contract call.

        Returns:
            Transaction hash as 0x-prefixed hex
        """
        tx = self.build(contract_func, operation)
        signed = self.manager.account.sign_transaction(tx)
        tx_hash = Web3.to_hex(self.manager.w3.eth.send_raw_transaction(signed.raw_transaction))
        logger.debug("Sent %s tx %s (nonce %s, gas %s)", operation, tx_hash, tx["nonce"], tx["gas"])
        return tx_hash

    def wait(self, tx_hash, timeout):
        """Block until the transaction is mined; web3 raises TimeExhausted on expiry"""
        return self.manager.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
