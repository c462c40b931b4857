"""web3-backed LedgerClient"""

import logging
from contextlib import contextmanager

from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from ..core.connection import Web3Manager
from ..core.exceptions import NetworkError, NotFoundError, TransactionRevertedError
from ..utils.gas import GasManager
from ..utils.log import log_event
from ..utils.transactions import TransactionBuilder
from .base import LedgerClient
from .calls import PendingTx, Receipt
from .erc20 import ERC20
from .nfpm import NFPM
from .pool import Pool


logger = logging.getLogger(__name__)


@contextmanager
def ledger_errors(operation, **details):
    """Translate web3/requests failures into NetworkError / TransactionRevertedError"""
    try:
        yield
    except ContractLogicError as e:
        raise TransactionRevertedError(
            f"{operation} reverted: {e}", operation=operation, params=details, cause=e
        ) from e
    except Web3RPCError as e:
        raise TransactionRevertedError(
            f"{operation} rejected by node: {e}", operation=operation, params=details, cause=e
        ) from e
    except TimeExhausted as e:
        raise NetworkError(
            f"Timed out waiting for {operation}: {e}", operation=operation, params=details, cause=e
        ) from e
    except RequestException as e:
        raise NetworkError(
            f"RPC request failed during {operation}: {e}", operation=operation, params=details, cause=e
        ) from e


class Web3LedgerClient(LedgerClient):
    """LedgerClient over a JSON-RPC node, signing with the configured key"""

    def __init__(self, config, manager=None, max_fee_per_gas_gwei=None, priority_fee_gwei=None,
                 require_signer=True):
        """
        Args:
            config: Config instance
            manager: Web3Manager (built from config if None)
            max_fee_per_gas_gwei: Fee cap override in Gwei
            priority_fee_gwei: Tip override in Gwei
            require_signer: Load PRIVATE_KEY (False for read-only use)
        """
        self.config = config
        self.manager = manager or Web3Manager(config, require_signer=require_signer)

        gas_manager = GasManager(self.manager, max_fee_per_gas_gwei, priority_fee_gwei)
        self.tx_builder = TransactionBuilder(self.manager, gas_manager)
        self.nfpm = NFPM(self.manager, config.nfpm_address, self.tx_builder)
        self._pools = {}
        self._tokens = {}

    def _pool(self, address):
        key = address.lower()
        if key not in self._pools:
            self._pools[key] = Pool(self.manager, address)
        return self._pools[key]

    def _token(self, address):
        key = address.lower()
        if key not in self._tokens:
            self._tokens[key] = ERC20(self.manager, address, self.tx_builder)
        return self._tokens[key]

    @property
    def account_address(self):
        return self.manager.address

    @property
    def registry_address(self):
        return self.nfpm.address

    # Reads

    def read_pool_state(self, pool_address):
        with ledger_errors("slot0", pool=pool_address):
            return self._pool(pool_address).state()

    def read_position(self, token_id):
        try:
            with ledger_errors("positions", token_id=token_id):
                return self.nfpm.positions(token_id)
        except TransactionRevertedError as e:
            if not isinstance(e.cause, ContractLogicError):
                raise
            raise NotFoundError(
                f"Position {token_id} not found", operation="positions",
                params={"token_id": token_id}, cause=e.cause,
            ) from e

    def allowance(self, token, owner, spender):
        with ledger_errors("allowance", token=token):
            return self._token(token).allowance(owner, spender)

    def owner_of(self, token_id):
        try:
            with ledger_errors("ownerOf", token_id=token_id):
                return self.nfpm.owner_of(token_id)
        except TransactionRevertedError as e:
            if not isinstance(e.cause, ContractLogicError):
                raise
            raise NotFoundError(
                f"Position {token_id} has no owner", operation="ownerOf",
                params={"token_id": token_id}, cause=e.cause,
            ) from e

    def is_approved_for_all(self, owner, operator):
        with ledger_errors("isApprovedForAll"):
            return self.nfpm.is_approved_for_all(owner, operator)

    def get_approved(self, token_id):
        with ledger_errors("getApproved", token_id=token_id):
            return self.nfpm.get_approved(token_id)

    # Writes

    def _submit(self, call, send):
        with ledger_errors(call.operation):
            tx_hash = send(call)
        log_event(logger, "Transaction sent", operation=call.operation, tx_hash=tx_hash)
        return PendingTx(tx_hash=tx_hash, operation=call.operation)

    def submit_open(self, call):
        return self._submit(call, self.nfpm.mint)

    def submit_decrease_liquidity(self, call):
        return self._submit(call, self.nfpm.decrease_liquidity)

    def submit_collect(self, call):
        return self._submit(call, self.nfpm.collect)

    def submit_approve(self, call):
        return self._submit(call, lambda c: self._token(c.token).approve(c.spender, c.amount))

    def submit_set_approval_for_all(self, call):
        return self._submit(call, self.nfpm.set_approval_for_all)

    def wait(self, pending):
        with ledger_errors(pending.operation, tx_hash=pending.tx_hash):
            raw = self.tx_builder.wait(pending.tx_hash, timeout=self.config.receipt_timeout)

        if raw["status"] != 1:
            raise TransactionRevertedError(
                f"{pending.operation} transaction reverted: {pending.tx_hash}",
                operation=pending.operation,
                params={"tx_hash": pending.tx_hash, "block_number": raw["blockNumber"]},
            )

        args = self.nfpm.parse_event(raw, pending.operation) or {}
        receipt = Receipt(
            tx_hash=Web3.to_hex(raw["transactionHash"]),
            block_number=raw["blockNumber"],
            status=raw["status"],
            operation=pending.operation,
            token_id=args.get("tokenId"),
            liquidity=args.get("liquidity"),
            amount0=args.get("amount0"),
            amount1=args.get("amount1"),
        )
        log_event(
            logger, "Transaction confirmed", operation=receipt.operation, tx_hash=receipt.tx_hash,
            block=receipt.block_number,
        )
        return receipt
