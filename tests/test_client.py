from unittest.mock import MagicMock

import pytest
from requests.exceptions import ConnectionError as RequestsConnectionError
from web3.exceptions import ContractLogicError, TimeExhausted, Web3RPCError

from conftest import ACCOUNT, POOL, REGISTRY, USDC, WETH
from univ3_positions.contracts import (
    CollectCall,
    MintCall,
    PendingTx,
    Web3LedgerClient,
    ledger_errors,
)
from univ3_positions.contracts.calls import ApproveCall
from univ3_positions.core.exceptions import (
    NetworkError,
    NotFoundError,
    TransactionRevertedError,
)
from univ3_positions.core.types import MAX_UINT128, PositionInfo, PoolState


TX_HASH = "0x" + "ab" * 32


@pytest.fixture
def web3_manager():
    manager = MagicMock()
    manager.address = ACCOUNT
    manager.checksum.side_effect = lambda address: address
    manager.get_contract.side_effect = lambda address, abi_name: MagicMock(name=abi_name)
    return manager


@pytest.fixture
def client(config, web3_manager):
    client = Web3LedgerClient(config, manager=web3_manager)
    client.tx_builder = MagicMock()
    client.nfpm.tx_builder = client.tx_builder
    return client


def _raw_receipt(status=1, block=123):
    return {"status": status, "blockNumber": block, "transactionHash": bytes.fromhex("ab" * 32)}


class TestLedgerErrors:
    def test_contract_revert(self):
        with pytest.raises(TransactionRevertedError) as info:
            with ledger_errors("mint", token_id=1):
                raise ContractLogicError("execution reverted: STF")
        assert info.value.operation == "mint"
        assert info.value.params == {"token_id": 1}
        assert "STF" in info.value.message

    def test_node_rejection(self):
        with pytest.raises(TransactionRevertedError) as info:
            with ledger_errors("mint"):
                raise Web3RPCError("insufficient funds for gas * price + value")
        assert info.value.operation == "mint"
        assert "insufficient funds" in info.value.message

    def test_timeout(self):
        with pytest.raises(NetworkError):
            with ledger_errors("collect"):
                raise TimeExhausted("not mined")

    def test_connection_failure(self):
        with pytest.raises(NetworkError) as info:
            with ledger_errors("slot0"):
                raise RequestsConnectionError("refused")
        assert info.value.kind == "NetworkError"

    def test_other_errors_pass_through(self):
        with pytest.raises(KeyError):
            with ledger_errors("slot0"):
                raise KeyError("x")


class TestReads:
    def test_addresses(self, client):
        assert client.account_address == ACCOUNT
        assert client.registry_address == REGISTRY

    def test_read_position(self, client):
        raw = (0, "0x" + "0" * 40, USDC.address, WETH.address, 3000, 201000, 201600, 10 ** 18, 1, 2, 3, 4)
        client.nfpm.contract.functions.positions.return_value.call.return_value = raw

        position = client.read_position(5)
        assert isinstance(position, PositionInfo)
        assert position.token_id == 5
        assert position.liquidity == 10 ** 18
        assert (position.tokens_owed0, position.tokens_owed1) == (3, 4)

    def test_unknown_position(self, client):
        client.nfpm.contract.functions.positions.return_value.call.side_effect = ContractLogicError(
            "execution reverted: Invalid token ID"
        )
        with pytest.raises(NotFoundError) as info:
            client.read_position(999)
        assert info.value.params["token_id"] == 999

    def test_unknown_owner(self, client):
        client.nfpm.contract.functions.ownerOf.return_value.call.side_effect = ContractLogicError("nonexistent")
        with pytest.raises(NotFoundError):
            client.owner_of(999)

    def test_pool_state(self, client):
        pool = client._pool(POOL)
        pool.contract.functions.slot0.return_value.call.return_value = (2 ** 96, 0, 0, 1, 1, 0, True)
        pool.contract.functions.liquidity.return_value.call.return_value = 777

        assert client.read_pool_state(POOL) == PoolState(2 ** 96, 0, 777)
        assert client._pool(POOL.lower()) is pool

    def test_rpc_rejection_is_not_missing_position(self, client):
        client.nfpm.contract.functions.positions.return_value.call.side_effect = Web3RPCError("rate limited")
        with pytest.raises(TransactionRevertedError) as info:
            client.read_position(5)
        assert not isinstance(info.value, NotFoundError)

    def test_rpc_failure(self, client):
        pool = client._pool(POOL)
        pool.contract.functions.slot0.return_value.call.side_effect = RequestsConnectionError("down")
        with pytest.raises(NetworkError):
            client.read_pool_state(POOL)


class TestWrites:
    def test_submit_open(self, client):
        client.tx_builder.send.return_value = TX_HASH
        call = MintCall(
            token0=USDC.address, token1=WETH.address, fee=3000, tick_lower=201000, tick_upper=201600,
            amount0_desired=10, amount1_desired=20, amount0_min=9, amount1_min=19,
            recipient=ACCOUNT, deadline=1_700_000_600,
        )
        pending = client.submit_open(call)

        assert pending == PendingTx(tx_hash=TX_HASH, operation="mint")
        client.nfpm.contract.functions.mint.assert_called_once_with(
            (USDC.address, WETH.address, 3000, 201000, 201600, 10, 20, 9, 19, ACCOUNT, 1_700_000_600)
        )

    def test_submit_collect(self, client):
        client.tx_builder.send.return_value = TX_HASH
        client.submit_collect(CollectCall(token_id=3, recipient=ACCOUNT, amount0_max=MAX_UINT128,
                                          amount1_max=MAX_UINT128))
        client.nfpm.contract.functions.collect.assert_called_once_with(
            (3, ACCOUNT, MAX_UINT128, MAX_UINT128)
        )

    def test_submit_approve(self, client):
        client.tx_builder.send.return_value = TX_HASH
        pending = client.submit_approve(ApproveCall(token=USDC.address, spender=REGISTRY, amount=500))

        assert pending.operation == "approve"
        token = client._token(USDC.address)
        token.contract.functions.approve.assert_called_once_with(REGISTRY, 500)

    def test_revert_on_submit(self, client):
        client.tx_builder.send.side_effect = ContractLogicError("execution reverted: Price slippage check")
        with pytest.raises(TransactionRevertedError) as info:
            client.submit_collect(CollectCall(token_id=3, recipient=ACCOUNT, amount0_max=1, amount1_max=1))
        assert info.value.operation == "collect"

    def test_insufficient_funds_on_submit(self, client):
        client.tx_builder.send.side_effect = Web3RPCError("insufficient funds for gas * price + value")
        with pytest.raises(TransactionRevertedError) as info:
            client.submit_collect(CollectCall(token_id=3, recipient=ACCOUNT, amount0_max=1, amount1_max=1))
        assert "insufficient funds" in info.value.message


class TestWait:
    def test_confirmed_with_event(self, client):
        client.tx_builder.wait.return_value = _raw_receipt()
        client.nfpm.contract.events.IncreaseLiquidity.return_value.process_receipt.return_value = [
            {"address": REGISTRY, "args": {"tokenId": 7, "liquidity": 100, "amount0": 1, "amount1": 2}},
        ]

        receipt = client.wait(PendingTx(TX_HASH, "mint"))

        assert receipt.succeeded
        assert receipt.tx_hash == TX_HASH
        assert receipt.block_number == 123
        assert (receipt.token_id, receipt.liquidity, receipt.amount0, receipt.amount1) == (7, 100, 1, 2)
        client.tx_builder.wait.assert_called_once_with(TX_HASH, timeout=300)

    def test_ignores_events_from_other_contracts(self, client):
        client.tx_builder.wait.return_value = _raw_receipt()
        client.nfpm.contract.events.Collect.return_value.process_receipt.return_value = [
            {"address": POOL, "args": {"tokenId": 1, "amount0": 999, "amount1": 999}},
        ]
        receipt = client.wait(PendingTx(TX_HASH, "collect"))
        assert receipt.amount0 is None

    def test_approval_has_no_amounts(self, client):
        client.tx_builder.wait.return_value = _raw_receipt()
        receipt = client.wait(PendingTx(TX_HASH, "approve"))
        assert receipt.token_id is None
        assert receipt.status == 1

    def test_failed_status(self, client):
        client.tx_builder.wait.return_value = _raw_receipt(status=0)
        with pytest.raises(TransactionRevertedError) as info:
            client.wait(PendingTx(TX_HASH, "decreaseLiquidity"))
        assert info.value.params["block_number"] == 123

    def test_timeout(self, client):
        client.tx_builder.wait.side_effect = TimeExhausted("gave up")
        with pytest.raises(NetworkError) as info:
            client.wait(PendingTx(TX_HASH, "mint"))
        assert info.value.params["tx_hash"] == TX_HASH
