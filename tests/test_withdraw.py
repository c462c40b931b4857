from decimal import Decimal

import pytest

from conftest import ACCOUNT, OTHER, REGISTRY, TKA, TKB, USDC, WETH
from univ3_positions.core.exceptions import (
    InvalidInputError,
    InvalidPositionError,
    NotFoundError,
    TransactionRevertedError,
)
from univ3_positions.core.types import FeeTier
from univ3_positions.math.price import ticks_for_price_range
from univ3_positions.operations import WithdrawOptions


def _add(ledger, liquidity=10 ** 18, **kwargs):
    tick_lower, tick_upper = ticks_for_price_range(1750, 1850, WETH, USDC, FeeTier.MEDIUM)
    return ledger.add_position(USDC.address, WETH.address, 3000, tick_lower, tick_upper, liquidity, **kwargs)


class TestWithdraw:
    def test_full_withdraw_and_collect(self, manager, ledger):
        token_id = _add(ledger)
        result = manager.withdraw(token_id)

        assert result
        assert result.success is True
        assert result.liquidity_removed == 10 ** 18
        assert result.approval_receipt is None
        assert ledger.operations() == ["decreaseLiquidity", "collect"]
        position = ledger.positions[token_id]
        assert position.liquidity == 0
        assert not position.has_owed_tokens

    def test_partial_withdraw_floors(self, manager, ledger):
        token_id = _add(ledger, liquidity=10 ** 18 + 1)
        result = manager.withdraw(token_id, WithdrawOptions(percentage=50))

        assert result.liquidity_removed == 5 * 10 ** 17
        assert ledger.positions[token_id].liquidity == 5 * 10 ** 17 + 1

    def test_fractional_percentage(self, manager, ledger):
        token_id = _add(ledger, liquidity=1000)
        result = manager.withdraw(token_id, WithdrawOptions(percentage=Decimal("33.3")))
        assert result.liquidity_removed == 333

    def test_without_collect(self, manager, ledger):
        token_id = _add(ledger)
        result = manager.withdraw(token_id, WithdrawOptions(collect_fees=False))

        assert ledger.operations() == ["decreaseLiquidity"]
        assert result.collect_receipt is None
        assert ledger.positions[token_id].has_owed_tokens

    def test_decrease_minimums(self, manager, ledger):
        token_id = _add(ledger)
        manager.withdraw(token_id, WithdrawOptions(percentage=100, slippage_tolerance="0.01"))

        (decrease,) = ledger.calls_of("decreaseLiquidity")
        assert decrease.deadline == ledger.now + 600
        assert decrease.liquidity == 10 ** 18
        assert decrease.amount0_min > 0 and decrease.amount1_min > 0

    def test_nothing_to_remove_still_collects(self, manager, ledger):
        token_id = _add(ledger, liquidity=10, tokens_owed0=7)
        result = manager.withdraw(token_id, WithdrawOptions(percentage=1))

        assert result.liquidity_removed == 0
        assert result.decrease_receipt is None
        assert ledger.operations() == ["collect"]
        assert result.collect_receipt.amount0 == 7

    def test_result_serializes(self, manager, ledger):
        token_id = _add(ledger)
        data = manager.withdraw(token_id, WithdrawOptions(collect_fees=False)).to_dict()
        assert data["success"] is True
        assert data["collect_receipt"] is None
        assert data["decrease_receipt"]["operation"] == "decreaseLiquidity"


class TestWithdrawApproval:
    def test_owner_needs_no_approval(self, manager, ledger):
        token_id = _add(ledger)
        manager.withdraw(token_id)
        assert ledger.calls_of("setApprovalForAll") == []

    def test_foreign_position_approves_registry(self, manager, ledger):
        token_id = _add(ledger, owner=OTHER)
        result = manager.withdraw(token_id)

        assert ledger.operations() == ["setApprovalForAll", "decreaseLiquidity", "collect"]
        (approval,) = ledger.calls_of("setApprovalForAll")
        assert approval.operator == REGISTRY
        assert approval.approved is True
        assert result.approval_receipt is not None

    def test_position_operator_needs_no_approval(self, manager, ledger):
        token_id = _add(ledger, owner=OTHER, operator=ACCOUNT)
        manager.withdraw(token_id)
        assert ledger.calls_of("setApprovalForAll") == []

    def test_approved_for_all_needs_no_approval(self, manager, ledger):
        token_id = _add(ledger, owner=OTHER)
        ledger.approved_for_all.add((OTHER.lower(), ACCOUNT.lower()))
        manager.withdraw(token_id)
        assert ledger.calls_of("setApprovalForAll") == []

    def test_token_approval_needs_no_approval(self, manager, ledger):
        token_id = _add(ledger, owner=OTHER)
        ledger.approved[token_id] = ACCOUNT
        manager.withdraw(token_id)
        assert ledger.calls_of("setApprovalForAll") == []


class TestWithdrawValidation:
    @pytest.mark.parametrize("percentage", [0, -10, 101, "lots", None])
    def test_bad_percentage(self, manager, ledger, percentage):
        token_id = _add(ledger)
        with pytest.raises(InvalidInputError) as info:
            manager.withdraw(token_id, WithdrawOptions(percentage=percentage))
        assert info.value.operation == "withdraw"
        assert ledger.reads == []
        assert ledger.submitted == []

    def test_bad_slippage(self, manager, ledger):
        token_id = _add(ledger)
        with pytest.raises(InvalidInputError):
            manager.withdraw(token_id, WithdrawOptions(slippage_tolerance=1))
        assert ledger.submitted == []

    def test_unknown_position(self, manager, ledger):
        with pytest.raises(NotFoundError):
            manager.withdraw(99)
        assert ledger.submitted == []

    def test_empty_position(self, manager, ledger):
        token_id = _add(ledger, liquidity=0, tokens_owed0=5)
        with pytest.raises(InvalidPositionError):
            manager.withdraw(token_id)
        assert ledger.submitted == []

    def test_other_pool(self, manager, ledger):
        token_id = ledger.add_position(TKA.address, TKB.address, 3000, -600, 600, 10 ** 18)
        with pytest.raises(InvalidPositionError):
            manager.withdraw(token_id)


class TestWithdrawFailures:
    def test_collect_revert_reports_stage(self, manager, ledger):
        token_id = _add(ledger)
        ledger.revert_on.add("collect")
        with pytest.raises(TransactionRevertedError) as info:
            manager.withdraw(token_id)
        assert info.value.params["stage"] == "collecting_fees"
        assert ledger.positions[token_id].liquidity == 0
