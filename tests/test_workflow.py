"""Open, inspect, rebalance and withdraw one position against the fake ledger"""

from decimal import Decimal

from conftest import pool_state_at
from univ3_positions.operations import OpenPositionParams, RebalanceParams, WithdrawOptions


class TestPositionLifecycle:
    def test_open_inspect_withdraw(self, manager, query, ledger):
        opened = manager.open_position(OpenPositionParams("1", Decimal(1750), Decimal(1850)))

        snapshot = query.inspect(opened.token_id)
        assert snapshot.in_range
        assert snapshot.liquidity == opened.liquidity
        assert abs(snapshot.lower_price - 1750) / 1750 < Decimal("0.004")
        assert abs(snapshot.upper_price - 1850) / 1850 < Decimal("0.004")

        half = manager.withdraw(opened.token_id, WithdrawOptions(percentage=50))
        assert half.liquidity_removed == opened.liquidity // 2
        assert query.inspect(opened.token_id).liquidity == opened.liquidity - opened.liquidity // 2

        rest = manager.withdraw(opened.token_id)
        assert rest
        assert query.inspect(opened.token_id).liquidity == 0

    def test_rebalance_after_price_leaves_range(self, manager, query, ledger):
        opened = manager.open_position(OpenPositionParams("1", Decimal(1750), Decimal(1850)))

        ledger.pool_state = pool_state_at(Decimal(1900))
        assert not query.inspect(opened.token_id).in_range

        # All USDC now, so the new range must also sit below the price
        moved = manager.rebalance(opened.token_id, RebalanceParams(Decimal(1800), Decimal(1880)))
        assert moved.collected.amount1 == 0
        assert query.inspect(opened.token_id).liquidity == 0

        ledger.pool_state = pool_state_at(Decimal(1840))
        snapshot = query.inspect(moved.new_token_id)
        assert snapshot.in_range
        assert snapshot.liquidity > 0

        closed = manager.withdraw(moved.new_token_id)
        assert closed.liquidity_removed == snapshot.liquidity
