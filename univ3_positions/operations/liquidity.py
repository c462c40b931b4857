"""Open, rebalance and withdraw workflows for a single position"""

import logging
import time
from dataclasses import dataclass, field, replace
from decimal import ROUND_FLOOR, localcontext
from typing import List, Optional

from ..contracts.calls import (
    ApproveCall,
    CollectCall,
    DecreaseLiquidityCall,
    MintCall,
    SetApprovalForAllCall,
)
from ..core.exceptions import InvalidInputError, InvalidPositionError, error_context
from ..core.types import MAX_UINT128, AmountPair, FeeTier, sort_tokens, to_decimal
from ..math.amounts import (
    calculate_minimum_amounts,
    calculate_optimal_amounts,
    expected_mint_amounts,
    position_amounts,
)
from ..math.price import sqrt_price_x96_to_price, ticks_for_price_range
from ..math.tick_math import PRECISION
from ..utils.log import log_event
from .validation import (
    validate_open_params,
    validate_rebalance_params,
    validate_token_id,
    validate_withdraw_options,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpenPositionParams:
    """
    Request to open a position. Unset tokens, fee tier and pool come from
    the Config; prices are quote units per one base unit.
    """

    amount: object
    price_lower: object
    price_upper: object
    base_token: object = None
    quote_token: object = None
    fee_tier: object = None
    pool_address: Optional[str] = None
    slippage_tolerance: object = None


@dataclass(frozen=True)
class RebalanceParams:
    new_price_lower: object
    new_price_upper: object
    slippage_tolerance: object = None


@dataclass(frozen=True)
class WithdrawOptions:
    percentage: object = 100
    collect_fees: bool = True
    slippage_tolerance: object = None


@dataclass(frozen=True)
class OpenResult:
    token_id: int
    tick_lower: int
    tick_upper: int
    liquidity: int
    desired: AmountPair
    minimums: object
    pool_price: object
    mint_receipt: object
    approval_receipts: List[object] = field(default_factory=list)

    def to_dict(self):
        return {
            "token_id": self.token_id,
            "tick_lower": self.tick_lower,
            "tick_upper": self.tick_upper,
            "liquidity": self.liquidity,
            "amount0_desired": self.desired.amount0,
            "amount1_desired": self.desired.amount1,
            "amount0_min": self.minimums.amount0_min,
            "amount1_min": self.minimums.amount1_min,
            "pool_price": str(self.pool_price),
            "mint_receipt": self.mint_receipt.to_dict(),
            "approval_receipts": [r.to_dict() for r in self.approval_receipts],
        }


@dataclass(frozen=True)
class RebalanceResult:
    old_token_id: int
    new_token_id: int
    new_tick_lower: int
    new_tick_upper: int
    liquidity_removed: int
    collected: AmountPair
    decrease_receipt: object
    collect_receipt: object
    mint_receipt: object
    approval_receipts: List[object] = field(default_factory=list)

    def to_dict(self):
        return {
            "old_token_id": self.old_token_id,
            "new_token_id": self.new_token_id,
            "new_tick_lower": self.new_tick_lower,
            "new_tick_upper": self.new_tick_upper,
            "liquidity_removed": self.liquidity_removed,
            "amount0_collected": self.collected.amount0,
            "amount1_collected": self.collected.amount1,
            "decrease_receipt": self.decrease_receipt.to_dict(),
            "collect_receipt": self.collect_receipt.to_dict(),
            "mint_receipt": self.mint_receipt.to_dict(),
            "approval_receipts": [r.to_dict() for r in self.approval_receipts],
        }


@dataclass(frozen=True)
class WithdrawResult:
    success: bool
    token_id: int
    liquidity_removed: int
    approval_receipt: object = None
    decrease_receipt: object = None
    collect_receipt: object = None

    def __bool__(self):
        return self.success

    def to_dict(self):
        def _receipt(r):
            return r.to_dict() if r is not None else None

        return {
            "success": self.success,
            "token_id": self.token_id,
            "liquidity_removed": self.liquidity_removed,
            "approval_receipt": _receipt(self.approval_receipt),
            "decrease_receipt": _receipt(self.decrease_receipt),
            "collect_receipt": _receipt(self.collect_receipt),
        }


def _enter(ctx, stage):
    ctx["stage"] = stage
    logger.debug("%s -> %s", ctx.get("operation", "workflow"), stage)


class LiquidityManager:
    """
    Position workflows against one configured pool.

    Every external call waits for the previous one to confirm. Nothing is
    cached between calls; each workflow re-reads chain state.
    """

    def __init__(self, config, client, clock=time.time):
        """
        Args:
            config: Config instance
            client: LedgerClient implementation
            clock: Returns unix time in seconds (deadline source)
        """
        self.config = config
        self.client = client
        self.clock = clock

    def _deadline(self):
        return int(self.clock()) + self.config.deadline_minutes * 60

    def _slippage(self, override):
        if override is None:
            return self.config.slippage_tolerance
        return to_decimal(override, "slippage_tolerance")

    def _ensure_allowances(self, token_amounts):
        """
        Approve the registry for each (token address, amount) whose current
        allowance is short. Returns the approval receipts.
        """
        owner = self.client.account_address
        spender = self.client.registry_address
        receipts = []

        for token, amount in token_amounts:
            if amount <= 0:
                continue
            current = self.client.allowance(token, owner, spender)
            if current >= amount:
                logger.debug("Allowance for %s sufficient (%s >= %s)", token, current, amount)
                continue
            pending = self.client.submit_approve(ApproveCall(token=token, spender=spender, amount=amount))
            receipt = self.client.wait(pending)
            log_event(logger, "Token approved", token=token, amount=amount, tx_hash=receipt.tx_hash)
            receipts.append(receipt)
        return receipts

    def _check_pool(self, position):
        pool = self.config.pool
        if not pool.matches(position.token0, position.token1, position.fee):
            raise InvalidPositionError(
                f"Position {position.token_id} is not in the configured "
                f"{pool.token0.symbol}/{pool.token1.symbol} {pool.fee_tier.percent} pool",
                params={"token0": position.token0, "token1": position.token1, "fee": position.fee},
            )

    def open_position(self, params):
        """
        Open a new position over a price range.

        Args:
            params: OpenPositionParams

        Returns:
            OpenResult
        """
        params = replace(
            params,
            base_token=params.base_token or self.config.base_token,
            quote_token=params.quote_token or self.config.quote_token,
            fee_tier=params.fee_tier if params.fee_tier is not None else self.config.fee_tier,
        )
        ctx = {
            "operation": "open_position",
            "amount": str(params.amount),
            "price_lower": str(params.price_lower),
            "price_upper": str(params.price_upper),
        }

        with error_context("open_position", ctx):
            _enter(ctx, "validating")
            validate_open_params(params)
            fee_tier = FeeTier.from_value(params.fee_tier)
            slippage = self._slippage(params.slippage_tolerance)
            base, quote = params.base_token, params.quote_token
            token0, token1 = sort_tokens(base, quote)
            pool_address = params.pool_address
            if pool_address is None:
                if not self.config.pool.matches(token0.address, token1.address, fee_tier):
                    raise InvalidInputError(
                        f"No pool configured for {token0.symbol}/{token1.symbol} at fee {int(fee_tier)}; "
                        "pass a pool address",
                        params={"fee_tier": int(fee_tier)},
                    )
                pool_address = self.config.pool_address

            _enter(ctx, "fetching_pool_state")
            pool_state = self.client.read_pool_state(pool_address)
            pool_price = sqrt_price_x96_to_price(pool_state.sqrt_price_x96, base, quote)
            log_event(
                logger, "Pool state", pool=pool_address, tick=pool_state.tick,
                price=f"{pool_price:.6f} {quote.symbol}/{base.symbol}",
            )

            _enter(ctx, "computing_amounts")
            tick_lower, tick_upper = ticks_for_price_range(
                params.price_lower, params.price_upper, base, quote, fee_tier
            )
            ctx.update(tick_lower=tick_lower, tick_upper=tick_upper)
            desired = calculate_optimal_amounts(pool_state, tick_lower, tick_upper, params.amount, fee_tier)
            minimums = calculate_minimum_amounts(desired.amount0, desired.amount1, slippage)
            ctx.update(amount0_desired=desired.amount0, amount1_desired=desired.amount1)

            _enter(ctx, "approving_tokens")
            approvals = self._ensure_allowances(
                [(token0.address, desired.amount0), (token1.address, desired.amount1)]
            )

            _enter(ctx, "submitting")
            call = MintCall(
                token0=token0.address,
                token1=token1.address,
                fee=int(fee_tier),
                tick_lower=tick_lower,
                tick_upper=tick_upper,
                amount0_desired=desired.amount0,
                amount1_desired=desired.amount1,
                amount0_min=minimums.amount0_min,
                amount1_min=minimums.amount1_min,
                recipient=self.client.account_address,
                deadline=self._deadline(),
            )
            pending = self.client.submit_open(call)
            ctx["tx_hash"] = pending.tx_hash

            _enter(ctx, "confirming")
            receipt = self.client.wait(pending)

            _enter(ctx, "done")
            log_event(
                logger, "Position opened", token_id=receipt.token_id, tick_lower=tick_lower,
                tick_upper=tick_upper, liquidity=receipt.liquidity, tx_hash=receipt.tx_hash,
            )
            return OpenResult(
                token_id=receipt.token_id,
                tick_lower=tick_lower,
                tick_upper=tick_upper,
                liquidity=receipt.liquidity,
                desired=desired,
                minimums=minimums,
                pool_price=pool_price,
                mint_receipt=receipt,
                approval_receipts=approvals,
            )

    def rebalance(self, token_id, params):
        """
        Move a position's liquidity to a new price range: decrease 100%,
        collect everything, mint a new position with what was collected.

        Not atomic. A failure after the decrease leaves the tokens in the
        wallet (or owed by the registry) and the old position empty.

        Args:
            token_id: Position to move
            params: RebalanceParams

        Returns:
            RebalanceResult
        """
        ctx = {
            "operation": "rebalance",
            "token_id": token_id,
            "new_price_lower": str(params.new_price_lower),
            "new_price_upper": str(params.new_price_upper),
        }
        base, quote = self.config.base_token, self.config.quote_token

        with error_context("rebalance", ctx):
            _enter(ctx, "validating")
            validate_token_id(token_id)
            validate_rebalance_params(params)
            slippage = self._slippage(params.slippage_tolerance)

            _enter(ctx, "fetching_position")
            position = self.client.read_position(token_id)
            self._check_pool(position)
            if position.liquidity == 0:
                if position.has_owed_tokens:
                    raise InvalidPositionError(
                        f"Position {token_id} has no liquidity but {position.tokens_owed0}/"
                        f"{position.tokens_owed1} owed tokens: a previous rebalance was interrupted. "
                        f"Collect with 'withdraw' and open a new position instead",
                        params={"tokens_owed0": position.tokens_owed0, "tokens_owed1": position.tokens_owed1},
                    )
                raise InvalidPositionError(f"Position {token_id} has no liquidity")
            pool_state = self.client.read_pool_state(self.config.pool_address)

            _enter(ctx, "computing_new_ticks")
            fee_tier = FeeTier.from_value(position.fee)
            new_tick_lower, new_tick_upper = ticks_for_price_range(
                params.new_price_lower, params.new_price_upper, base, quote, fee_tier
            )
            ctx.update(new_tick_lower=new_tick_lower, new_tick_upper=new_tick_upper)

            _enter(ctx, "removing_liquidity")
            expected = position_amounts(pool_state, position.tick_lower, position.tick_upper, position.liquidity)
            decrease_min = calculate_minimum_amounts(expected.amount0, expected.amount1, slippage)
            decrease_receipt = self.client.wait(self.client.submit_decrease_liquidity(
                DecreaseLiquidityCall(
                    token_id=token_id,
                    liquidity=position.liquidity,
                    amount0_min=decrease_min.amount0_min,
                    amount1_min=decrease_min.amount1_min,
                    deadline=self._deadline(),
                )
            ))
            log_event(
                logger, "Liquidity removed", token_id=token_id, liquidity=position.liquidity,
                tx_hash=decrease_receipt.tx_hash,
            )

            try:
                _enter(ctx, "collecting_tokens")
                collect_receipt = self.client.wait(self.client.submit_collect(
                    CollectCall(
                        token_id=token_id,
                        recipient=self.client.account_address,
                        amount0_max=MAX_UINT128,
                        amount1_max=MAX_UINT128,
                    )
                ))
                collected = AmountPair(collect_receipt.amount0 or 0, collect_receipt.amount1 or 0)
                ctx.update(amount0_collected=collected.amount0, amount1_collected=collected.amount1)

                _enter(ctx, "opening_new_position")
                mint_expected = expected_mint_amounts(
                    pool_state, new_tick_lower, new_tick_upper, collected.amount0, collected.amount1
                )
                if mint_expected.is_zero:
                    raise InvalidPositionError(
                        f"Collected tokens ({collected.amount0}, {collected.amount1}) cannot fund "
                        f"range [{new_tick_lower}, {new_tick_upper}] at the current price"
                    )
                mint_min = calculate_minimum_amounts(mint_expected.amount0, mint_expected.amount1, slippage)
                approvals = self._ensure_allowances(
                    [(position.token0, collected.amount0), (position.token1, collected.amount1)]
                )
                mint_receipt = self.client.wait(self.client.submit_open(
                    MintCall(
                        token0=position.token0,
                        token1=position.token1,
                        fee=position.fee,
                        tick_lower=new_tick_lower,
                        tick_upper=new_tick_upper,
                        amount0_desired=collected.amount0,
                        amount1_desired=collected.amount1,
                        amount0_min=mint_min.amount0_min,
                        amount1_min=mint_min.amount1_min,
                        recipient=self.client.account_address,
                        deadline=self._deadline(),
                    )
                ))
            except Exception:
                logger.error(
                    "Rebalance of position %s stopped at %s: liquidity withdrawn but not redeployed",
                    token_id, ctx["stage"],
                )
                raise

            _enter(ctx, "done")
            log_event(
                logger, "Position rebalanced", old_token_id=token_id, new_token_id=mint_receipt.token_id,
                tick_lower=new_tick_lower, tick_upper=new_tick_upper, tx_hash=mint_receipt.tx_hash,
            )
            return RebalanceResult(
                old_token_id=token_id,
                new_token_id=mint_receipt.token_id,
                new_tick_lower=new_tick_lower,
                new_tick_upper=new_tick_upper,
                liquidity_removed=position.liquidity,
                collected=collected,
                decrease_receipt=decrease_receipt,
                collect_receipt=collect_receipt,
                mint_receipt=mint_receipt,
                approval_receipts=approvals,
            )

    def _needs_registry_approval(self, token_id, position):
        caller = self.client.account_address.lower()
        owner = self.client.owner_of(token_id)
        if owner.lower() == caller:
            return False
        if position.operator.lower() == caller:
            return False
        if self.client.is_approved_for_all(owner, self.client.account_address):
            return False
        return self.client.get_approved(token_id).lower() != caller

    def withdraw(self, token_id, options=None):
        """
        Remove some or all of a position's liquidity and optionally collect.

        Args:
            token_id: Position to withdraw from
            options: WithdrawOptions (default: 100%, collect fees)

        Returns:
            WithdrawResult (truthy on success)
        """
        options = options or WithdrawOptions()
        ctx = {
            "operation": "withdraw",
            "token_id": token_id,
            "percentage": str(options.percentage),
            "collect_fees": options.collect_fees,
        }

        with error_context("withdraw", ctx):
            _enter(ctx, "validating")
            validate_token_id(token_id)
            percentage = validate_withdraw_options(options)
            slippage = self._slippage(options.slippage_tolerance)

            _enter(ctx, "fetching_position")
            position = self.client.read_position(token_id)
            self._check_pool(position)
            if position.liquidity == 0:
                raise InvalidPositionError(f"Position {token_id} has no liquidity")

            _enter(ctx, "approving_if_needed")
            approval_receipt = None
            if self._needs_registry_approval(token_id, position):
                pending = self.client.submit_set_approval_for_all(
                    SetApprovalForAllCall(operator=self.client.registry_address, approved=True)
                )
                approval_receipt = self.client.wait(pending)
                log_event(logger, "Registry approved", token_id=token_id, tx_hash=approval_receipt.tx_hash)

            _enter(ctx, "decreasing_liquidity")
            with localcontext() as dctx:
                dctx.prec = PRECISION
                liquidity_to_remove = int(
                    (position.liquidity * percentage / 100).to_integral_value(rounding=ROUND_FLOOR)
                )
            ctx["liquidity_to_remove"] = liquidity_to_remove

            decrease_receipt = None
            if liquidity_to_remove > 0:
                pool_state = self.client.read_pool_state(self.config.pool_address)
                expected = position_amounts(
                    pool_state, position.tick_lower, position.tick_upper, liquidity_to_remove
                )
                minimums = calculate_minimum_amounts(expected.amount0, expected.amount1, slippage)
                decrease_receipt = self.client.wait(self.client.submit_decrease_liquidity(
                    DecreaseLiquidityCall(
                        token_id=token_id,
                        liquidity=liquidity_to_remove,
                        amount0_min=minimums.amount0_min,
                        amount1_min=minimums.amount1_min,
                        deadline=self._deadline(),
                    )
                ))
                log_event(
                    logger, "Liquidity removed", token_id=token_id, liquidity=liquidity_to_remove,
                    tx_hash=decrease_receipt.tx_hash,
                )

            _enter(ctx, "collecting_fees")
            collect_receipt = None
            if options.collect_fees:
                collect_receipt = self.client.wait(self.client.submit_collect(
                    CollectCall(
                        token_id=token_id,
                        recipient=self.client.account_address,
                        amount0_max=MAX_UINT128,
                        amount1_max=MAX_UINT128,
                    )
                ))
                log_event(
                    logger, "Tokens collected", token_id=token_id, amount0=collect_receipt.amount0,
                    amount1=collect_receipt.amount1, tx_hash=collect_receipt.tx_hash,
                )

            _enter(ctx, "done")
            return WithdrawResult(
                success=True,
                token_id=token_id,
                liquidity_removed=liquidity_to_remove,
                approval_receipt=approval_receipt,
                decrease_receipt=decrease_receipt,
                collect_receipt=collect_receipt,
            )
