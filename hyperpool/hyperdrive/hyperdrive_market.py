"""The pool: reserves, checkpoints and the operations that trade against them."""
from __future__ import annotations

import copy
import logging
from typing import Any, Callable, NamedTuple

import hyperpool.time as time
from hyperpool.errors import errors
from hyperpool.hyperdrive import hyperdrive_actions, hyperdrive_math, lp_math, yieldspace_math
from hyperpool.hyperdrive.assets import AssetIdPrefix, encode_asset_id
from hyperpool.hyperdrive.checkpoint import Checkpoint
from hyperpool.hyperdrive.guards import pool_operation
from hyperpool.hyperdrive.multitoken import MultiToken
from hyperpool.hyperdrive.pool_config import PoolConfig
from hyperpool.hyperdrive.pool_state import PoolState
from hyperpool.hyperdrive.yield_source import MockYieldSource, YieldSource
from hyperpool.math import FixedPoint, FixedPointIntegerMath, FixedPointMath

# pylint: disable=too-many-public-methods
# pylint: disable=too-many-arguments

# LP shares equal to the minimum share reserves are locked here at initialization
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
MAX_AMOUNT = FixedPoint(scaled_value=FixedPointIntegerMath.INT_MAX)
MAX_SEARCH_ITERATIONS = 64


class MarketSnapshot(NamedTuple):
    """Everything a failed operation must restore"""

    pool_state: PoolState
    multitoken: MultiToken
    yield_source_state: dict[str, Any]


class HyperdriveMarket:
    r"""Market state simulator

    Holds the pool state, the token ledger and the checkpoints, and executes trades against them.
    Each mutating operation:

    1. settles every checkpoint whose positions have matured, oldest first,
    2. records the latest checkpoint,
    3. prices the trade with `hyperdrive_actions`,
    4. moves value through the yield source and the token ledger,
    5. checks that the pool is still solvent.

    Any failure leaves the pool exactly as it was before the call.
    """

    def __init__(
        self,
        pool_config: PoolConfig,
        yield_source: YieldSource | None = None,
        block_time: time.BlockTime | None = None,
    ):
        self.pool_config = pool_config
        if yield_source is None:
            yield_source = MockYieldSource(initial_vault_share_price=pool_config.initial_vault_share_price)
        self.yield_source = yield_source
        if block_time is None:
            block_time = time.BlockTime()
        self.block_time = block_time
        self.pool_state = PoolState()
        self.multitoken = MultiToken()
        self.is_locked = False

    ### Snapshots ###

    def snapshot(self) -> MarketSnapshot:
        """Copy everything an operation can change"""
        return MarketSnapshot(
            pool_state=self.pool_state.copy(),
            multitoken=self.multitoken.copy(),
            yield_source_state=copy.deepcopy(self.yield_source.__dict__),
        )

    def restore(self, snapshot: MarketSnapshot) -> None:
        """Put back the state captured by `snapshot`"""
        self.pool_state = snapshot.pool_state
        self.multitoken = snapshot.multitoken
        self.yield_source.__dict__.update(snapshot.yield_source_state)

    ### Read-only queries ###

    @property
    def vault_share_price(self) -> FixedPoint:
        """The yield source's current vault share price"""
        return self.yield_source.vault_share_price

    @property
    def latest_checkpoint_time(self) -> int:
        """Gets the most recent checkpoint time"""
        return time.checkpoint_time_for(self.block_time.time, self.pool_config.checkpoint_duration)

    @property
    def effective_share_reserves(self) -> FixedPoint:
        r"""Share reserves the curve prices against, :math:`z - \zeta`"""
        return hyperdrive_math.calculate_effective_share_reserves(
            self.pool_state.share_reserves, self.pool_state.share_adjustment
        )

    @property
    def spot_price(self) -> FixedPoint:
        """Returns the current price of a bond in base"""
        return hyperdrive_math.calculate_spot_price(
            self.effective_share_reserves,
            self.pool_state.bond_reserves,
            self.pool_config.initial_vault_share_price,
            self.pool_config.time_stretch,
        )

    @property
    def spot_apr(self) -> FixedPoint:
        """Returns the fixed rate implied by the spot price"""
        return hyperdrive_math.calculate_spot_apr(
            self.effective_share_reserves,
            self.pool_state.bond_reserves,
            self.pool_config.initial_vault_share_price,
            self.pool_config.position_duration,
            self.pool_config.time_stretch,
        )

    @property
    def present_value(self) -> FixedPoint:
        """Present value of the pool in shares"""
        return lp_math.calculate_present_value(self.present_value_params())

    @property
    def idle_share_reserves(self) -> FixedPoint:
        """Shares not needed to back open positions"""
        return lp_math.calculate_idle_share_reserves(
            self.pool_state.share_reserves,
            self.pool_state.long_exposure,
            self.vault_share_price,
            self.pool_config.minimum_share_reserves,
            self.present_value,
        )

    @property
    def lp_share_price(self) -> FixedPoint:
        """Base value of an LP share, counting withdrawal shares that are not ready"""
        return lp_math.calculate_lp_share_price(self.present_value, self._lp_supply(), self.vault_share_price)

    def get_checkpoint(self, checkpoint_time: int) -> Checkpoint:
        """Returns the checkpoint at `checkpoint_time`; an empty checkpoint if it is absent"""
        return self.pool_state.checkpoints.get(checkpoint_time, Checkpoint())

    def balance_of(self, prefix: AssetIdPrefix, maturity_time: int, owner: str) -> FixedPoint:
        """Returns the owner's balance of the asset"""
        return self.multitoken.balance_of(encode_asset_id(prefix, maturity_time), owner)

    def total_supply(self, prefix: AssetIdPrefix, maturity_time: int = 0) -> FixedPoint:
        """Returns the total supply of the asset"""
        return self.multitoken.total_supply_of(encode_asset_id(prefix, maturity_time))

    def present_value_params(self, pool_state: PoolState | None = None) -> lp_math.PresentValueParams:
        """Collect the inputs to the present value from a pool state"""
        if pool_state is None:
            pool_state = self.pool_state
        return lp_math.PresentValueParams(
            share_reserves=pool_state.share_reserves,
            share_adjustment=pool_state.share_adjustment,
            bond_reserves=pool_state.bond_reserves,
            vault_share_price=self.vault_share_price,
            initial_vault_share_price=self.pool_config.initial_vault_share_price,
            minimum_share_reserves=self.pool_config.minimum_share_reserves,
            time_stretch=self.pool_config.time_stretch,
            longs_outstanding=pool_state.longs_outstanding,
            long_average_time_remaining=time.calculate_normalized_time_remaining(
                pool_state.long_average_maturity_time, self.block_time.time, self.pool_config.position_duration
            ),
            shorts_outstanding=pool_state.shorts_outstanding,
            short_average_time_remaining=time.calculate_normalized_time_remaining(
                pool_state.short_average_maturity_time, self.block_time.time, self.pool_config.position_duration
            ),
        )

    def is_solvent(self, check_exposure: bool = True) -> bool:
        """True if the reserves clear their floors and the present value is non-negative

        With `check_exposure`, the share reserves must also back the long exposure.
        """
        try:
            self.check_solvency(self.pool_state, check_exposure=check_exposure)
        except errors.SolvencyError:
            return False
        return True

    def check_solvency(self, pool_state: PoolState, check_exposure: bool) -> None:
        r"""Verify the reserve floors and the present value of a pool state.

        Arguments
        ----------
        pool_state : PoolState
            The state to check.
        check_exposure : bool
            If true, also require :math:`z - exposure / c \ge z_{min}`.

        Raises
        ------
        InsufficientLiquidity
            If the share reserves can't cover the minimum share reserves and the long exposure.
        InvalidEffectiveShareReserves
            If the effective share reserves are below the minimum share reserves.
        NegativePresentValue
            If the open positions are worth more than the reserves.
        """
        minimum_share_reserves = self.pool_config.minimum_share_reserves
        if pool_state.share_reserves < minimum_share_reserves:
            raise errors.InsufficientLiquidity(
                f"share reserves {pool_state.share_reserves} are below the minimum {minimum_share_reserves}"
            )
        effective_share_reserves = hyperdrive_math.calculate_effective_share_reserves(
            pool_state.share_reserves, pool_state.share_adjustment
        )
        if effective_share_reserves < minimum_share_reserves:
            raise errors.InvalidEffectiveShareReserves(
                f"effective share reserves {effective_share_reserves} are below the minimum {minimum_share_reserves}"
            )
        if check_exposure:
            exposure_shares = pool_state.long_exposure.div_up(self.vault_share_price)
            if pool_state.share_reserves < exposure_shares + minimum_share_reserves:
                raise errors.InsufficientLiquidity(
                    f"share reserves {pool_state.share_reserves} can't back the long exposure {exposure_shares}"
                )
        lp_math.calculate_present_value(self.present_value_params(pool_state))

    def calc_max_long(self, budget: FixedPoint) -> FixedPoint:
        """Largest base amount, up to `budget`, that opens a long the pool can absorb right now"""

        def is_valid(base_amount: FixedPoint) -> bool:
            share_amount = base_amount.div_down(self.vault_share_price)
            pool_state = self.pool_state.copy()
            market_deltas, _ = hyperdrive_actions.calc_open_long(
                share_amount, pool_state, self.pool_config, self.vault_share_price, self.latest_checkpoint_time
            )
            pool_state.apply_delta(market_deltas)
            self.check_solvency(pool_state, check_exposure=True)
            return True

        return self._search_max_trade(budget, is_valid)

    def calc_max_short(self, budget: FixedPoint) -> FixedPoint:
        """Largest bond amount whose deposit fits in `budget` and that the pool can absorb right now"""
        open_vault_share_price = self.get_checkpoint(self.latest_checkpoint_time).vault_share_price
        if open_vault_share_price == FixedPoint(0):
            open_vault_share_price = self.vault_share_price

        def is_valid(bond_amount: FixedPoint) -> bool:
            pool_state = self.pool_state.copy()
            market_deltas, trade_result = hyperdrive_actions.calc_open_short(
                bond_amount,
                pool_state,
                self.pool_config,
                self.vault_share_price,
                open_vault_share_price,
                self.latest_checkpoint_time,
            )
            if trade_result.share_amount.mul_up(self.vault_share_price) > budget:
                return False
            pool_state.apply_delta(market_deltas)
            self.check_solvency(pool_state, check_exposure=True)
            return True

        max_bond_amount = yieldspace_math.calculate_max_sell_bonds_in(
            self.pool_state.share_reserves,
            self.pool_state.share_adjustment,
            self.pool_state.bond_reserves,
            self.pool_config.minimum_share_reserves,
            FixedPoint("1.0") - self.pool_config.time_stretch,
            self.vault_share_price,
            self.pool_config.initial_vault_share_price,
        )
        return self._search_max_trade(max_bond_amount, is_valid)

    def _search_max_trade(self, upper_bound: FixedPoint, is_valid: Callable[[FixedPoint], bool]) -> FixedPoint:
        """Bisect for the largest amount in [minimum transaction amount, upper_bound] that `is_valid` accepts"""

        def check(amount: FixedPoint) -> bool:
            try:
                return is_valid(amount)
            except (errors.ArithmeticFailure, errors.SolvencyError):
                return False

        lower_bound = self.pool_config.minimum_transaction_amount
        if upper_bound < lower_bound or not check(lower_bound):
            return FixedPoint(0)
        if check(upper_bound):
            return upper_bound
        for _ in range(MAX_SEARCH_ITERATIONS):
            midpoint = (lower_bound + upper_bound) / FixedPoint("2.0")
            if midpoint in (lower_bound, upper_bound):
                break
            if check(midpoint):
                lower_bound = midpoint
            else:
                upper_bound = midpoint
        return lower_bound

    ### Operations ###

    def pause(self, is_paused: bool) -> None:
        """Enable or disable every mutating operation"""
        self.pool_state.is_paused = is_paused
        logging.info("pool %s", "paused" if is_paused else "unpaused")

    def advance_time(self, seconds: int) -> None:
        """Move the clock forward and let the yield source accrue interest over the elapsed time"""
        self.block_time.tick(seconds)
        self.yield_source.accrue(seconds)

    @pool_operation
    def initialize(self, trader: str, contribution: FixedPoint, target_apr: FixedPoint) -> FixedPoint:
        r"""Seed the pool with its first liquidity, priced at `target_apr`.

        The LP total supply starts at :math:`z - z_{min}`; :math:`z_{min}` LP shares are locked and
        the trader receives the rest, so the first LP share is worth one vault share.

        Returns
        -------
        FixedPoint
            The LP shares minted to the trader.
        """
        if self.pool_state.is_initialized:
            raise errors.PoolAlreadyInitialized("the pool has already been initialized")
        if contribution <= FixedPoint(0):
            raise errors.ZeroAmount("the contribution must be positive")
        if target_apr <= FixedPoint(0):
            raise errors.InvalidApr(f"{target_apr=} must be positive")
        minimum_share_reserves = self.pool_config.minimum_share_reserves
        share_amount = self.yield_source.deposit(contribution)
        if share_amount < minimum_share_reserves * FixedPoint("2.0"):
            raise errors.MinimumTransactionAmount(
                f"{share_amount} shares can't cover twice the minimum share reserves {minimum_share_reserves}"
            )
        self.pool_state.share_reserves = share_amount
        self.pool_state.share_adjustment = FixedPoint(0)
        self.pool_state.bond_reserves = hyperdrive_math.calculate_initial_bond_reserves(
            share_amount,
            self.pool_config.initial_vault_share_price,
            target_apr,
            self.pool_config.position_duration,
            self.pool_config.time_stretch,
        )
        lp_shares = share_amount - minimum_share_reserves * FixedPoint("2.0")
        self._mint(AssetIdPrefix.LP, 0, ZERO_ADDRESS, minimum_share_reserves)
        self._mint(AssetIdPrefix.LP, 0, trader, lp_shares)
        self.pool_state.lp_total_supply = share_amount - minimum_share_reserves
        self._apply_checkpoint(self.latest_checkpoint_time, self.vault_share_price)
        self._finish("initialize", trader, contribution=contribution, lp_shares=lp_shares)
        return lp_shares

    @pool_operation
    def add_liquidity(
        self,
        trader: str,
        contribution: FixedPoint,
        min_lp_share_price: FixedPoint = FixedPoint(0),
        min_apr: FixedPoint = FixedPoint(0),
        max_apr: FixedPoint = MAX_AMOUNT,
    ) -> FixedPoint:
        r"""Add liquidity without changing the spot price.

        The trader receives LP shares in proportion to the present value they add:

        .. math::
            \Delta L = L \frac{PV_1 - PV_0}{PV_0}

        Returns
        -------
        FixedPoint
            The LP shares minted to the trader.
        """
        self._check_initialized()
        self._check_amount(contribution)
        spot_apr = self.spot_apr
        if spot_apr < min_apr or spot_apr > max_apr:
            raise errors.InvalidApr(f"spot apr {spot_apr} is outside [{min_apr}, {max_apr}]")
        self._apply_checkpoints()
        starting_present_value = self.present_value
        lp_supply = self._lp_supply()
        share_amount = self.yield_source.deposit(contribution)
        self._update_liquidity(share_amount)
        ending_present_value = self.present_value
        if ending_present_value < starting_present_value:
            raise errors.DecreasedPresentValue(
                f"adding liquidity decreased the present value from {starting_present_value} to {ending_present_value}"
            )
        lp_shares = (ending_present_value - starting_present_value).mul_div_down(lp_supply, starting_present_value)
        if lp_shares < self.pool_config.minimum_transaction_amount:
            raise errors.MinimumTransactionAmount(f"{lp_shares=} is below the minimum transaction amount")
        if contribution.div_down(lp_shares) < min_lp_share_price:
            raise errors.OutputLimit(f"LP share price {contribution.div_down(lp_shares)} is below {min_lp_share_price}")
        self._mint(AssetIdPrefix.LP, 0, trader, lp_shares)
        self.pool_state.lp_total_supply += lp_shares
        self._distribute_excess_idle()
        self._finish("add_liquidity", trader, contribution=contribution, lp_shares=lp_shares)
        return lp_shares

    @pool_operation
    def remove_liquidity(
        self, trader: str, lp_shares: FixedPoint, min_output: FixedPoint = FixedPoint(0)
    ) -> tuple[FixedPoint, FixedPoint]:
        r"""Exchange LP shares for withdrawal shares and redeem as many of them as idle allows.

        Returns
        -------
        tuple[FixedPoint, FixedPoint]
            The base paid to the trader and the withdrawal shares the trader still holds from this call.
        """
        self._check_initialized()
        self._check_amount(lp_shares)
        self._apply_checkpoints()
        self._burn(AssetIdPrefix.LP, 0, trader, lp_shares)
        self.pool_state.lp_total_supply -= lp_shares
        self._mint(AssetIdPrefix.WITHDRAWAL_SHARE, 0, trader, lp_shares)
        self.pool_state.withdrawal_shares_total_supply += lp_shares
        self._distribute_excess_idle()
        base_proceeds, withdrawal_shares_redeemed = self._redeem_withdrawal_shares(trader, lp_shares, FixedPoint(0))
        if base_proceeds < min_output:
            raise errors.OutputLimit(f"{base_proceeds=} is below {min_output=}")
        withdrawal_shares = lp_shares - withdrawal_shares_redeemed
        self._finish(
            "remove_liquidity",
            trader,
            lp_shares=lp_shares,
            base_proceeds=base_proceeds,
            withdrawal_shares=withdrawal_shares,
        )
        return base_proceeds, withdrawal_shares

    @pool_operation
    def redeem_withdrawal_shares(
        self, trader: str, withdrawal_shares: FixedPoint, min_output_per_share: FixedPoint = FixedPoint(0)
    ) -> tuple[FixedPoint, FixedPoint]:
        r"""Redeem withdrawal shares that idle capital has funded.

        Only up to `withdrawal_shares_ready_to_withdraw` shares are redeemed; the rest stay with the trader.

        Returns
        -------
        tuple[FixedPoint, FixedPoint]
            The base paid to the trader and the withdrawal shares redeemed.
        """
        self._check_initialized()
        if withdrawal_shares <= FixedPoint(0):
            raise errors.ZeroAmount("withdrawal shares must be positive")
        self._apply_checkpoints()
        base_proceeds, withdrawal_shares_redeemed = self._redeem_withdrawal_shares(
            trader, withdrawal_shares, min_output_per_share
        )
        self._finish(
            "redeem_withdrawal_shares",
            trader,
            base_proceeds=base_proceeds,
            withdrawal_shares_redeemed=withdrawal_shares_redeemed,
        )
        return base_proceeds, withdrawal_shares_redeemed

    @pool_operation
    def open_long(
        self,
        trader: str,
        base_amount: FixedPoint,
        min_output: FixedPoint = FixedPoint(0),
        min_vault_share_price: FixedPoint = FixedPoint(0),
    ) -> tuple[int, FixedPoint]:
        r"""Pay `base_amount` for bonds that mature one position duration after the latest checkpoint.

        Returns
        -------
        tuple[int, FixedPoint]
            The maturity time and the bonds minted to the trader.
        """
        self._check_initialized()
        self._check_amount(base_amount)
        vault_share_price = self.vault_share_price
        if vault_share_price < min_vault_share_price:
            raise errors.OutputLimit(f"{vault_share_price=} is below {min_vault_share_price=}")
        self._apply_checkpoints()
        share_amount = self.yield_source.deposit(base_amount)
        latest_checkpoint_time = self.latest_checkpoint_time
        market_deltas, trade_result = hyperdrive_actions.calc_open_long(
            share_amount, self.pool_state, self.pool_config, vault_share_price, latest_checkpoint_time
        )
        if trade_result.bond_amount < min_output:
            raise errors.OutputLimit(f"bond proceeds {trade_result.bond_amount} are below {min_output=}")
        self.pool_state.apply_delta(market_deltas)
        maturity_time = latest_checkpoint_time + self.pool_config.position_duration
        self._mint(AssetIdPrefix.LONG, maturity_time, trader, trade_result.bond_amount)
        self.check_solvency(self.pool_state, check_exposure=True)
        self._finish("open_long", trader, base_amount=base_amount, trade_result=trade_result)
        return maturity_time, trade_result.bond_amount

    @pool_operation
    def close_long(
        self, trader: str, maturity_time: int, bond_amount: FixedPoint, min_output: FixedPoint = FixedPoint(0)
    ) -> FixedPoint:
        r"""Close `bond_amount` longs that mature at `maturity_time`.

        Before maturity the bonds are partly sold on the curve and partly redeemed at face value.
        At or after maturity they are paid from the shares their checkpoint set aside.

        Returns
        -------
        FixedPoint
            The base paid to the trader.
        """
        self._check_initialized()
        self._check_amount(bond_amount)
        self._check_maturity_time(maturity_time)
        self._apply_checkpoints()
        self._burn(AssetIdPrefix.LONG, maturity_time, trader, bond_amount)
        if self.block_time.time < maturity_time:
            open_checkpoint = self.get_checkpoint(maturity_time - self.pool_config.position_duration)
            market_deltas, trade_result = hyperdrive_actions.calc_close_long(
                bond_amount,
                maturity_time,
                self.pool_state,
                self.pool_config,
                self.vault_share_price,
                open_checkpoint.vault_share_price,
                self.block_time.time,
            )
        else:
            market_deltas, trade_result = hyperdrive_actions.calc_close_matured_long(
                bond_amount, maturity_time, self.pool_state
            )
        self.pool_state.apply_delta(market_deltas)
        base_proceeds = self.yield_source.withdraw(trade_result.share_amount)
        if base_proceeds < min_output:
            raise errors.OutputLimit(f"{base_proceeds=} is below {min_output=}")
        self.check_solvency(self.pool_state, check_exposure=False)
        self._distribute_excess_idle()
        self._finish("close_long", trader, maturity_time=maturity_time, trade_result=trade_result)
        return base_proceeds

    @pool_operation
    def open_short(
        self,
        trader: str,
        bond_amount: FixedPoint,
        max_deposit: FixedPoint = MAX_AMOUNT,
        min_vault_share_price: FixedPoint = FixedPoint(0),
    ) -> tuple[int, FixedPoint]:
        r"""Sell `bond_amount` bonds to the pool, depositing the short's maximum loss.

        Returns
        -------
        tuple[int, FixedPoint]
            The maturity time and the base the trader deposited.
        """
        self._check_initialized()
        self._check_amount(bond_amount)
        vault_share_price = self.vault_share_price
        if vault_share_price < min_vault_share_price:
            raise errors.OutputLimit(f"{vault_share_price=} is below {min_vault_share_price=}")
        self._apply_checkpoints()
        latest_checkpoint_time = self.latest_checkpoint_time
        market_deltas, trade_result = hyperdrive_actions.calc_open_short(
            bond_amount,
            self.pool_state,
            self.pool_config,
            vault_share_price,
            self.get_checkpoint(latest_checkpoint_time).vault_share_price,
            latest_checkpoint_time,
        )
        base_deposit = trade_result.share_amount.mul_up(vault_share_price)
        if base_deposit > max_deposit:
            raise errors.OutputLimit(f"{base_deposit=} exceeds {max_deposit=}")
        self.yield_source.deposit(base_deposit)
        self.pool_state.apply_delta(market_deltas)
        maturity_time = latest_checkpoint_time + self.pool_config.position_duration
        self._mint(AssetIdPrefix.SHORT, maturity_time, trader, bond_amount)
        self.check_solvency(self.pool_state, check_exposure=True)
        self._finish("open_short", trader, base_deposit=base_deposit, trade_result=trade_result)
        return maturity_time, base_deposit

    @pool_operation
    def close_short(
        self, trader: str, maturity_time: int, bond_amount: FixedPoint, min_output: FixedPoint = FixedPoint(0)
    ) -> FixedPoint:
        r"""Close `bond_amount` shorts that mature at `maturity_time`.

        Before maturity the short buys its bonds back from the pool. At or after maturity it is paid
        the interest its checkpoint set aside.

        Returns
        -------
        FixedPoint
            The base paid to the trader.
        """
        self._check_initialized()
        self._check_amount(bond_amount)
        self._check_maturity_time(maturity_time)
        self._apply_checkpoints()
        self._burn(AssetIdPrefix.SHORT, maturity_time, trader, bond_amount)
        if self.block_time.time < maturity_time:
            open_checkpoint = self.get_checkpoint(maturity_time - self.pool_config.position_duration)
            market_deltas, trade_result = hyperdrive_actions.calc_close_short(
                bond_amount,
                maturity_time,
                self.pool_state,
                self.pool_config,
                self.vault_share_price,
                open_checkpoint.vault_share_price,
                self.block_time.time,
            )
        else:
            market_deltas, trade_result = hyperdrive_actions.calc_close_matured_short(
                bond_amount, maturity_time, self.pool_state
            )
        self.pool_state.apply_delta(market_deltas)
        base_proceeds = self.yield_source.withdraw(trade_result.share_amount)
        if base_proceeds < min_output:
            raise errors.OutputLimit(f"{base_proceeds=} is below {min_output=}")
        self.check_solvency(self.pool_state, check_exposure=False)
        self._distribute_excess_idle()
        self._finish("close_short", trader, maturity_time=maturity_time, trade_result=trade_result)
        return base_proceeds

    @pool_operation
    def checkpoint(self, checkpoint_time: int) -> None:
        r"""Create the checkpoint at `checkpoint_time` and settle the positions that matured there.

        A past checkpoint takes the vault share price of the closest later checkpoint, or the current
        price if there is none. Calling this for a checkpoint that already exists does nothing.

        Raises
        ------
        InvalidCheckpointTime
            If `checkpoint_time` is negative, isn't a multiple of the checkpoint duration or is in the future.
        """
        if (
            checkpoint_time < 0
            or checkpoint_time % self.pool_config.checkpoint_duration != 0
            or checkpoint_time > self.latest_checkpoint_time
        ):
            raise errors.InvalidCheckpointTime(f"{checkpoint_time=} is not a valid checkpoint")
        if self.get_checkpoint(checkpoint_time).is_set:
            return
        self._apply_overdue_checkpoints()
        self._apply_checkpoint(checkpoint_time, self._closest_vault_share_price(checkpoint_time))
        logging.debug("checkpoint %d set at vault share price %s", checkpoint_time, self.vault_share_price)

    ### Checkpointing ###

    def _apply_checkpoints(self) -> None:
        """Settle every matured checkpoint, then record the latest checkpoint"""
        self._apply_overdue_checkpoints()
        self._apply_checkpoint(self.latest_checkpoint_time, self.vault_share_price)

    def _apply_overdue_checkpoints(self) -> None:
        """Settle, oldest first, the maturities that have passed without a checkpoint"""
        latest_checkpoint_time = self.latest_checkpoint_time
        position_duration = self.pool_config.position_duration
        maturity_times = sorted(
            checkpoint_time + position_duration
            for checkpoint_time, checkpoint in self.pool_state.checkpoints.items()
            if checkpoint.is_set
        )
        for maturity_time in maturity_times:
            if maturity_time > latest_checkpoint_time:
                break
            if self.get_checkpoint(maturity_time).is_set:
                continue
            if (
                self.total_supply(AssetIdPrefix.LONG, maturity_time) == FixedPoint(0)
                and self.total_supply(AssetIdPrefix.SHORT, maturity_time) == FixedPoint(0)
            ):
                continue
            self._apply_checkpoint(maturity_time, self._closest_vault_share_price(maturity_time))

    def _closest_vault_share_price(self, checkpoint_time: int) -> FixedPoint:
        """Vault share price of the first recorded checkpoint at or after `checkpoint_time`"""
        latest_checkpoint_time = self.latest_checkpoint_time
        while checkpoint_time < latest_checkpoint_time:
            checkpoint = self.pool_state.checkpoints.get(checkpoint_time)
            if checkpoint is not None and checkpoint.is_set:
                return checkpoint.vault_share_price
            checkpoint_time += self.pool_config.checkpoint_duration
        return self.vault_share_price

    def _apply_checkpoint(self, checkpoint_time: int, vault_share_price: FixedPoint) -> FixedPoint:
        r"""Creates a new checkpoint if necessary and settles the positions that mature at it.

        Arguments
        ----------
        checkpoint_time : int
            The block time for the checkpoint to be created.
        vault_share_price : FixedPoint
            The vault share price to record on the checkpoint.

        Returns
        -------
        FixedPoint
            The vault share price recorded on the checkpoint.
        """
        checkpoint = self.pool_state.checkpoints.get(checkpoint_time)
        # Return early if the checkpoint has already been updated.
        if (checkpoint is not None and checkpoint.is_set) or checkpoint_time > self.block_time.time:
            return self.get_checkpoint(checkpoint_time).vault_share_price
        checkpoint = self.pool_state.checkpoint(checkpoint_time)
        checkpoint.vault_share_price = vault_share_price
        open_checkpoint_time = checkpoint_time - self.pool_config.position_duration
        open_vault_share_price = self.get_checkpoint(open_checkpoint_time).vault_share_price
        if open_vault_share_price == FixedPoint(0):
            open_vault_share_price = vault_share_price
        # Settle matured longs into the checkpoint's set-aside.
        matured_longs = self.total_supply(AssetIdPrefix.LONG, checkpoint_time)
        if matured_longs > FixedPoint(0):
            self.pool_state.apply_delta(
                hyperdrive_actions.calc_mature_longs(
                    matured_longs,
                    checkpoint_time,
                    self.pool_state,
                    self.pool_config,
                    vault_share_price,
                    open_vault_share_price,
                )
            )
        # Settle matured shorts and set aside their interest.
        matured_shorts = self.total_supply(AssetIdPrefix.SHORT, checkpoint_time)
        if matured_shorts > FixedPoint(0):
            self.pool_state.apply_delta(
                hyperdrive_actions.calc_mature_shorts(
                    matured_shorts,
                    checkpoint_time,
                    self.pool_state,
                    self.pool_config,
                    vault_share_price,
                    open_vault_share_price,
                )
            )
        # The matured positions no longer need backing.
        if open_checkpoint_time in self.pool_state.checkpoints:
            self.pool_state.update_checkpoint_exposure(
                open_checkpoint_time, -self.pool_state.checkpoints[open_checkpoint_time].exposure
            )
        if matured_longs > FixedPoint(0) or matured_shorts > FixedPoint(0):
            logging.debug(
                "checkpoint %d settled %s longs and %s shorts at vault share price %s",
                checkpoint_time,
                matured_longs,
                matured_shorts,
                vault_share_price,
            )
            self._distribute_excess_idle()
        return vault_share_price

    ### Liquidity ###

    def _lp_supply(self) -> FixedPoint:
        """LP shares plus the withdrawal shares that haven't been funded"""
        return (
            self.pool_state.lp_total_supply
            + self.pool_state.withdrawal_shares_total_supply
            - self.pool_state.withdrawal_shares_ready_to_withdraw
        )

    def _update_liquidity(self, share_reserves_delta: FixedPoint) -> None:
        """Move the share reserves by a signed amount without changing the spot price"""
        updated = lp_math.calculate_update_liquidity(
            self.pool_state.share_reserves,
            self.pool_state.share_adjustment,
            self.pool_state.bond_reserves,
            self.pool_config.minimum_share_reserves,
            share_reserves_delta,
        )
        self.pool_state.share_reserves = updated.share_reserves
        self.pool_state.share_adjustment = updated.share_adjustment
        self.pool_state.bond_reserves = updated.bond_reserves

    def _distribute_excess_idle(self) -> None:
        """Fund outstanding withdrawal shares with idle capital at the current LP share price"""
        if not self.pool_state.is_initialized:
            return
        outstanding_withdrawal_shares = (
            self.pool_state.withdrawal_shares_total_supply - self.pool_state.withdrawal_shares_ready_to_withdraw
        )
        if outstanding_withdrawal_shares <= FixedPoint(0):
            return
        present_value_params = self.present_value_params()
        starting_present_value = lp_math.calculate_present_value(present_value_params)
        idle = lp_math.calculate_idle_share_reserves(
            self.pool_state.share_reserves,
            self.pool_state.long_exposure,
            self.vault_share_price,
            self.pool_config.minimum_share_reserves,
            starting_present_value,
        )
        if idle <= FixedPoint(0) or starting_present_value <= FixedPoint(0):
            return
        withdrawal_shares_redeemed, share_proceeds = lp_math.calculate_distribute_excess_idle(
            lp_math.DistributeExcessIdleParams(
                present_value_params=present_value_params,
                starting_present_value=starting_present_value,
                active_lp_total_supply=self.pool_state.lp_total_supply,
                withdrawal_shares_total_supply=outstanding_withdrawal_shares,
                idle=idle,
                net_curve_trade=lp_math.calculate_net_curve_trade(present_value_params),
            ),
            self.pool_config.distribute_excess_idle_max_iterations,
            self.pool_config.share_proceeds_tolerance,
        )
        if withdrawal_shares_redeemed <= FixedPoint(0) or share_proceeds <= FixedPoint(0):
            return
        self._update_liquidity(-share_proceeds)
        self.pool_state.withdrawal_shares_ready_to_withdraw += withdrawal_shares_redeemed
        self.pool_state.withdrawal_shares_proceeds += share_proceeds
        logging.debug(
            "funded %s withdrawal shares with %s shares of idle", withdrawal_shares_redeemed, share_proceeds
        )

    def _redeem_withdrawal_shares(
        self, trader: str, withdrawal_shares: FixedPoint, min_output_per_share: FixedPoint
    ) -> tuple[FixedPoint, FixedPoint]:
        """Burn up to `withdrawal_shares` funded withdrawal shares and pay the trader their proceeds"""
        balance = self.balance_of(AssetIdPrefix.WITHDRAWAL_SHARE, 0, trader)
        if balance < withdrawal_shares:
            raise errors.InsufficientBalance(f"{trader} holds {balance} withdrawal shares, not {withdrawal_shares}")
        ready_to_withdraw = self.pool_state.withdrawal_shares_ready_to_withdraw
        withdrawal_shares_redeemed = FixedPointMath.minimum(withdrawal_shares, ready_to_withdraw)
        if withdrawal_shares_redeemed <= FixedPoint(0):
            return FixedPoint(0), FixedPoint(0)
        if withdrawal_shares_redeemed == ready_to_withdraw:
            share_proceeds = self.pool_state.withdrawal_shares_proceeds
        else:
            share_proceeds = withdrawal_shares_redeemed.mul_div_down(
                self.pool_state.withdrawal_shares_proceeds, ready_to_withdraw
            )
        self._burn(AssetIdPrefix.WITHDRAWAL_SHARE, 0, trader, withdrawal_shares_redeemed)
        self.pool_state.withdrawal_shares_total_supply -= withdrawal_shares_redeemed
        self.pool_state.withdrawal_shares_ready_to_withdraw -= withdrawal_shares_redeemed
        self.pool_state.withdrawal_shares_proceeds -= share_proceeds
        base_proceeds = self.yield_source.withdraw(share_proceeds)
        if base_proceeds < min_output_per_share.mul_down(withdrawal_shares_redeemed):
            raise errors.OutputLimit(
                f"{base_proceeds=} is below {min_output_per_share=} for {withdrawal_shares_redeemed} shares"
            )
        return base_proceeds, withdrawal_shares_redeemed

    ### Helpers ###

    def _mint(self, prefix: AssetIdPrefix, maturity_time: int, owner: str, amount: FixedPoint) -> None:
        self.multitoken.mint(encode_asset_id(prefix, maturity_time), owner, amount)

    def _burn(self, prefix: AssetIdPrefix, maturity_time: int, owner: str, amount: FixedPoint) -> None:
        self.multitoken.burn(encode_asset_id(prefix, maturity_time), owner, amount)

    def _check_initialized(self) -> None:
        if not self.pool_state.is_initialized:
            raise errors.PoolNotInitialized("the pool must be initialized first")

    def _check_amount(self, amount: FixedPoint) -> None:
        if amount <= FixedPoint(0):
            raise errors.ZeroAmount("the amount must be positive")
        if amount < self.pool_config.minimum_transaction_amount:
            raise errors.MinimumTransactionAmount(
                f"{amount} is below the minimum transaction amount {self.pool_config.minimum_transaction_amount}"
            )

    def _check_maturity_time(self, maturity_time: int) -> None:
        latest_maturity_time = self.latest_checkpoint_time + self.pool_config.position_duration
        if maturity_time % self.pool_config.checkpoint_duration != 0 or maturity_time > latest_maturity_time:
            raise errors.InvalidMaturityTime(f"{maturity_time=} is not a valid maturity")

    def _finish(self, operation: str, trader: str, **details) -> None:
        """Validate the pool state and log the operation"""
        self.pool_state.check_valid_pool_state()
        logging.debug(
            "%s by %s: %s\nspot_price=%s share_reserves=%s bond_reserves=%s",
            operation,
            trader,
            details,
            self.spot_price,
            self.pool_state.share_reserves,
            self.pool_state.bond_reserves,
        )


def build_market(
    pool_config: PoolConfig,
    variable_rate: FixedPoint = FixedPoint(0),
    block_time: time.BlockTime | None = None,
) -> HyperdriveMarket:
    """Build a market backed by a mock yield source that accrues `variable_rate`"""
    yield_source = MockYieldSource(
        variable_rate=variable_rate, initial_vault_share_price=pool_config.initial_vault_share_price
    )
    return HyperdriveMarket(pool_config=pool_config, yield_source=yield_source, block_time=block_time)


__all__ = ["HyperdriveMarket", "MarketSnapshot", "ZERO_ADDRESS", "build_market"]
