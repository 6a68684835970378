"""Simulator class drives randomized trade sequences against a pool for experiment tracking"""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import NamedTuple

import numpy as np
import pandas as pd
from numpy.random._generator import Generator as NumpyGenerator

import hyperpool
import hyperpool.utils.logs as log_utils
from hyperpool.errors import errors
from hyperpool.hyperdrive.assets import AssetIdPrefix, decode_asset_id
from hyperpool.hyperdrive.hyperdrive_actions import MarketActionType
from hyperpool.hyperdrive.hyperdrive_market import HyperdriveMarket, build_market
from hyperpool.math import FixedPoint
from hyperpool.simulators.config import Config, to_fixed_point

INITIAL_LP = "initial_lp"
# trades the random traders choose between
TRADE_ACTIONS = [action for action in MarketActionType if action != MarketActionType.INITIALIZE_MARKET]
# failures that reject a trade without stopping the simulation
TRADE_FAILURES = (errors.InputValidationError, errors.ArithmeticFailure, errors.SolvencyError)


class SimulationRecord(NamedTuple):
    """Pool state after one attempted trade"""

    day: int
    trade_number: int
    trader: str
    action: MarketActionType
    succeeded: bool
    spot_price: FixedPoint
    vault_share_price: FixedPoint
    share_reserves: FixedPoint
    effective_share_reserves: FixedPoint
    present_value: FixedPoint
    lp_share_price: FixedPoint


class Simulator:
    r"""Runs random traders against a pool and records the pool after every attempted trade

    .. code-block::
       initialize the pool with the initial LP
       for day in num_trading_days:
           for trade in num_trades_per_day:
               pick a trader, an action and an amount
               try the action; a rejected trade leaves the pool unchanged
               advance the clock, accruing the yield source
       let every position mature, then close it and remove every LP share
    """

    # pylint: disable=too-many-instance-attributes

    def __init__(self, config: Config, market: HyperdriveMarket | None = None):
        self.config = config.copy()
        logging.info("%s", self.config)
        self.set_rng(self.config.rng)
        self.config.freeze()  # type: ignore
        if market is None:
            market = build_market(self.config.to_pool_config(), to_fixed_point(self.config.variable_rate))
        self.market = market
        self.traders = [INITIAL_LP] + [f"trader_{index}" for index in range(self.config.num_traders)]
        self.base_paid: defaultdict[str, FixedPoint] = defaultdict(FixedPoint)
        self.base_received: defaultdict[str, FixedPoint] = defaultdict(FixedPoint)
        self.accrued_interest = FixedPoint(0)
        self.records: list[SimulationRecord] = []
        self.day = 0
        self.trade_number = 0
        self.seconds_between_trades = hyperpool.SECONDS_IN_DAY // self.config.num_trades_per_day

    def set_rng(self, rng: NumpyGenerator) -> None:
        r"""Assign the internal random number generator to a new instantiation
        This function is useful for forcing identical trade volume and directions across simulation runs

        Arguments
        ----------
        rng : Generator
            Random number generator, constructed using np.random.default_rng(seed)
        """
        if not isinstance(rng, NumpyGenerator):
            raise TypeError(f"rng type must be a random number generator, not {type(rng)}.")
        self.rng = rng

    @property
    def total_base_paid(self) -> FixedPoint:
        """Base every trader has paid into the pool"""
        return sum(self.base_paid.values(), FixedPoint(0))

    @property
    def total_base_received(self) -> FixedPoint:
        """Base every trader has taken out of the pool"""
        return sum(self.base_received.values(), FixedPoint(0))

    def run_simulation(self) -> None:
        r"""Initialize the pool, run the random trades and, if configured, close every position"""
        if not self.market.pool_state.is_initialized:
            contribution = to_fixed_point(self.config.target_liquidity)
            self.market.initialize(INITIAL_LP, contribution, to_fixed_point(self.config.target_fixed_apr))
            self.base_paid[INITIAL_LP] += contribution
        for day in range(self.config.num_trading_days):
            self.day = day
            for _ in range(self.config.num_trades_per_day):
                self.execute_random_trade()
                self.advance_time(self.seconds_between_trades)
            logging.debug(
                "day = %d, block_time = %d, spot_apr = %s", self.day, self.market.block_time.time, self.market.spot_apr
            )
        if self.config.liquidate_on_end:
            self.liquidate()

    def advance_time(self, seconds: int) -> None:
        """Advance the pool clock and track the interest the yield source earns on what it holds"""
        total_base_before = self.market.yield_source.total_base  # type: ignore
        self.market.advance_time(seconds)
        self.accrued_interest += self.market.yield_source.total_base - total_base_before  # type: ignore

    def execute_random_trade(self) -> bool:
        """Pick a random trader and action; returns True if the trade went through"""
        trader = self.traders[1 + int(self.rng.integers(self.config.num_traders))]
        action = TRADE_ACTIONS[int(self.rng.integers(len(TRADE_ACTIONS)))]
        if action in (MarketActionType.CLOSE_LONG, MarketActionType.CLOSE_SHORT):
            prefix = AssetIdPrefix.LONG if action == MarketActionType.CLOSE_LONG else AssetIdPrefix.SHORT
            positions = self.get_positions(trader, prefix)
            if not positions:
                return False
            maturity_time = sorted(positions)[int(self.rng.integers(len(positions)))]
            amount = positions[maturity_time] * FixedPoint(float(self.rng.uniform(0.1, 1.0)))
            # a remainder below the minimum transaction amount could never be closed
            if positions[maturity_time] - amount < self.market.pool_config.minimum_transaction_amount:
                amount = positions[maturity_time]
            return self.execute_trade(trader, action, amount, maturity_time)
        if action == MarketActionType.REMOVE_LIQUIDITY:
            amount = self.market.balance_of(AssetIdPrefix.LP, 0, trader)
        elif action == MarketActionType.REDEEM_WITHDRAWAL_SHARES:
            amount = self.market.balance_of(AssetIdPrefix.WITHDRAWAL_SHARE, 0, trader)
        else:
            max_trade = self.config.target_liquidity * self.config.max_trade_fraction
            amount = FixedPoint(float(self.rng.uniform(self.config.minimum_transaction_amount, max_trade)))
        if amount <= FixedPoint(0):
            return False
        return self.execute_trade(trader, action, amount)

    def execute_trade(
        self, trader: str, action: MarketActionType, amount: FixedPoint, maturity_time: int | None = None
    ) -> bool:
        """Execute one trade for `trader`, logging and recording it; returns True if the trade went through"""
        try:
            if action == MarketActionType.OPEN_LONG:
                self.market.open_long(trader, amount)
                self.base_paid[trader] += amount
            elif action == MarketActionType.OPEN_SHORT:
                _, base_deposit = self.market.open_short(trader, amount)
                self.base_paid[trader] += base_deposit
            elif action == MarketActionType.CLOSE_LONG:
                self.base_received[trader] += self.market.close_long(trader, maturity_time, amount)
            elif action == MarketActionType.CLOSE_SHORT:
                self.base_received[trader] += self.market.close_short(trader, maturity_time, amount)
            elif action == MarketActionType.ADD_LIQUIDITY:
                self.market.add_liquidity(trader, amount)
                self.base_paid[trader] += amount
            elif action == MarketActionType.REMOVE_LIQUIDITY:
                base_proceeds, _ = self.market.remove_liquidity(trader, amount)
                self.base_received[trader] += base_proceeds
            elif action == MarketActionType.REDEEM_WITHDRAWAL_SHARES:
                base_proceeds, _ = self.market.redeem_withdrawal_shares(trader, amount)
                self.base_received[trader] += base_proceeds
            else:
                raise ValueError(f"{action=} is not a trade")
        except TRADE_FAILURES as err:
            logging.debug("TRADE FAILED %s %s by %s\nerror = %r", action.name, amount, trader, err)
            self.record(trader, action, succeeded=False)
            return False
        except Exception as err:
            # the market rolled back, so this is the state the trade started from
            log_utils.log_crash_report(
                action.name, err, amount, trader, self.market.pool_state, self.market.pool_config
            )
            raise
        self.record(trader, action, succeeded=True)
        self.trade_number += 1
        return True

    def liquidate(self) -> None:
        """Let every position mature, then close them all and remove every trader's liquidity

        Matured positions are paid from their checkpoint, so no close depends on the curve.
        The initial LP goes last.
        """
        self.advance_time(self.market.pool_config.position_duration + self.market.pool_config.checkpoint_duration)
        for trader in self.traders[1:] + self.traders[:1]:
            for prefix, action in (
                (AssetIdPrefix.LONG, MarketActionType.CLOSE_LONG),
                (AssetIdPrefix.SHORT, MarketActionType.CLOSE_SHORT),
            ):
                for maturity_time, amount in sorted(self.get_positions(trader, prefix).items()):
                    self.execute_trade(trader, action, amount, maturity_time)
        for trader in self.traders[1:] + self.traders[:1]:
            lp_shares = self.market.balance_of(AssetIdPrefix.LP, 0, trader)
            if lp_shares > FixedPoint(0):
                self.execute_trade(trader, MarketActionType.REMOVE_LIQUIDITY, lp_shares)
            withdrawal_shares = self.market.balance_of(AssetIdPrefix.WITHDRAWAL_SHARE, 0, trader)
            if withdrawal_shares > FixedPoint(0):
                self.execute_trade(trader, MarketActionType.REDEEM_WITHDRAWAL_SHARES, withdrawal_shares)

    def get_positions(self, trader: str, prefix: AssetIdPrefix) -> dict[int, FixedPoint]:
        """Returns the trader's balances of one asset kind, keyed by maturity time"""
        positions = {}
        for asset_id, balance in self.market.multitoken.positions(trader).items():
            asset_prefix, maturity_time = decode_asset_id(asset_id)
            if asset_prefix == prefix:
                positions[maturity_time] = balance
        return positions

    def record(self, trader: str, action: MarketActionType, succeeded: bool) -> None:
        """Append the current pool state to the records"""
        self.records.append(
            SimulationRecord(
                day=self.day,
                trade_number=self.trade_number,
                trader=trader,
                action=action,
                succeeded=succeeded,
                spot_price=self.market.spot_price,
                vault_share_price=self.market.vault_share_price,
                share_reserves=self.market.pool_state.share_reserves,
                effective_share_reserves=self.market.effective_share_reserves,
                present_value=self.market.present_value,
                lp_share_price=self.market.lp_share_price,
            )
        )

    def records_as_array(self) -> np.ndarray:
        """Records as a float array with columns spot price, vault share price, share reserves, present value"""
        return np.array(
            [
                [
                    float(record.spot_price),
                    float(record.vault_share_price),
                    float(record.share_reserves),
                    float(record.present_value),
                ]
                for record in self.records
            ]
        )

    @property
    def trade_updates(self) -> pd.DataFrame:
        r"""Converts the records into a dataframe with one row per attempted trade

        FixedPoint columns are cast to float and actions are stored by name.
        """
        rows = [
            {
                key: float(value) if isinstance(value, FixedPoint) else value
                for key, value in record._asdict().items()
            }
            for record in self.records
        ]
        trade_updates = pd.DataFrame.from_records(rows, columns=list(SimulationRecord._fields))
        trade_updates["action"] = trade_updates["action"].map(lambda action: action.name)
        return trade_updates

    @property
    def checkpoint_volumes(self) -> pd.DataFrame:
        r"""Base traded into each checkpoint, one row per checkpoint in time order"""
        rows = [
            {
                "checkpoint_time": checkpoint_time,
                "vault_share_price": float(checkpoint.vault_share_price),
                "long_base_volume": float(checkpoint.long_base_volume),
                "short_base_volume": float(checkpoint.short_base_volume),
            }
            for checkpoint_time, checkpoint in sorted(self.market.pool_state.checkpoints.items())
        ]
        return pd.DataFrame.from_records(
            rows, columns=["checkpoint_time", "vault_share_price", "long_base_volume", "short_base_volume"]
        )
