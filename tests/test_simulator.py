"""Randomized property checks driven by the simulator"""
import unittest

import numpy as np

import hyperpool
from hyperpool.hyperdrive.assets import AssetIdPrefix
from hyperpool.hyperdrive.hyperdrive_actions import MarketActionType
from hyperpool.math import FixedPoint
from hyperpool.simulators import Config, Simulator
from hyperpool.simulators.config import to_fixed_point


def build_config(**kwargs) -> Config:
    """A short, small simulation"""
    config = Config(
        target_liquidity=1e5,
        num_position_days=3,
        num_checkpoint_days=1,
        num_trading_days=6,
        num_trades_per_day=5,
        num_traders=3,
        max_trade_fraction=0.05,
    )
    for key, value in kwargs.items():
        config[key] = value
    return config


class TestSimulator(unittest.TestCase):
    """Solvency, conservation and reproducibility over random trades"""

    def test_solvency(self):
        """The pool stays above its floors after every attempted trade"""
        for random_seed in (1, 2):
            simulator = Simulator(build_config(random_seed=random_seed))
            simulator.run_simulation()
            minimum_share_reserves = simulator.market.pool_config.minimum_share_reserves
            self.assertGreater(len(simulator.records), 0)
            for record in simulator.records:
                self.assertGreaterEqual(record.effective_share_reserves, minimum_share_reserves)
                self.assertGreaterEqual(record.share_reserves, minimum_share_reserves)
                self.assertGreaterEqual(record.present_value, FixedPoint(0))
            self.assertTrue(simulator.market.is_solvent(check_exposure=False))

    def assert_liquidated(self, simulator: Simulator, msg: str) -> None:
        """No trader holds positions, LP shares or withdrawal shares"""
        for trader in simulator.traders:
            for prefix in (AssetIdPrefix.LONG, AssetIdPrefix.SHORT, AssetIdPrefix.LP):
                self.assertEqual(simulator.get_positions(trader, prefix), {}, msg=f"{msg}, {trader=}, {prefix=}")
            self.assertLessEqual(
                simulator.market.balance_of(AssetIdPrefix.WITHDRAWAL_SHARE, 0, trader),
                hyperpool.PRECISION_THRESHOLD,
                msg=f"{msg}, {trader=}",
            )
        self.assertEqual(simulator.market.pool_state.longs_outstanding, FixedPoint(0), msg=msg)
        self.assertEqual(simulator.market.pool_state.shorts_outstanding, FixedPoint(0), msg=msg)

    def test_conservation(self):
        """Over the full lifecycle traders can't take out more than they put in plus the vault's interest"""
        for random_seed, max_trade_fraction in ((1, 0.05), (15, 0.5), (32, 0.5)):
            for variable_rate in (0.0, 0.05, -0.02):
                msg = f"{random_seed=}, {max_trade_fraction=}, {variable_rate=}"
                simulator = Simulator(
                    build_config(
                        random_seed=random_seed, max_trade_fraction=max_trade_fraction, variable_rate=variable_rate
                    )
                )
                simulator.run_simulation()
                self.assert_liquidated(simulator, msg)
                self.assertLessEqual(
                    simulator.total_base_received,
                    simulator.total_base_paid + simulator.accrued_interest + hyperpool.PRECISION_THRESHOLD,
                    msg=msg,
                )

    def test_reproducible(self):
        """The same seed produces the same trades"""
        first = Simulator(build_config(random_seed=3))
        first.run_simulation()
        second = Simulator(build_config(random_seed=3))
        second.run_simulation()
        self.assertEqual(first.records, second.records)
        np.testing.assert_array_equal(first.records_as_array(), second.records_as_array())

    def test_execute_trade(self):
        """Rejected trades are recorded without changing the pool"""
        simulator = Simulator(build_config(num_trading_days=0, liquidate_on_end=False))
        simulator.run_simulation()
        pool_state = simulator.market.pool_state.copy()
        succeeded = simulator.execute_trade("trader_0", MarketActionType.OPEN_LONG, FixedPoint("0.0000001"))
        self.assertFalse(succeeded)
        self.assertFalse(simulator.records[-1].succeeded)
        self.assertEqual(simulator.market.pool_state, pool_state)
        self.assertTrue(simulator.execute_trade("trader_0", MarketActionType.OPEN_LONG, FixedPoint(100)))
        self.assertEqual(simulator.total_base_paid, FixedPoint(100_100))

    def test_set_rng(self):
        """Only numpy generators are accepted"""
        simulator = Simulator(build_config())
        with self.assertRaises(TypeError):
            simulator.set_rng(1)  # type: ignore

    def test_trade_updates(self):
        """The dataframe has a row per record and float columns"""
        simulator = Simulator(build_config())
        simulator.run_simulation()
        trade_updates = simulator.trade_updates
        self.assertEqual(len(trade_updates), len(simulator.records))
        self.assertEqual(simulator.records_as_array().shape, (len(simulator.records), 4))
        self.assertEqual(trade_updates["trader"].iloc[0], simulator.records[0].trader)
        self.assertEqual(trade_updates["action"].iloc[0], simulator.records[0].action.name)
        self.assertAlmostEqual(trade_updates["spot_price"].iloc[-1], float(simulator.records[-1].spot_price))

    def test_checkpoint_volumes(self):
        """One row per checkpoint, in time order, with the base opened into it"""
        simulator = Simulator(build_config(liquidate_on_end=False))
        simulator.run_simulation()
        checkpoints = simulator.market.pool_state.checkpoints
        checkpoint_volumes = simulator.checkpoint_volumes
        self.assertEqual(list(checkpoint_volumes["checkpoint_time"]), sorted(checkpoints))
        for row in checkpoint_volumes.itertuples():
            checkpoint = checkpoints[row.checkpoint_time]
            self.assertAlmostEqual(row.long_base_volume, float(checkpoint.long_base_volume))
            self.assertAlmostEqual(row.short_base_volume, float(checkpoint.short_base_volume))
        total_volume = checkpoint_volumes["long_base_volume"].sum() + checkpoint_volumes["short_base_volume"].sum()
        self.assertGreater(total_volume, 0)


class TestConfig(unittest.TestCase):
    """Simulation config behavior"""

    def test_invalid_checkpoint_days(self):
        """Checkpoints must evenly divide the position duration"""
        with self.assertRaises(ValueError):
            Config(num_position_days=3, num_checkpoint_days=2)

    def test_copy(self):
        """Copies are equal, independent and get a fresh generator"""
        config = Config(random_seed=7)
        config_copy = config.copy()
        self.assertEqual(config, config_copy)
        config_copy["title"] = "changed"
        self.assertNotEqual(config.title, config_copy.title)
        self.assertEqual(config.rng.integers(1_000_000), config_copy.rng.integers(1_000_000))

    def test_no_new_attribs(self):
        """Typos in config fields raise"""
        config = Config()
        with self.assertRaises(AttributeError):
            config["num_trading_day"] = 5

    def test_to_pool_config(self):
        """Days become seconds and floats become FixedPoint"""
        pool_config = Config(num_position_days=30, curve_fee=0.01).to_pool_config()
        self.assertEqual(pool_config.position_duration, 30 * hyperpool.SECONDS_IN_DAY)
        self.assertEqual(pool_config.checkpoint_duration, hyperpool.SECONDS_IN_DAY)
        self.assertEqual(pool_config.curve_fee, FixedPoint("0.01"))

    def test_to_fixed_point(self):
        """Whole numbers convert exactly, however large"""
        self.assertEqual(to_fixed_point(1e5), FixedPoint(100_000))
        self.assertEqual(to_fixed_point(1e9), FixedPoint(1_000_000_000))
        self.assertEqual(to_fixed_point(0.5), FixedPoint("0.5"))
        pool_config = Config(minimum_share_reserves=1e4).to_pool_config()
        self.assertEqual(pool_config.minimum_share_reserves, FixedPoint(10_000))
