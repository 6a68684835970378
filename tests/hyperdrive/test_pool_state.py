"""Testing for the pool config, pool state and checkpoints"""
import unittest

import hyperpool
from hyperpool.errors import errors
from hyperpool.hyperdrive.checkpoint import Checkpoint
from hyperpool.hyperdrive.hyperdrive_actions import MarketDeltas
from hyperpool.hyperdrive.pool_config import PoolConfig
from hyperpool.hyperdrive.pool_state import PoolState
from hyperpool.math import FixedPoint

DAY = hyperpool.SECONDS_IN_DAY


class TestPoolConfig(unittest.TestCase):
    """Pool config validation and derived values"""

    def test_from_apr(self):
        """from_apr tunes the time stretch and keeps the other fields"""
        config = PoolConfig.from_apr(
            FixedPoint("0.05"), hyperpool.SECONDS_IN_YEAR, DAY, curve_fee=FixedPoint("0.01")
        )
        self.assertAlmostEqual(config.time_stretch, FixedPoint("0.0444631"), delta=FixedPoint("0.000001"))
        self.assertEqual(config.curve_fee, FixedPoint("0.01"))
        self.assertEqual(config.annualized_position_duration, FixedPoint("1.0"))
        self.assertEqual(config.checkpoints_per_term, 365)

    def test_frozen(self):
        """The config can't change once built"""
        config = PoolConfig(position_duration=DAY, checkpoint_duration=DAY, time_stretch=FixedPoint("0.05"))
        with self.assertRaises(AttributeError):
            config.curve_fee = FixedPoint("0.5")

    def test_invalid_config(self):
        """Inconsistent parameters are rejected"""
        valid = {"position_duration": 10 * DAY, "checkpoint_duration": DAY, "time_stretch": FixedPoint("0.05")}
        for override in (
            {"position_duration": 0},
            {"checkpoint_duration": 3 * DAY},
            {"time_stretch": FixedPoint("1.0")},
            {"time_stretch": FixedPoint(0)},
            {"initial_vault_share_price": FixedPoint(0)},
            {"minimum_share_reserves": FixedPoint(0)},
            {"curve_fee": FixedPoint("1.5")},
            {"flat_fee": FixedPoint("-0.1")},
            {"distribute_excess_idle_max_iterations": 0},
        ):
            with self.assertRaises(errors.InvalidPoolConfig, msg=f"{override=}"):
                PoolConfig(**{**valid, **override})


class TestPoolState(unittest.TestCase):
    """Applying deltas and tracking exposure"""

    def test_apply_delta(self):
        """Deltas add to the pool and to the named checkpoints"""
        pool_state = PoolState(share_reserves=FixedPoint(100), bond_reserves=FixedPoint(200))
        pool_state.apply_delta(
            MarketDeltas(
                d_share_reserves=FixedPoint(10),
                d_bond_reserves=FixedPoint(-11),
                d_longs_outstanding=FixedPoint(11),
                checkpoint_time=0,
                d_checkpoint_exposure=FixedPoint(11),
                d_long_base_volume=FixedPoint(10),
            )
        )
        self.assertEqual(pool_state.share_reserves, FixedPoint(110))
        self.assertEqual(pool_state.bond_reserves, FixedPoint(189))
        self.assertEqual(pool_state.longs_outstanding, FixedPoint(11))
        self.assertEqual(pool_state.long_exposure, FixedPoint(11))
        self.assertEqual(pool_state.checkpoints[0].exposure, FixedPoint(11))
        self.assertEqual(pool_state.checkpoints[0].long_base_volume, FixedPoint(10))
        self.assertEqual(pool_state["share_reserves"], FixedPoint(110))

    def test_apply_matured_delta(self):
        """Maturity deltas land on the maturity checkpoint"""
        pool_state = PoolState()
        pool_state.apply_delta(
            MarketDeltas(maturity_time=DAY, d_matured_long_bonds=FixedPoint(5), d_matured_long_shares=FixedPoint(4))
        )
        self.assertEqual(pool_state.checkpoints[DAY].matured_long_bonds, FixedPoint(5))
        self.assertEqual(pool_state.checkpoints[DAY].matured_long_shares, FixedPoint(4))
        self.assertNotIn(0, pool_state.checkpoints)

    def test_long_exposure(self):
        """Only the positive part of each checkpoint's exposure counts"""
        pool_state = PoolState()
        pool_state.update_checkpoint_exposure(0, FixedPoint(100))
        self.assertEqual(pool_state.long_exposure, FixedPoint(100))
        # shorts in another checkpoint don't net against these longs
        pool_state.update_checkpoint_exposure(DAY, FixedPoint(-50))
        self.assertEqual(pool_state.long_exposure, FixedPoint(100))
        pool_state.update_checkpoint_exposure(0, FixedPoint(-150))
        self.assertEqual(pool_state.long_exposure, FixedPoint(0))
        self.assertEqual(pool_state.checkpoints[0].exposure, FixedPoint(-50))

    def test_check_valid_pool_state(self):
        """Amounts must be non-negative, except for the share adjustment"""
        PoolState(share_adjustment=FixedPoint(-5)).check_valid_pool_state()
        with self.assertRaises(errors.FixedPointUnderflow):
            PoolState(share_reserves=FixedPoint(-1)).check_valid_pool_state()
        with self.assertRaises(errors.InsufficientBalance):
            PoolState(withdrawal_shares_ready_to_withdraw=FixedPoint(1)).check_valid_pool_state()
        pool_state = PoolState()
        pool_state.checkpoint(0).matured_long_shares = FixedPoint(-1)
        with self.assertRaises(errors.FixedPointUnderflow):
            pool_state.check_valid_pool_state()

    def test_no_new_attribs(self):
        """Typos in field names raise instead of silently adding state"""
        pool_state = PoolState()
        with self.assertRaises(AttributeError):
            pool_state.shares_reserves = FixedPoint(1)  # type: ignore  # pylint: disable=attribute-defined-outside-init

    def test_copy(self):
        """A copy shares no mutable state with the original"""
        pool_state = PoolState(share_reserves=FixedPoint(100))
        pool_state.update_checkpoint_exposure(0, FixedPoint(10))
        pool_copy = pool_state.copy()
        pool_copy.share_reserves = FixedPoint(1)
        pool_copy.update_checkpoint_exposure(0, FixedPoint(10))
        self.assertEqual(pool_state.share_reserves, FixedPoint(100))
        self.assertEqual(pool_state.checkpoints[0].exposure, FixedPoint(10))
        self.assertEqual(pool_copy.checkpoints[0].exposure, FixedPoint(20))

    def test_checkpoint_is_set(self):
        """A checkpoint is set once it has a vault share price"""
        self.assertFalse(Checkpoint().is_set)
        self.assertTrue(Checkpoint(vault_share_price=FixedPoint("1.0")).is_set)
        self.assertFalse(PoolState().is_initialized)
