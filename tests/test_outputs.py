"""Testing for the JSON output helpers"""
import json
import unittest

import numpy as np

import hyperpool
import hyperpool.utils.outputs as output_utils
from hyperpool.hyperdrive.hyperdrive_actions import MarketActionType
from hyperpool.hyperdrive.pool_config import PoolConfig
from hyperpool.hyperdrive.pool_state import PoolState
from hyperpool.math import FixedPoint


class TestOutputs(unittest.TestCase):
    """JSON dumps of pool objects"""

    def test_fixed_point(self):
        """FixedPoint values are written as decimal strings"""
        self.assertEqual(output_utils.to_json(FixedPoint("1.5")), '"1.5"')
        self.assertEqual(
            json.loads(output_utils.to_json({"amounts": [FixedPoint(1), FixedPoint("-0.25")]})),
            {"amounts": ["1.0", "-0.25"]},
        )

    def test_pool_state(self):
        """Checkpoint times become string keys"""
        pool_state = PoolState(share_reserves=FixedPoint(100))
        pool_state.update_checkpoint_exposure(86_400, FixedPoint(5))
        dumped = json.loads(output_utils.to_json(pool_state))
        self.assertEqual(dumped["share_reserves"], "100.0")
        self.assertEqual(dumped["checkpoints"]["86400"]["exposure"], "5.0")
        self.assertEqual(dumped["long_exposure"], "5.0")

    def test_pool_config(self):
        """Config ints stay ints"""
        pool_config = PoolConfig.from_apr(FixedPoint("0.05"), hyperpool.SECONDS_IN_YEAR, hyperpool.SECONDS_IN_DAY)
        dumped = json.loads(output_utils.to_json(pool_config, indent=None))
        self.assertEqual(dumped["position_duration"], hyperpool.SECONDS_IN_YEAR)
        self.assertEqual(dumped["minimum_share_reserves"], "10.0")

    def test_numpy_and_enums(self):
        """numpy values and enums are converted to builtins"""
        data = {
            "count": np.int64(3),
            "rate": np.float64(0.5),
            "series": np.array([1, 2]),
            "action": MarketActionType.OPEN_LONG,
            "rng": np.random.default_rng(1),
        }
        self.assertEqual(
            json.loads(output_utils.to_json(data)),
            {"count": 3, "rate": 0.5, "series": [1, 2], "action": "OPEN_LONG", "rng": "NumpyGenerator"},
        )
