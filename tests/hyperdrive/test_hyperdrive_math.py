"""Testing for position pricing in hyperdrive_math"""
import unittest

import hyperpool
from hyperpool.errors import errors
from hyperpool.hyperdrive import hyperdrive_math
from hyperpool.math import FixedPoint

THIRTY_DAYS = 30 * hyperpool.SECONDS_IN_DAY


class TestPricing(unittest.TestCase):
    """Unit tests for spot price, APR and time stretch"""

    APPROX_EQ = FixedPoint("0.000001")

    def test_calculate_time_stretch(self):
        """The benchmark time stretch for a one year term"""
        time_stretch = hyperdrive_math.calculate_time_stretch(FixedPoint("0.05"), hyperpool.SECONDS_IN_YEAR)
        self.assertAlmostEqual(time_stretch, FixedPoint("0.0444631"), delta=self.APPROX_EQ)
        # higher rates need more stretch
        self.assertGreater(
            hyperdrive_math.calculate_time_stretch(FixedPoint("0.10"), hyperpool.SECONDS_IN_YEAR), time_stretch
        )

    def test_calculate_time_stretch_fail(self):
        """The time stretch is only defined for positive rates"""
        with self.assertRaises(errors.InvalidApr):
            hyperdrive_math.calculate_time_stretch(FixedPoint(0), hyperpool.SECONDS_IN_YEAR)
        with self.assertRaises(errors.InvalidApr):
            hyperdrive_math.calculate_time_stretch(FixedPoint("-0.01"), hyperpool.SECONDS_IN_YEAR)

    def test_initial_bond_reserves_price_the_target_apr(self):
        """The initial bond reserves put the spot APR on the target, for any term"""
        share_reserves = FixedPoint(1_000_000)
        for apr in (FixedPoint("0.01"), FixedPoint("0.05"), FixedPoint("0.20")):
            for position_duration in (THIRTY_DAYS, hyperpool.SECONDS_IN_YEAR):
                time_stretch = hyperdrive_math.calculate_time_stretch(apr, position_duration)
                bond_reserves = hyperdrive_math.calculate_initial_bond_reserves(
                    share_reserves, FixedPoint("1.0"), apr, position_duration, time_stretch
                )
                spot_apr = hyperdrive_math.calculate_spot_apr(
                    share_reserves, bond_reserves, FixedPoint("1.0"), position_duration, time_stretch
                )
                self.assertAlmostEqual(spot_apr, apr, delta=self.APPROX_EQ, msg=f"{apr=}, {position_duration=}")

    def test_calculate_spot_price(self):
        """Equal reserves price bonds at one; more bonds make them cheaper"""
        time_stretch = FixedPoint("0.05")
        self.assertAlmostEqual(
            hyperdrive_math.calculate_spot_price(FixedPoint(100), FixedPoint(100), FixedPoint("1.0"), time_stretch),
            FixedPoint("1.0"),
            delta=self.APPROX_EQ,
        )
        spot_price = hyperdrive_math.calculate_spot_price(
            FixedPoint(100), FixedPoint(200), FixedPoint("1.0"), time_stretch
        )
        # 0.5 ** 0.05
        self.assertAlmostEqual(spot_price, FixedPoint("0.965936328924846"), delta=self.APPROX_EQ)

    def test_calculate_apr_from_price(self):
        """A price of 0.95 over one year is a 0.05 / 0.95 rate"""
        self.assertAlmostEqual(
            hyperdrive_math.calculate_apr_from_price(FixedPoint("0.95"), hyperpool.SECONDS_IN_YEAR),
            FixedPoint("0.052631578947368421"),
            delta=self.APPROX_EQ,
        )
        self.assertAlmostEqual(
            hyperdrive_math.calculate_apr_from_realized_price(
                FixedPoint(95), FixedPoint(100), hyperpool.SECONDS_IN_YEAR // 2
            ),
            FixedPoint("0.105263157894736842"),
            delta=self.APPROX_EQ,
        )

    def test_calculate_effective_share_reserves(self):
        """Effective share reserves subtract the signed adjustment and can't be negative"""
        self.assertEqual(
            hyperdrive_math.calculate_effective_share_reserves(FixedPoint(100), FixedPoint(-20)), FixedPoint(120)
        )
        self.assertEqual(
            hyperdrive_math.calculate_effective_share_reserves(FixedPoint(100), FixedPoint(20)), FixedPoint(80)
        )
        with self.assertRaises(errors.InvalidEffectiveShareReserves):
            hyperdrive_math.calculate_effective_share_reserves(FixedPoint(100), FixedPoint(101))


class TestPositionMath(unittest.TestCase):
    """Unit tests for open and close computations"""

    APPROX_EQ = FixedPoint("0.000001")

    def setUp(self):
        self.apr = FixedPoint("0.05")
        self.time_stretch = hyperdrive_math.calculate_time_stretch(self.apr, hyperpool.SECONDS_IN_YEAR)
        self.share_reserves = FixedPoint(1_000_000)
        self.bond_reserves = hyperdrive_math.calculate_initial_bond_reserves(
            self.share_reserves, FixedPoint("1.0"), self.apr, hyperpool.SECONDS_IN_YEAR, self.time_stretch
        )

    def test_close_long_at_maturity_is_face_value(self):
        """With no time remaining every bond is redeemed at face value"""
        vault_share_price = FixedPoint("1.25")
        result = hyperdrive_math.calculate_close_long(
            self.share_reserves,
            self.bond_reserves,
            FixedPoint(100),
            FixedPoint(0),
            self.time_stretch,
            vault_share_price,
            FixedPoint("1.0"),
        )
        self.assertEqual(result.share_curve_delta, FixedPoint(0))
        self.assertEqual(result.bond_curve_delta, FixedPoint(0))
        self.assertEqual(result.share_amount, FixedPoint(80))

    def test_close_long_splits_curve_and_flat(self):
        """Halfway through the term, half of the bonds trade on the curve"""
        result = hyperdrive_math.calculate_close_long(
            self.share_reserves,
            self.bond_reserves,
            FixedPoint(100),
            FixedPoint("0.5"),
            self.time_stretch,
            FixedPoint("1.0"),
            FixedPoint("1.0"),
        )
        self.assertEqual(result.bond_curve_delta, FixedPoint(50))
        self.assertLess(result.share_curve_delta, FixedPoint(50))
        self.assertEqual(result.share_amount, result.share_curve_delta + FixedPoint(50))

    def test_close_short_costs_more_than_close_long_pays(self):
        """Buying bonds back costs more than selling the same bonds pays"""
        args = (
            self.share_reserves,
            self.bond_reserves,
            FixedPoint(1_000),
            FixedPoint("0.75"),
            self.time_stretch,
            FixedPoint("1.0"),
            FixedPoint("1.0"),
        )
        close_short = hyperdrive_math.calculate_close_short(*args)
        close_long = hyperdrive_math.calculate_close_long(*args)
        self.assertGreater(close_short.share_amount, close_long.share_amount)
        self.assertEqual(close_short.bond_curve_delta, close_long.bond_curve_delta)

    def test_open_short_pays_less_than_face_value(self):
        """Bonds sold to the pool are paid below face value"""
        share_proceeds = hyperdrive_math.calculate_open_short(
            self.share_reserves,
            self.bond_reserves,
            FixedPoint(1_000),
            self.time_stretch,
            FixedPoint("1.0"),
            FixedPoint("1.0"),
        )
        self.assertLess(share_proceeds, FixedPoint(1_000))
        self.assertGreater(share_proceeds, FixedPoint(900))

    def test_calculate_short_proceeds(self):
        """Short proceeds credit the interest accrued since the open"""
        bond_amount = FixedPoint(100)
        share_amount = FixedPoint(90)
        proceeds_down = hyperdrive_math.calculate_short_proceeds_down(
            bond_amount, share_amount, FixedPoint("1.0"), FixedPoint("1.05"), FixedPoint("1.1"), FixedPoint(0)
        )
        proceeds_up = hyperdrive_math.calculate_short_proceeds_up(
            bond_amount, share_amount, FixedPoint("1.0"), FixedPoint("1.05"), FixedPoint("1.1"), FixedPoint(0)
        )
        # 100 * 1.05 / 1.1 - 90
        self.assertAlmostEqual(proceeds_down, FixedPoint("5.454545454545454545"), delta=self.APPROX_EQ)
        self.assertGreaterEqual(proceeds_up, proceeds_down)
        # the flat fee is returned to the short
        with_flat_fee = hyperdrive_math.calculate_short_proceeds_down(
            bond_amount, share_amount, FixedPoint("1.0"), FixedPoint("1.05"), FixedPoint("1.1"), FixedPoint("0.011")
        )
        self.assertAlmostEqual(with_flat_fee, proceeds_down + FixedPoint(1), delta=self.APPROX_EQ)

    def test_short_proceeds_underwater(self):
        """A short worth less than nothing receives zero"""
        proceeds = hyperdrive_math.calculate_short_proceeds_down(
            FixedPoint(100), FixedPoint(120), FixedPoint("1.0"), FixedPoint("1.0"), FixedPoint("1.0"), FixedPoint(0)
        )
        self.assertEqual(proceeds, FixedPoint(0))

    def test_negative_interest_adjustment(self):
        """Amounts are scaled down only when the vault share price fell"""
        adjust = hyperdrive_math.calculate_negative_interest_adjustment
        loss = adjust(FixedPoint(100), FixedPoint("1.0"), FixedPoint("0.9"))
        self.assertEqual(loss, FixedPoint(90))
        gain = adjust(FixedPoint(100), FixedPoint("1.0"), FixedPoint("1.1"))
        self.assertEqual(gain, FixedPoint(100))
