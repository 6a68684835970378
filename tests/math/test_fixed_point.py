"""Tests for the FixedPoint datatype and its arithmetic"""
import unittest

import hyperpool
from hyperpool.errors import errors
from hyperpool.math import FixedPoint, FixedPointIntegerMath

# pylint: disable=too-many-public-methods


class TestFixedPoint(unittest.TestCase):
    r"""Unit tests to verify that the FixedPoint class is correct.

    ..note::
        Integer inputs are whole numbers, so `FixedPoint(1) == FixedPoint("1.0")`;
        use `scaled_value` to build a value from its 1e18 representation.
    """

    ZERO = FixedPoint("0.0")
    ONE = FixedPoint("1.0")
    NEG_ONE = FixedPoint("-1.0")
    WEI = FixedPoint(scaled_value=1)

    def test_init(self):
        """Test the supported constructor inputs"""
        self.assertEqual(FixedPoint("1.5").scaled_value, 15 * 10**17)
        self.assertEqual(FixedPoint(2), FixedPoint("2.0"))
        self.assertEqual(FixedPoint(0.5).scaled_value, 5 * 10**17)
        self.assertEqual(FixedPoint(True), self.ONE)
        self.assertEqual(FixedPoint(FixedPoint("3.0")), FixedPoint("3.0"))
        self.assertEqual(FixedPoint(), self.ZERO)
        self.assertEqual(FixedPoint("1_000.25"), FixedPoint("1000.25"))
        self.assertEqual(FixedPoint("-0.5").scaled_value, -(5 * 10**17))
        self.assertEqual(hyperpool.WEI, self.WEI)

    def test_init_truncates_extra_decimals(self):
        """Digits beyond 18 decimals are dropped"""
        self.assertEqual(FixedPoint("0.0000000000000000019").scaled_value, 1)

    def test_init_fail(self):
        """Invalid inputs raise"""
        with self.assertRaises(ValueError):
            FixedPoint("1.0e18")
        with self.assertRaises(ValueError):
            FixedPoint("abc")
        with self.assertRaises(errors.InvalidDomain):
            FixedPoint(float("nan"))
        with self.assertRaises(errors.InvalidDomain):
            FixedPoint(float("inf"))
        with self.assertRaises(TypeError):
            FixedPoint([1])  # type: ignore
        with self.assertRaises(NotImplementedError):
            FixedPoint("1.0", decimal_places=6)
        with self.assertRaises(errors.FixedPointOverflow):
            FixedPoint(scaled_value=FixedPointIntegerMath.INT_MAX + 1)

    def test_immutable(self):
        """The scaled value can't be changed after construction"""
        value = FixedPoint("1.0")
        with self.assertRaises(ValueError):
            value.scaled_value = 5
        with self.assertRaises(ValueError):
            value._scaled_value = 5  # pylint: disable=protected-access
        self.assertEqual(value, self.ONE)

    def test_hash(self):
        """Equal values hash equally, so FixedPoint can key a dict"""
        lookup = {FixedPoint("1.0"): "one"}
        self.assertEqual(lookup[FixedPoint(1)], "one")
        self.assertEqual(len({FixedPoint("2.0"), FixedPoint(2), FixedPoint(scaled_value=2 * 10**18)}), 1)

    def test_str_and_repr(self):
        """String forms trim trailing zeros and keep the sign"""
        self.assertEqual(str(FixedPoint("1234.5")), "1234.5")
        self.assertEqual(str(FixedPoint("-0.000001")), "-0.000001")
        self.assertEqual(str(self.ZERO), "0.0")
        self.assertEqual(repr(FixedPoint("1234.5")), 'FixedPoint("1234.5")')

    def test_casts(self):
        """int truncates toward zero; float and bool behave like their builtins"""
        self.assertEqual(int(FixedPoint("1.5")), 1)
        self.assertEqual(int(FixedPoint("-1.5")), -1)
        self.assertEqual(float(FixedPoint("1.5")), 1.5)
        self.assertFalse(bool(self.ZERO))
        self.assertTrue(bool(self.WEI))

    def test_add_sub(self):
        """Test `+` and `-` with FixedPoint and int operands"""
        self.assertEqual(FixedPoint("5.0") + FixedPoint("5.0"), FixedPoint("10.0"))
        self.assertEqual(FixedPoint("5.0") + 5, FixedPoint("10.0"))
        self.assertEqual(5 + FixedPoint("5.0"), FixedPoint("10.0"))
        self.assertEqual(FixedPoint("5.0") - FixedPoint("7.5"), FixedPoint("-2.5"))
        self.assertEqual(10 - FixedPoint("2.5"), FixedPoint("7.5"))
        self.assertEqual(-FixedPoint("2.5"), FixedPoint("-2.5"))
        self.assertEqual(abs(FixedPoint("-2.5")), FixedPoint("2.5"))

    def test_mixing_floats_fails(self):
        """Non-zero floats are rejected as operands"""
        with self.assertRaises(TypeError):
            _ = self.ONE + 0.5
        with self.assertRaises(TypeError):
            _ = self.ONE < 0.5
        self.assertEqual(self.ONE + 0.0, self.ONE)

    def test_mul_div_rounding(self):
        """`*` and `/` round down; the `_up` variants round up"""
        self.assertEqual(self.WEI.mul_down(FixedPoint("0.5")), self.ZERO)
        self.assertEqual(self.WEI.mul_up(FixedPoint("0.5")), self.WEI)
        self.assertEqual(self.WEI * FixedPoint("0.5"), self.ZERO)
        self.assertEqual((self.ONE / FixedPoint("3.0")).scaled_value, 333333333333333333)
        self.assertEqual(self.ONE.div_up(FixedPoint("3.0")).scaled_value, 333333333333333334)
        self.assertEqual(FixedPoint("2.0") * FixedPoint("3.5"), FixedPoint("7.0"))
        self.assertEqual(FixedPoint("-2.0") * FixedPoint("3.5"), FixedPoint("-7.0"))
        self.assertEqual(FixedPoint("7.0") / FixedPoint("-2.0"), FixedPoint("-3.5"))

    def test_mul_div(self):
        """mul_div rounds once, after the full product"""
        value = FixedPoint("10.0")
        self.assertEqual(value.mul_div_down(FixedPoint("1.0"), FixedPoint("3.0")).scaled_value, 3333333333333333333)
        self.assertEqual(value.mul_div_up(FixedPoint("1.0"), FixedPoint("3.0")).scaled_value, 3333333333333333334)
        self.assertEqual(value.mul_div_down(FixedPoint("6.0"), FixedPoint("3.0")), FixedPoint("20.0"))

    def test_divide_by_zero(self):
        """Division by zero raises a DivisionByZero that is also a ZeroDivisionError"""
        for operation in (
            lambda: self.ONE / self.ZERO,
            lambda: self.ONE.div_up(self.ZERO),
            lambda: self.ONE.mul_div_down(self.ONE, self.ZERO),
            lambda: self.ONE % self.ZERO,
        ):
            with self.assertRaises(errors.DivisionByZero):
                operation()
        with self.assertRaises(ZeroDivisionError):
            _ = self.ONE / self.ZERO
        with self.assertRaises(errors.ArithmeticFailure):
            _ = self.ONE / self.ZERO

    def test_overflow(self):
        """Results outside of int256 raise FixedPointOverflow"""
        largest = FixedPoint(scaled_value=FixedPointIntegerMath.INT_MAX)
        with self.assertRaises(errors.FixedPointOverflow):
            _ = largest + self.WEI
        with self.assertRaises(errors.FixedPointOverflow):
            _ = -largest - FixedPoint("2.0")
        with self.assertRaises(OverflowError):
            _ = largest * FixedPoint("2.0")

    def test_floor_ceil_mod(self):
        """Test whole number rounding and the remainder"""
        self.assertEqual(FixedPoint("1.5").floor(), FixedPoint("1.0"))
        self.assertEqual(FixedPoint("1.5").ceil(), FixedPoint("2.0"))
        self.assertEqual(FixedPoint("-1.5").floor(), FixedPoint("-2.0"))
        self.assertEqual(FixedPoint("-1.5").ceil(), FixedPoint("-1.0"))
        self.assertEqual(FixedPoint("7.0") // FixedPoint("2.0"), FixedPoint("3.0"))
        self.assertEqual(FixedPoint("5.0") % FixedPoint("2.0"), FixedPoint("1.0"))
        self.assertEqual(divmod(FixedPoint("5.0"), FixedPoint("2.0")), (FixedPoint("2.0"), FixedPoint("1.0")))

    def test_comparisons(self):
        """Comparisons work against FixedPoint and int"""
        self.assertTrue(FixedPoint("2.0") > 1)
        self.assertTrue(FixedPoint("2.0") >= FixedPoint(2))
        self.assertTrue(self.NEG_ONE < self.ZERO)
        self.assertTrue(self.WEI <= self.ONE)
        self.assertNotEqual(self.ONE, self.WEI)
        self.assertNotEqual(self.ONE, "1.0")

    def test_sign(self):
        """sign returns -1, 0 or 1"""
        self.assertEqual(FixedPoint("-3.2").sign(), self.NEG_ONE)
        self.assertEqual(self.ZERO.sign(), self.ZERO)
        self.assertEqual(FixedPoint("0.1").sign(), self.ONE)
        self.assertTrue(self.ZERO.is_zero())
