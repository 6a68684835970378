"""Testing for the mock yield source"""
import unittest

import hyperpool
from hyperpool.errors import errors
from hyperpool.hyperdrive.yield_source import MockYieldSource, YieldSource
from hyperpool.math import FixedPoint


class TestMockYieldSource(unittest.TestCase):
    """Share price growth, deposits and withdrawals"""

    def test_accrue(self):
        """A year at 5% grows the share price by 5%"""
        yield_source = MockYieldSource(variable_rate=FixedPoint("0.05"))
        yield_source.accrue(hyperpool.SECONDS_IN_YEAR)
        self.assertEqual(yield_source.vault_share_price, FixedPoint("1.05"))
        yield_source.accrue(0)
        self.assertEqual(yield_source.vault_share_price, FixedPoint("1.05"))

    def test_negative_rate(self):
        """Negative rates lower the share price"""
        yield_source = MockYieldSource(variable_rate=FixedPoint("-0.10"))
        yield_source.accrue(hyperpool.SECONDS_IN_YEAR // 2)
        self.assertEqual(yield_source.vault_share_price, FixedPoint("0.95"))
        yield_source.set_variable_rate(FixedPoint("-1.0"))
        with self.assertRaises(errors.NegativeInterest):
            yield_source.accrue(hyperpool.SECONDS_IN_YEAR)
        self.assertEqual(yield_source.vault_share_price, FixedPoint("0.95"))

    def test_deposit_withdraw(self):
        """Deposits are converted to shares at the current share price"""
        yield_source = MockYieldSource(initial_vault_share_price=FixedPoint("1.05"))
        shares = yield_source.deposit(FixedPoint(105))
        self.assertEqual(shares, FixedPoint(100))
        self.assertEqual(yield_source.total_base, FixedPoint(105))
        with self.assertRaises(errors.InsufficientBalance):
            yield_source.withdraw(FixedPoint(101))
        self.assertEqual(yield_source.withdraw(FixedPoint(40)), FixedPoint(42))
        self.assertEqual(yield_source.total_shares, FixedPoint(60))

    def test_invalid_inputs(self):
        """Negative time and non-positive prices are rejected"""
        with self.assertRaises(errors.InvalidDomain):
            MockYieldSource().accrue(-1)
        with self.assertRaises(errors.InvalidDomain):
            MockYieldSource(initial_vault_share_price=FixedPoint(0))

    def test_abstract(self):
        """The base class can't be used directly"""
        with self.assertRaises(TypeError):
            YieldSource()  # type: ignore  # pylint: disable=abstract-class-instantiated
