"""The yield source that holds the pool's deposits"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import hyperpool
from hyperpool.errors import errors
from hyperpool.math import FixedPoint


class YieldSource(ABC):
    r"""Custody of the pool's base, exchanged for vault shares

    The pool only consumes the share counts and prices returned here.
    """

    @property
    @abstractmethod
    def vault_share_price(self) -> FixedPoint:
        """Base value of one vault share"""

    @abstractmethod
    def deposit(self, base_amount: FixedPoint) -> FixedPoint:
        """Deposit base and return the vault shares received"""

    @abstractmethod
    def withdraw(self, share_amount: FixedPoint) -> FixedPoint:
        """Redeem vault shares and return the base received"""

    @abstractmethod
    def accrue(self, seconds: int) -> None:
        """Let `seconds` of interest accrue to the vault share price"""


class MockYieldSource(YieldSource):
    r"""A vault whose share price grows at a variable rate

    The share price compounds every time it accrues:

    .. math::
        c \leftarrow c + c \cdot r \cdot \frac{\Delta t}{\text{seconds per year}}

    Arguments
    ----------
    variable_rate : FixedPoint
        Annual rate earned by the vault; negative rates model a loss.
    initial_vault_share_price : FixedPoint
        Share price before any interest has accrued.
    """

    def __init__(
        self,
        variable_rate: FixedPoint = FixedPoint(0),
        initial_vault_share_price: FixedPoint = FixedPoint("1.0"),
    ):
        if initial_vault_share_price <= FixedPoint(0):
            raise errors.InvalidDomain(f"{initial_vault_share_price=} must be positive")
        self.variable_rate = variable_rate
        self._vault_share_price = initial_vault_share_price
        self.total_shares = FixedPoint(0)

    @property
    def vault_share_price(self) -> FixedPoint:
        return self._vault_share_price

    @property
    def total_base(self) -> FixedPoint:
        """Base value of every share the vault has issued"""
        return self.total_shares * self._vault_share_price

    def set_variable_rate(self, variable_rate: FixedPoint) -> None:
        """Change the rate used for subsequent accruals"""
        self.variable_rate = variable_rate

    def accrue(self, seconds: int) -> None:
        """Grow the share price by the variable rate over `seconds`"""
        if seconds < 0:
            raise errors.InvalidDomain(f"cannot accrue over negative time, {seconds=}")
        growth = (self._vault_share_price * self.variable_rate).mul_div_down(
            FixedPoint(seconds), FixedPoint(hyperpool.SECONDS_IN_YEAR)
        )
        new_price = self._vault_share_price + growth
        if new_price <= FixedPoint(0):
            raise errors.NegativeInterest(f"vault share price would fall to {new_price}")
        logging.debug("vault share price %s -> %s after %d seconds", self._vault_share_price, new_price, seconds)
        self._vault_share_price = new_price

    def deposit(self, base_amount: FixedPoint) -> FixedPoint:
        share_amount = base_amount.div_down(self._vault_share_price)
        self.total_shares += share_amount
        return share_amount

    def withdraw(self, share_amount: FixedPoint) -> FixedPoint:
        """Redeem vault shares and return the base received

        Raises
        ------
        InsufficientBalance
            If more shares are redeemed than the vault has issued.
        """
        if share_amount > self.total_shares:
            raise errors.InsufficientBalance(f"vault holds {self.total_shares} shares, cannot withdraw {share_amount}")
        self.total_shares -= share_amount
        return share_amount.mul_down(self._vault_share_price)
