"""Mutable pool state"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import hyperpool
import hyperpool.types as types
from hyperpool.errors import errors
from hyperpool.hyperdrive.checkpoint import Checkpoint
from hyperpool.math import FixedPoint, FixedPointMath

if TYPE_CHECKING:
    from hyperpool.hyperdrive.hyperdrive_actions import MarketDeltas

# dataclasses can have many attributes
# pylint: disable=too-many-instance-attributes


@types.freezable(frozen=False, no_new_attribs=True)
@dataclass
class PoolState:
    r"""The state of a pool

    Attributes
    ----------
    share_reserves : FixedPoint
        Quantity of shares :math:`z` held by the pool.
    share_adjustment : FixedPoint
        Signed adjustment :math:`\zeta`; the curve prices against :math:`z - \zeta`.
    bond_reserves : FixedPoint
        Virtual bond reserves :math:`y`.
    lp_total_supply : FixedPoint
        Active LP shares, including the shares locked at initialization.
    withdrawal_shares_total_supply : FixedPoint
        Withdrawal shares that have not been redeemed.
    withdrawal_shares_ready_to_withdraw : FixedPoint
        Withdrawal shares that have been funded and can be redeemed.
    withdrawal_shares_proceeds : FixedPoint
        Shares set aside to pay the funded withdrawal shares.
    longs_outstanding : FixedPoint
        Face value of open longs that have not matured.
    shorts_outstanding : FixedPoint
        Face value of open shorts that have not matured.
    long_average_maturity_time : FixedPoint
        Bond weighted average maturity time of open longs, in seconds.
    short_average_maturity_time : FixedPoint
        Bond weighted average maturity time of open shorts, in seconds.
    long_exposure : FixedPoint
        Sum over opening checkpoints of the positive net long exposure.
    governance_fees_accrued : FixedPoint
        Governance fees, in shares, that have not been collected.
    is_paused : bool
        When set, every mutating operation is rejected.
    checkpoints : dict[int, Checkpoint]
        Checkpoints keyed by their aligned timestamp.
    """

    def __getitem__(self, key):
        return getattr(self, key)

    def __setitem__(self, key, value):
        return setattr(self, key, value)

    share_reserves: FixedPoint = FixedPoint(0)
    share_adjustment: FixedPoint = FixedPoint(0)
    bond_reserves: FixedPoint = FixedPoint(0)
    lp_total_supply: FixedPoint = FixedPoint(0)
    withdrawal_shares_total_supply: FixedPoint = FixedPoint(0)
    withdrawal_shares_ready_to_withdraw: FixedPoint = FixedPoint(0)
    withdrawal_shares_proceeds: FixedPoint = FixedPoint(0)
    longs_outstanding: FixedPoint = FixedPoint(0)
    shorts_outstanding: FixedPoint = FixedPoint(0)
    long_average_maturity_time: FixedPoint = FixedPoint(0)
    short_average_maturity_time: FixedPoint = FixedPoint(0)
    long_exposure: FixedPoint = FixedPoint(0)
    governance_fees_accrued: FixedPoint = FixedPoint(0)
    is_paused: bool = False
    checkpoints: dict[int, Checkpoint] = field(default_factory=dict)

    @property
    def is_initialized(self) -> bool:
        """The pool has reserves"""
        return self.bond_reserves > FixedPoint(0)

    def checkpoint(self, checkpoint_time: int) -> Checkpoint:
        """Returns the checkpoint at `checkpoint_time`, creating an empty one if it is absent"""
        if checkpoint_time not in self.checkpoints:
            self.checkpoints[checkpoint_time] = Checkpoint()
        return self.checkpoints[checkpoint_time]

    def update_checkpoint_exposure(self, checkpoint_time: int, delta: FixedPoint) -> None:
        r"""Add `delta` to a checkpoint's net exposure and keep the long exposure in sync.

        Only the positive part of each checkpoint's exposure needs backing by the reserves.
        """
        checkpoint = self.checkpoint(checkpoint_time)
        previous_exposure = checkpoint.exposure
        checkpoint.exposure = previous_exposure + delta
        self.long_exposure += FixedPointMath.maximum(checkpoint.exposure, FixedPoint(0)) - FixedPointMath.maximum(
            previous_exposure, FixedPoint(0)
        )

    def apply_delta(self, delta: MarketDeltas) -> None:
        r"""Applies a delta to the pool state."""
        # reserves
        self.share_reserves += delta.d_share_reserves
        self.share_adjustment += delta.d_share_adjustment
        self.bond_reserves += delta.d_bond_reserves
        # open positions
        self.longs_outstanding += delta.d_longs_outstanding
        self.shorts_outstanding += delta.d_shorts_outstanding
        self.long_average_maturity_time += delta.d_long_average_maturity_time
        self.short_average_maturity_time += delta.d_short_average_maturity_time
        self.governance_fees_accrued += delta.d_governance_fees_accrued
        # checkpointing
        if delta.checkpoint_time is not None:
            checkpoint = self.checkpoint(delta.checkpoint_time)
            checkpoint.long_base_volume += delta.d_long_base_volume
            checkpoint.short_base_volume += delta.d_short_base_volume
            self.update_checkpoint_exposure(delta.checkpoint_time, delta.d_checkpoint_exposure)
        if delta.maturity_time is not None:
            checkpoint = self.checkpoint(delta.maturity_time)
            checkpoint.matured_long_bonds += delta.d_matured_long_bonds
            checkpoint.matured_long_shares += delta.d_matured_long_shares
            checkpoint.matured_short_bonds += delta.d_matured_short_bonds
            checkpoint.matured_short_shares += delta.d_matured_short_shares

    def copy(self) -> PoolState:
        """Returns a new copy of self"""
        return copy.deepcopy(self)

    def check_valid_pool_state(self) -> None:
        """Test that every pool state amount other than the signed share adjustment is non-negative

        Raises
        ------
        FixedPointUnderflow
            If an amount is negative.
        InsufficientBalance
            If more withdrawal shares are ready than exist.
        """
        amounts = {key: value for key, value in self.__dict__.items() if key != "share_adjustment"}
        hyperpool.check_non_negative(amounts)
        for checkpoint_time, checkpoint in self.checkpoints.items():
            hyperpool.check_non_negative(
                {
                    f"checkpoint {checkpoint_time} {key}": value
                    for key, value in checkpoint.__dict__.items()
                    if key != "exposure"
                }
            )
        if self.withdrawal_shares_ready_to_withdraw > self.withdrawal_shares_total_supply:
            raise errors.InsufficientBalance(
                f"{self.withdrawal_shares_ready_to_withdraw=} exceeds {self.withdrawal_shares_total_supply=}"
            )
