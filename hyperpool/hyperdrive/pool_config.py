"""Immutable pool parameters"""
from __future__ import annotations

from dataclasses import dataclass

import hyperpool
import hyperpool.types as types
from hyperpool.errors import errors
from hyperpool.hyperdrive import hyperdrive_math
from hyperpool.math import FixedPoint

# pylint: disable=too-many-instance-attributes


@types.freezable(frozen=True, no_new_attribs=True)
@dataclass
class PoolConfig:
    r"""Parameters fixed when the pool is deployed

    Attributes
    ----------
    position_duration : int
        Term of every position, in seconds.
    checkpoint_duration : int
        Width of a checkpoint bucket, in seconds. Must evenly divide `position_duration`.
    time_stretch : FixedPoint
        Curve exponent :math:`t_s`; the invariant uses :math:`1 - t_s`.
    initial_vault_share_price : FixedPoint
        Vault share price :math:`\mu` when the pool was deployed.
    minimum_share_reserves : FixedPoint
        Share reserves floor that keeps the curve well defined.
    minimum_transaction_amount : FixedPoint
        Smallest trade or liquidity amount, in base or bonds.
    curve_fee : FixedPoint
        Fraction of the price spread charged on curve trades.
    flat_fee : FixedPoint
        Fraction of the matured amount charged when closing.
    governance_lp_fee : FixedPoint
        Fraction of curve and flat fees kept for governance.
    distribute_excess_idle_max_iterations : int
        Newton iterations allowed when paying out the withdrawal pool.
    share_proceeds_tolerance : FixedPoint
        Present value slack, in shares, at which the Newton solve stops.
    """

    position_duration: int
    checkpoint_duration: int
    time_stretch: FixedPoint
    initial_vault_share_price: FixedPoint = FixedPoint("1.0")
    minimum_share_reserves: FixedPoint = FixedPoint("10.0")
    minimum_transaction_amount: FixedPoint = FixedPoint("0.001")
    curve_fee: FixedPoint = FixedPoint(0)
    flat_fee: FixedPoint = FixedPoint(0)
    governance_lp_fee: FixedPoint = FixedPoint(0)
    distribute_excess_idle_max_iterations: int = hyperpool.DEFAULT_MAX_ITERATIONS
    share_proceeds_tolerance: FixedPoint = hyperpool.DEFAULT_SHARE_PROCEEDS_TOLERANCE

    def __post_init__(self):
        if self.position_duration <= 0 or self.checkpoint_duration <= 0:
            raise errors.InvalidPoolConfig(
                f"durations must be positive: {self.position_duration=}, {self.checkpoint_duration=}"
            )
        if self.position_duration % self.checkpoint_duration != 0:
            raise errors.InvalidPoolConfig(
                f"{self.checkpoint_duration=} must evenly divide {self.position_duration=}"
            )
        if not FixedPoint(0) < self.time_stretch < FixedPoint("1.0"):
            raise errors.InvalidPoolConfig(f"{self.time_stretch=} must be in (0, 1)")
        if self.initial_vault_share_price <= FixedPoint(0):
            raise errors.InvalidPoolConfig(f"{self.initial_vault_share_price=} must be positive")
        if self.minimum_share_reserves <= FixedPoint(0) or self.minimum_transaction_amount <= FixedPoint(0):
            raise errors.InvalidPoolConfig("minimum share reserves and minimum transaction amount must be positive")
        for name in ("curve_fee", "flat_fee", "governance_lp_fee"):
            fee = getattr(self, name)
            if not FixedPoint(0) <= fee <= FixedPoint("1.0"):
                raise errors.InvalidPoolConfig(f"{name}={fee} must be in [0, 1]")
        if self.distribute_excess_idle_max_iterations <= 0:
            raise errors.InvalidPoolConfig(f"{self.distribute_excess_idle_max_iterations=} must be positive")

    @classmethod
    def from_apr(
        cls, target_apr: FixedPoint, position_duration: int, checkpoint_duration: int, **kwargs
    ) -> PoolConfig:
        """Build a config whose time stretch is tuned for `target_apr`"""
        return cls(
            position_duration=position_duration,
            checkpoint_duration=checkpoint_duration,
            time_stretch=hyperdrive_math.calculate_time_stretch(target_apr, position_duration),
            **kwargs,
        )

    @property
    def annualized_position_duration(self) -> FixedPoint:
        """Position duration in years"""
        return FixedPoint(self.position_duration) / FixedPoint(hyperpool.SECONDS_IN_YEAR)

    @property
    def checkpoints_per_term(self) -> int:
        """Number of checkpoints in one position duration"""
        return self.position_duration // self.checkpoint_duration
