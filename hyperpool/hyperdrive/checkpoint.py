"""Checkpoint records"""
from __future__ import annotations

from dataclasses import dataclass, field

from hyperpool.math import FixedPoint


def _zero() -> FixedPoint:
    return FixedPoint(0)


@dataclass
class Checkpoint:
    """
    Positions are bucketed into checkpoints, which lets the pool settle every position that
    matures in a bucket at once. A checkpoint holds the vault share price observed when it was
    created, the net exposure of the positions opened in it, and the proceeds set aside for the
    positions that matured at it.

    Attributes
    ----------
    vault_share_price : FixedPoint
        Vault share price when the checkpoint was created; zero while the checkpoint is absent.
    exposure : FixedPoint
        Signed net bond exposure of positions opened in this checkpoint, longs minus shorts.
    long_base_volume : FixedPoint
        Base paid by the longs opened in this checkpoint.
    short_base_volume : FixedPoint
        Base deposited by the shorts opened in this checkpoint.
    matured_long_bonds : FixedPoint
        Long bonds maturing at this checkpoint that have not been closed yet.
    matured_long_shares : FixedPoint
        Shares set aside to pay `matured_long_bonds`.
    matured_short_bonds : FixedPoint
        Short bonds maturing at this checkpoint that have not been closed yet.
    matured_short_shares : FixedPoint
        Shares set aside to pay the interest owed to `matured_short_bonds`.
    """

    def __getitem__(self, key):
        return getattr(self, key)

    def __setitem__(self, key, value):
        return setattr(self, key, value)

    vault_share_price: FixedPoint = field(default_factory=_zero)
    exposure: FixedPoint = field(default_factory=_zero)
    long_base_volume: FixedPoint = field(default_factory=_zero)
    short_base_volume: FixedPoint = field(default_factory=_zero)
    matured_long_bonds: FixedPoint = field(default_factory=_zero)
    matured_long_shares: FixedPoint = field(default_factory=_zero)
    matured_short_bonds: FixedPoint = field(default_factory=_zero)
    matured_short_shares: FixedPoint = field(default_factory=_zero)

    @property
    def is_set(self) -> bool:
        """True once the checkpoint's vault share price has been recorded"""
        return self.vault_share_price > FixedPoint(0)
