"""Helper functions for converting time units"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from hyperpool.math import FixedPoint, FixedPointMath


class TimeUnit(Enum):
    r"""Time units, with their length in seconds"""
    SECONDS = 1
    MINUTES = 60
    HOURS = 3_600
    DAYS = 86_400
    YEARS = 31_536_000


def to_seconds(amount: int, unit: TimeUnit) -> int:
    """Convert a whole number of `unit` to seconds"""
    return amount * unit.value


@dataclass
class BlockTime:
    r"""State class for tracking block timestamps and global time

    Time is an integer number of seconds, like a block timestamp.
    """

    _time: int = 0
    _block_number: int = 0

    def tick(self, delta_seconds: int) -> None:
        """ticks the time by delta_seconds and mines a block"""
        if delta_seconds < 0:
            raise ValueError(f"{delta_seconds=} must be non-negative; the clock is monotonic")
        self._time += delta_seconds
        self._block_number += 1

    @property
    def time(self) -> int:
        """Get the time"""
        return self._time

    @time.setter
    def time(self, value):
        """The clock only moves forward through `tick` or `set_time`."""
        raise AttributeError("time is a read-only attribute; use `set_time()` to adjust")

    def set_time(self, time: int) -> None:
        """Sets the time; it cannot move backward"""
        if not isinstance(time, int):
            raise TypeError(f"{time=} must be an int number of seconds")
        if time < self._time:
            raise ValueError(f"{time=} is before the current time {self._time}; the clock is monotonic")
        self._time = time

    @property
    def block_number(self) -> int:
        """Get the block_number"""
        return self._block_number


def checkpoint_time_for(timestamp: int, checkpoint_duration: int) -> int:
    r"""Returns the start of the checkpoint bucket that contains `timestamp`"""
    return timestamp - (timestamp % checkpoint_duration)


def calculate_time_remaining_scaled(maturity_time: FixedPoint, current_time: int) -> FixedPoint:
    r"""Seconds left until `maturity_time`, floored at zero.

    `maturity_time` is a FixedPoint number of seconds so that averaged maturities can be used.
    """
    return FixedPointMath.maximum(maturity_time - FixedPoint(current_time), FixedPoint(0))


def calculate_normalized_time_remaining(
    maturity_time: FixedPoint | int, current_time: int, position_duration: int
) -> FixedPoint:
    r"""Time remaining on a position as a fraction of the position duration

    .. math::
        t = \max(0, (maturity - now) / duration)

    Arguments
    ----------
    maturity_time : FixedPoint | int
        Maturity in seconds; FixedPoint for averaged maturities
    current_time : int
        The current block timestamp
    position_duration : int
        Length of a position term in seconds

    Returns
    -------
    FixedPoint
        Normalized time remaining in [0, 1]
    """
    if not isinstance(maturity_time, FixedPoint):
        maturity_time = FixedPoint(maturity_time)
    time_remaining = calculate_time_remaining_scaled(maturity_time, current_time)
    return FixedPointMath.minimum(time_remaining / FixedPoint(position_duration), FixedPoint("1.0"))
