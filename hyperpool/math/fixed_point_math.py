"""Math library wrappers that support FixedPoint number format"""

from typing import TypeVar

from .fixed_point import FixedPoint

NUMERIC = TypeVar("NUMERIC", FixedPoint, int, float)


# we will use single letter names for the FixedPointMath class since all functions do basic arithmetic
# pylint: disable=invalid-name


class FixedPointMath:
    """Math library that supports FixedPoint arithmetic"""

    @staticmethod
    def maximum(x: NUMERIC, y: NUMERIC) -> NUMERIC:
        """Compare the two inputs and return the greater value.

        If the first argument equals the second, return the first.
        """
        if x >= y:
            return x
        return y

    @staticmethod
    def minimum(x: NUMERIC, y: NUMERIC) -> NUMERIC:
        """Compare the two inputs and return the lesser value.

        If the first argument equals the second, return the first.
        """
        if x <= y:
            return x
        return y

    @staticmethod
    def clip(x: NUMERIC, low: NUMERIC, high: NUMERIC) -> NUMERIC:
        """Clip the input to the closed interval [low, high]"""
        if low > high:
            raise ValueError(f"{low=} must be less than or equal to {high=}")
        return FixedPointMath.minimum(FixedPointMath.maximum(x, low), high)
