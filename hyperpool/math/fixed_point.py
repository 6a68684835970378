"""Fixed point datatype & arithmetic"""
from __future__ import annotations

import re
from typing import Any, Union

from hyperpool.errors import errors

from .fixed_point_integer_math import FixedPointIntegerMath

OtherTypes = Union[int, bool, float]


class FixedPoint:
    r"""Fixed-point number datatype

    Values are stored internally as integers, however they are generally treated like floats.
    The right-most 18 digits represent what would be to the right of the decimal in a float
    representation, while the remaining digits represent the whole-number part.

    The type supports `+`, `-`, `*`, `/`, `//`, `%`, and `**`.
    `*` and `/` round down; `mul_up`, `div_up` and `mul_div_up` round up.
    Every result is checked against the int256 range; there are no non-finite values,
    so out-of-domain operations raise instead of returning nan or inf.
    """

    _scaled_value: int  # integer representation of self

    def __init__(
        self,
        value: OtherTypes | str | FixedPoint | None = None,  # use default conversion
        scaled_value: int | None = None,  # assume integer is already converted
        decimal_places: int = 18,  # how many decimal places to store (must be 18)
    ):
        r"""Store fixed-point properties"""
        if value is None and scaled_value is None:
            value = 0
        if decimal_places != 18:
            raise NotImplementedError("only 18 decimal precision FixedPoint ints are supported.")
        self.decimal_places = decimal_places
        if isinstance(value, bool):
            value = int(value)
        if value is None:
            if not isinstance(scaled_value, int) or isinstance(scaled_value, bool):
                raise TypeError(f"{scaled_value=} must have type `int`")
            new_value = scaled_value
        elif isinstance(value, FixedPoint):
            new_value = value.scaled_value
        elif isinstance(value, float):
            if value != value or value in (float("inf"), float("-inf")):
                raise errors.InvalidDomain(f"{value=} is not finite")
            # int truncates to `decimal_places` precision
            new_value = int(value * 10**decimal_places)
        elif isinstance(value, int):
            new_value = value * 10**decimal_places
        elif isinstance(value, str):
            new_value = self._parse_string(value, decimal_places)
        else:
            raise TypeError(f"{type(value)=} is not supported")
        super().__setattr__("_scaled_value", FixedPointIntegerMath.add(new_value, 0))

    @staticmethod
    def _parse_string(value: str, decimal_places: int) -> int:
        if not FixedPoint._is_valid_number(value):
            raise ValueError(
                f"string argument {value=} must be a float string, e.g. '1.0', for the FixedPoint constructor"
            )
        if "." not in value:
            value += ".0"
        integer, remainder = value.split(".")
        # underscores don't affect the `int` cast but do affect `len`
        remainder = remainder.replace("_", "")
        if len(remainder) > decimal_places:
            remainder = remainder[:decimal_places]
        fraction = int(remainder) * 10 ** (decimal_places - len(remainder))
        if integer.startswith("-"):
            return int(integer) * 10**decimal_places - fraction
        return int(integer) * 10**decimal_places + fraction

    @property
    def scaled_value(self) -> int:
        """Scaled integer value; immutable so FixedPoint can be used as a dict key"""
        # pylint: disable=no-member
        return self._scaled_value

    @scaled_value.setter
    def scaled_value(self, value: Any) -> None:
        raise ValueError("scaled_value is immutable")

    def __setattr__(self, key: str, value: Any) -> None:
        """Set attribute, while denying _scaled_value"""
        if key[0] == "_":  # immutable attributes start with _
            raise ValueError(f"{key} is an immutable attribute")
        super().__setattr__(key, value)

    @staticmethod
    def _is_valid_number(float_string: str) -> bool:
        r"""Regular expression pattern to determine if the string argument is valid for initializing FixedPoint

        Valid inputs are an optional negative sign, digits with optional underscore grouping by three,
        and an optional decimal point followed by one or more digits.
        """
        pattern = r"^-?\d{1,3}(?:_?\d{3})*(?:\.\d+)?$|^-?\d+(?:\.\d+)?$"
        return bool(re.match(pattern, float_string))

    @classmethod
    def _new(cls, scaled_value: int) -> FixedPoint:
        return cls(scaled_value=scaled_value)

    def _coerce_other(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        r"""Cast inputs to the FixedPoint type if they come in as something else.

        Floats other than zero are rejected because mixing them in is logically confusing.
        """
        if isinstance(other, FixedPoint):
            return other
        if isinstance(other, (bool, int)):
            return FixedPoint(other)
        if isinstance(other, float) and other == 0.0:
            return FixedPoint(0)
        raise TypeError(f"unsupported operand type(s): {type(other)}")

    def __add__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        other = self._coerce_other(other)
        return self._new(FixedPointIntegerMath.add(self.scaled_value, other.scaled_value))

    def __radd__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        return self + other

    def __sub__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        other = self._coerce_other(other)
        return self._new(FixedPointIntegerMath.sub(self.scaled_value, other.scaled_value))

    def __rsub__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        return self._coerce_other(other) - self

    def __mul__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        r"""Enables '*' syntax, rounding down like the majority of Hyperdrive equations"""
        return self.mul_down(other)

    def __rmul__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        return self * other

    def __truediv__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        r"""Enables '/' syntax, rounding down like the majority of Hyperdrive equations"""
        return self.div_down(other)

    def __rtruediv__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        return self._coerce_other(other) / self

    def __floordiv__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        r"""Enables '//' syntax, which returns whole numbers only"""
        return (self / other).floor()

    def __rfloordiv__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        return self._coerce_other(other) // self

    def __pow__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        return self.pow(other)

    def __rpow__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        return self._coerce_other(other).pow(self)

    def __mod__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        r"""Enables `%` syntax; the remainder takes the sign of the divisor, as with Python ints"""
        other = self._coerce_other(other)
        if other.scaled_value == 0:
            raise errors.DivisionByZero("modulo by zero")
        return self._new(self.scaled_value % other.scaled_value)

    def __rmod__(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        return self._coerce_other(other) % self

    def __divmod__(self, other: OtherTypes | FixedPoint) -> tuple[FixedPoint, FixedPoint]:
        return (self // other, self % other)

    def __neg__(self) -> FixedPoint:
        return self._new(FixedPointIntegerMath.sub(0, self.scaled_value))

    def __abs__(self) -> FixedPoint:
        return self._new(FixedPointIntegerMath.add(abs(self.scaled_value), 0))

    # comparison methods
    def __eq__(self, other: object) -> bool:
        if not isinstance(other, (FixedPoint, int, float)):
            return NotImplemented
        return self.scaled_value == self._coerce_other(other).scaled_value

    def __ne__(self, other: object) -> bool:
        if not isinstance(other, (FixedPoint, int, float)):
            return NotImplemented
        return self.scaled_value != self._coerce_other(other).scaled_value

    def __lt__(self, other: OtherTypes | FixedPoint) -> bool:
        return self.scaled_value < self._coerce_other(other).scaled_value

    def __le__(self, other: OtherTypes | FixedPoint) -> bool:
        return self.scaled_value <= self._coerce_other(other).scaled_value

    def __gt__(self, other: OtherTypes | FixedPoint) -> bool:
        return self.scaled_value > self._coerce_other(other).scaled_value

    def __ge__(self, other: OtherTypes | FixedPoint) -> bool:
        return self.scaled_value >= self._coerce_other(other).scaled_value

    def __floor__(self) -> FixedPoint:
        r"""Greatest whole number less than or equal to self"""
        one = FixedPointIntegerMath.ONE_18
        return self._new((self.scaled_value // one) * one)

    def __ceil__(self) -> FixedPoint:
        r"""Smallest whole number greater than or equal to self"""
        one = FixedPointIntegerMath.ONE_18
        return self._new(-(-self.scaled_value // one) * one)

    # type casting
    def __int__(self) -> int:
        r"""Cast to int, truncating toward zero"""
        sign = -1 if self.scaled_value < 0 else 1
        return sign * (abs(self.scaled_value) // 10**self.decimal_places)

    def __float__(self) -> float:
        return float(self.scaled_value) / 10**self.decimal_places

    def __bool__(self) -> bool:
        return self.scaled_value != 0

    def __str__(self) -> str:
        r"""Cast to str, e.g. "1234.5" or "-0.000001" """
        sign = "-" if self.scaled_value < 0 else ""
        integer, remainder = divmod(abs(self.scaled_value), 10**self.decimal_places)
        fraction = str(remainder).rjust(self.decimal_places, "0").rstrip("0")
        return f"{sign}{integer}.{fraction or '0'}"

    def __repr__(self) -> str:
        r"""Returns executable string representation, e.g. 'FixedPoint("1234.0")'"""
        return f'{self.__class__.__name__}("{str(self)}")'

    def __hash__(self) -> int:
        return hash((self.scaled_value, self.__class__.__name__))

    # rounding-aware arithmetic
    def mul_down(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        r"""Multiply self by other, rounding down"""
        other = self._coerce_other(other)
        return self._new(FixedPointIntegerMath.mul_down(self.scaled_value, other.scaled_value))

    def mul_up(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        r"""Multiply self by other, rounding up"""
        other = self._coerce_other(other)
        return self._new(FixedPointIntegerMath.mul_up(self.scaled_value, other.scaled_value))

    def div_down(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        r"""Divide self by other, rounding down"""
        other = self._coerce_other(other)
        if other.scaled_value == 0:
            raise errors.DivisionByZero(f"cannot divide {self} by zero")
        return self._new(FixedPointIntegerMath.div_down(self.scaled_value, other.scaled_value))

    def div_up(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        r"""Divide self by other, rounding up"""
        other = self._coerce_other(other)
        if other.scaled_value == 0:
            raise errors.DivisionByZero(f"cannot divide {self} by zero")
        return self._new(FixedPointIntegerMath.div_up(self.scaled_value, other.scaled_value))

    def mul_div_down(self, numerator: FixedPoint, denominator: FixedPoint) -> FixedPoint:
        r"""Compute self * numerator / denominator with a single rounding down"""
        numerator = self._coerce_other(numerator)
        denominator = self._coerce_other(denominator)
        return self._new(
            FixedPointIntegerMath.mul_div_down(self.scaled_value, numerator.scaled_value, denominator.scaled_value)
        )

    def mul_div_up(self, numerator: FixedPoint, denominator: FixedPoint) -> FixedPoint:
        r"""Compute self * numerator / denominator with a single rounding up"""
        numerator = self._coerce_other(numerator)
        denominator = self._coerce_other(denominator)
        return self._new(
            FixedPointIntegerMath.mul_div_up(self.scaled_value, numerator.scaled_value, denominator.scaled_value)
        )

    def pow(self, other: OtherTypes | FixedPoint) -> FixedPoint:
        r"""Raise self to the power of other, computed as exp(other * ln(self))"""
        other = self._coerce_other(other)
        return self._new(FixedPointIntegerMath.pow(self.scaled_value, other.scaled_value))

    def exp(self) -> FixedPoint:
        r"""Returns e^self"""
        return self._new(FixedPointIntegerMath.exp(self.scaled_value))

    def ln(self) -> FixedPoint:
        r"""Returns the natural log of self"""
        return self._new(FixedPointIntegerMath.ln(self.scaled_value))

    def sqrt(self) -> FixedPoint:
        r"""Returns the square root of self, rounded down"""
        return self._new(FixedPointIntegerMath.sqrt(self.scaled_value))

    # helpers
    def is_zero(self) -> bool:
        r"""Return True if self is zero"""
        return self.scaled_value == 0

    def sign(self) -> FixedPoint:
        r"""Return -1, 0, or 1 depending on the sign of self"""
        if self.scaled_value == 0:
            return FixedPoint(0)
        return FixedPoint(-1) if self.scaled_value < 0 else FixedPoint(1)

    def floor(self) -> FixedPoint:
        r"""Calls the `__floor__` function"""
        return self.__floor__()  # pylint: disable=unnecessary-dunder-call

    def ceil(self) -> FixedPoint:
        r"""Calls the `__ceil__` function"""
        return self.__ceil__()  # pylint: disable=unnecessary-dunder-call
