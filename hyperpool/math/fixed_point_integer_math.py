"""Fixed Point Integer math library"""

# we will use single letter names for the FixedPointIntegerMath class since all functions do basic arithmetic
# pylint: disable=invalid-name

import math

from hyperpool.errors import errors


class FixedPointIntegerMath:
    """Checked integer arithmetic on 18-decimal fixed-point representations

    Every result is bounded to the signed 256 bit range; products inside mul_div are bounded
    to the unsigned 256 bit range, mirroring what an EVM implementation would revert on.

    .. note::
        The ln and exp kernels are the rational approximations used by the Hyperdrive
        `FixedPointMath.sol <https://github.com/delvtech/hyperdrive>`_ library, originally from
        `Remco Bloemen <https://xn--2-umb.com/22/exp-ln/>`_.
    """

    INT_MAX = 2**255 - 1
    INT_MIN = -(2**255)
    UINT_MAX = 2**256 - 1
    EXP_MAX = 135305999368893231589  # floor(log((2**255 -1) / 1e18) * 1e18)
    EXP_MIN = -42139678854452767622  # floor(log(0.5e-18)*1e18)
    ONE_18 = 10**18

    @staticmethod
    def _checked(value: int, operation: str) -> int:
        if value > FixedPointIntegerMath.INT_MAX or value < FixedPointIntegerMath.INT_MIN:
            raise errors.FixedPointOverflow(f"{operation}: result {value} does not fit in int256")
        return value

    @staticmethod
    def add(a: int, b: int) -> int:
        """Add two fixed-point numbers in 1e18 format."""
        return FixedPointIntegerMath._checked(a + b, "add")

    @staticmethod
    def sub(a: int, b: int) -> int:
        """Subtract two fixed-point numbers in 1e18 format."""
        return FixedPointIntegerMath._checked(a - b, "sub")

    @staticmethod
    def _product(x: int, y: int, d: int, operation: str) -> int:
        if d == 0:
            raise errors.DivisionByZero(f"{operation}: divisor is zero")
        z = x * y
        if abs(z) > FixedPointIntegerMath.UINT_MAX:
            raise errors.FixedPointOverflow(f"{operation}: intermediate product {z} overflows uint256")
        return z

    @staticmethod
    def mul_div_down(x: int, y: int, d: int) -> int:
        """Multiply x and y, then divide by d, rounding down."""
        z = FixedPointIntegerMath._product(x, y, d, "mul_div_down")
        # floor div rounds toward negative infinity
        return FixedPointIntegerMath._checked(z // d, "mul_div_down")

    @staticmethod
    def mul_div_up(x: int, y: int, d: int) -> int:
        """Multiply x and y, then divide by d, rounding up."""
        z = FixedPointIntegerMath._product(x, y, d, "mul_div_up")
        return FixedPointIntegerMath._checked(-(-z // d), "mul_div_up")

    @staticmethod
    def mul_down(a: int, b: int) -> int:
        """Multiply two fixed-point numbers in 1e18 format and round down."""
        return FixedPointIntegerMath.mul_div_down(a, b, FixedPointIntegerMath.ONE_18)

    @staticmethod
    def mul_up(a: int, b: int) -> int:
        """Multiply a and b, rounding up."""
        return FixedPointIntegerMath.mul_div_up(a, b, FixedPointIntegerMath.ONE_18)

    @staticmethod
    def div_down(a: int, b: int) -> int:
        """Divide two fixed-point numbers in 1e18 format and round down."""
        return FixedPointIntegerMath.mul_div_down(a, FixedPointIntegerMath.ONE_18, b)

    @staticmethod
    def div_up(a: int, b: int) -> int:
        r"""Divide a by b, rounding up."""
        return FixedPointIntegerMath.mul_div_up(a, FixedPointIntegerMath.ONE_18, b)

    @staticmethod
    def ilog2(x: int) -> int:
        r"""Returns floor(log2(x)) if x is nonzero, otherwise 0."""
        if x == 0:
            return 0
        return x.bit_length() - 1

    @staticmethod
    def ln(x: int) -> int:
        r"""Computes ln(x) in 1e18 fixed point.

        Raises InvalidDomain if x is negative or 0.
        """
        if x <= 0:
            raise errors.InvalidDomain(f"ln: argument must be positive, not {x}")
        # ln(x * C) = ln(x) + ln(C), so the conversion from 1e18 to 2**96 basis is added at the end.
        # Reduce range of x to (1, 2) * 2**96 with ln(2^k * x) = k * ln(2) + ln(x)
        k = FixedPointIntegerMath.ilog2(x) - 96
        x <<= 159 - k
        x >>= 159
        # (8, 8)-term rational approximation; p is made monic and scaled later
        p = x + 3273285459638523848632254066296
        p = ((p * x) >> 96) + 24828157081833163892658089445524
        p = ((p * x) >> 96) + 43456485725739037958740375743393
        p = ((p * x) >> 96) - 11111509109440967052023855526967
        p = ((p * x) >> 96) - 45023709667254063763336534515857
        p = ((p * x) >> 96) - 14706773417378608786704636184526
        p = p * x - (795164235651350426258249787498 << 96)
        # p stays in 2**192 basis for the division
        q = x + 5573035233440673466300451813936
        q = ((q * x) >> 96) + 71694874799317883764090561454958
        q = ((q * x) >> 96) + 283447036172924575727196451306956
        q = ((q * x) >> 96) + 401686690394027663651624208769553
        q = ((q * x) >> 96) + 204048457590392012362485061816622
        q = ((q * x) >> 96) + 31853899698501571402653359427138
        q = ((q * x) >> 96) + 909429971244387300277376558375
        # r is in the range (0, 0.125) * 2**96
        r = p // q
        # scale factor s = 5.549..., plus ln(2**96 / 10**18) and k * ln(2), then convert to 1e18 basis
        r *= 1677202110996718588342820967067443963516166
        r += 16597577552685614221487285958193947469193820559219878177908093499208371 * k
        r += 600920179829731861736702779321621459595472258049074101567377883020018308
        r >>= 174
        return r

    @staticmethod
    def exp(x: int) -> int:
        r"""Computes e^x in 1e18 fixed point.

        Returns zero when the result would be below 0.5e-18 and raises FixedPointOverflow
        when it would not fit in an int256.
        """
        if x <= FixedPointIntegerMath.EXP_MIN:
            return 0
        if x >= FixedPointIntegerMath.EXP_MAX:
            raise errors.FixedPointOverflow(f"exp: exponent={x} must be less than {FixedPointIntegerMath.EXP_MAX=}")
        # convert to (-42, 136) * 2**96; 1e18 / 2**96 = 5**18 / 2**78
        x = (x << 78) // (5**18)
        # exp(x) = exp(x') * 2**k with k = round(x / ln(2)) and k in [-61, 195]
        k = (((x << 96) // 54916777467707473351141471128) + (2**95)) >> 96
        x = x - k * 54916777467707473351141471128
        # (6, 7)-term rational approximation; p is made monic and scaled later
        p = x + 2772001395605857295435445496992
        p = ((p * x) >> 96) + 44335888930127919016834873520032
        p = ((p * x) >> 96) + 398888492587501845352592340339721
        p = ((p * x) >> 96) + 1993839819670624470859228494792842
        p = p * x + (4385272521454847904659076985693276 << 96)
        # q evaluated with Knuth's scheme
        z = x + 750530180792738023273180420736
        z = ((z * x) >> 96) + 32788456221302202726307501949080
        w = x - 2218138959503481824038194425854
        w = ((w * z) >> 96) + 892943633302991980437332862907700
        q = z + w - 78174809823045304726920794422040
        q = ((q * w) >> 96) + 4203224763890128580604056984195872
        # r is in the range (0.09, 0.25) * 2**96
        r = p // q
        # scale factor s = 6.031..., the 2**k factor and the 1e18 / 2**96 conversion in one step
        return (r * 3822833074963236453042738258902158003155416615667) >> (195 - k)

    @staticmethod
    def pow(x: int, y: int) -> int:
        r"""Computes x ** y as exp(y * ln(x)).

        Mirrors the Hyperdrive convention: anything to the zero is one and zero to any
        non-zero power is zero. Negative bases are outside of the domain.
        """
        if y == 0:
            return FixedPointIntegerMath.ONE_18
        if x == 0:
            return 0
        if x < 0:
            raise errors.InvalidDomain(f"pow: base must be non-negative, not {x}")
        ylnx = FixedPointIntegerMath._checked(y * FixedPointIntegerMath.ln(x), "pow") // FixedPointIntegerMath.ONE_18
        return FixedPointIntegerMath.exp(ylnx)

    @staticmethod
    def sqrt(x: int) -> int:
        """Square root of a fixed-point number with 1e18 precision, rounded down."""
        if x < 0:
            raise errors.InvalidDomain(f"sqrt: argument must be non-negative, not {x}")
        return math.isqrt(x * FixedPointIntegerMath.ONE_18)
