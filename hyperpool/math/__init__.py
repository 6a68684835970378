"""Fixed-point math library"""
from .fixed_point import FixedPoint
from .fixed_point_integer_math import FixedPointIntegerMath
from .fixed_point_math import FixedPointMath
from .update_weighted_average import update_weighted_average
