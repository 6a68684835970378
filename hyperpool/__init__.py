"""Hyperpool package"""

import logging

from hyperpool.errors import errors
from hyperpool.math import FixedPoint

# Setup barebones logging without a handler for users to adapt to their needs.
logging.getLogger(__name__).addHandler(logging.NullHandler())

# smallest representable amount
WEI = FixedPoint(scaled_value=1)
ONE = FixedPoint("1.0")

# The maximum allowed precision error when checking state invariants in tests and simulations.
PRECISION_THRESHOLD: FixedPoint = FixedPoint(scaled_value=10**10)  # 1e-8

# Logging defaults
DEFAULT_LOG_LEVEL = logging.INFO
DEFAULT_LOG_FORMATTER = "\n%(asctime)s: %(levelname)s: %(module)s.%(funcName)s:\n%(message)s"
DEFAULT_LOG_DATETIME = "%y-%m-%d %H:%M:%S"
DEFAULT_LOG_MAXBYTES = int(2e6)  # 2MB

# Constants for time conversion
SECONDS_IN_DAY = 86_400
SECONDS_IN_YEAR = 365 * SECONDS_IN_DAY  # 31_536_000

# Defaults for the distribute excess idle solver
DEFAULT_MAX_ITERATIONS = 8
DEFAULT_SHARE_PROCEEDS_TOLERANCE = FixedPoint(scaled_value=10**9)  # 1e-9 shares


def check_non_negative(data) -> None:
    r"""Performs a general non-negative check on a dictionary or variable.

    Arguments
    ----------
    data : Any
        The data to check; FixedPoint values, dicts of FixedPoint values, or dataclass-like objects are inspected

    Raises
    ------
    FixedPointUnderflow
        If any FixedPoint value is negative
    """
    if isinstance(data, dict):
        for key, value in data.items():
            if isinstance(value, FixedPoint) and value < FixedPoint(0):
                raise errors.FixedPointUnderflow(f"{key} must be non-negative, not {value}")
            if isinstance(value, dict):
                check_non_negative(value)
    elif isinstance(data, FixedPoint) and data < FixedPoint(0):
        raise errors.FixedPointUnderflow(f"value must be non-negative, not {data}")
