"""Define Python user-defined exceptions

Every pool operation failure is one of the category bases below.
A failed operation leaves the pool state exactly as it was before the call.
"""


class InputValidationError(Exception):
    """The caller supplied an argument the pool cannot accept."""


class ArithmeticFailure(ArithmeticError):
    """A fixed-point or curve computation left its valid domain."""


class SolvencyError(Exception):
    """The operation would leave the pool unable to back its open positions."""


class OperationGateError(Exception):
    """The pool is not accepting state-mutating calls right now."""


# input validation
class ZeroAmount(InputValidationError):
    """A trade or liquidity amount of zero was provided."""


class MinimumTransactionAmount(InputValidationError):
    """The amount is below the configured minimum transaction amount."""


class OutputLimit(InputValidationError):
    """If the output requirement is not met.  Often this is a minimum amount
    out as slippage protection.
    """


class InvalidCheckpointTime(InputValidationError):
    """If the checkpoint time isn't divisible by the checkpoint duration or is
    in the future, it's an invalid checkpoint and we should revert.
    """


class InvalidMaturityTime(InputValidationError):
    """The maturity time does not correspond to a position bucket."""


class InvalidApr(InputValidationError):
    """The pool's spot APR is outside of the caller's bounds, or the target APR is invalid."""


class PoolAlreadyInitialized(InputValidationError):
    """The pool can only be initialized once."""


class PoolNotInitialized(InputValidationError):
    """The pool must be initialized before trading."""


class InsufficientBalance(InputValidationError):
    """The owner doesn't hold enough of the asset being burned or withdrawn."""


class InvalidPoolConfig(InputValidationError):
    """A pool configuration parameter is out of range."""


# arithmetic
class DivisionByZero(ArithmeticFailure, ZeroDivisionError):
    """Divisor of a fixed-point operation is zero."""


class FixedPointOverflow(ArithmeticFailure, OverflowError):
    """Result does not fit in a 256 bit word."""


class FixedPointUnderflow(ArithmeticFailure):
    """An unsigned quantity became negative."""


class InvalidDomain(ArithmeticFailure, ValueError):
    """Argument is outside of the function's domain, e.g. ln of a non-positive number."""


class CurveComputationError(ArithmeticFailure):
    """The YieldSpace invariant cannot be satisfied for the requested trade; the trade is infeasible."""


class NegativeInterest(ArithmeticFailure):
    """The trade would push the spot price above one, implying a negative interest rate."""


# solvency
class InsufficientLiquidity(SolvencyError):
    """The pool doesn't have enough idle share reserves to back the trade."""


class InvalidEffectiveShareReserves(SolvencyError):
    """Effective share reserves are negative or below the minimum share reserves."""


class NegativePresentValue(SolvencyError):
    """The present value of the pool is negative."""


class DecreasedPresentValue(SolvencyError):
    """Adding liquidity decreased the pool's present value."""


# operation gate
class Paused(OperationGateError):
    """The pool is paused."""


class ReentrantCall(OperationGateError):
    """A pool operation was entered while another one was in progress."""
