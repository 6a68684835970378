r"""YieldSpace bonding curve math

The curve invariant is

.. math::
    k = \frac{c}{\mu} (\mu z_e)^{1 - t_s} + y^{1 - t_s}

where :math:`z_e` is the effective share reserves, :math:`y` the bond reserves, :math:`c` the vault
share price, :math:`\mu` the initial vault share price and :math:`t_s` the time stretch.
Every function takes the curve exponent `t` = 1 - time stretch.

Functions come in rounding pairs. The `_down` variants under-estimate an amount the trader receives,
the `_up` variants over-estimate an amount the trader pays. A trade that the curve cannot satisfy
raises CurveComputationError.
"""
from __future__ import annotations

from hyperpool.errors import errors
from hyperpool.math import FixedPoint

# Let the variable names be the same as the curve's symbols so that the equations are easy to compare.
# pylint: disable=invalid-name
# pylint: disable=too-many-arguments

ONE_18 = FixedPoint("1.0")


def _pow_inverse_up(x: FixedPoint, t: FixedPoint) -> FixedPoint:
    """x ** (1 / t) with the exponent rounded so that the result is over-estimated"""
    if x >= ONE_18:
        return x.pow(ONE_18.div_up(t))
    return x.pow(ONE_18.div_down(t))


def _pow_inverse_down(x: FixedPoint, t: FixedPoint) -> FixedPoint:
    """x ** (1 / t) with the exponent rounded so that the result is under-estimated"""
    if x >= ONE_18:
        return x.pow(ONE_18.div_down(t))
    return x.pow(ONE_18.div_up(t))


def k_up(ze: FixedPoint, y: FixedPoint, t: FixedPoint, c: FixedPoint, mu: FixedPoint) -> FixedPoint:
    r"""The YieldSpace invariant, rounded up.

    Parameters
    ----------
    ze : FixedPoint
        Effective share reserves.
    y : FixedPoint
        Bond reserves.
    t : FixedPoint
        Curve exponent, 1 - time stretch.
    c : FixedPoint
        Vault share price.
    mu : FixedPoint
        Initial vault share price.

    Returns
    -------
    FixedPoint
        The invariant k.
    """
    return c.mul_div_up(mu.mul_up(ze).pow(t), mu) + y.pow(t)


def k_down(ze: FixedPoint, y: FixedPoint, t: FixedPoint, c: FixedPoint, mu: FixedPoint) -> FixedPoint:
    r"""The YieldSpace invariant, rounded down."""
    return c.mul_div_down(mu.mul_down(ze).pow(t), mu) + y.pow(t)


def calculate_bonds_out_given_shares_in_down(
    ze: FixedPoint, y: FixedPoint, dz: FixedPoint, t: FixedPoint, c: FixedPoint, mu: FixedPoint
) -> FixedPoint:
    r"""Bonds paid out by the pool when a trader sells it `dz` shares, rounded down.

    .. math::
        \Delta y = y - \left(k - \frac{c}{\mu} (\mu (z_e + \Delta z))^{1 - t_s}\right)^{\frac{1}{1 - t_s}}

    Parameters
    ----------
    ze : FixedPoint
        Effective share reserves.
    y : FixedPoint
        Bond reserves.
    dz : FixedPoint
        Shares the trader pays in.
    t : FixedPoint
        Curve exponent, 1 - time stretch.
    c : FixedPoint
        Vault share price.
    mu : FixedPoint
        Initial vault share price.

    Returns
    -------
    FixedPoint
        Bonds the trader receives.
    """
    k = k_up(ze, y, t, c, mu)
    ze = mu.mul_up(ze + dz).pow(t)
    ze = c.mul_div_up(ze, mu)
    if k < ze:
        raise errors.CurveComputationError("bonds out given shares in: share term exceeds the invariant")
    _y = _pow_inverse_up(k - ze, t)
    if y < _y:
        raise errors.CurveComputationError("bonds out given shares in: ending bond reserves exceed the starting ones")
    return y - _y


def calculate_shares_in_given_bonds_out_up(
    ze: FixedPoint, y: FixedPoint, dy: FixedPoint, t: FixedPoint, c: FixedPoint, mu: FixedPoint
) -> FixedPoint:
    r"""Shares a trader must pay to buy `dy` bonds from the pool, rounded up.

    .. math::
        \Delta z = \frac{1}{\mu}\left(\frac{\mu}{c}(k - (y - \Delta y)^{1 - t_s})\right)^{\frac{1}{1 - t_s}} - z_e
    """
    if y < dy:
        raise errors.CurveComputationError(f"shares in given bonds out: {dy=} exceeds the bond reserves {y=}")
    k = k_up(ze, y, t, c, mu)
    y = (y - dy).pow(t)
    if k < y:
        raise errors.CurveComputationError("shares in given bonds out: bond term exceeds the invariant")
    _z = _pow_inverse_up((k - y).mul_div_up(mu, c), t).div_up(mu)
    if _z < ze:
        raise errors.CurveComputationError("shares in given bonds out: share reserves would fall")
    return _z - ze


def calculate_shares_in_given_bonds_out_down(
    ze: FixedPoint, y: FixedPoint, dy: FixedPoint, t: FixedPoint, c: FixedPoint, mu: FixedPoint
) -> FixedPoint:
    r"""Shares required to buy `dy` bonds from the pool, rounded down.

    Used for marking the pool's net short exposure, where under-estimating favors the pool.
    """
    if y < dy:
        raise errors.CurveComputationError(f"shares in given bonds out: {dy=} exceeds the bond reserves {y=}")
    k = k_down(ze, y, t, c, mu)
    y = (y - dy).pow(t)
    if k < y:
        raise errors.CurveComputationError("shares in given bonds out: bond term exceeds the invariant")
    _z = _pow_inverse_down((k - y).mul_div_down(mu, c), t).div_down(mu)
    if _z < ze:
        raise errors.CurveComputationError("shares in given bonds out: share reserves would fall")
    return _z - ze


def calculate_shares_out_given_bonds_in_down(
    ze: FixedPoint, y: FixedPoint, dy: FixedPoint, t: FixedPoint, c: FixedPoint, mu: FixedPoint
) -> FixedPoint:
    r"""Shares paid out by the pool when a trader sells it `dy` bonds, rounded down.

    .. math::
        \Delta z = z_e - \frac{1}{\mu}\left(\frac{\mu}{c}(k - (y + \Delta y)^{1 - t_s})\right)^{\frac{1}{1 - t_s}}
    """
    k = k_up(ze, y, t, c, mu)
    y = (y + dy).pow(t)
    if k < y:
        raise errors.CurveComputationError("shares out given bonds in: bond term exceeds the invariant")
    _z = _pow_inverse_up((k - y).mul_div_up(mu, c), t).div_up(mu)
    if ze < _z:
        raise errors.CurveComputationError("shares out given bonds in: trade would drain the share reserves")
    return ze - _z


def calculate_shares_out_given_bonds_in_up(
    ze: FixedPoint, y: FixedPoint, dy: FixedPoint, t: FixedPoint, c: FixedPoint, mu: FixedPoint
) -> FixedPoint:
    r"""Shares paid out for `dy` bonds, rounded up.

    Used for marking the pool's net long exposure, where over-estimating favors the pool.
    """
    k = k_down(ze, y, t, c, mu)
    y = (y + dy).pow(t)
    if k < y:
        raise errors.CurveComputationError("shares out given bonds in: bond term exceeds the invariant")
    _z = _pow_inverse_down((k - y).mul_div_down(mu, c), t).div_down(mu)
    if ze < _z:
        raise errors.CurveComputationError("shares out given bonds in: trade would drain the share reserves")
    return ze - _z


def calculate_max_buy_shares_in(
    ze: FixedPoint, y: FixedPoint, t: FixedPoint, c: FixedPoint, mu: FixedPoint
) -> FixedPoint:
    r"""Most shares that can be paid in before the spot price reaches one.

    At a spot price of one, :math:`\mu z_e = y`, so the invariant gives
    :math:`y = (k / (c / \mu + 1))^{1 / (1 - t_s)}`.
    """
    k = k_down(ze, y, t, c, mu)
    optimal_y = _pow_inverse_down(k.div_down(c.div_up(mu) + ONE_18), t)
    optimal_ze = optimal_y.div_down(mu)
    if optimal_ze < ze:
        raise errors.CurveComputationError("max buy: spot price is already above one")
    return optimal_ze - ze


def calculate_max_buy_bonds_out(
    ze: FixedPoint, y: FixedPoint, t: FixedPoint, c: FixedPoint, mu: FixedPoint
) -> FixedPoint:
    r"""Most bonds that can be bought from the pool before the spot price reaches one."""
    k = k_up(ze, y, t, c, mu)
    optimal_y = _pow_inverse_up(k.div_up(c.div_down(mu) + ONE_18), t)
    if y < optimal_y:
        raise errors.CurveComputationError("max buy: spot price is already above one")
    return y - optimal_y


def calculate_max_sell_bonds_in(
    z: FixedPoint,
    zeta: FixedPoint,
    y: FixedPoint,
    z_min: FixedPoint,
    t: FixedPoint,
    c: FixedPoint,
    mu: FixedPoint,
) -> FixedPoint:
    r"""Most bonds that can be sold to the pool before share reserves hit the minimum.

    When the share adjustment is negative the effective reserves sit above the raw
    reserves, so the effective floor is raised by the adjustment.

    Parameters
    ----------
    z : FixedPoint
        Share reserves.
    zeta : FixedPoint
        Signed share adjustment.
    y : FixedPoint
        Bond reserves.
    z_min : FixedPoint
        Minimum share reserves.
    t : FixedPoint
        Curve exponent, 1 - time stretch.
    c : FixedPoint
        Vault share price.
    mu : FixedPoint
        Initial vault share price.

    Returns
    -------
    FixedPoint
        The maximum bond amount the pool can buy.
    """
    if zeta < FixedPoint(0):
        z_min = z_min - zeta
    ze = z - zeta
    if ze < z_min:
        raise errors.CurveComputationError("max sell: effective share reserves are already below the minimum")
    k = k_down(ze, y, t, c, mu)
    floor_term = c.mul_div_up(mu.mul_up(z_min).pow(t), mu)
    if k < floor_term:
        raise errors.CurveComputationError("max sell: minimum share reserves exceed the invariant")
    optimal_y = _pow_inverse_down(k - floor_term, t)
    if optimal_y < y:
        raise errors.CurveComputationError("max sell: bond reserves are already beyond the maximum")
    return optimal_y - y
