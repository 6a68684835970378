"""Position pricing on top of the YieldSpace curve

Opens trade entirely on the curve. Closes before maturity split the bond amount into a curve
portion, proportional to the normalized time remaining, and a flat portion that is redeemed at
face value. Shorts are settled by the growth of the vault share price between open and close.
"""
from __future__ import annotations

from typing import NamedTuple

import hyperpool
from hyperpool.errors import errors
from hyperpool.hyperdrive import yieldspace_math
from hyperpool.math import FixedPoint

# Let the variable names be the same as the curve's symbols so that the equations are easy to compare.
# pylint: disable=invalid-name
# pylint: disable=too-many-arguments

ONE_18 = FixedPoint("1.0")
SECONDS_IN_YEAR = FixedPoint(hyperpool.SECONDS_IN_YEAR)


class CloseResult(NamedTuple):
    """Result from calculate_close_long and calculate_close_short."""

    share_curve_delta: FixedPoint
    bond_curve_delta: FixedPoint
    share_amount: FixedPoint


def calculate_effective_share_reserves(share_reserves: FixedPoint, share_adjustment: FixedPoint) -> FixedPoint:
    r"""Share reserves net of the signed share adjustment, :math:`z_e = z - \zeta`.

    Raises InvalidEffectiveShareReserves if the result is negative.
    """
    effective_share_reserves = share_reserves - share_adjustment
    if effective_share_reserves < FixedPoint(0):
        raise errors.InvalidEffectiveShareReserves(
            f"effective share reserves are negative: {share_reserves=}, {share_adjustment=}"
        )
    return effective_share_reserves


def calculate_spot_price(
    effective_share_reserves: FixedPoint,
    bond_reserves: FixedPoint,
    initial_vault_share_price: FixedPoint,
    time_stretch: FixedPoint,
) -> FixedPoint:
    r"""Calculates the spot price without slippage of bonds in terms of base.

    .. math::
        p = \left(\frac{\mu z_e}{y}\right)^{t_s}

    Parameters
    ----------
    effective_share_reserves : FixedPoint
        The pool's effective share reserves.
    bond_reserves : FixedPoint
        The pool's bond reserves.
    initial_vault_share_price : FixedPoint
        The vault share price when the pool was deployed.
    time_stretch : FixedPoint
        The time stretch parameter.

    Returns
    -------
    FixedPoint
        The spot price of bonds in terms of base.
    """
    return initial_vault_share_price.mul_div_down(effective_share_reserves, bond_reserves).pow(time_stretch)


def calculate_spot_apr(
    effective_share_reserves: FixedPoint,
    bond_reserves: FixedPoint,
    initial_vault_share_price: FixedPoint,
    position_duration: int,
    time_stretch: FixedPoint,
) -> FixedPoint:
    r"""Calculates the pool's fixed APR implied by the spot price.

    .. math::
        r = \frac{1 - p}{p \cdot t}

    where :math:`t` is the position duration in years.
    """
    spot_price = calculate_spot_price(effective_share_reserves, bond_reserves, initial_vault_share_price, time_stretch)
    return calculate_apr_from_price(spot_price, position_duration)


def calculate_apr_from_price(price: FixedPoint, position_duration: int) -> FixedPoint:
    r"""Annualized rate implied by buying a bond at `price` and holding it for `position_duration` seconds"""
    annualized_time = FixedPoint(position_duration) / SECONDS_IN_YEAR
    return (ONE_18 - price).div_down(price.mul_down(annualized_time))


def calculate_apr_from_realized_price(base_amount: FixedPoint, bond_amount: FixedPoint, position_duration: int):
    r"""Rate realized by a trade that paid `base_amount` for `bond_amount` bonds at maturity"""
    return calculate_apr_from_price(base_amount / bond_amount, position_duration)


def calculate_time_stretch(apr: FixedPoint, position_duration: int) -> FixedPoint:
    r"""Time stretch tuned so that a pool at `apr` keeps a reasonable liquidity profile.

    The benchmark is tuned for a one year term. Other terms keep the benchmark's reserve ratio
    and solve for the exponent that prices that ratio at the term's target price.

    .. math::
        t_s = \frac{\ln(1 / (1 + r t))}{\ln(\text{reserve ratio})}
    """
    if apr <= FixedPoint(0):
        raise errors.InvalidApr(f"{apr=} must be positive to derive a time stretch")
    time_stretch = ONE_18 / (FixedPoint("5.24592") / (FixedPoint("0.04665") * (apr * FixedPoint(100))))
    if position_duration == hyperpool.SECONDS_IN_YEAR:
        return time_stretch
    target_spot_price = ONE_18 / (ONE_18 + apr.mul_div_down(FixedPoint(position_duration), SECONDS_IN_YEAR))
    benchmark_reserve_ratio = (ONE_18 / (ONE_18 + apr)).pow(ONE_18 / time_stretch)
    return target_spot_price.ln() / benchmark_reserve_ratio.ln()


def calculate_initial_bond_reserves(
    effective_share_reserves: FixedPoint,
    initial_vault_share_price: FixedPoint,
    apr: FixedPoint,
    position_duration: int,
    time_stretch: FixedPoint,
) -> FixedPoint:
    r"""Bond reserves that price the curve at the target APR.

    .. math::
        y = \mu z_e (1 + r t)^{1 / t_s}
    """
    annualized_time = FixedPoint(position_duration) / SECONDS_IN_YEAR
    interest_factor = (ONE_18 + apr.mul_down(annualized_time)).pow(ONE_18 / time_stretch)
    return initial_vault_share_price.mul_down(effective_share_reserves).mul_down(interest_factor)


def calculate_open_long(
    effective_share_reserves: FixedPoint,
    bond_reserves: FixedPoint,
    share_amount: FixedPoint,
    time_stretch: FixedPoint,
    vault_share_price: FixedPoint,
    initial_vault_share_price: FixedPoint,
) -> FixedPoint:
    r"""Bonds received, before fees, for `share_amount` shares paid into the curve."""
    return yieldspace_math.calculate_bonds_out_given_shares_in_down(
        effective_share_reserves,
        bond_reserves,
        share_amount,
        ONE_18 - time_stretch,
        vault_share_price,
        initial_vault_share_price,
    )


def calculate_close_long(
    effective_share_reserves: FixedPoint,
    bond_reserves: FixedPoint,
    bond_amount: FixedPoint,
    normalized_time_remaining: FixedPoint,
    time_stretch: FixedPoint,
    vault_share_price: FixedPoint,
    initial_vault_share_price: FixedPoint,
) -> CloseResult:
    r"""Shares received, before fees, for closing `bond_amount` longs.

    The matured fraction :math:`1 - t` is redeemed at face value, :math:`\Delta y (1 - t) / c`.
    The remaining fraction is sold on the curve.

    Returns
    -------
    CloseResult
        The curve share delta, the curve bond delta, and the total share proceeds.
    """
    share_proceeds = bond_amount.mul_div_down(ONE_18 - normalized_time_remaining, vault_share_price)
    share_curve_delta = FixedPoint(0)
    bond_curve_delta = FixedPoint(0)
    if normalized_time_remaining > FixedPoint(0):
        bond_curve_delta = bond_amount.mul_down(normalized_time_remaining)
        share_curve_delta = yieldspace_math.calculate_shares_out_given_bonds_in_down(
            effective_share_reserves,
            bond_reserves,
            bond_curve_delta,
            ONE_18 - time_stretch,
            vault_share_price,
            initial_vault_share_price,
        )
        share_proceeds += share_curve_delta
    return CloseResult(share_curve_delta, bond_curve_delta, share_proceeds)


def calculate_open_short(
    effective_share_reserves: FixedPoint,
    bond_reserves: FixedPoint,
    bond_amount: FixedPoint,
    time_stretch: FixedPoint,
    vault_share_price: FixedPoint,
    initial_vault_share_price: FixedPoint,
) -> FixedPoint:
    r"""Shares the pool pays out, before fees, for `bond_amount` bonds sold on the curve."""
    return yieldspace_math.calculate_shares_out_given_bonds_in_down(
        effective_share_reserves,
        bond_reserves,
        bond_amount,
        ONE_18 - time_stretch,
        vault_share_price,
        initial_vault_share_price,
    )


def calculate_close_short(
    effective_share_reserves: FixedPoint,
    bond_reserves: FixedPoint,
    bond_amount: FixedPoint,
    normalized_time_remaining: FixedPoint,
    time_stretch: FixedPoint,
    vault_share_price: FixedPoint,
    initial_vault_share_price: FixedPoint,
) -> CloseResult:
    r"""Shares paid, before fees, to buy back `bond_amount` bonds when closing a short.

    Returns
    -------
    CloseResult
        The curve share delta, the curve bond delta, and the total share payment.
    """
    share_payment = bond_amount.mul_div_up(ONE_18 - normalized_time_remaining, vault_share_price)
    share_curve_delta = FixedPoint(0)
    bond_curve_delta = FixedPoint(0)
    if normalized_time_remaining > FixedPoint(0):
        bond_curve_delta = bond_amount.mul_down(normalized_time_remaining)
        share_curve_delta = yieldspace_math.calculate_shares_in_given_bonds_out_up(
            effective_share_reserves,
            bond_reserves,
            bond_curve_delta,
            ONE_18 - time_stretch,
            vault_share_price,
            initial_vault_share_price,
        )
        share_payment += share_curve_delta
    return CloseResult(share_curve_delta, bond_curve_delta, share_payment)


def calculate_short_proceeds_up(
    bond_amount: FixedPoint,
    share_amount: FixedPoint,
    open_vault_share_price: FixedPoint,
    close_vault_share_price: FixedPoint,
    vault_share_price: FixedPoint,
    flat_fee: FixedPoint,
) -> FixedPoint:
    r"""Share value of a short, rounded up; used for the deposit a short pays.

    .. math::
        \frac{\Delta y c_1}{c_0 c} + \frac{\Delta y \phi_f}{c} - \Delta z

    The :math:`c_1 / c_0` factor credits the short with the variable interest accrued
    between the open and close checkpoints. Returns zero when the position is underwater.
    """
    bond_factor = bond_amount.mul_div_up(close_vault_share_price, open_vault_share_price.mul_down(vault_share_price))
    bond_factor += bond_amount.mul_div_up(flat_fee, vault_share_price)
    if bond_factor > share_amount:
        return bond_factor - share_amount
    return FixedPoint(0)


def calculate_short_proceeds_down(
    bond_amount: FixedPoint,
    share_amount: FixedPoint,
    open_vault_share_price: FixedPoint,
    close_vault_share_price: FixedPoint,
    vault_share_price: FixedPoint,
    flat_fee: FixedPoint,
) -> FixedPoint:
    r"""Share value of a short, rounded down; used for the proceeds a short receives."""
    bond_factor = bond_amount.mul_div_down(close_vault_share_price, open_vault_share_price.mul_up(vault_share_price))
    bond_factor += bond_amount.mul_div_down(flat_fee, vault_share_price)
    if bond_factor > share_amount:
        return bond_factor - share_amount
    return FixedPoint(0)


def calculate_negative_interest_adjustment(
    amount: FixedPoint, open_vault_share_price: FixedPoint, close_vault_share_price: FixedPoint
) -> FixedPoint:
    r"""Scale a long's share amount down by :math:`c_1 / c_0` when the vault lost value while it was open."""
    if close_vault_share_price < open_vault_share_price:
        return amount.mul_div_down(close_vault_share_price, open_vault_share_price)
    return amount
