r"""Trading fees

Curve fees are a fraction of the price spread :math:`1 - p` on the curve-traded portion of a trade.
Flat fees are a fraction of the matured portion of a close. A `governance_lp_fee` fraction of both
is taken out of the pool's reserves for governance; the rest stays with the LPs.

Fees the trader pays round up; the governance cut rounds down.
"""
from __future__ import annotations

from hyperpool.math import FixedPoint

ONE = FixedPoint("1.0")


def open_long_curve_fee(
    share_amount: FixedPoint, spot_price: FixedPoint, vault_share_price: FixedPoint, curve_fee: FixedPoint
) -> FixedPoint:
    r"""Curve fee, in bonds, withheld from a long's bond proceeds.

    .. math::
        \phi_c (1 / p - 1) c \Delta z
    """
    return (ONE.div_up(spot_price) - ONE).mul_up(curve_fee).mul_up(vault_share_price).mul_up(share_amount)


def open_long_governance_fee(
    curve_fee_bonds: FixedPoint,
    spot_price: FixedPoint,
    vault_share_price: FixedPoint,
    governance_lp_fee: FixedPoint,
) -> FixedPoint:
    r"""Governance cut of an open long's curve fee, converted from bonds to shares at the spot price."""
    return curve_fee_bonds.mul_div_down(spot_price, vault_share_price).mul_down(governance_lp_fee)


def close_long_curve_fee(
    bond_amount: FixedPoint,
    spot_price: FixedPoint,
    normalized_time_remaining: FixedPoint,
    vault_share_price: FixedPoint,
    curve_fee: FixedPoint,
) -> FixedPoint:
    r"""Curve fee, in shares, on the unmatured portion of a long being closed.

    .. math::
        \phi_c (1 - p) \Delta y t / c
    """
    return (
        curve_fee.mul_up(ONE - spot_price).mul_up(bond_amount).mul_div_up(normalized_time_remaining, vault_share_price)
    )


def close_long_flat_fee(
    bond_amount: FixedPoint,
    normalized_time_remaining: FixedPoint,
    vault_share_price: FixedPoint,
    flat_fee: FixedPoint,
) -> FixedPoint:
    r"""Flat fee, in shares, on the matured portion of a long being closed.

    .. math::
        \Delta y (1 - t) \phi_f / c
    """
    return bond_amount.mul_div_up(ONE - normalized_time_remaining, vault_share_price).mul_up(flat_fee)


def open_short_curve_fee(bond_amount: FixedPoint, spot_price: FixedPoint, curve_fee: FixedPoint) -> FixedPoint:
    r"""Curve fee, in base, paid when opening a short.

    .. math::
        \phi_c (1 - p) \Delta y
    """
    return curve_fee.mul_up(ONE - spot_price).mul_up(bond_amount)


def close_short_curve_fee(
    bond_amount: FixedPoint,
    spot_price: FixedPoint,
    normalized_time_remaining: FixedPoint,
    vault_share_price: FixedPoint,
    curve_fee: FixedPoint,
) -> FixedPoint:
    r"""Curve fee, in shares, paid by a short buying back the unmatured portion of its bonds.

    .. math::
        ((1 - p) \phi_c \Delta y t) / c
    """
    return close_long_curve_fee(bond_amount, spot_price, normalized_time_remaining, vault_share_price, curve_fee)


def close_short_flat_fee(
    bond_amount: FixedPoint,
    normalized_time_remaining: FixedPoint,
    vault_share_price: FixedPoint,
    flat_fee: FixedPoint,
) -> FixedPoint:
    r"""Flat fee, in shares, on the matured portion of a short being closed.

    .. math::
        (\Delta y (1 - t) \phi_f) / c
    """
    return close_long_flat_fee(bond_amount, normalized_time_remaining, vault_share_price, flat_fee)


def governance_fee(total_fee: FixedPoint, governance_lp_fee: FixedPoint) -> FixedPoint:
    r"""Governance cut of an LP fee, rounded down."""
    return total_fee.mul_down(governance_lp_fee)
