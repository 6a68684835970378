r"""Liquidity provider accounting

The pool's present value is its share reserves plus the value of unwinding every open position
at once, minus the minimum share reserves:

.. math::
    PV = z + \text{net curve trade} + \text{net flat trade} - z_{min}

Withdrawal shares are paid out of idle capital by `calculate_distribute_excess_idle`, which solves
for the largest payout that keeps the LP share price of the remaining LPs from decreasing.
"""
from __future__ import annotations

import logging
from typing import NamedTuple

from hyperpool.errors import errors
from hyperpool.hyperdrive import hyperdrive_math, yieldspace_math
from hyperpool.math import FixedPoint, FixedPointMath

# pylint: disable=invalid-name
# pylint: disable=too-many-arguments

ONE = FixedPoint("1.0")
ZERO = FixedPoint(0)


class PresentValueParams(NamedTuple):
    """Pool state needed to compute the present value."""

    share_reserves: FixedPoint
    share_adjustment: FixedPoint
    bond_reserves: FixedPoint
    vault_share_price: FixedPoint
    initial_vault_share_price: FixedPoint
    minimum_share_reserves: FixedPoint
    time_stretch: FixedPoint
    longs_outstanding: FixedPoint
    long_average_time_remaining: FixedPoint
    shorts_outstanding: FixedPoint
    short_average_time_remaining: FixedPoint


class DistributeExcessIdleParams(NamedTuple):
    """Inputs to the distribute excess idle solver."""

    present_value_params: PresentValueParams
    starting_present_value: FixedPoint
    active_lp_total_supply: FixedPoint
    withdrawal_shares_total_supply: FixedPoint
    idle: FixedPoint
    net_curve_trade: FixedPoint


class LiquidityUpdate(NamedTuple):
    """Reserves after adding or removing liquidity at a constant spot price."""

    share_reserves: FixedPoint
    share_adjustment: FixedPoint
    bond_reserves: FixedPoint


def calculate_update_liquidity(
    share_reserves: FixedPoint,
    share_adjustment: FixedPoint,
    bond_reserves: FixedPoint,
    minimum_share_reserves: FixedPoint,
    share_reserves_delta: FixedPoint,
) -> LiquidityUpdate:
    r"""Apply a signed share reserves delta while holding the spot price constant.

    The share adjustment and bond reserves are scaled by :math:`z_{new} / z_{old}`, so the ratio
    :math:`z_e / y` and hence the spot price is unchanged.

    Raises
    ------
    InsufficientLiquidity
        If the share reserves would fall below the minimum share reserves.
    InvalidEffectiveShareReserves
        If the effective share reserves would fall below the minimum share reserves.
    """
    if share_reserves_delta == ZERO:
        return LiquidityUpdate(share_reserves, share_adjustment, bond_reserves)
    new_share_reserves = share_reserves + share_reserves_delta
    if new_share_reserves < minimum_share_reserves:
        raise errors.InsufficientLiquidity(
            f"share reserves {new_share_reserves} would fall below the minimum {minimum_share_reserves}"
        )
    if share_adjustment >= ZERO:
        new_share_adjustment = new_share_reserves.mul_div_down(share_adjustment, share_reserves)
    else:
        new_share_adjustment = -new_share_reserves.mul_div_up(-share_adjustment, share_reserves)
    effective_share_reserves = hyperdrive_math.calculate_effective_share_reserves(share_reserves, share_adjustment)
    new_effective_share_reserves = hyperdrive_math.calculate_effective_share_reserves(
        new_share_reserves, new_share_adjustment
    )
    if new_effective_share_reserves < minimum_share_reserves:
        raise errors.InvalidEffectiveShareReserves(
            f"effective share reserves {new_effective_share_reserves} would fall below the minimum"
        )
    new_bond_reserves = new_effective_share_reserves.mul_div_down(bond_reserves, effective_share_reserves)
    return LiquidityUpdate(new_share_reserves, new_share_adjustment, new_bond_reserves)


def calculate_net_curve_position(params: PresentValueParams) -> FixedPoint:
    r"""Signed bond amount that would be traded on the curve to unwind every position.

    Positive when traders are net long, negative when they are net short.
    """
    return params.longs_outstanding.mul_up(params.long_average_time_remaining) - params.shorts_outstanding.mul_down(
        params.short_average_time_remaining
    )


def _effective_share_reserves(params: PresentValueParams) -> FixedPoint:
    return hyperdrive_math.calculate_effective_share_reserves(params.share_reserves, params.share_adjustment)


def _max_sell_bonds_in(params: PresentValueParams) -> FixedPoint:
    """Curve capacity for bonds sold to the pool; zero when the reserves are at the floor"""
    effective_floor = params.minimum_share_reserves
    if params.share_adjustment < ZERO:
        effective_floor = effective_floor - params.share_adjustment
    if _effective_share_reserves(params) <= effective_floor:
        return ZERO
    return yieldspace_math.calculate_max_sell_bonds_in(
        params.share_reserves,
        params.share_adjustment,
        params.bond_reserves,
        params.minimum_share_reserves,
        ONE - params.time_stretch,
        params.vault_share_price,
        params.initial_vault_share_price,
    )


def calculate_net_curve_trade(params: PresentValueParams) -> FixedPoint:
    r"""Signed share value of unwinding the curve portion of every position.

    Traders that are net long sell their bonds back to the pool, which pays shares out, so the
    trade is negative. Traders that are net short buy bonds back, so the trade is positive. Any
    amount the curve cannot absorb is valued at a price of one, the worst case for LPs.
    """
    net_curve_position = calculate_net_curve_position(params)
    ze = _effective_share_reserves(params)
    t = ONE - params.time_stretch
    c = params.vault_share_price
    mu = params.initial_vault_share_price
    if net_curve_position > ZERO:
        max_curve_trade = _max_sell_bonds_in(params)
        if max_curve_trade >= net_curve_position:
            return -yieldspace_math.calculate_shares_out_given_bonds_in_up(
                ze, params.bond_reserves, net_curve_position, t, c, mu
            )
        max_share_payment = ZERO
        if max_curve_trade > ZERO:
            max_share_payment = yieldspace_math.calculate_shares_out_given_bonds_in_up(
                ze, params.bond_reserves, max_curve_trade, t, c, mu
            )
        return -(max_share_payment + (net_curve_position - max_curve_trade).div_up(c))
    if net_curve_position < ZERO:
        net_curve_position = -net_curve_position
        max_curve_trade = yieldspace_math.calculate_max_buy_bonds_out(ze, params.bond_reserves, t, c, mu)
        if max_curve_trade >= net_curve_position:
            return yieldspace_math.calculate_shares_in_given_bonds_out_down(
                ze, params.bond_reserves, net_curve_position, t, c, mu
            )
        max_share_payment = yieldspace_math.calculate_max_buy_shares_in(ze, params.bond_reserves, t, c, mu)
        return max_share_payment + (net_curve_position - max_curve_trade).div_down(c)
    return ZERO


def calculate_net_flat_trade(params: PresentValueParams) -> FixedPoint:
    r"""Signed share value of settling the matured portion of every position at face value.

    .. math::
        \frac{y_s (1 - t_s)}{c} - \frac{y_l (1 - t_l)}{c}
    """
    return params.shorts_outstanding.mul_div_down(
        ONE - params.short_average_time_remaining, params.vault_share_price
    ) - params.longs_outstanding.mul_div_up(ONE - params.long_average_time_remaining, params.vault_share_price)


def calculate_present_value(params: PresentValueParams) -> FixedPoint:
    r"""Present value of the pool in shares.

    Raises
    ------
    NegativePresentValue
        If the open positions are worth more than the reserves.
    """
    present_value = (
        params.share_reserves
        + calculate_net_curve_trade(params)
        + calculate_net_flat_trade(params)
        - params.minimum_share_reserves
    )
    if present_value < ZERO:
        raise errors.NegativePresentValue(f"present value is negative: {present_value}")
    return present_value


def calculate_idle_share_reserves(
    share_reserves: FixedPoint,
    long_exposure: FixedPoint,
    vault_share_price: FixedPoint,
    minimum_share_reserves: FixedPoint,
    present_value: FixedPoint,
) -> FixedPoint:
    r"""Share reserves not needed to back the long exposure or the minimum reserves.

    .. math::
        \min\left(\max(0, z - \frac{exposure}{c} - z_{min}), PV\right)
    """
    required = long_exposure.div_up(vault_share_price) + minimum_share_reserves
    if share_reserves <= required:
        return ZERO
    return FixedPointMath.minimum(share_reserves - required, present_value)


def calculate_lp_share_price(
    present_value: FixedPoint, lp_total_supply: FixedPoint, vault_share_price: FixedPoint
) -> FixedPoint:
    r"""Base value of one LP share, :math:`PV \cdot c / L`; zero when there is no supply."""
    if lp_total_supply == ZERO:
        return ZERO
    return present_value.mul_div_down(vault_share_price, lp_total_supply)


def _present_value_after_removal(params: DistributeExcessIdleParams, share_reserves_delta: FixedPoint) -> FixedPoint:
    pv_params = params.present_value_params
    updated = calculate_update_liquidity(
        pv_params.share_reserves,
        pv_params.share_adjustment,
        pv_params.bond_reserves,
        pv_params.minimum_share_reserves,
        -share_reserves_delta,
    )
    return calculate_present_value(
        pv_params._replace(
            share_reserves=updated.share_reserves,
            share_adjustment=updated.share_adjustment,
            bond_reserves=updated.bond_reserves,
        )
    )


def calculate_max_share_reserves_delta(params: DistributeExcessIdleParams) -> FixedPoint:
    r"""Largest amount of shares that can leave the reserves to pay withdrawals.

    Removing liquidity scales :math:`z`, :math:`\zeta` and :math:`y` by the same factor
    :math:`s = z_{new} / z`, and the curve's capacity to sell bonds before the spot price
    reaches one scales by :math:`s` too. When traders are net short the pool must keep enough
    capacity to buy back the net curve position :math:`N`:

    .. math::
        s \cdot \Delta y_{max} \ge N \implies \Delta z \le z \left(1 - \frac{N}{\Delta y_{max}}\right)

    The result is also bounded by idle and by the effective share reserves staying above the
    minimum share reserves.
    """
    pv_params = params.present_value_params
    if params.idle <= ZERO:
        return ZERO
    ze = _effective_share_reserves(pv_params)
    if ze <= pv_params.minimum_share_reserves:
        return ZERO
    z = pv_params.share_reserves
    max_share_reserves_delta = FixedPointMath.minimum(
        params.idle, z.mul_down(ONE - pv_params.minimum_share_reserves.div_up(ze))
    )
    net_curve_position = calculate_net_curve_position(pv_params)
    if net_curve_position >= ZERO:
        return max_share_reserves_delta
    max_bond_amount = yieldspace_math.calculate_max_buy_bonds_out(
        ze,
        pv_params.bond_reserves,
        ONE - pv_params.time_stretch,
        pv_params.vault_share_price,
        pv_params.initial_vault_share_price,
    )
    if max_bond_amount <= -net_curve_position:
        return ZERO
    max_scaling_reduction = ONE - (-net_curve_position).div_up(max_bond_amount)
    return FixedPointMath.minimum(max_share_reserves_delta, z.mul_down(max_scaling_reduction))


def calculate_distribute_excess_idle_withdrawal_shares_redeemed(
    params: DistributeExcessIdleParams, share_reserves_delta: FixedPoint
) -> FixedPoint:
    r"""Withdrawal shares retired by paying out `share_reserves_delta` shares.

    Keeping the LP share price constant requires
    :math:`PV_1 / (L - w) \ge PV_0 / L`, so :math:`w = L (PV_0 - PV_1) / PV_0`, rounded up.
    """
    ending_present_value = _present_value_after_removal(params, share_reserves_delta)
    if ending_present_value >= params.starting_present_value:
        return ZERO
    lp_total_supply = params.active_lp_total_supply + params.withdrawal_shares_total_supply
    return lp_total_supply.mul_div_up(
        params.starting_present_value - ending_present_value, params.starting_present_value
    )


def _present_value_derivative(params: DistributeExcessIdleParams, share_reserves_delta: FixedPoint) -> FixedPoint:
    r"""Magnitude of :math:`dPV / d\Delta z` at the reserves left after removing `share_reserves_delta`.

    With :math:`s = z' / z`, the curve term of the present value is :math:`s f(N / s)`, so

    .. math::
        -\frac{dPV}{d\Delta z} = 1 \mp \frac{F}{z'} \pm \frac{N p}{z' c}

    where :math:`F` is the curve trade in shares and :math:`p` the spot price after the trade.
    """
    pv_params = params.present_value_params
    updated = calculate_update_liquidity(
        pv_params.share_reserves,
        pv_params.share_adjustment,
        pv_params.bond_reserves,
        pv_params.minimum_share_reserves,
        -share_reserves_delta,
    )
    scaled = pv_params._replace(
        share_reserves=updated.share_reserves,
        share_adjustment=updated.share_adjustment,
        bond_reserves=updated.bond_reserves,
    )
    net_curve_position = calculate_net_curve_position(scaled)
    if net_curve_position == ZERO:
        return ONE
    ze = _effective_share_reserves(scaled)
    curve_trade = calculate_net_curve_trade(scaled)
    mu = scaled.initial_vault_share_price
    # signed: longs sell bonds to the curve, shorts buy them back
    ending_ze = ze + curve_trade
    ending_y = scaled.bond_reserves + net_curve_position
    if ending_ze <= ZERO or ending_y <= ZERO:
        return ONE
    spot_price = hyperdrive_math.calculate_spot_price(ending_ze, ending_y, mu, scaled.time_stretch)
    price_term = abs(net_curve_position).mul_div_down(spot_price, scaled.vault_share_price)
    # d/ds[s f(N/s)] = f(x) - x f'(x), with the sign of the curve trade
    derivative = ONE + (curve_trade - (price_term if net_curve_position < ZERO else -price_term)).div_down(
        updated.share_reserves
    )
    if derivative <= ZERO:
        return ONE
    return derivative


def calculate_distribute_excess_idle_share_proceeds(
    params: DistributeExcessIdleParams,
    max_share_reserves_delta: FixedPoint,
    max_iterations: int,
    tolerance: FixedPoint,
) -> FixedPoint:
    r"""Shares needed to retire every outstanding withdrawal share at the current LP share price.

    Solves :math:`PV(\Delta z) = PV_0 \cdot L_{active} / L` with Newton's method. Only guesses that
    keep the LP share price from decreasing are accepted; the largest accepted guess is returned.
    """
    lp_total_supply = params.active_lp_total_supply + params.withdrawal_shares_total_supply
    target_present_value = params.starting_present_value.mul_div_up(params.active_lp_total_supply, lp_total_supply)
    if params.net_curve_trade == ZERO:
        # present value falls one for one with the share reserves
        return FixedPointMath.minimum(params.starting_present_value - target_present_value, max_share_reserves_delta)
    share_proceeds = FixedPointMath.minimum(
        params.withdrawal_shares_total_supply.mul_div_down(params.starting_present_value, lp_total_supply),
        max_share_reserves_delta,
    )
    best_share_proceeds = ZERO
    for _ in range(max_iterations):
        present_value = _present_value_after_removal(params, share_proceeds)
        if present_value >= target_present_value:
            best_share_proceeds = FixedPointMath.maximum(best_share_proceeds, share_proceeds)
            if present_value - target_present_value <= tolerance:
                break
        derivative = _present_value_derivative(params, share_proceeds)
        next_share_proceeds = FixedPointMath.clip(
            share_proceeds + (present_value - target_present_value).div_down(derivative),
            ZERO,
            max_share_reserves_delta,
        )
        if next_share_proceeds == share_proceeds:
            break
        share_proceeds = next_share_proceeds
    return best_share_proceeds


def calculate_distribute_excess_idle(
    params: DistributeExcessIdleParams, max_iterations: int, tolerance: FixedPoint
) -> tuple[FixedPoint, FixedPoint]:
    r"""Split idle capital between the withdrawal pool and the active LPs.

    Returns
    -------
    tuple[FixedPoint, FixedPoint]
        The withdrawal shares redeemed and the share proceeds set aside for them.
    """
    max_share_reserves_delta = calculate_max_share_reserves_delta(params)
    if max_share_reserves_delta == ZERO:
        return ZERO, ZERO
    withdrawal_shares_redeemed = calculate_distribute_excess_idle_withdrawal_shares_redeemed(
        params, max_share_reserves_delta
    )
    if withdrawal_shares_redeemed <= params.withdrawal_shares_total_supply:
        return withdrawal_shares_redeemed, max_share_reserves_delta
    share_proceeds = calculate_distribute_excess_idle_share_proceeds(
        params, max_share_reserves_delta, max_iterations, tolerance
    )
    logging.debug(
        "distributing idle to the full withdrawal pool: shares=%s proceeds=%s",
        params.withdrawal_shares_total_supply,
        share_proceeds,
    )
    return params.withdrawal_shares_total_supply, share_proceeds
