"""Trade computations for the pool

Every `calc_*` function is pure: it reads the pool state and returns the `MarketDeltas` to apply and a
`TradeResult` for the trader. Moving value through the yield source and the token ledger is left to
`HyperdriveMarket`.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import hyperpool.types as types
from hyperpool.errors import errors
from hyperpool.hyperdrive import fees, hyperdrive_math
from hyperpool.math import FixedPoint, update_weighted_average
from hyperpool.time import calculate_normalized_time_remaining

if TYPE_CHECKING:
    from hyperpool.hyperdrive.pool_config import PoolConfig
    from hyperpool.hyperdrive.pool_state import PoolState

# pylint: disable=too-many-arguments
# pylint: disable=too-many-locals

ONE = FixedPoint("1.0")
ZERO = FixedPoint(0)


class MarketActionType(Enum):
    r"""The descriptor of an action in a market"""
    INITIALIZE_MARKET = "initialize_market"

    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"
    REDEEM_WITHDRAWAL_SHARES = "redeem_withdrawal_shares"

    OPEN_LONG = "open_long"
    OPEN_SHORT = "open_short"

    CLOSE_LONG = "close_long"
    CLOSE_SHORT = "close_short"


@types.freezable(frozen=True, no_new_attribs=True)
@dataclass
class MarketDeltas:
    r"""Specifies changes to values in the pool state

    `checkpoint_time` names the opening checkpoint whose exposure and base volume change;
    `maturity_time` names the checkpoint whose matured set-asides change.
    """
    # pylint: disable=too-many-instance-attributes
    d_share_reserves: FixedPoint = FixedPoint(0)
    d_share_adjustment: FixedPoint = FixedPoint(0)
    d_bond_reserves: FixedPoint = FixedPoint(0)
    d_longs_outstanding: FixedPoint = FixedPoint(0)
    d_shorts_outstanding: FixedPoint = FixedPoint(0)
    d_long_average_maturity_time: FixedPoint = FixedPoint(0)
    d_short_average_maturity_time: FixedPoint = FixedPoint(0)
    d_governance_fees_accrued: FixedPoint = FixedPoint(0)
    checkpoint_time: int | None = None
    d_checkpoint_exposure: FixedPoint = FixedPoint(0)
    d_long_base_volume: FixedPoint = FixedPoint(0)
    d_short_base_volume: FixedPoint = FixedPoint(0)
    maturity_time: int | None = None
    d_matured_long_bonds: FixedPoint = FixedPoint(0)
    d_matured_long_shares: FixedPoint = FixedPoint(0)
    d_matured_short_bonds: FixedPoint = FixedPoint(0)
    d_matured_short_shares: FixedPoint = FixedPoint(0)


@types.freezable(frozen=True, no_new_attribs=True)
@dataclass
class TradeResult:
    r"""What the trader gives or gets from a trade

    Attributes
    ----------
    share_amount : FixedPoint
        Vault shares the trader pays in (opens) or receives (closes).
    bond_amount : FixedPoint
        Bonds minted to or burned from the trader.
    curve_fee : FixedPoint
        Curve fee, in shares, including the governance cut.
    flat_fee : FixedPoint
        Flat fee, in shares, including the governance cut.
    governance_fee : FixedPoint
        Part of the fees, in shares, that went to governance.
    """

    share_amount: FixedPoint = FixedPoint(0)
    bond_amount: FixedPoint = FixedPoint(0)
    curve_fee: FixedPoint = FixedPoint(0)
    flat_fee: FixedPoint = FixedPoint(0)
    governance_fee: FixedPoint = FixedPoint(0)


def _effective_share_reserves(pool_state: PoolState) -> FixedPoint:
    return hyperdrive_math.calculate_effective_share_reserves(pool_state.share_reserves, pool_state.share_adjustment)


def _spot_price(pool_state: PoolState, pool_config: PoolConfig) -> FixedPoint:
    return hyperdrive_math.calculate_spot_price(
        _effective_share_reserves(pool_state),
        pool_state.bond_reserves,
        pool_config.initial_vault_share_price,
        pool_config.time_stretch,
    )


def _average_maturity_delta(
    average: FixedPoint,
    outstanding: FixedPoint,
    maturity_time: int,
    bond_amount: FixedPoint,
    is_adding: bool,
) -> FixedPoint:
    """Change in a bond weighted average maturity time from adding or removing `bond_amount` bonds"""
    updated_average = update_weighted_average(
        average=average,
        total_weight=outstanding,
        delta=FixedPoint(maturity_time),
        delta_weight=bond_amount,
        is_adding=is_adding,
    )
    return updated_average - average


def calc_open_long(
    share_amount: FixedPoint,
    pool_state: PoolState,
    pool_config: PoolConfig,
    vault_share_price: FixedPoint,
    latest_checkpoint_time: int,
) -> tuple[MarketDeltas, TradeResult]:
    r"""Buy bonds with `share_amount` shares, entirely on the curve.

    The curve fee is withheld from the bonds; the governance part of it, converted to shares, is
    kept out of the reserves. The trade is rejected if it would push the spot price above one.

    Arguments
    ----------
    share_amount : FixedPoint
        Vault shares paid by the trader.
    pool_state : PoolState
        The current pool state.
    pool_config : PoolConfig
        The pool's parameters.
    vault_share_price : FixedPoint
        The current vault share price.
    latest_checkpoint_time : int
        The opening checkpoint; the position matures one position duration later.

    Returns
    -------
    tuple[MarketDeltas, TradeResult]
        The deltas that should be applied to the pool and the trader's result.
    """
    effective_share_reserves = _effective_share_reserves(pool_state)
    spot_price = _spot_price(pool_state, pool_config)
    bond_reserves_delta = hyperdrive_math.calculate_open_long(
        effective_share_reserves,
        pool_state.bond_reserves,
        share_amount,
        pool_config.time_stretch,
        vault_share_price,
        pool_config.initial_vault_share_price,
    )
    # buying bonds for more base than their face value is buying at a negative rate
    if share_amount.mul_up(vault_share_price) > bond_reserves_delta:
        raise errors.NegativeInterest(
            f"open long would buy {bond_reserves_delta} bonds for {share_amount.mul_up(vault_share_price)} base"
        )
    curve_fee = fees.open_long_curve_fee(share_amount, spot_price, vault_share_price, pool_config.curve_fee)
    governance_fee = fees.open_long_governance_fee(
        curve_fee, spot_price, vault_share_price, pool_config.governance_lp_fee
    )
    if curve_fee >= bond_reserves_delta:
        raise errors.CurveComputationError(f"curve fee {curve_fee} exceeds the bonds purchased {bond_reserves_delta}")
    bond_proceeds = bond_reserves_delta - curve_fee
    share_reserves_delta = share_amount - governance_fee
    ending_spot_price = hyperdrive_math.calculate_spot_price(
        effective_share_reserves + share_reserves_delta,
        pool_state.bond_reserves - bond_reserves_delta,
        pool_config.initial_vault_share_price,
        pool_config.time_stretch,
    )
    if ending_spot_price > ONE:
        raise errors.NegativeInterest(f"open long would push the spot price to {ending_spot_price}")
    maturity_time = latest_checkpoint_time + pool_config.position_duration
    market_deltas = MarketDeltas(
        d_share_reserves=share_reserves_delta,
        d_bond_reserves=-bond_reserves_delta,
        d_longs_outstanding=bond_proceeds,
        d_long_average_maturity_time=_average_maturity_delta(
            pool_state.long_average_maturity_time, pool_state.longs_outstanding, maturity_time, bond_proceeds, True
        ),
        d_governance_fees_accrued=governance_fee,
        checkpoint_time=latest_checkpoint_time,
        d_checkpoint_exposure=bond_proceeds,
        d_long_base_volume=share_amount.mul_down(vault_share_price),
    )
    trade_result = TradeResult(
        share_amount=share_amount,
        bond_amount=bond_proceeds,
        curve_fee=curve_fee.mul_div_down(spot_price, vault_share_price),
        governance_fee=governance_fee,
    )
    return market_deltas, trade_result


def calc_close_long(
    bond_amount: FixedPoint,
    maturity_time: int,
    pool_state: PoolState,
    pool_config: PoolConfig,
    vault_share_price: FixedPoint,
    open_vault_share_price: FixedPoint,
    current_time: int,
) -> tuple[MarketDeltas, TradeResult]:
    r"""Sell `bond_amount` longs back to the pool before they mature.

    The curve portion :math:`t \Delta y` is sold on the curve and the matured portion
    :math:`(1 - t) \Delta y` is redeemed at face value. The LP part of the curve fee stays in
    the curve reserves. The flat payout leaves the reserves through the share adjustment, so the
    effective share reserves only move by the curve trade.

    If the vault share price fell since the position's checkpoint, every share amount is scaled by
    :math:`c / c_0`.
    """
    normalized_time_remaining = calculate_normalized_time_remaining(
        maturity_time, current_time, pool_config.position_duration
    )
    if normalized_time_remaining <= ZERO:
        raise errors.InvalidMaturityTime(f"long maturing at {maturity_time} has matured; close it from the checkpoint")
    effective_share_reserves = _effective_share_reserves(pool_state)
    spot_price = _spot_price(pool_state, pool_config)
    close_result = hyperdrive_math.calculate_close_long(
        effective_share_reserves,
        pool_state.bond_reserves,
        bond_amount,
        normalized_time_remaining,
        pool_config.time_stretch,
        vault_share_price,
        pool_config.initial_vault_share_price,
    )
    curve_fee = fees.close_long_curve_fee(
        bond_amount, spot_price, normalized_time_remaining, vault_share_price, pool_config.curve_fee
    )
    flat_fee = fees.close_long_flat_fee(bond_amount, normalized_time_remaining, vault_share_price, pool_config.flat_fee)
    governance_curve_fee = fees.governance_fee(curve_fee, pool_config.governance_lp_fee)
    governance_flat_fee = fees.governance_fee(flat_fee, pool_config.governance_lp_fee)
    lp_curve_fee = curve_fee - governance_curve_fee
    if lp_curve_fee > close_result.share_curve_delta or curve_fee + flat_fee > close_result.share_amount:
        raise errors.CurveComputationError(f"fees exceed the proceeds of closing {bond_amount} longs")
    share_curve_delta = close_result.share_curve_delta - lp_curve_fee
    share_proceeds = close_result.share_amount - curve_fee - flat_fee
    governance_fee = governance_curve_fee + governance_flat_fee
    share_proceeds = hyperdrive_math.calculate_negative_interest_adjustment(
        share_proceeds, open_vault_share_price, vault_share_price
    )
    share_curve_delta = hyperdrive_math.calculate_negative_interest_adjustment(
        share_curve_delta, open_vault_share_price, vault_share_price
    )
    governance_fee = hyperdrive_math.calculate_negative_interest_adjustment(
        governance_fee, open_vault_share_price, vault_share_price
    )
    share_reserves_delta = share_proceeds + governance_fee
    opening_checkpoint_time = maturity_time - pool_config.position_duration
    market_deltas = MarketDeltas(
        d_share_reserves=-share_reserves_delta,
        d_share_adjustment=-(share_reserves_delta - share_curve_delta),
        d_bond_reserves=close_result.bond_curve_delta,
        d_longs_outstanding=-bond_amount,
        d_long_average_maturity_time=_average_maturity_delta(
            pool_state.long_average_maturity_time, pool_state.longs_outstanding, maturity_time, bond_amount, False
        ),
        d_governance_fees_accrued=governance_fee,
        checkpoint_time=opening_checkpoint_time,
        d_checkpoint_exposure=-bond_amount,
    )
    trade_result = TradeResult(
        share_amount=share_proceeds,
        bond_amount=bond_amount,
        curve_fee=curve_fee,
        flat_fee=flat_fee,
        governance_fee=governance_fee,
    )
    return market_deltas, trade_result


def calc_open_short(
    bond_amount: FixedPoint,
    pool_state: PoolState,
    pool_config: PoolConfig,
    vault_share_price: FixedPoint,
    open_vault_share_price: FixedPoint,
    latest_checkpoint_time: int,
) -> tuple[MarketDeltas, TradeResult]:
    r"""Sell `bond_amount` bonds to the pool, entirely on the curve.

    The trader deposits the bonds' face value grown from the checkpoint's vault share price to the
    current one, plus the flat fee, minus what the curve pays for the bonds:

    .. math::
        \frac{\Delta y c}{c_0 c} + \frac{\Delta y \phi_f}{c} - \Delta z
    """
    effective_share_reserves = _effective_share_reserves(pool_state)
    spot_price = _spot_price(pool_state, pool_config)
    share_curve_delta = hyperdrive_math.calculate_open_short(
        effective_share_reserves,
        pool_state.bond_reserves,
        bond_amount,
        pool_config.time_stretch,
        vault_share_price,
        pool_config.initial_vault_share_price,
    )
    # selling bonds for more than their face value is selling at a negative rate
    if share_curve_delta.mul_up(vault_share_price) > bond_amount:
        raise errors.NegativeInterest(f"open short would sell {bond_amount} bonds above face value")
    curve_fee = fees.open_short_curve_fee(bond_amount, spot_price, pool_config.curve_fee).div_up(vault_share_price)
    governance_fee = fees.governance_fee(curve_fee, pool_config.governance_lp_fee)
    lp_curve_fee = curve_fee - governance_fee
    if lp_curve_fee > share_curve_delta:
        raise errors.CurveComputationError(f"curve fee {lp_curve_fee} exceeds the curve proceeds {share_curve_delta}")
    share_reserves_delta = share_curve_delta - lp_curve_fee
    if share_reserves_delta < governance_fee:
        raise errors.CurveComputationError(f"governance fee exceeds the curve proceeds {share_reserves_delta}")
    share_deposit = hyperdrive_math.calculate_short_proceeds_up(
        bond_amount,
        share_reserves_delta - governance_fee,
        open_vault_share_price,
        vault_share_price,
        vault_share_price,
        pool_config.flat_fee,
    )
    maturity_time = latest_checkpoint_time + pool_config.position_duration
    market_deltas = MarketDeltas(
        d_share_reserves=-share_reserves_delta,
        d_bond_reserves=bond_amount,
        d_shorts_outstanding=bond_amount,
        d_short_average_maturity_time=_average_maturity_delta(
            pool_state.short_average_maturity_time, pool_state.shorts_outstanding, maturity_time, bond_amount, True
        ),
        d_governance_fees_accrued=governance_fee,
        checkpoint_time=latest_checkpoint_time,
        d_checkpoint_exposure=-bond_amount,
        d_short_base_volume=share_deposit.mul_up(vault_share_price),
    )
    trade_result = TradeResult(
        share_amount=share_deposit,
        bond_amount=bond_amount,
        curve_fee=curve_fee,
        governance_fee=governance_fee,
    )
    return market_deltas, trade_result


def calc_close_short(
    bond_amount: FixedPoint,
    maturity_time: int,
    pool_state: PoolState,
    pool_config: PoolConfig,
    vault_share_price: FixedPoint,
    open_vault_share_price: FixedPoint,
    current_time: int,
) -> tuple[MarketDeltas, TradeResult]:
    r"""Buy back `bond_amount` shorted bonds before they mature.

    The short pays for the curve portion on the curve and for the matured portion at face value,
    plus fees, out of its deposit. It keeps the rest, which includes the variable interest earned
    since the opening checkpoint.
    """
    normalized_time_remaining = calculate_normalized_time_remaining(
        maturity_time, current_time, pool_config.position_duration
    )
    if normalized_time_remaining <= ZERO:
        raise errors.InvalidMaturityTime(f"short maturing at {maturity_time} has matured; close it from the checkpoint")
    effective_share_reserves = _effective_share_reserves(pool_state)
    spot_price = _spot_price(pool_state, pool_config)
    close_result = hyperdrive_math.calculate_close_short(
        effective_share_reserves,
        pool_state.bond_reserves,
        bond_amount,
        normalized_time_remaining,
        pool_config.time_stretch,
        vault_share_price,
        pool_config.initial_vault_share_price,
    )
    curve_fee = fees.close_short_curve_fee(
        bond_amount, spot_price, normalized_time_remaining, vault_share_price, pool_config.curve_fee
    )
    flat_fee = fees.close_short_flat_fee(
        bond_amount, normalized_time_remaining, vault_share_price, pool_config.flat_fee
    )
    governance_curve_fee = fees.governance_fee(curve_fee, pool_config.governance_lp_fee)
    governance_fee = governance_curve_fee + fees.governance_fee(flat_fee, pool_config.governance_lp_fee)
    share_payment = close_result.share_amount + curve_fee + flat_fee
    share_curve_delta = close_result.share_curve_delta + (curve_fee - governance_curve_fee)
    share_proceeds = hyperdrive_math.calculate_short_proceeds_down(
        bond_amount,
        share_payment,
        open_vault_share_price,
        vault_share_price,
        vault_share_price,
        pool_config.flat_fee,
    )
    share_reserves_delta = share_payment - governance_fee
    ending_spot_price = hyperdrive_math.calculate_spot_price(
        effective_share_reserves + share_curve_delta,
        pool_state.bond_reserves - close_result.bond_curve_delta,
        pool_config.initial_vault_share_price,
        pool_config.time_stretch,
    )
    if ending_spot_price > ONE:
        raise errors.NegativeInterest(f"close short would push the spot price to {ending_spot_price}")
    opening_checkpoint_time = maturity_time - pool_config.position_duration
    market_deltas = MarketDeltas(
        d_share_reserves=share_reserves_delta,
        d_share_adjustment=share_reserves_delta - share_curve_delta,
        d_bond_reserves=-close_result.bond_curve_delta,
        d_shorts_outstanding=-bond_amount,
        d_short_average_maturity_time=_average_maturity_delta(
            pool_state.short_average_maturity_time, pool_state.shorts_outstanding, maturity_time, bond_amount, False
        ),
        d_governance_fees_accrued=governance_fee,
        checkpoint_time=opening_checkpoint_time,
        d_checkpoint_exposure=bond_amount,
    )
    trade_result = TradeResult(
        share_amount=share_proceeds,
        bond_amount=bond_amount,
        curve_fee=curve_fee,
        flat_fee=flat_fee,
        governance_fee=governance_fee,
    )
    return market_deltas, trade_result


def calc_close_matured_long(
    bond_amount: FixedPoint, maturity_time: int, pool_state: PoolState
) -> tuple[MarketDeltas, TradeResult]:
    r"""Redeem matured longs from the shares their checkpoint set aside, pro rata"""
    checkpoint = pool_state.checkpoints.get(maturity_time)
    if checkpoint is None or not checkpoint.is_set:
        raise errors.InvalidCheckpointTime(f"the checkpoint at {maturity_time} has not settled its matured longs")
    if bond_amount > checkpoint.matured_long_bonds:
        raise errors.InsufficientBalance(
            f"{bond_amount} exceeds the {checkpoint.matured_long_bonds} matured long bonds at {maturity_time}"
        )
    if bond_amount == checkpoint.matured_long_bonds:
        share_proceeds = checkpoint.matured_long_shares
    else:
        share_proceeds = bond_amount.mul_div_down(checkpoint.matured_long_shares, checkpoint.matured_long_bonds)
    market_deltas = MarketDeltas(
        maturity_time=maturity_time,
        d_matured_long_bonds=-bond_amount,
        d_matured_long_shares=-share_proceeds,
    )
    return market_deltas, TradeResult(share_amount=share_proceeds, bond_amount=bond_amount)


def calc_close_matured_short(
    bond_amount: FixedPoint, maturity_time: int, pool_state: PoolState
) -> tuple[MarketDeltas, TradeResult]:
    r"""Pay matured shorts their interest from the shares their checkpoint set aside, pro rata"""
    checkpoint = pool_state.checkpoints.get(maturity_time)
    if checkpoint is None or not checkpoint.is_set:
        raise errors.InvalidCheckpointTime(f"the checkpoint at {maturity_time} has not settled its matured shorts")
    if bond_amount > checkpoint.matured_short_bonds:
        raise errors.InsufficientBalance(
            f"{bond_amount} exceeds the {checkpoint.matured_short_bonds} matured short bonds at {maturity_time}"
        )
    if bond_amount == checkpoint.matured_short_bonds:
        share_proceeds = checkpoint.matured_short_shares
    else:
        share_proceeds = bond_amount.mul_div_down(checkpoint.matured_short_shares, checkpoint.matured_short_bonds)
    market_deltas = MarketDeltas(
        maturity_time=maturity_time,
        d_matured_short_bonds=-bond_amount,
        d_matured_short_shares=-share_proceeds,
    )
    return market_deltas, TradeResult(share_amount=share_proceeds, bond_amount=bond_amount)


def calc_mature_longs(
    bond_amount: FixedPoint,
    maturity_time: int,
    pool_state: PoolState,
    pool_config: PoolConfig,
    maturity_vault_share_price: FixedPoint,
    open_vault_share_price: FixedPoint,
) -> MarketDeltas:
    r"""Settle every long that matures at `maturity_time`.

    The face value, less the flat fee, is moved out of the reserves into the checkpoint's matured
    set-aside. The share adjustment moves by the same amount, so the curve is unaffected.
    """
    flat_fee = fees.close_long_flat_fee(bond_amount, ZERO, maturity_vault_share_price, pool_config.flat_fee)
    share_proceeds = bond_amount.div_down(maturity_vault_share_price) - flat_fee
    governance_fee = fees.governance_fee(flat_fee, pool_config.governance_lp_fee)
    share_proceeds = hyperdrive_math.calculate_negative_interest_adjustment(
        share_proceeds, open_vault_share_price, maturity_vault_share_price
    )
    governance_fee = hyperdrive_math.calculate_negative_interest_adjustment(
        governance_fee, open_vault_share_price, maturity_vault_share_price
    )
    share_reserves_delta = share_proceeds + governance_fee
    return MarketDeltas(
        d_share_reserves=-share_reserves_delta,
        d_share_adjustment=-share_reserves_delta,
        d_longs_outstanding=-bond_amount,
        d_long_average_maturity_time=_average_maturity_delta(
            pool_state.long_average_maturity_time, pool_state.longs_outstanding, maturity_time, bond_amount, False
        ),
        d_governance_fees_accrued=governance_fee,
        maturity_time=maturity_time,
        d_matured_long_bonds=bond_amount,
        d_matured_long_shares=share_proceeds,
    )


def calc_mature_shorts(
    bond_amount: FixedPoint,
    maturity_time: int,
    pool_state: PoolState,
    pool_config: PoolConfig,
    maturity_vault_share_price: FixedPoint,
    open_vault_share_price: FixedPoint,
) -> MarketDeltas:
    r"""Settle every short that matures at `maturity_time`.

    The shorts buy back their bonds at face value plus the flat fee, which returns to the reserves
    through the share adjustment. The interest they earned between the opening and maturity
    checkpoints is set aside on the maturity checkpoint.
    """
    flat_fee = fees.close_short_flat_fee(bond_amount, ZERO, maturity_vault_share_price, pool_config.flat_fee)
    share_payment = bond_amount.div_up(maturity_vault_share_price) + flat_fee
    governance_fee = fees.governance_fee(flat_fee, pool_config.governance_lp_fee)
    share_proceeds = hyperdrive_math.calculate_short_proceeds_down(
        bond_amount,
        share_payment,
        open_vault_share_price,
        maturity_vault_share_price,
        maturity_vault_share_price,
        pool_config.flat_fee,
    )
    share_reserves_delta = share_payment - governance_fee
    return MarketDeltas(
        d_share_reserves=share_reserves_delta,
        d_share_adjustment=share_reserves_delta,
        d_shorts_outstanding=-bond_amount,
        d_short_average_maturity_time=_average_maturity_delta(
            pool_state.short_average_maturity_time, pool_state.shorts_outstanding, maturity_time, bond_amount, False
        ),
        d_governance_fees_accrued=governance_fee,
        maturity_time=maturity_time,
        d_matured_short_bonds=bond_amount,
        d_matured_short_shares=share_proceeds,
    )
