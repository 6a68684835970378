"""State object for setting experiment configuration"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

import numpy as np
from numpy.random._generator import Generator as NumpyGenerator

import hyperpool
import hyperpool.types as types
import hyperpool.utils.outputs as output_utils
from hyperpool.hyperdrive.pool_config import PoolConfig
from hyperpool.math import FixedPoint


def to_fixed_point(value: float) -> FixedPoint:
    """Convert a config value, exactly when it is a whole number

    Scaling a large float such as 1e5 by 1e18 loses digits, so whole numbers go through int.
    """
    if float(value).is_integer():
        return FixedPoint(int(value))
    return FixedPoint(value)


@types.freezable(frozen=False, no_new_attribs=True)
@dataclass
class Config:
    """Data object for storing user simulation config parameters"""

    # lots of configs!
    # pylint: disable=too-many-instance-attributes

    # Pool
    # base contributed by the initial LP
    target_liquidity: float = 1e6
    # desired fixed apr as a decimal
    target_fixed_apr: float = 0.05
    # annual rate earned by the yield source as a decimal; negative values model a loss
    variable_rate: float = 0.05
    # initial vault share price of the yield source
    init_vault_share_price: float = 1.0
    # fraction of the price spread charged on curve trades, paid to LPs
    curve_fee: float = 0.01
    # fraction of the matured amount charged when closing, paid to LPs
    flat_fee: float = 0.0005
    # fraction of the curve and flat fees kept for governance
    governance_lp_fee: float = 0.15
    # shares that must stay in the pool
    minimum_share_reserves: float = 10.0
    # smallest trade or liquidity amount
    minimum_transaction_amount: float = 0.001

    # Simulation
    # Text description of the simulation
    title: str = "hyperpool simulation"
    # time lapse between position open and maturity, in days
    num_position_days: int = 30
    # width of a checkpoint, in days
    num_checkpoint_days: int = 1
    # days the simulation runs for
    num_trading_days: int = 10
    # trades attempted each day
    num_trades_per_day: int = 5
    # number of random traders; the initial LP is added on top
    num_traders: int = 4
    # largest trade as a fraction of the target liquidity
    max_trade_fraction: float = 0.01
    # after the last day, let every position mature, close it and remove all liquidity
    liquidate_on_end: bool = True

    # logging
    # logging level, as defined by stdlib logging
    log_level: int = logging.INFO
    # filename for output logs
    log_filename: str = "simulation"

    # random
    # int to be used for the random seed
    random_seed: int = 1
    # random number generator used in the simulation
    rng: NumpyGenerator = field(init=False, compare=False)

    # scratch space for any application-specific & extraneous parameters
    scratch: dict[Any, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        r"""rng is a function of the random seed"""
        self.rng = np.random.default_rng(self.random_seed)
        if self.num_position_days % self.num_checkpoint_days != 0:
            raise ValueError(f"{self.num_checkpoint_days=} must evenly divide {self.num_position_days=}")

    def __getitem__(self, attrib) -> Any:
        return getattr(self, attrib)

    def __setitem__(self, attrib, value) -> None:
        self.__setattr__(attrib, value)

    def __str__(self) -> str:
        # cls arg tells json how to handle numpy objects and nested dataclasses
        return json.dumps(self.__dict__, sort_keys=True, indent=2, cls=output_utils.ExtendedJSONEncoder)

    def copy(self) -> Config:
        """Returns a new copy of self"""
        return Config(
            **{
                key: value
                for key, value in self.__dict__.items()
                if key not in ["rng", "frozen", "no_new_attribs"]
            }
        )

    def to_pool_config(self) -> PoolConfig:
        """Build the pool config these settings describe"""
        return PoolConfig.from_apr(
            target_apr=to_fixed_point(self.target_fixed_apr),
            position_duration=self.num_position_days * hyperpool.SECONDS_IN_DAY,
            checkpoint_duration=self.num_checkpoint_days * hyperpool.SECONDS_IN_DAY,
            initial_vault_share_price=to_fixed_point(self.init_vault_share_price),
            minimum_share_reserves=to_fixed_point(self.minimum_share_reserves),
            minimum_transaction_amount=to_fixed_point(self.minimum_transaction_amount),
            curve_fee=to_fixed_point(self.curve_fee),
            flat_fee=to_fixed_point(self.flat_fee),
            governance_lp_fee=to_fixed_point(self.governance_lp_fee),
        )
