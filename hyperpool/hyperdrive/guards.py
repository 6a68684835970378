"""Gates shared by every mutating pool operation"""
from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Callable, TypeVar

from hyperpool.errors import errors

if TYPE_CHECKING:
    from hyperpool.hyperdrive.hyperdrive_market import HyperdriveMarket

ReturnType = TypeVar("ReturnType")


def pool_operation(method: Callable[..., ReturnType]) -> Callable[..., ReturnType]:
    r"""Wrap a market method so that it runs as a single atomic operation

    The wrapped call is rejected while the pool is paused or while another operation is in flight,
    so a yield source call cannot re-enter the pool. If the call raises, the pool state, the token
    ledger and the yield source are restored to their values from before the call.
    """

    @wraps(method)
    def wrapper(market: HyperdriveMarket, *args, **kwargs) -> ReturnType:
        if market.pool_state.is_paused:
            raise errors.Paused(f"{method.__name__} is disabled while the pool is paused")
        if market.is_locked:
            raise errors.ReentrantCall(f"{method.__name__} was called while another pool operation was running")
        snapshot = market.snapshot()
        market.is_locked = True
        try:
            return method(market, *args, **kwargs)
        except Exception as err:
            logging.debug("%s failed, restoring the pool: %r", method.__name__, err)
            market.restore(snapshot)
            raise
        finally:
            market.is_locked = False

    return wrapper
