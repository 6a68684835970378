"""Balances of the pool's fungible tokens"""
from __future__ import annotations

import copy
import logging
from collections import defaultdict

from hyperpool.errors import errors
from hyperpool.hyperdrive.assets import AssetIdPrefix, decode_asset_id
from hyperpool.math import FixedPoint


class MultiToken:
    r"""Ledger of per-owner balances keyed by asset id

    Positions are not stored as objects; a trader's longs that mature at time :math:`T` are a single
    balance under the ``(LONG, T)`` asset id.
    """

    def __init__(self):
        self.balances: defaultdict[tuple[int, str], FixedPoint] = defaultdict(FixedPoint)
        self.total_supply: defaultdict[int, FixedPoint] = defaultdict(FixedPoint)

    def balance_of(self, asset_id: int, owner: str) -> FixedPoint:
        """Returns the owner's balance of an asset"""
        return self.balances.get((asset_id, owner), FixedPoint(0))

    def total_supply_of(self, asset_id: int) -> FixedPoint:
        """Returns the total supply of an asset"""
        return self.total_supply.get(asset_id, FixedPoint(0))

    def mint(self, asset_id: int, owner: str, amount: FixedPoint) -> None:
        """Credit `amount` of an asset to `owner`"""
        self.balances[(asset_id, owner)] += amount
        self.total_supply[asset_id] += amount
        logging.debug("mint %s of %s to %s", amount, decode_asset_id(asset_id), owner)

    def burn(self, asset_id: int, owner: str, amount: FixedPoint) -> None:
        """Debit `amount` of an asset from `owner`

        Raises
        ------
        InsufficientBalance
            If the owner holds less than `amount`.
        """
        balance = self.balance_of(asset_id, owner)
        if balance < amount:
            prefix, timestamp = decode_asset_id(asset_id)
            raise errors.InsufficientBalance(
                f"{owner} holds {balance} of {AssetIdPrefix(prefix).name}@{timestamp}, cannot burn {amount}"
            )
        self.balances[(asset_id, owner)] = balance - amount
        self.total_supply[asset_id] -= amount
        # Removing empty balances keeps `positions` limited to what is held
        if self.balances[(asset_id, owner)] == FixedPoint(0):
            del self.balances[(asset_id, owner)]
        logging.debug("burn %s of %s from %s", amount, decode_asset_id(asset_id), owner)

    def positions(self, owner: str) -> dict[int, FixedPoint]:
        """Returns every non-zero balance held by `owner`, keyed by asset id"""
        return {asset_id: balance for (asset_id, holder), balance in self.balances.items() if holder == owner}

    def copy(self) -> MultiToken:
        """Returns a new copy of self"""
        return copy.deepcopy(self)
