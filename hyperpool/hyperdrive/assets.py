"""Asset ids for the pool's fungible tokens

Every token the pool issues is identified by an integer whose top byte is the asset prefix and whose
remaining bits hold a timestamp: the maturity time for longs and shorts, zero for LP and withdrawal shares.
"""
from __future__ import annotations

from enum import IntEnum

from hyperpool.errors import errors

TIMESTAMP_BITS = 248
MAX_TIMESTAMP = 2**TIMESTAMP_BITS - 1


class AssetIdPrefix(IntEnum):
    r"""The kind of token an asset id refers to"""
    LP = 0
    LONG = 1
    SHORT = 2
    WITHDRAWAL_SHARE = 3


def encode_asset_id(prefix: AssetIdPrefix, timestamp: int = 0) -> int:
    """Pack a prefix and a timestamp into an asset id

    Raises
    ------
    InvalidMaturityTime
        If the timestamp doesn't fit below the prefix byte.
    """
    if not 0 <= timestamp <= MAX_TIMESTAMP:
        raise errors.InvalidMaturityTime(f"{timestamp=} is out of range for an asset id")
    return (int(prefix) << TIMESTAMP_BITS) | timestamp


def decode_asset_id(asset_id: int) -> tuple[AssetIdPrefix, int]:
    """Unpack an asset id into its prefix and timestamp"""
    return AssetIdPrefix(asset_id >> TIMESTAMP_BITS), asset_id & MAX_TIMESTAMP
