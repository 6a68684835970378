"""Collect classes & constants up one level"""

from .assets import AssetIdPrefix, decode_asset_id, encode_asset_id
from .checkpoint import Checkpoint
from .hyperdrive_actions import MarketActionType, MarketDeltas, TradeResult
from .pool_config import PoolConfig
from .pool_state import PoolState
from .multitoken import MultiToken
from .yield_source import MockYieldSource, YieldSource
from .hyperdrive_market import HyperdriveMarket, MarketSnapshot, ZERO_ADDRESS, build_market
