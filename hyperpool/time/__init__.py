"""Clock and time conversion helpers"""
from .time import (
    BlockTime,
    TimeUnit,
    calculate_normalized_time_remaining,
    calculate_time_remaining_scaled,
    checkpoint_time_for,
    to_seconds,
)
