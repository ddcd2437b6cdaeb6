"""Core utility functions."""

from src.core.utils.api_key_utils import (
    extract_api_key_prefix,
    generate_api_key,
    hash_api_key,
    is_api_key_format,
    mask_api_key,
    mask_key_prefix,
)
from src.core.utils.time_utils import day_bounds, to_utc_naive, utc_day, utc_now

__all__ = [
    "day_bounds",
    "extract_api_key_prefix",
    "generate_api_key",
    "hash_api_key",
    "is_api_key_format",
    "mask_api_key",
    "mask_key_prefix",
    "to_utc_naive",
    "utc_day",
    "utc_now",
]
