"""Shared utilities and helpers."""
from shared.diagnostics import (
    estimate_cache_mb,
    get_memory_info,
    log_memory_usage,
    log_tile_store_stats,
)

__all__ = [
    'estimate_cache_mb',
    'get_memory_info',
    'log_memory_usage',
    'log_tile_store_stats',
]
