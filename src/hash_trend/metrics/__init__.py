"""
Metrics module for observability.

Provides counters, gauges, and histograms for tracking sync behavior.
Exposes metrics in Prometheus text format.
"""

from .registry import (
    REGISTRY,
    backfills,
    block_fetch_failures,
    blocks_fetched,
    generate_metrics,
    head_fetch_failures,
    head_height,
    poll_duration,
    poll_ticks,
    store_size,
)

__all__ = [
    "REGISTRY",
    "backfills",
    "block_fetch_failures",
    "blocks_fetched",
    "generate_metrics",
    "head_fetch_failures",
    "head_height",
    "poll_duration",
    "poll_ticks",
    "store_size",
]
