"""
Metric registry using prometheus_client.

Provides pre-defined metrics for the sync engine.
Exposes metrics in Prometheus text format via the /metrics endpoint.
"""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Dedicated registry, so default Python process metrics stay out of the output.
REGISTRY = CollectorRegistry()

# -----------------------------------------------------------------------------
# Chain and Store
# -----------------------------------------------------------------------------

head_height = Gauge(
    "hash_trend_head_height",
    "Latest observed chain head height",
    registry=REGISTRY,
)

store_size = Gauge(
    "hash_trend_store_blocks",
    "Blocks currently held by the store",
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Fetching
# -----------------------------------------------------------------------------

blocks_fetched = Counter(
    "hash_trend_blocks_fetched_total",
    "Blocks fetched successfully",
    registry=REGISTRY,
)

block_fetch_failures = Counter(
    "hash_trend_block_fetch_failures_total",
    "Per-height block fetches that failed and were skipped",
    registry=REGISTRY,
)

head_fetch_failures = Counter(
    "hash_trend_head_fetch_failures_total",
    "Chain head fetches that failed",
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Sync Operations
# -----------------------------------------------------------------------------

poll_ticks = Counter(
    "hash_trend_poll_ticks_total",
    "Live poll ticks by outcome",
    ["outcome"],
    registry=REGISTRY,
)

poll_duration = Histogram(
    "hash_trend_poll_duration_seconds",
    "Duration of live poll ticks that fetched from the chain",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)

backfills = Counter(
    "hash_trend_backfills_total",
    "Completed backfill runs",
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest(REGISTRY)
