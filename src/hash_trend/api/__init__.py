"""
API server module exposing sampled views and sync controls over HTTP.

Provides HTTP endpoints for:
- /api/v0/blocks - Sampled view of the store
- /api/v0/grid - Bead plate layout of the sampled view
- /api/v0/backfill - Manual backfill
- /metrics - Prometheus metrics
"""

from .server import ApiServer, ApiServerConfig

__all__ = [
    "ApiServer",
    "ApiServerConfig",
]
