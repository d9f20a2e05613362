"""Sync sessions: one store, one rule book and both sync loops per credential."""

from .service import NoCredentialError, SessionStatus, SourceFactory, SyncSession
from .views import GridView, build_grid_view, search_blocks

__all__ = [
    "GridView",
    "NoCredentialError",
    "SessionStatus",
    "SourceFactory",
    "SyncSession",
    "build_grid_view",
    "search_blocks",
]
