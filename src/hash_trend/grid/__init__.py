"""Grid layouts built from a sampled block sequence."""

from .bead_plate import DEFAULT_ROWS, EMPTY_CELL, GridCell, GridStats, build_grid, grid_stats

__all__ = [
    "DEFAULT_ROWS",
    "EMPTY_CELL",
    "GridCell",
    "GridStats",
    "build_grid",
    "grid_stats",
]
