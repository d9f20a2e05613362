"""Read-side views over the store: text search and the grid view model."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from hash_trend.chain import BlockRecord, ClassificationAxis
from hash_trend.grid import GridCell, GridStats, build_grid, grid_stats
from hash_trend.types import StrictBaseModel


def search_blocks(blocks: Iterable[BlockRecord], query: str) -> list[BlockRecord]:
    """
    Keep blocks whose height or hash contains the query.

    Height matching is a substring match on the decimal height; hash matching
    ignores case. A blank query keeps everything.
    """
    needle = query.strip().lower()
    if not needle:
        return list(blocks)
    return [
        block
        for block in blocks
        if needle in str(block.height) or needle in block.hash.lower()
    ]


class GridView(StrictBaseModel):
    """A bead plate together with its legend."""

    axis: ClassificationAxis
    """Classification shown in the cells."""

    rows: int
    """Cells per column."""

    columns: list[list[GridCell]]
    """Column-major cells, oldest block first."""

    stats: GridStats
    """Per-classification block counts."""


def build_grid_view(
    sampled_newest_first: Sequence[BlockRecord],
    axis: ClassificationAxis,
    rows: int,
) -> GridView:
    """
    Build the plate for a sampled view.

    Sampled views are newest first, like the store. The plate wants the
    oldest block first, so the sequence is reversed here.
    """
    ascending = list(reversed(sampled_newest_first))
    return GridView(
        axis=axis,
        rows=rows,
        columns=build_grid(ascending, axis, rows),
        stats=grid_stats(ascending, axis),
    )
