"""
Bead plate: fixed-row, growing-column grid of classified blocks.

Layout
------
Blocks are packed oldest first, top to bottom, then left to right::

    rows = 3, blocks b0..b7 (oldest first)

    col 0   col 1   col 2
    b0      b3      b6
    b1      b4      b7
    b2      b5      --

Block `i` lands in column `i // rows`, row `i % rows`. The last column may
be partially filled; its remaining cells are empty.

This is plain pagination. Runs of equal classifications are not grouped
into columns (that would be a streak or "big road" layout, a different
algorithm).
"""

from __future__ import annotations

from collections.abc import Sequence

from pydantic import Field

from hash_trend.chain import BlockRecord, BlockType, ClassificationAxis, SizeType
from hash_trend.types import StrictBaseModel

DEFAULT_ROWS = 6
"""Rows of the plate unless a caller asks otherwise."""


class GridCell(StrictBaseModel):
    """One position of the plate."""

    type: BlockType | SizeType | None = None
    """Classification of the block at this position, None if empty."""

    value: int | None = None
    """Result value of the block at this position, None if empty."""

    @property
    def is_empty(self) -> bool:
        """Check if no block occupies this position."""
        return self.type is None


EMPTY_CELL = GridCell()
"""Cell for positions past the end of the data."""


class GridStats(StrictBaseModel):
    """Legend counts of a plate: how many blocks carry each classification."""

    axis: ClassificationAxis
    """Axis the counts were taken on."""

    counts: dict[str, int] = Field(default_factory=dict)
    """Block count per classification value, both values always present."""

    @property
    def total(self) -> int:
        """Number of classified blocks."""
        return sum(self.counts.values())


def build_grid(
    blocks: Sequence[BlockRecord],
    axis: ClassificationAxis,
    rows: int = DEFAULT_ROWS,
) -> list[list[GridCell]]:
    """
    Lay blocks out column by column.

    Args:
        blocks: Blocks in ascending height order (oldest first).
        axis: Classification carried into each cell.
        rows: Cells per column.

    Returns:
        `ceil(len(blocks) / rows)` columns of exactly `rows` cells each.
        Column 0 starts with the oldest block.

    Raises:
        ValueError: If `rows` is not positive.
    """
    if rows <= 0:
        raise ValueError(f"Grid needs at least one row, got {rows}")

    columns: list[list[GridCell]] = []
    for i, block in enumerate(blocks):
        if i % rows == 0:
            columns.append([EMPTY_CELL] * rows)
        columns[i // rows][i % rows] = GridCell(type=block.classify(axis), value=block.result_value)

    return columns


def grid_stats(blocks: Sequence[BlockRecord], axis: ClassificationAxis) -> GridStats:
    """Count blocks per classification value on the axis."""
    counts = {value.value: 0 for value in axis.values}
    for block in blocks:
        counts[block.classify(axis).value] += 1
    return GridStats(axis=axis, counts=counts)
