"""Block extraction for block-structured sheets.

In a block-structured sheet every container occupies a run of rows: the
first row carries the container ID, the following rows carry readings,
labels and remarks.  The extractor splits such a sheet into the rows before
the first container (header rows), one block per container, and, when tail
detection is enabled, the rows after the last block (tail rows).
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from stowkit.config import StowkitConfig
from stowkit.grids import is_blank_row
from stowkit.models import Block, BlockLayout
from stowkit.patterns import find_container_id_in_row

logger = logging.getLogger("stowkit")


class BlockExtractor:
    """Partitions a grid into header rows, container blocks and tail rows."""

    def __init__(self, config: StowkitConfig | None = None) -> None:
        self._config = config or StowkitConfig()

    def extract(
        self,
        grid: Sequence[Sequence[Any]],
        container_column: int | None = None,
    ) -> BlockLayout:
        """Split *grid* into a verified ``BlockLayout``.

        A block starts at any row holding a container ID (in any column; the
        ID in *container_column* is preferred when the row has one there)
        and runs until the next such row.  The last block runs to the end of
        the grid unless ``tail_blank_row_gap`` is positive, in which case a
        run of that many blank rows inside it starts the tail.

        Raises:
            BlockIntegrityViolation: If the computed layout does not
                partition the grid.
        """
        row_count = len(grid)
        anchors: list[tuple[int, int, str]] = []
        for index, row in enumerate(grid):
            found = find_container_id_in_row(row, prefer_column=container_column)
            if found is not None:
                anchors.append((index, found[0], found[1]))

        if not anchors:
            logger.info("No container rows found; whole grid kept as header")
            layout = BlockLayout(
                row_count=row_count, header_end=row_count, tail_start=row_count
            )
            layout.verify()
            return layout

        blocks: list[Block] = []
        for position, (start, column, container_id) in enumerate(anchors):
            end = anchors[position + 1][0] if position + 1 < len(anchors) else row_count
            blocks.append(
                Block(
                    container_id=container_id,
                    start_row=start,
                    end_row=end,
                    anchor_column=column,
                )
            )

        last = blocks[-1]
        tail_start = self._find_tail_start(grid, last.start_row + 1, row_count)
        last.end_row = tail_start

        layout = BlockLayout(
            row_count=row_count,
            header_end=anchors[0][0],
            blocks=blocks,
            tail_start=tail_start,
        )
        layout.verify()
        logger.debug(
            "Block layout: %d header rows, %d blocks, %d tail rows",
            layout.header_row_count,
            len(blocks),
            layout.tail_row_count,
        )
        return layout

    def _find_tail_start(
        self, grid: Sequence[Sequence[Any]], first: int, row_count: int
    ) -> int:
        gap = self._config.tail_blank_row_gap
        if gap <= 0:
            return row_count
        run_start: int | None = None
        for index in range(first, row_count):
            if is_blank_row(grid[index]):
                if run_start is None:
                    run_start = index
                if index - run_start + 1 >= gap:
                    return run_start
            else:
                run_start = None
        return row_count
