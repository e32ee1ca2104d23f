"""Writes a block's resolved stowage position back into the block."""

from __future__ import annotations

import logging
from typing import Any

from stowkit.cells import cell_text, is_blank
from stowkit.config import StowkitConfig
from stowkit.models import Block, Grid, InjectionResult, InjectionStrategy
from stowkit.patterns import is_stowage, is_stowage_shaped

logger = logging.getLogger("stowkit")


def _normalize_label(value: Any) -> str:
    return " ".join(cell_text(value).split()).upper()


class BlockInjector:
    """Places a stowage value into exactly one cell of a block.

    The target cell is the first that applies of:

    1. a stowage cell, or the anchor neighbour, already holding the value
       (re-running is a no-op),
    2. the first stowage-shaped cell (``12.34.56``),
    3. the neighbour of an anchor label such as ``(5) PROBE 3`` (left of it,
       or right when the label sits in the first column),
    4. the first empty cell within the first ``injection_prefix_rows`` rows.
    """

    def __init__(self, config: StowkitConfig | None = None) -> None:
        self._config = config or StowkitConfig()
        self._anchors = {
            _normalize_label(label) for label in self._config.injection_anchor_labels
        }

    def inject(self, rows: Grid, block: Block, value: str) -> InjectionResult | None:
        """Write *value* into the block, mutating *rows* in place.

        Args:
            rows: A mutable copy of the grid.
            block: The block to write into.
            value: Display form of the stowage position; nothing is written
                when it is empty.

        Returns:
            Where the value went, or None when no cell qualified.
        """
        if not value:
            return None

        located = (
            self._find_existing(rows, block, value)
            or self._find_stowage_cell(rows, block)
            or self._find_anchor_neighbour(rows, block)
            or self._find_empty_cell(rows, block)
        )
        if located is None:
            logger.debug("No injection target in block %s", block.container_id)
            return None

        row_index, column, strategy = located
        row = rows[row_index]
        while len(row) <= column:
            row.append(None)
        previous = row[column]
        row[column] = value
        return InjectionResult(
            row=row_index, column=column, strategy=strategy, previous_value=previous
        )

    # -- internal helpers ----------------------------------------------------

    def _find_existing(
        self, rows: Grid, block: Block, value: str
    ) -> tuple[int, int, InjectionStrategy] | None:
        for row_index in range(block.start_row, block.end_row):
            for column, cell in enumerate(rows[row_index]):
                if cell_text(cell) == value and is_stowage(cell):
                    return row_index, column, InjectionStrategy.EXISTING_VALUE
        anchored = self._find_anchor_neighbour(rows, block)
        if anchored is not None:
            row_index, column, _ = anchored
            row = rows[row_index]
            if column < len(row) and cell_text(row[column]) == value:
                return row_index, column, InjectionStrategy.EXISTING_VALUE
        return None

    def _find_stowage_cell(
        self, rows: Grid, block: Block
    ) -> tuple[int, int, InjectionStrategy] | None:
        for row_index in range(block.start_row, block.end_row):
            for column, cell in enumerate(rows[row_index]):
                if is_stowage_shaped(cell):
                    return row_index, column, InjectionStrategy.STOWAGE_CELL
        return None

    def _find_anchor_neighbour(
        self, rows: Grid, block: Block
    ) -> tuple[int, int, InjectionStrategy] | None:
        if not self._anchors:
            return None
        for row_index in range(block.start_row, block.end_row):
            for column, cell in enumerate(rows[row_index]):
                if _normalize_label(cell) in self._anchors:
                    target = column - 1 if column > 0 else column + 1
                    return row_index, target, InjectionStrategy.ANCHOR
        return None

    def _find_empty_cell(
        self, rows: Grid, block: Block
    ) -> tuple[int, int, InjectionStrategy] | None:
        end = min(block.end_row, block.start_row + self._config.injection_prefix_rows)
        for row_index in range(block.start_row, end):
            for column, cell in enumerate(rows[row_index]):
                if is_blank(cell):
                    return row_index, column, InjectionStrategy.EMPTY_CELL
        return None
