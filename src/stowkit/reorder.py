"""Reorder block-structured sheets by stowage position.

``BlockReorderer`` handles one grid plus a ready ``container -> stowage``
map.  ``StowageSorter`` is the end-to-end entry point: it builds the map
from a reference workbook (every usable sheet, first occurrence wins),
picks the target sheet and runs the reorderer on it.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from stowkit.blocks import BlockExtractor
from stowkit.config import StowkitConfig
from stowkit.errors import (
    BlockIntegrityViolation,
    ErrorCode,
    StowError,
    StructureError,
)
from stowkit.grids import copy_grid
from stowkit.injector import BlockInjector
from stowkit.models import (
    BlockAudit,
    Grid,
    InjectionResult,
    ReorderResult,
    SemanticRole,
    StowageRunResult,
)
from stowkit.ordering import format_stowage, key_blocks, sort_blocks
from stowkit.protocols import SemanticClassifier
from stowkit.selector import SheetSelector

logger = logging.getLogger("stowkit")


# ---------------------------------------------------------------------------
# Single-grid reorderer
# ---------------------------------------------------------------------------


class BlockReorderer:
    """Injects stowage into every block of a grid and sorts the blocks."""

    def __init__(self, config: StowkitConfig | None = None) -> None:
        self._config = config or StowkitConfig()
        self._extractor = BlockExtractor(self._config)
        self._injector = BlockInjector(self._config)

    def reorder(
        self,
        grid: Sequence[Sequence[Any]],
        stowage_map: Mapping[str, Any],
        container_column: int | None = None,
        sheet_id: str | None = None,
    ) -> ReorderResult:
        """Return a reordered copy of *grid*; *grid* itself is not modified.

        Header rows stay first and tail rows last; blocks are sorted by
        stowage key, blocks without stowage last in their original order.

        Raises:
            BlockIntegrityViolation: If the layout or the rebuilt grid does
                not account for every source row exactly once.
        """
        layout = self._extractor.extract(grid, container_column)
        rows = copy_grid(grid)
        warnings: list[StowError] = []

        keyed = key_blocks(layout.blocks, stowage_map)
        injected: dict[int, InjectionResult | None] = {}
        seen: set[str] = set()
        for entry in keyed:
            block = entry.block
            if block.container_id in seen:
                warnings.append(
                    StowError(
                        code=ErrorCode.W_DUPLICATE_CONTAINER,
                        message=f"Container {block.container_id} appears in more than one block",
                        sheet_id=sheet_id,
                        stage="reorder",
                        recoverable=True,
                    )
                )
            seen.add(block.container_id)

            if entry.stowage is None:
                warnings.append(
                    StowError(
                        code=ErrorCode.W_STOWAGE_MISSING,
                        message=f"No stowage position for {block.container_id}",
                        sheet_id=sheet_id,
                        stage="reorder",
                        recoverable=True,
                    )
                )
                continue

            result = self._injector.inject(rows, block, format_stowage(entry.stowage))
            injected[block.start_row] = result
            if result is None:
                warnings.append(
                    StowError(
                        code=ErrorCode.W_INJECTION_SKIPPED,
                        message=f"No cell to write the stowage of {block.container_id} into",
                        sheet_id=sheet_id,
                        stage="reorder",
                        recoverable=True,
                    )
                )

        ordered = sort_blocks(keyed)
        output: Grid = list(rows[: layout.header_end])
        audit: list[BlockAudit] = []
        for entry in ordered:
            block = entry.block
            output.extend(rows[block.start_row : block.end_row])
            result = injected.get(block.start_row)
            audit.append(
                BlockAudit(
                    container_id=block.container_id,
                    resolved_key=entry.key,
                    stowage=entry.stowage,
                    injected=result is not None,
                    strategy=result.strategy if result is not None else None,
                    source_start_row=block.start_row,
                    source_end_row=block.end_row,
                )
            )
        output.extend(rows[layout.tail_start :])

        if len(output) != len(grid):
            raise BlockIntegrityViolation(
                code=ErrorCode.E_BLOCK_INTEGRITY,
                message=(
                    f"Reordered grid has {len(output)} rows, source has {len(grid)}"
                ),
                sheet_id=sheet_id,
                stage="reorder",
            )

        result_model = ReorderResult(
            rows=output,
            audit=audit,
            header_row_count=layout.header_row_count,
            tail_row_count=layout.tail_row_count,
            warnings=warnings,
        )
        logger.info("%s (sheet=%s)", result_model.summary(), sheet_id)
        return result_model


# ---------------------------------------------------------------------------
# End-to-end sorter
# ---------------------------------------------------------------------------


class StowageSorter:
    """Sorts a block-structured target sheet using a reference stowage list."""

    def __init__(
        self,
        config: StowkitConfig | None = None,
        classifier: SemanticClassifier | None = None,
    ) -> None:
        self._config = config or StowkitConfig()
        self._selector = SheetSelector(self._config, classifier)
        self._reorderer = BlockReorderer(self._config)

    def run(
        self,
        reference_sheets: Mapping[str, Sequence[Sequence[Any]]],
        target_sheets: Mapping[str, Sequence[Sequence[Any]]],
        target_sheet_id: str | None = None,
    ) -> StowageRunResult:
        """Build the stowage map and reorder the target sheet.

        Args:
            reference_sheets: Sheets of the list that carries container IDs
                and stowage positions.
            target_sheets: Sheets of the block-structured document.
            target_sheet_id: Sheet to reorder; defaults to the first sheet.

        Raises:
            StructureError: If the target sheet does not exist or the
                reference has no usable sheet.
            NoRoleAssigned: If no reference sheet has a stowage column.
            BlockIntegrityViolation: If the target cannot be partitioned.
        """
        reference = self._selector.extract_values(reference_sheets, SemanticRole.STOWAGE)

        if target_sheet_id is None:
            if not target_sheets:
                raise StructureError(
                    code=ErrorCode.E_NO_VALID_SHEET,
                    message="Target workbook has no sheets",
                    stage="reorder",
                )
            target_sheet_id = next(iter(target_sheets))
        if target_sheet_id not in target_sheets:
            raise StructureError(
                code=ErrorCode.E_NO_VALID_SHEET,
                message=f"Target sheet '{target_sheet_id}' not found",
                sheet_id=target_sheet_id,
                stage="reorder",
            )
        grid = target_sheets[target_sheet_id]

        candidate = self._selector.evaluate(target_sheet_id, grid)
        container_column = (
            candidate.assignment.column_for(SemanticRole.CONTAINER_ID)
            if candidate.is_valid and candidate.assignment is not None
            else None
        )

        reorder = self._reorderer.reorder(
            grid, reference.values, container_column, sheet_id=target_sheet_id
        )
        return StowageRunResult(
            stowage_map=reference.values,
            reference=reference,
            target_sheet_id=target_sheet_id,
            reorder=reorder,
        )
