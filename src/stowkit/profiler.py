"""Per-column content statistics.

``ColumnProfiler`` walks a bounded window of data rows once and records,
for every column, how many non-empty cells it has and how strongly those
cells match each semantic role according to the shared pattern library.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from stowkit.cells import as_cell
from stowkit.config import StowkitConfig
from stowkit.models import ColumnProfile, ContainerIdStatus, SemanticRole
from stowkit.patterns import classify_container_id, role_match_score

logger = logging.getLogger("stowkit")


class ColumnProfiler:
    """Computes ``ColumnProfile`` objects for a grid.

    Pure: the grid is only read, and the same grid always yields the same
    profiles.
    """

    def __init__(self, config: StowkitConfig | None = None) -> None:
        self._config = config or StowkitConfig()

    def profile(
        self,
        grid: Sequence[Sequence[Any]],
        start_row: int = 0,
        header_values: Sequence[str] | None = None,
    ) -> list[ColumnProfile]:
        """Profile every column over ``[start_row, start_row + profile_scan_rows)``.

        Args:
            grid: The sheet rows; ragged rows are allowed.
            start_row: First data row (the row after the header).
            header_values: Header texts to attach to the profiles.

        Returns:
            One profile per column, up to the widest scanned row (or header).
        """
        end_row = min(len(grid), start_row + self._config.profile_scan_rows)
        window = [grid[i] for i in range(max(0, start_row), end_row)]
        headers = list(header_values or [])
        width = max([len(row) for row in window] + [len(headers)], default=0)

        profiles = [
            ColumnProfile(
                column_index=col,
                header_text=headers[col] if col < len(headers) else "",
            )
            for col in range(width)
        ]

        for row in window:
            for col, value in enumerate(row):
                cell = as_cell(value)
                if cell.is_empty:
                    continue
                column = profiles[col]
                column.non_empty_count += 1
                for role in SemanticRole:
                    score = role_match_score(role, cell)
                    if score > 0.0:
                        column.match_counts[role] = column.match_counts.get(role, 0) + 1
                        column.match_scores[role] = column.match_scores.get(role, 0.0) + score
                if classify_container_id(cell) is ContainerIdStatus.VALID:
                    column.valid_container_count += 1

        logger.debug(
            "Profiled %d columns over rows %d-%d", width, start_row, end_row
        )
        return profiles
