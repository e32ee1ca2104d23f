"""Grid helpers and in-memory adapters.

A grid is a list of rows of raw scalars.  Rows may be ragged; a cell past
the end of a row is empty.  The adapters turn an already-loaded
``pandas.DataFrame`` or ``openpyxl`` worksheet into a grid; opening files
is left to the caller.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import pandas as pd
from openpyxl.worksheet.worksheet import Worksheet

from stowkit.cells import is_blank
from stowkit.models import Grid


def cell_at(grid: Sequence[Sequence[Any]], row: int, column: int) -> Any:
    """Return the raw value at (*row*, *column*), None when out of range."""
    if row < 0 or row >= len(grid) or column < 0:
        return None
    values = grid[row]
    return values[column] if column < len(values) else None


def grid_width(grid: Sequence[Sequence[Any]]) -> int:
    return max((len(row) for row in grid), default=0)


def is_blank_row(row: Sequence[Any]) -> bool:
    return all(is_blank(value) for value in row)


def copy_grid(grid: Sequence[Sequence[Any]]) -> Grid:
    """Shallow-copy every row so cells can be written without touching *grid*."""
    return [list(row) for row in grid]


def column_samples(
    grid: Sequence[Sequence[Any]],
    start_row: int,
    limit: int,
) -> list[list[str]]:
    """Collect up to *limit* non-empty sample strings per column from *start_row*."""
    samples: list[list[str]] = [[] for _ in range(grid_width(grid))]
    for row in grid[max(0, start_row):]:
        for col, value in enumerate(row):
            if len(samples[col]) < limit and not is_blank(value):
                samples[col].append(str(value).strip())
        if all(len(column) >= limit for column in samples):
            break
    return samples


# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------


def _dataframe_value(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    if hasattr(value, "item"):
        # numpy scalar -> python scalar
        return value.item()
    return value


def grid_from_dataframe(df: pd.DataFrame, include_header: bool = True) -> Grid:
    """Convert a DataFrame into a grid.

    Args:
        df: Frame as read by ``pd.read_excel(..., header=None)`` or with a
            header row already parsed into ``df.columns``.
        include_header: Emit ``df.columns`` as the first row.

    Returns:
        The grid, with NaN/NaT mapped to None and Timestamps to datetimes.
    """
    grid: Grid = []
    if include_header:
        grid.append([_dataframe_value(column) for column in df.columns])
    for record in df.itertuples(index=False, name=None):
        grid.append([_dataframe_value(value) for value in record])
    return grid


def grid_from_worksheet(ws: Worksheet, fill_merged: bool = True) -> Grid:
    """Convert a loaded openpyxl worksheet into a grid.

    Args:
        ws: The worksheet (loaded without ``read_only``).
        fill_merged: Copy the top-left value of every merged range into all
            of its cells, so merged banners read as uniform rows.

    Returns:
        The grid of cell values.
    """
    grid: Grid = [list(row) for row in ws.iter_rows(min_row=1, min_col=1, values_only=True)]
    if not fill_merged:
        return grid
    for merged in ws.merged_cells.ranges:
        min_col, min_row, max_col, max_row = merged.bounds
        value = ws.cell(row=min_row, column=min_col).value
        for row_index in range(min_row - 1, max_row):
            if row_index >= len(grid):
                break
            row = grid[row_index]
            for col_index in range(min_col - 1, max_col):
                while len(row) <= col_index:
                    row.append(None)
                row[col_index] = value
    return grid
