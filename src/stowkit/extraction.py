"""Container -> value maps for an assigned role."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

from stowkit.grids import cell_at
from stowkit.models import RoleAssignment, SemanticRole
from stowkit.patterns import detect_container_id, normalize_role_value


def extract_role_values(
    grid: Sequence[Sequence[Any]],
    assignment: RoleAssignment,
    data_start_row: int,
    role: SemanticRole,
) -> dict[str, Any]:
    """Read ``container_id -> value`` for *role* from the data rows of a sheet.

    Rows without a container ID in the container column, or without a usable
    value in the role column, are skipped.  The first occurrence of a
    container wins.
    """
    id_column = assignment.column_for(SemanticRole.CONTAINER_ID)
    value_column = assignment.column_for(role)
    if id_column is None or value_column is None:
        return {}

    values: dict[str, Any] = {}
    for row_index in range(max(0, data_start_row), len(grid)):
        container_id = detect_container_id(cell_at(grid, row_index, id_column))
        if container_id is None or container_id in values:
            continue
        value = normalize_role_value(role, cell_at(grid, row_index, value_column))
        if value is None:
            continue
        values[container_id] = value
    return values


def merge_value_maps(maps: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Merge maps in order; the first map that mentions a container wins."""
    merged: dict[str, Any] = {}
    for values in maps:
        for container_id, value in values.items():
            merged.setdefault(container_id, value)
    return merged
