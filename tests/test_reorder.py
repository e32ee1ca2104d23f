"""Tests for BlockReorderer and the end-to-end StowageSorter."""

from __future__ import annotations

from typing import Any

import pytest

from conftest import valid_container_id
from stowkit.config import StowkitConfig
from stowkit.errors import ErrorCode, NoRoleAssigned, StructureError
from stowkit.models import InjectionStrategy
from stowkit.reorder import BlockReorderer, StowageSorter


@pytest.fixture()
def stowage_map(container_ids: list[str]) -> dict[str, str]:
    return {cid: f"{i + 1:02d}.02.82" for i, cid in enumerate(container_ids)}


def _anchor_ids(rows: list[list[Any]], start: int, end: int) -> list[Any]:
    return [rows[index][0] for index in range(start, end, 3)]


# ---------------------------------------------------------------------------
# BlockReorderer
# ---------------------------------------------------------------------------


class TestBlockReorderer:
    def test_blocks_sorted_with_header_and_tail_in_place(
        self,
        block_sheet: list[list[Any]],
        container_ids: list[str],
        stowage_map: dict[str, str],
        signed_tail_config: StowkitConfig,
    ) -> None:
        result = BlockReorderer(signed_tail_config).reorder(
            block_sheet, stowage_map, container_column=0
        )

        assert len(result.rows) == len(block_sheet)
        assert result.rows[:2] == block_sheet[:2]
        assert result.rows[-3:] == block_sheet[-3:]
        assert _anchor_ids(result.rows, 2, 11) == container_ids[:3]
        assert result.header_row_count == 2
        assert result.tail_row_count == 3

    def test_audit_lists_every_block_in_output_order(
        self,
        block_sheet: list[list[Any]],
        container_ids: list[str],
        stowage_map: dict[str, str],
        signed_tail_config: StowkitConfig,
    ) -> None:
        result = BlockReorderer(signed_tail_config).reorder(block_sheet, stowage_map)

        assert [a.container_id for a in result.audit] == container_ids[:3]
        assert [a.resolved_key for a in result.audit] == ["010282", "020282", "030282"]
        assert all(a.injected for a in result.audit)
        assert {a.strategy for a in result.audit} == {InjectionStrategy.ANCHOR}
        assert [(a.source_start_row, a.source_end_row) for a in result.audit] == [
            (5, 8),
            (8, 11),
            (2, 5),
        ]

    def test_stowage_written_next_to_probe_label(
        self,
        block_sheet: list[list[Any]],
        stowage_map: dict[str, str],
        signed_tail_config: StowkitConfig,
    ) -> None:
        result = BlockReorderer(signed_tail_config).reorder(block_sheet, stowage_map)
        assert result.rows[3] == ["010282", "(5) PROBE 3", "1.2"]
        assert result.rows[9] == ["030282", "(5) PROBE 3", "1.1"]

    def test_source_grid_is_untouched(
        self, block_sheet: list[list[Any]], stowage_map: dict[str, str]
    ) -> None:
        snapshot = [list(row) for row in block_sheet]
        BlockReorderer().reorder(block_sheet, stowage_map)
        assert block_sheet == snapshot

    def test_empty_map_keeps_grid_unchanged(self, block_sheet: list[list[Any]]) -> None:
        result = BlockReorderer().reorder(block_sheet, {})
        assert result.rows == block_sheet
        assert result.matched == 0
        assert result.missing == 3

    def test_missing_stowage_sorts_last_in_source_order(
        self, block_sheet: list[list[Any]], container_ids: list[str]
    ) -> None:
        result = BlockReorderer().reorder(block_sheet, {container_ids[0]: "05.01.01"})

        assert _anchor_ids(result.rows, 2, 11) == [
            container_ids[0],
            container_ids[2],
            container_ids[1],
        ]
        missing = [w for w in result.warnings if w.code == ErrorCode.W_STOWAGE_MISSING]
        assert len(missing) == 2
        assert result.summary() == (
            "Sorted 3 container blocks: 1 matched to a stowage position, "
            "2 without stowage (placed last)."
        )

    def test_placeholder_stowage_counts_as_missing(
        self, block_sheet: list[list[Any]], container_ids: list[str]
    ) -> None:
        stowage = {container_ids[0]: "TBA", container_ids[1]: "01.01.01"}
        result = BlockReorderer().reorder(block_sheet, stowage)

        assert result.matched == 1
        missing = [w for w in result.warnings if w.code == ErrorCode.W_STOWAGE_MISSING]
        assert len(missing) == 2
        assert [a.container_id for a in result.audit][0] == container_ids[1]

    def test_trailing_rows_move_with_last_block_by_default(
        self,
        block_sheet: list[list[Any]],
        container_ids: list[str],
        stowage_map: dict[str, str],
    ) -> None:
        result = BlockReorderer().reorder(block_sheet, stowage_map)

        assert result.tail_row_count == 0
        assert [a.container_id for a in result.audit] == container_ids[:3]
        assert result.rows[5][0] == container_ids[1]
        assert result.rows[10] == ["Signed", "Inspector", None]
        assert result.rows[11][0] == container_ids[2]

    def test_blocks_with_double_blank_spacers_move_whole(self) -> None:
        late = valid_container_id("TRLU", 20)
        early = valid_container_id("TRLU", 10)
        grid: list[list[Any]] = [
            ["Container", "Reading"],
            [late, None],
            [None, "late r1"],
            [None, None],
            [None, None],
            [None, "late r2"],
            [early, None],
            [None, "early r1"],
            [None, None],
            [None, None],
            [None, "early r2"],
        ]
        result = BlockReorderer().reorder(grid, {early: "010101", late: "020101"})

        assert [row[0] for row in result.rows[1:7:5]] == [early, late]
        assert result.rows[5][1] == "early r2"
        assert result.rows[-1][1] == "late r2"
        assert len(result.rows) == len(grid)

    def test_duplicate_container_warns(self) -> None:
        cid = valid_container_id("TRLU", 3)
        grid: list[list[Any]] = [[cid, None], [cid, None]]
        result = BlockReorderer().reorder(grid, {cid: "01.01.01"})
        codes = [w.code for w in result.warnings]
        assert codes.count(ErrorCode.W_DUPLICATE_CONTAINER) == 1
        assert len(result.rows) == 2

    def test_block_without_target_cell_is_reported(self) -> None:
        cid = valid_container_id("TRLU", 4)
        grid: list[list[Any]] = [["Container", "Remark"], [cid, "x"]]
        result = BlockReorderer().reorder(grid, {cid: "01.01.01"})

        assert result.rows == grid
        assert result.audit[0].injected is False
        assert result.audit[0].strategy is None
        assert [w.code for w in result.warnings] == [ErrorCode.W_INJECTION_SKIPPED]


# ---------------------------------------------------------------------------
# StowageSorter
# ---------------------------------------------------------------------------


class TestStowageSorter:
    def test_end_to_end(
        self,
        stowage_sheet: list[list[Any]],
        block_sheet: list[list[Any]],
        container_ids: list[str],
    ) -> None:
        result = StowageSorter(StowkitConfig(tail_blank_row_gap=2)).run(
            {"Bayplan": stowage_sheet}, {"Cold Treatment": block_sheet}
        )

        assert result.target_sheet_id == "Cold Treatment"
        assert len(result.stowage_map) == 12
        assert result.reference.sheets_used == ["Bayplan"]
        assert _anchor_ids(result.reorder.rows, 2, 11) == container_ids[:3]
        assert result.reorder.matched == 3

    def test_named_target_sheet(
        self, stowage_sheet: list[list[Any]], block_sheet: list[list[Any]]
    ) -> None:
        targets = {"Cover": [["Cover page"]], "Readings": block_sheet}
        result = StowageSorter().run({"Bayplan": stowage_sheet}, targets, "Readings")
        assert result.target_sheet_id == "Readings"
        assert result.reorder.total_blocks == 3

    def test_unknown_target_sheet(
        self, stowage_sheet: list[list[Any]], block_sheet: list[list[Any]]
    ) -> None:
        with pytest.raises(StructureError) as exc_info:
            StowageSorter().run({"Bayplan": stowage_sheet}, {"A": block_sheet}, "B")
        assert exc_info.value.message == "Target sheet 'B' not found"

    def test_reference_without_stowage_column(self, block_sheet: list[list[Any]]) -> None:
        reference: list[list[Any]] = [["Container", "Temp Set"]]
        reference.extend([valid_container_id("TRLU", i), "-18"] for i in range(4))
        with pytest.raises(NoRoleAssigned):
            StowageSorter().run({"Reefers": reference}, {"Target": block_sheet})
