"""Tests for stowage key derivation and block sorting."""

from __future__ import annotations

import datetime

import pytest

from stowkit.models import Block
from stowkit.ordering import (
    MISSING_STOWAGE_KEY,
    derive_stowage_key,
    format_stowage,
    key_blocks,
    sort_blocks,
)


def _block(container_id: str, start: int) -> Block:
    return Block(container_id=container_id, start_row=start, end_row=start + 1, anchor_column=0)


class TestDeriveStowageKey:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("12.34.56", "123456"),
            ("12 34 56", "123456"),
            ("012-34-56", "012345"),
            ("10282", "010282"),
            (10282, "010282"),
            (123456.0, "123456"),
            ("Bay 12 Row 04 Tier 82", "120482"),
            ("Hold 3 Row 1 Tier 2", "030102"),
            ("  01.02.03 ", "010203"),
            ("120.04.82", "120048"),
        ],
    )
    def test_keys(self, value: object, expected: str) -> None:
        assert derive_stowage_key(value) == expected

    @pytest.mark.parametrize("value", [None, "", "   ", "on deck", float("nan")])
    def test_missing_values_sort_last(self, value: object) -> None:
        assert derive_stowage_key(value) == MISSING_STOWAGE_KEY

    def test_keys_are_always_six_characters(self) -> None:
        for value in ["1", "1234567890", "12.34.56", None, datetime.date(2024, 1, 5)]:
            assert len(derive_stowage_key(value)) == 6

    @pytest.mark.parametrize("value", ["12.34.56", "Bay 1 Row 2 Tier 3", "7", "", None])
    def test_derive_is_idempotent_through_display_form(self, value: object) -> None:
        key = derive_stowage_key(value)
        assert derive_stowage_key(format_stowage(value)) == key


class TestFormatStowage:
    def test_display_form_is_zero_padded_key(self) -> None:
        assert format_stowage("1.2.3") == "000123"
        assert format_stowage("01.02.82") == "010282"

    def test_missing_stowage_formats_empty(self) -> None:
        assert format_stowage(None) == ""


class TestSortBlocks:
    def test_sorted_by_key_missing_last(self) -> None:
        blocks = [_block("B", 0), _block("C", 1), _block("A", 2)]
        keyed = key_blocks(blocks, {"A": "01.02.03", "B": "02.01.05"})
        ordered = sort_blocks(keyed)

        assert [kb.key for kb in ordered] == ["010203", "020105", "ZZZZZZ"]
        assert [kb.block.container_id for kb in ordered] == ["A", "B", "C"]

    def test_equal_keys_keep_input_order(self) -> None:
        blocks = [_block("X", 0), _block("Y", 1), _block("Z", 2), _block("W", 3)]
        keyed = key_blocks(blocks, {"X": "05.01.01", "Z": "05.01.01", "W": "01.01.01"})
        ordered = sort_blocks(keyed)
        assert [kb.block.container_id for kb in ordered] == ["W", "X", "Z", "Y"]

    def test_blank_stowage_counts_as_missing(self) -> None:
        (keyed,) = key_blocks([_block("A", 0)], {"A": "  "})
        assert keyed.stowage is None
        assert keyed.key == MISSING_STOWAGE_KEY

    @pytest.mark.parametrize("value", ["TBA", "N/A", "on deck"])
    def test_stowage_without_digits_counts_as_missing(self, value: str) -> None:
        (keyed,) = key_blocks([_block("A", 0)], {"A": value})
        assert keyed.stowage is None
        assert keyed.key == MISSING_STOWAGE_KEY

    def test_sorting_is_deterministic(self) -> None:
        blocks = [_block(f"C{i}", i) for i in range(6)]
        stowage = {"C1": "3", "C3": "1", "C4": "3"}
        first = [kb.block.container_id for kb in sort_blocks(key_blocks(blocks, stowage))]
        second = [kb.block.container_id for kb in sort_blocks(key_blocks(blocks, stowage))]
        assert first == second == ["C3", "C1", "C4", "C0", "C2", "C5"]
