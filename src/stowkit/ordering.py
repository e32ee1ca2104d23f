"""Stowage key derivation and stable block ordering."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from stowkit.cells import as_cell
from stowkit.models import Block, KeyedBlock
from stowkit.patterns import parse_verbal_stowage

MISSING_STOWAGE_KEY = "ZZZZZZ"
KEY_LENGTH = 6


def derive_stowage_key(value: Any) -> str:
    """Normalize a stowage value to a 6-character sort key.

    Verbal positions use their canonical digits; anything else keeps its
    digits, left-padded with zeros or truncated to six.  Empty values and
    values without digits map to ``ZZZZZZ`` so they sort last.

    >>> derive_stowage_key("12.34.56")
    '123456'
    >>> derive_stowage_key(None)
    'ZZZZZZ'
    """
    cell = as_cell(value)
    if cell.is_empty:
        return MISSING_STOWAGE_KEY
    position = parse_verbal_stowage(cell)
    digits = position.digits if position is not None else re.sub(r"\D", "", cell.text)
    if not digits:
        return MISSING_STOWAGE_KEY
    if len(digits) > KEY_LENGTH:
        return digits[:KEY_LENGTH]
    return digits.zfill(KEY_LENGTH)


def format_stowage(value: Any) -> str:
    """Display form of a stowage value: its 6-digit key, or "" when missing."""
    key = derive_stowage_key(value)
    return "" if key == MISSING_STOWAGE_KEY else key


def key_blocks(
    blocks: Sequence[Block], stowage_map: Mapping[str, Any]
) -> list[KeyedBlock]:
    """Attach the stowage value and key of every block's container.

    Values that yield no key (blank, or text without digits) are dropped so
    the block counts as having no stowage.
    """
    keyed: list[KeyedBlock] = []
    for block in blocks:
        stowage = stowage_map.get(block.container_id)
        key = derive_stowage_key(stowage)
        if key == MISSING_STOWAGE_KEY:
            stowage = None
        keyed.append(KeyedBlock(block=block, key=key, stowage=stowage))
    return keyed


def sort_blocks(keyed: Iterable[KeyedBlock]) -> list[KeyedBlock]:
    """Stable lexicographic sort on the key; equal keys keep input order."""
    return sorted(keyed, key=lambda kb: kb.key)
