"""Tagged cell values.

Grids arrive with whatever scalars the loader produced: strings, ints,
floats (including NaN), datetimes, ``None``.  Every validator works on a
``Cell`` so the kind of a value is decided once, here.
"""

from __future__ import annotations

import datetime as dt
import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any


class CellKind(str, Enum):
    """Kind of a grid cell after normalization."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    EMPTY = "empty"


@dataclass(frozen=True)
class Cell:
    """A grid value tagged with its kind.

    ``raw`` keeps the original scalar untouched; ``text`` is the stripped
    string rendering used by the pattern library.
    """

    kind: CellKind
    raw: Any = None
    number: float | None = None

    @property
    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY

    @property
    def text(self) -> str:
        if self.kind is CellKind.EMPTY:
            return ""
        if self.kind is CellKind.NUMBER:
            return _format_number(self.number)
        if self.kind is CellKind.DATE:
            return self.raw.isoformat()
        return str(self.raw).strip()


EMPTY_CELL = Cell(CellKind.EMPTY)


def _format_number(value: float | None) -> str:
    if value is None:
        return ""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def as_cell(value: Any) -> Cell:
    """Tag a raw grid value with its ``CellKind``.

    ``None``, blank strings and NaN are empty.  Booleans are treated as
    text so ``True`` never reads as the number 1.
    """
    if isinstance(value, Cell):
        return value
    if value is None:
        return EMPTY_CELL
    if isinstance(value, bool):
        return Cell(CellKind.TEXT, raw=str(value))
    if isinstance(value, numbers.Real):
        number = float(value)
        if math.isnan(number) or math.isinf(number):
            return EMPTY_CELL
        return Cell(CellKind.NUMBER, raw=value, number=number)
    if isinstance(value, (dt.datetime, dt.date)):
        # pandas.Timestamp subclasses datetime; NaT does not compare equal
        # to itself.
        if value != value:
            return EMPTY_CELL
        return Cell(CellKind.DATE, raw=value)
    text = str(value)
    if not text.strip():
        return EMPTY_CELL
    return Cell(CellKind.TEXT, raw=value)


def cell_text(value: Any) -> str:
    """Return the stripped string rendering of *value* ("" when empty)."""
    return as_cell(value).text


def is_blank(value: Any) -> bool:
    """Return True when *value* is an empty cell."""
    return as_cell(value).is_empty
