"""Shared pattern library for cargo-list cell values.

Every function here is pure and total: malformed input (``None``, blanks,
NaN, dates, arbitrary text) yields "no match" and never raises.  The
profiler, the header locator, the block extractor and the injector all
consume this module so a value means the same thing everywhere.
"""

from __future__ import annotations

import re
import string
from collections.abc import Sequence
from typing import Any

from stowkit.cells import Cell, CellKind, as_cell
from stowkit.models import ContainerIdStatus, SemanticRole, StowagePosition

# ---------------------------------------------------------------------------
# Container IDs (ISO 6346)
# ---------------------------------------------------------------------------

_CONTAINER_ID_RE = re.compile(r"^[A-Z]{4}\d{7}$")
_PARTIAL_ID_RE = re.compile(r"^[A-Z]{4}\d{6}$")
_ID_SEPARATORS_RE = re.compile(r"[\s\-/.]")


def _letter_values() -> dict[str, int]:
    values: dict[str, int] = {}
    value = 10
    for letter in string.ascii_uppercase:
        if value % 11 == 0:
            value += 1
        values[letter] = value
        value += 1
    return values


LETTER_VALUES: dict[str, int] = _letter_values()


def normalize_container_id(value: Any) -> str:
    """Uppercase a text cell and drop whitespace, dashes, slashes and dots."""
    cell = as_cell(value)
    if cell.kind is not CellKind.TEXT:
        return ""
    return _ID_SEPARATORS_RE.sub("", cell.text.upper())


def compute_check_digit(prefix: str) -> int | None:
    """Compute the ISO 6346 check digit of a 4-letter + 6-digit prefix.

    Letters map to 10..38 skipping multiples of 11, each of the ten
    characters is weighted by ``2**position``, and the sum is reduced mod 11
    with a remainder of 10 mapped to 0.

    Returns:
        The check digit, or None when *prefix* is not 4 letters followed by
        6 digits.
    """
    if not isinstance(prefix, str):
        return None
    prefix = prefix.upper()
    if not re.fullmatch(r"[A-Z]{4}\d{6}", prefix):
        return None
    total = 0
    for position, char in enumerate(prefix):
        value = LETTER_VALUES[char] if char.isalpha() else int(char)
        total += value * (2**position)
    remainder = total % 11
    return 0 if remainder == 10 else remainder


def classify_container_id(value: Any) -> ContainerIdStatus:
    """Classify *value* as a valid, shape-only, partial, or non container ID."""
    text = normalize_container_id(value)
    if not text:
        return ContainerIdStatus.NONE
    if _CONTAINER_ID_RE.match(text):
        if compute_check_digit(text[:10]) == int(text[10]):
            return ContainerIdStatus.VALID
        return ContainerIdStatus.SHAPE_ONLY
    if _PARTIAL_ID_RE.match(text):
        return ContainerIdStatus.PARTIAL
    return ContainerIdStatus.NONE


def is_valid_container_id(value: Any) -> bool:
    """True only for the 11-character shape with a matching check digit."""
    return classify_container_id(value) is ContainerIdStatus.VALID


def detect_container_id(value: Any, relaxed: bool = False) -> str | None:
    """Return the normalized container ID carried by *value*, if any.

    Detection accepts any 11-character shape regardless of the check digit;
    use ``is_valid_container_id`` to report validity.  With ``relaxed`` the
    damaged 10-character form is detected as well.
    """
    status = classify_container_id(value)
    if status in (ContainerIdStatus.VALID, ContainerIdStatus.SHAPE_ONLY):
        return normalize_container_id(value)
    if relaxed and status is ContainerIdStatus.PARTIAL:
        return normalize_container_id(value)
    return None


def find_container_id_in_row(
    row: Sequence[Any],
    prefer_column: int | None = None,
    relaxed: bool = False,
) -> tuple[int, str] | None:
    """Find a container ID in *row*, preferring *prefer_column* when it has one.

    Returns:
        ``(column_index, container_id)`` or None.
    """
    if prefer_column is not None and 0 <= prefer_column < len(row):
        found = detect_container_id(row[prefer_column], relaxed=relaxed)
        if found:
            return prefer_column, found
    for index, value in enumerate(row):
        found = detect_container_id(value, relaxed=relaxed)
        if found:
            return index, found
    return None


# ---------------------------------------------------------------------------
# Temperatures
# ---------------------------------------------------------------------------

TEMPERATURE_RANGE = (-50.0, 60.0)
REEFER_BAND = (-30.0, 25.0)

_TEMPERATURE_RE = re.compile(
    r"^(?:temp(?:erature)?\s*[:=]?\s*)?"
    r"([-+]?\d+(?:[.,]\d+)?)\s*"
    r"(°\s*c?|º\s*c?|deg(?:rees)?\s*c?|celsius|c)?$",
    re.IGNORECASE,
)


def _temperature_reading(value: Any) -> tuple[float, bool] | None:
    cell = as_cell(value)
    if cell.kind is CellKind.NUMBER:
        reading, has_unit = cell.number, False
    elif cell.kind is CellKind.TEXT:
        match = _TEMPERATURE_RE.match(cell.text)
        if match is None:
            return None
        reading = float(match.group(1).replace(",", "."))
        has_unit = match.group(2) is not None
    else:
        return None
    low, high = TEMPERATURE_RANGE
    if reading is None or not low <= reading <= high:
        return None
    return reading, has_unit


def parse_temperature(value: Any) -> float | None:
    """Parse a plausible cargo temperature in degrees Celsius."""
    reading = _temperature_reading(value)
    return reading[0] if reading is not None else None


def temperature_score(value: Any) -> float:
    """Weighted temperature match for one cell, in [0, 1].

    0.6 for any value in range, +0.2 with an explicit unit marker, +0.2
    inside the usual reefer band.
    """
    reading = _temperature_reading(value)
    if reading is None:
        return 0.0
    number, has_unit = reading
    score = 0.6
    if has_unit:
        score += 0.2
    if REEFER_BAND[0] <= number <= REEFER_BAND[1]:
        score += 0.2
    return min(1.0, score)


# ---------------------------------------------------------------------------
# Stowage positions (Bay-Row-Tier)
# ---------------------------------------------------------------------------

_STOWAGE_DIGITS_RE = re.compile(r"^[\d .\-]+$")
_STOWAGE_SHAPE_RE = re.compile(r"^\d{2,3}[ .\-]\d{2}[ .\-]\d{2}$")
_VERBAL_LABEL_RE = re.compile(r"\b(BAY|HOLD|ROW|TIER)\s*[:#.]?\s*(\d{1,3})\b", re.IGNORECASE)


def _position_from_digits(digits: str) -> StowagePosition | None:
    if len(digits) not in (6, 7):
        return None
    bay, row, tier = int(digits[:-4]), int(digits[-4:-2]), int(digits[-2:])
    if not (1 <= bay <= 999 and 1 <= row <= 99 and 1 <= tier <= 99):
        return None
    return StowagePosition(bay=bay, row=row, tier=tier)


def parse_verbal_stowage(value: Any) -> StowagePosition | None:
    """Parse the labelled form ``Bay 12 Row 04 Tier 82`` (``Hold`` = ``Bay``)."""
    cell = as_cell(value)
    if cell.kind is not CellKind.TEXT:
        return None
    found: dict[str, int] = {}
    for label, number in _VERBAL_LABEL_RE.findall(cell.text):
        label = "BAY" if label.upper() == "HOLD" else label.upper()
        found.setdefault(label, int(number))
    if set(found) != {"BAY", "ROW", "TIER"}:
        return None
    bay, row, tier = found["BAY"], found["ROW"], found["TIER"]
    if not (1 <= bay <= 999 and 1 <= row <= 99 and 1 <= tier <= 99):
        return None
    return StowagePosition(bay=bay, row=row, tier=tier)


def parse_stowage(value: Any) -> StowagePosition | None:
    """Parse a Bay-Row-Tier stowage position.

    Accepts ``123456``, ``12.34.56``, ``12 34 56``, ``012-34-56``, integral
    number cells (zero-padded to 6 digits) and the verbal labelled form.
    """
    cell = as_cell(value)
    if cell.kind is CellKind.NUMBER:
        if cell.number is None or not cell.number.is_integer() or cell.number <= 0:
            return None
        return _position_from_digits(cell.text.zfill(6))
    if cell.kind is not CellKind.TEXT:
        return None
    text = cell.text
    if _STOWAGE_DIGITS_RE.match(text):
        digits = re.sub(r"[ .\-]", "", text)
        return _position_from_digits(digits)
    return parse_verbal_stowage(cell)


def is_stowage(value: Any) -> bool:
    return parse_stowage(value) is not None


def is_stowage_shaped(value: Any) -> bool:
    """True for separated stowage text such as ``12.34.56`` or ``12 34 56``."""
    cell = as_cell(value)
    return cell.kind is CellKind.TEXT and bool(_STOWAGE_SHAPE_RE.match(cell.text))


# ---------------------------------------------------------------------------
# Dangerous goods
# ---------------------------------------------------------------------------

_UN_NUMBER_RE = re.compile(r"^(?:UN\s*[-:]?\s*)?(\d{4})$", re.IGNORECASE)
_DG_CLASS_RE = re.compile(r"^(?:CLASS|CLS)?\s*[:.]?\s*(\d+(?:\.\d+)?)$", re.IGNORECASE)


def parse_un_number(value: Any) -> str | None:
    """Return the 4-digit UN number carried by *value* (``UN1203`` -> ``1203``)."""
    cell = as_cell(value)
    if cell.kind is CellKind.NUMBER:
        if cell.number is None or not cell.number.is_integer():
            return None
        text = cell.text
        return text if len(text) == 4 else None
    if cell.kind is not CellKind.TEXT:
        return None
    match = _UN_NUMBER_RE.match(cell.text)
    if match is None or match.group(1) == "0000":
        return None
    return match.group(1)


def parse_dg_class(value: Any) -> str | None:
    """Return the IMDG class/division carried by *value* (``Class 3`` -> ``3``)."""
    cell = as_cell(value)
    if cell.kind is CellKind.NUMBER:
        text = cell.text
    elif cell.kind is CellKind.TEXT:
        match = _DG_CLASS_RE.match(cell.text)
        if match is None:
            return None
        text = match.group(1)
    else:
        return None
    number = float(text)
    if not 1.0 <= number <= 9.0:
        return None
    return str(int(number)) if number.is_integer() else text


# ---------------------------------------------------------------------------
# Role dispatch
# ---------------------------------------------------------------------------


def container_id_score(value: Any) -> float:
    status = classify_container_id(value)
    if status is ContainerIdStatus.VALID:
        return 1.0
    if status is ContainerIdStatus.SHAPE_ONLY:
        return 0.9
    if status is ContainerIdStatus.PARTIAL:
        return 0.5
    return 0.0


def role_match_score(role: SemanticRole, value: Any) -> float:
    """Weighted content match of *value* for *role*, in [0, 1]."""
    cell: Cell = as_cell(value)
    if cell.is_empty:
        return 0.0
    if role is SemanticRole.CONTAINER_ID:
        return container_id_score(cell)
    if role in (SemanticRole.TEMPERATURE_SET, SemanticRole.TEMPERATURE_ACTUAL):
        return temperature_score(cell)
    if role is SemanticRole.STOWAGE:
        return 1.0 if parse_stowage(cell) is not None else 0.0
    if role is SemanticRole.UN_NUMBER:
        return 1.0 if parse_un_number(cell) is not None else 0.0
    if role is SemanticRole.DG_CLASS:
        return 1.0 if parse_dg_class(cell) is not None else 0.0
    return 0.0


def normalize_role_value(role: SemanticRole, value: Any) -> Any:
    """Normalize a cell for output in a container -> value map.

    Temperatures become floats, UN numbers and DG classes their canonical
    strings, container IDs their normalized form; stowage keeps the stripped
    source text so key derivation sees what the sheet says, but placeholders
    without digits (``TBA``, ``N/A``) are dropped.  Returns None when the
    cell carries no usable value.
    """
    cell = as_cell(value)
    if cell.is_empty:
        return None
    if role in (SemanticRole.TEMPERATURE_SET, SemanticRole.TEMPERATURE_ACTUAL):
        return parse_temperature(cell)
    if role is SemanticRole.UN_NUMBER:
        return parse_un_number(cell)
    if role is SemanticRole.DG_CLASS:
        return parse_dg_class(cell)
    if role is SemanticRole.CONTAINER_ID:
        return detect_container_id(cell)
    if parse_stowage(cell) is not None or any(ch.isdigit() for ch in cell.text):
        return cell.text
    return None
