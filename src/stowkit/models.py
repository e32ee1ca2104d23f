"""Pydantic data models and enumerations for stowkit.

Classification artifacts (``ColumnProfile``, ``RoleAssignment``,
``HeaderRegion``, ``SheetCandidate``) and block-reordering artifacts
(``Block``, ``BlockLayout``, ``BlockAudit``, ``ReorderResult``) are produced
per run and never persisted.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from stowkit.errors import BlockIntegrityViolation, ErrorCode, StowError

Grid = list[list[Any]]


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class SemanticRole(str, Enum):
    """Meaning a column can carry in a cargo list."""

    CONTAINER_ID = "container_id"
    STOWAGE = "stowage"
    UN_NUMBER = "un_number"
    DG_CLASS = "dg_class"
    TEMPERATURE_SET = "temperature_set"
    TEMPERATURE_ACTUAL = "temperature_actual"


# Order used to break exact ties between roles competing for a column.
ROLE_ORDER: tuple[SemanticRole, ...] = tuple(SemanticRole)

TEMPERATURE_ROLES: tuple[SemanticRole, ...] = (
    SemanticRole.TEMPERATURE_SET,
    SemanticRole.TEMPERATURE_ACTUAL,
)


class ContainerIdStatus(str, Enum):
    """Outcome of checking a value against the ISO 6346 container-ID format."""

    VALID = "valid"
    SHAPE_ONLY = "shape_only"
    PARTIAL = "partial"
    NONE = "none"


class InjectionStrategy(str, Enum):
    """Which rule located the cell that received the stowage value."""

    EXISTING_VALUE = "existing_value"
    STOWAGE_CELL = "stowage_cell"
    ANCHOR = "anchor"
    EMPTY_CELL = "empty_cell"


# ---------------------------------------------------------------------------
# Pattern results
# ---------------------------------------------------------------------------


class StowagePosition(BaseModel):
    """A Bay-Row-Tier position parsed from a stowage cell."""

    bay: int
    row: int
    tier: int

    @property
    def digits(self) -> str:
        return f"{self.bay:02d}{self.row:02d}{self.tier:02d}"


# ---------------------------------------------------------------------------
# Classification models
# ---------------------------------------------------------------------------


class ColumnProfile(BaseModel):
    """Per-column content statistics over the scan window."""

    column_index: int
    header_text: str = ""
    non_empty_count: int = 0
    match_counts: dict[SemanticRole, int] = Field(default_factory=dict)
    match_scores: dict[SemanticRole, float] = Field(default_factory=dict)
    valid_container_count: int = 0

    def density(self, role: SemanticRole) -> float:
        """Weighted match density of *role* over non-empty cells, in [0, 1]."""
        if self.non_empty_count == 0:
            return 0.0
        return min(1.0, self.match_scores.get(role, 0.0) / self.non_empty_count)

    def matches(self, role: SemanticRole) -> int:
        return self.match_counts.get(role, 0)


class SemanticSignal(BaseModel):
    """Role suggested for a column by an optional semantic classifier."""

    role: SemanticRole | None
    confidence: float = Field(ge=0.0, le=1.0)
    reasoning: str = ""


class RoleScore(BaseModel):
    """Score breakdown of one (role, column) pair."""

    role: SemanticRole
    column_index: int
    content_score: float
    header_score: float
    semantic_score: float | None = None
    combined: float
    eligible: bool = False


class RoleMatch(BaseModel):
    """A role bound to a column."""

    column_index: int
    confidence: float = Field(ge=0.0, le=1.0)


class AmbiguousColumn(BaseModel):
    """A column whose candidate roles cannot be told apart."""

    column_index: int
    roles: list[SemanticRole]
    confidence: float


class RoleAssignment(BaseModel):
    """Mapping role -> (column, confidence) for one sheet."""

    roles: dict[SemanticRole, RoleMatch] = Field(default_factory=dict)
    ambiguous: list[AmbiguousColumn] = Field(default_factory=list)
    scores: list[RoleScore] = Field(default_factory=list)
    warnings: list[StowError] = Field(default_factory=list)

    def column_for(self, role: SemanticRole) -> int | None:
        match = self.roles.get(role)
        return match.column_index if match is not None else None

    def confidence_for(self, role: SemanticRole) -> float:
        match = self.roles.get(role)
        return match.confidence if match is not None else 0.0


class SkippedRow(BaseModel):
    """A row passed over while looking for the header."""

    index: int
    reason: str


class HeaderRegion(BaseModel):
    """Where the header and the data of a sheet start."""

    header_row_index: int | None
    data_start_row: int
    synthetic: bool = False
    header_values: list[str] = Field(default_factory=list)
    skipped_rows: list[SkippedRow] = Field(default_factory=list)


class SheetCandidate(BaseModel):
    """Classification outcome for a single sheet."""

    sheet_id: str
    row_count: int = 0
    header: HeaderRegion | None = None
    assignment: RoleAssignment | None = None
    overall_confidence: float = 0.0
    container_count: int = 0
    is_valid: bool = False
    reason: str | None = None
    errors: list[StowError] = Field(default_factory=list)
    warnings: list[StowError] = Field(default_factory=list)

    @property
    def confidence_level(self) -> str:
        return confidence_level(self.overall_confidence)


class SheetSelection(BaseModel):
    """All candidates of a workbook plus the best valid one."""

    best: SheetCandidate | None = None
    candidates: list[SheetCandidate] = Field(default_factory=list)

    @property
    def valid_candidates(self) -> list[SheetCandidate]:
        return [c for c in self.candidates if c.is_valid]


class ExtractionResult(BaseModel):
    """A container-ID -> value map for one role, with its provenance."""

    role: SemanticRole
    values: dict[str, Any] = Field(default_factory=dict)
    sheets_used: list[str] = Field(default_factory=list)
    selection: SheetSelection
    warnings: list[StowError] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Block models
# ---------------------------------------------------------------------------


class Block(BaseModel):
    """A contiguous run of rows describing one container."""

    container_id: str
    start_row: int
    end_row: int
    anchor_column: int

    @property
    def row_count(self) -> int:
        return self.end_row - self.start_row


class BlockLayout(BaseModel):
    """Partition of a grid into header rows, blocks, and tail rows."""

    row_count: int
    header_end: int
    blocks: list[Block] = Field(default_factory=list)
    tail_start: int

    @property
    def header_row_count(self) -> int:
        return self.header_end

    @property
    def tail_row_count(self) -> int:
        return self.row_count - self.tail_start

    def verify(self) -> None:
        """Check that header, blocks and tail partition the grid exactly.

        Raises:
            BlockIntegrityViolation: On any gap, overlap, empty block or
                out-of-range boundary.
        """
        problem: str | None = None
        cursor = self.header_end
        if not 0 <= self.header_end <= self.row_count:
            problem = f"header end {self.header_end} outside 0..{self.row_count}"
        for block in self.blocks:
            if problem is not None:
                break
            if block.start_row != cursor:
                problem = (
                    f"block {block.container_id} starts at row {block.start_row}, "
                    f"expected {cursor}"
                )
            elif block.end_row <= block.start_row:
                problem = f"block {block.container_id} is empty"
            cursor = block.end_row
        if problem is None and cursor != self.tail_start:
            problem = f"tail starts at row {self.tail_start}, expected {cursor}"
        if problem is None and self.tail_start > self.row_count:
            problem = f"tail start {self.tail_start} beyond {self.row_count} rows"
        if problem is not None:
            raise BlockIntegrityViolation(
                code=ErrorCode.E_BLOCK_INTEGRITY,
                message=f"Block layout does not partition the grid: {problem}",
                stage="blocks",
            )


class KeyedBlock(BaseModel):
    """A block with its derived sort key."""

    block: Block
    key: str
    stowage: Any = None


class InjectionResult(BaseModel):
    """Where a stowage value was written inside a block."""

    row: int
    column: int
    strategy: InjectionStrategy
    previous_value: Any = None


class BlockAudit(BaseModel):
    """Per-block record of how it was keyed and injected."""

    container_id: str
    resolved_key: str
    stowage: Any = None
    injected: bool = False
    strategy: InjectionStrategy | None = None
    source_start_row: int
    source_end_row: int


class ReorderResult(BaseModel):
    """Reordered grid plus the audit trail of every block."""

    rows: Grid
    audit: list[BlockAudit] = Field(default_factory=list)
    header_row_count: int = 0
    tail_row_count: int = 0
    warnings: list[StowError] = Field(default_factory=list)

    @property
    def total_blocks(self) -> int:
        return len(self.audit)

    @property
    def matched(self) -> int:
        return sum(1 for entry in self.audit if entry.stowage is not None)

    @property
    def missing(self) -> int:
        return self.total_blocks - self.matched

    def summary(self) -> str:
        """Human-readable one-line summary of the reorder run."""
        return (
            f"Sorted {self.total_blocks} container blocks: "
            f"{self.matched} matched to a stowage position, "
            f"{self.missing} without stowage (placed last)."
        )


class StowageRunResult(BaseModel):
    """Outcome of sorting a target sheet by stowage from a reference list."""

    stowage_map: dict[str, Any] = Field(default_factory=dict)
    reference: ExtractionResult
    target_sheet_id: str
    reorder: ReorderResult


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def confidence_level(confidence: float) -> str:
    """Map a confidence in [0, 1] to a display label."""
    if confidence >= 0.8:
        return "High"
    if confidence >= 0.6:
        return "Good"
    if confidence >= 0.4:
        return "Fair"
    return "Low"
