"""Sheet and region selection.

For every sheet of a workbook the selector finds where the header and the
data start, profiles and classifies the columns, and scores the sheet as a
whole.  Sheets that cannot be used are kept as invalid candidates with a
reason, so a run that finds nothing usable can explain itself in one
aggregated message.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from typing import Any

from stowkit.assigner import RoleAssigner
from stowkit.cells import cell_text
from stowkit.config import StowkitConfig
from stowkit.errors import (
    ErrorCode,
    LowConfidence,
    NoRoleAssigned,
    StowError,
    StructureError,
)
from stowkit.extraction import extract_role_values, merge_value_maps
from stowkit.grids import column_samples, grid_width, is_blank_row
from stowkit.headers import HeaderAnalyzer
from stowkit.models import (
    TEMPERATURE_ROLES,
    ExtractionResult,
    HeaderRegion,
    SemanticRole,
    SheetCandidate,
    SheetSelection,
    SkippedRow,
)
from stowkit.patterns import detect_container_id, find_container_id_in_row
from stowkit.profiler import ColumnProfiler
from stowkit.protocols import SemanticClassifier

logger = logging.getLogger("stowkit")

_PAGE_HEADER_PATTERNS = [
    re.compile(r"\bpage\s*\d+\s*(?:of|/)\s*\d+\b"),
    re.compile(r"^page\s*\d+$"),
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
    re.compile(r"\b[a-z]{3}\s+[a-z]{3}\s+\d{1,2}\s+\d{4}\b"),
    re.compile(r"\b(?:gmt|utc)\b|standard time"),
    re.compile(r"\bprinted\b"),
]

NO_CONTAINER_REASON = "no container IDs detected"


class SheetSelector:
    """Evaluates the sheets of a workbook and picks the best one."""

    def __init__(
        self,
        config: StowkitConfig | None = None,
        classifier: SemanticClassifier | None = None,
    ) -> None:
        self._config = config or StowkitConfig()
        self._classifier = classifier
        self._profiler = ColumnProfiler(self._config)
        self._headers = HeaderAnalyzer()
        self._assigner = RoleAssigner(self._config, classifier)
        self._skip_patterns = [
            re.compile(pattern, re.IGNORECASE)
            for pattern in self._config.sheet_skip_patterns
        ]

    # -- public API ----------------------------------------------------------

    def locate_header(
        self, grid: Sequence[Sequence[Any]], sheet_id: str | None = None
    ) -> HeaderRegion:
        """Find the header row and the first data row of a sheet.

        Raises:
            StructureError: When neither a header row nor any container ID
                can be found.
        """
        skipped: list[SkippedRow] = []
        limit = min(len(grid), self._config.header_scan_rows)

        for index in range(limit):
            row = grid[index]
            reason = self._skip_reason(row)
            if reason is not None:
                skipped.append(SkippedRow(index=index, reason=reason))
                continue

            data_row = self._find_container_row(grid, index)
            if data_row is not None:
                if data_row == index:
                    return self._synthetic_region(grid, data_row, skipped)
                header_row = self._nearest_header_row(grid, index, data_row)
                return HeaderRegion(
                    header_row_index=header_row,
                    data_start_row=data_row,
                    header_values=[cell_text(v) for v in grid[header_row]],
                    skipped_rows=skipped,
                )

            if self._headers.count_keywords(row) >= 1:
                return HeaderRegion(
                    header_row_index=index,
                    data_start_row=index + 1,
                    header_values=[cell_text(v) for v in row],
                    skipped_rows=skipped,
                )

        for index in range(min(len(grid), self._config.synthetic_scan_rows)):
            if find_container_id_in_row(grid[index], relaxed=True) is not None:
                logger.info(
                    "No header row found (sheet=%s); using synthetic headers from row %d",
                    sheet_id,
                    index,
                )
                return self._synthetic_region(grid, index, skipped)

        raise StructureError(
            code=ErrorCode.E_STRUCTURE_NOT_FOUND,
            message=NO_CONTAINER_REASON,
            sheet_id=sheet_id,
            stage="locate_header",
            recoverable=True,
        )

    def evaluate(
        self,
        sheet_id: str,
        grid: Sequence[Sequence[Any]],
        required_roles: Sequence[SemanticRole] = (SemanticRole.CONTAINER_ID,),
        temperature_hint: SemanticRole | None = None,
    ) -> SheetCandidate:
        """Classify one sheet into a ``SheetCandidate``.

        Sheet-level failures are recorded on the candidate, never raised,
        except ``LowConfidence`` when ``fail_on_low_confidence`` is set.
        """
        candidate = SheetCandidate(sheet_id=sheet_id, row_count=len(grid))

        if self._is_skippable_name(sheet_id):
            return self._invalidate(
                candidate, "summary sheet", ErrorCode.E_SHEET_SKIPPED
            )
        if len(grid) < self._config.min_sheet_rows:
            return self._invalidate(
                candidate, f"too few rows ({len(grid)})", ErrorCode.E_SHEET_SKIPPED
            )

        try:
            header = self.locate_header(grid, sheet_id)
        except StructureError as exc:
            return self._invalidate(candidate, exc.message, exc.code)
        candidate.header = header

        header_values = [] if header.synthetic else header.header_values
        profiles = self._profiler.profile(grid, header.data_start_row, header_values)
        header_scores = (
            None
            if header.synthetic or header.header_row_index is None
            else self._headers.score_row(grid[header.header_row_index])
        )
        samples = (
            column_samples(grid, header.data_start_row, self._config.max_sample_values)
            if self._classifier is not None
            else None
        )
        assignment = self._assigner.assign(
            profiles,
            header_scores=header_scores,
            samples=samples,
            temperature_hint=temperature_hint,
            sheet_id=sheet_id,
        )
        candidate.assignment = assignment
        candidate.warnings.extend(assignment.warnings)

        container_column = assignment.column_for(SemanticRole.CONTAINER_ID)
        if container_column is None:
            return self._invalidate(
                candidate, NO_CONTAINER_REASON, ErrorCode.E_ROLE_UNASSIGNED
            )
        candidate.container_count = self._count_containers(
            grid, header.data_start_row, container_column
        )

        other_confidences = [
            assignment.confidence_for(role)
            for role in required_roles
            if role is not SemanticRole.CONTAINER_ID
        ]
        candidate.overall_confidence = self._overall_confidence(
            grid,
            header,
            assignment.confidence_for(SemanticRole.CONTAINER_ID),
            other_confidences,
        )

        for role in required_roles:
            if assignment.column_for(role) is None:
                return self._invalidate(
                    candidate, f"no {role.value} column detected", ErrorCode.E_ROLE_UNASSIGNED
                )

        if candidate.overall_confidence < self._config.sheet_confidence_floor:
            return self._invalidate(
                candidate,
                f"low confidence ({candidate.overall_confidence:.2f})",
                ErrorCode.W_LOW_CONFIDENCE,
            )

        if candidate.overall_confidence < self._config.trustworthy_confidence:
            message = (
                f"Sheet '{sheet_id}' selected with low confidence "
                f"{candidate.overall_confidence:.2f}"
            )
            if self._config.fail_on_low_confidence:
                raise LowConfidence(
                    code=ErrorCode.W_LOW_CONFIDENCE,
                    message=message,
                    sheet_id=sheet_id,
                    stage="select",
                    recoverable=True,
                )
            logger.warning(message)
            candidate.warnings.append(
                StowError(
                    code=ErrorCode.W_LOW_CONFIDENCE,
                    message=message,
                    sheet_id=sheet_id,
                    stage="select",
                    recoverable=True,
                )
            )

        candidate.is_valid = True
        logger.info(
            "Sheet '%s': %d containers, confidence %.2f (%s)",
            sheet_id,
            candidate.container_count,
            candidate.overall_confidence,
            candidate.confidence_level,
        )
        return candidate

    def select(
        self,
        sheets: Mapping[str, Sequence[Sequence[Any]]],
        required_roles: Sequence[SemanticRole] = (SemanticRole.CONTAINER_ID,),
        temperature_hint: SemanticRole | None = None,
    ) -> SheetSelection:
        """Evaluate every sheet and pick the best valid one.

        Ranking is by overall confidence; candidates within
        ``near_tie_margin`` of the best are decided by container count.

        Raises:
            NoRoleAssigned: If no sheet is valid and every failure was a
                missing role.
            StructureError: If no sheet is valid for any other reason.
        """
        candidates = [
            self.evaluate(sheet_id, grid, required_roles, temperature_hint)
            for sheet_id, grid in sheets.items()
        ]
        selection = SheetSelection(candidates=candidates)
        valid = selection.valid_candidates
        if not valid:
            raise self._aggregate_failure(candidates)

        best_confidence = max(c.overall_confidence for c in valid)
        contenders = [
            (position, c)
            for position, c in enumerate(valid)
            if c.overall_confidence >= best_confidence - self._config.near_tie_margin - 1e-9
        ]
        _, best = max(
            contenders,
            key=lambda pc: (pc[1].container_count, pc[1].overall_confidence, -pc[0]),
        )
        selection.best = best
        return selection

    def extract_values(
        self,
        sheets: Mapping[str, Sequence[Sequence[Any]]],
        role: SemanticRole,
        merge: bool = True,
        temperature_hint: SemanticRole | None = None,
    ) -> ExtractionResult:
        """Build a ``container_id -> value`` map for *role*.

        With ``merge`` every valid sheet contributes in sheet order and the
        first sheet that mentions a container wins; otherwise only the best
        sheet is read.  Asking for a temperature role resolves an
        undistinguished temperature column to that role unless
        *temperature_hint* says otherwise.
        """
        if temperature_hint is None and role in TEMPERATURE_ROLES:
            temperature_hint = role
        required = [SemanticRole.CONTAINER_ID]
        if role is not SemanticRole.CONTAINER_ID:
            required.append(role)

        selection = self.select(sheets, required, temperature_hint)
        valid = selection.valid_candidates
        used = valid if merge else [c for c in valid if c is selection.best]

        values = merge_value_maps(
            extract_role_values(
                sheets[candidate.sheet_id],
                candidate.assignment,
                candidate.header.data_start_row,
                role,
            )
            for candidate in used
            if candidate.assignment is not None and candidate.header is not None
        )
        logger.info(
            "Extracted %d %s values from %d sheet(s)",
            len(values),
            role.value,
            len(used),
        )
        warnings = [w for c in used for w in c.warnings]
        return ExtractionResult(
            role=role,
            values=values,
            sheets_used=[c.sheet_id for c in used],
            selection=selection,
            warnings=warnings,
        )

    # -- internal helpers ----------------------------------------------------

    def _is_skippable_name(self, sheet_id: str) -> bool:
        name = sheet_id.strip()
        return any(pattern.search(name) for pattern in self._skip_patterns)

    def _skip_reason(self, row: Sequence[Any]) -> str | None:
        if is_blank_row(row):
            return "empty row"
        if find_container_id_in_row(row) is not None:
            return None
        if self._is_banner(row):
            return "merged banner"
        if self._is_page_header(row):
            return "page header"
        return None

    def _is_banner(self, row: Sequence[Any]) -> bool:
        texts = [cell_text(v) for v in row]
        texts = [t for t in texts if t]
        return len(texts) > self._config.banner_min_cells and len(set(texts)) == 1

    def _is_page_header(self, row: Sequence[Any]) -> bool:
        joined = " ".join(t for t in (cell_text(v) for v in row) if t).lower()
        return any(pattern.search(joined) for pattern in _PAGE_HEADER_PATTERNS)

    def _find_container_row(
        self, grid: Sequence[Sequence[Any]], start: int
    ) -> int | None:
        end = min(len(grid), start + self._config.container_lookahead_rows)
        for index in range(start, end):
            if find_container_id_in_row(grid[index]) is not None:
                return index
        return None

    def _nearest_header_row(
        self, grid: Sequence[Sequence[Any]], first: int, data_row: int
    ) -> int:
        for index in range(data_row - 1, first - 1, -1):
            if self._skip_reason(grid[index]) is None:
                return index
        return first

    def _synthetic_region(
        self,
        grid: Sequence[Sequence[Any]],
        data_row: int,
        skipped: list[SkippedRow],
    ) -> HeaderRegion:
        width = grid_width(grid[data_row:])
        return HeaderRegion(
            header_row_index=None,
            data_start_row=data_row,
            synthetic=True,
            header_values=[f"col_{index}" for index in range(width)],
            skipped_rows=skipped,
        )

    def _count_containers(
        self, grid: Sequence[Sequence[Any]], start: int, column: int
    ) -> int:
        found: set[str] = set()
        for row in grid[start:]:
            if column < len(row):
                container_id = detect_container_id(row[column])
                if container_id:
                    found.add(container_id)
        return len(found)

    def _overall_confidence(
        self,
        grid: Sequence[Sequence[Any]],
        header: HeaderRegion,
        container_confidence: float,
        other_confidences: list[float],
    ) -> float:
        others = (
            sum(other_confidences) / len(other_confidences)
            if other_confidences
            else container_confidence
        )
        confidence = 0.5 * container_confidence + 0.3 * others
        if not header.synthetic:
            confidence += 0.1
        data_rows = sum(
            1 for row in grid[header.data_start_row:] if not is_blank_row(row)
        )
        if data_rows > self._config.min_rows_for_size_bonus:
            confidence += 0.1
        return round(min(1.0, confidence), 6)

    def _invalidate(
        self, candidate: SheetCandidate, reason: str, code: ErrorCode
    ) -> SheetCandidate:
        candidate.is_valid = False
        candidate.reason = reason
        candidate.errors.append(
            StowError(
                code=code,
                message=reason,
                sheet_id=candidate.sheet_id,
                stage="select",
                recoverable=True,
            )
        )
        logger.info("Sheet '%s' rejected: %s", candidate.sheet_id, reason)
        return candidate

    def _aggregate_failure(self, candidates: list[SheetCandidate]) -> Exception:
        if not candidates:
            return StructureError(
                code=ErrorCode.E_NO_VALID_SHEET,
                message="No sheets to evaluate",
                stage="select",
            )
        details = "; ".join(f"'{c.sheet_id}': {c.reason}" for c in candidates)
        message = f"No valid sheet found. {details}"
        role_failures = all(
            c.errors and c.errors[-1].code is ErrorCode.E_ROLE_UNASSIGNED
            for c in candidates
        )
        exc_type = NoRoleAssigned if role_failures else StructureError
        logger.error(message)
        return exc_type(
            code=ErrorCode.E_NO_VALID_SHEET,
            message=message,
            stage="select",
        )
