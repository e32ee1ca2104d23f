"""Role assignment: decide which column plays which semantic role.

Content density and header keyword scores are blended per role with the
weights of the role's ``RolePolicy``; an optional semantic classifier adds
a third signal.  Columns are then matched to roles greedily, highest
combined score first, so every role and every column is used at most once.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from stowkit.config import StowkitConfig
from stowkit.errors import ErrorCode, LowConfidence, StowError
from stowkit.models import (
    ROLE_ORDER,
    TEMPERATURE_ROLES,
    AmbiguousColumn,
    ColumnProfile,
    RoleAssignment,
    RoleMatch,
    RoleScore,
    SemanticRole,
    SemanticSignal,
)
from stowkit.protocols import SemanticClassifier

logger = logging.getLogger("stowkit")

_TIE_EPSILON = 1e-9


class RoleAssigner:
    """Maps roles to columns for one sheet.

    Deterministic and side-effect free given the same profiles, header
    scores and classifier answers.
    """

    def __init__(
        self,
        config: StowkitConfig | None = None,
        classifier: SemanticClassifier | None = None,
    ) -> None:
        self._config = config or StowkitConfig()
        self._classifier = classifier

    # -- public API ----------------------------------------------------------

    def assign(
        self,
        profiles: Sequence[ColumnProfile],
        header_scores: Sequence[dict[SemanticRole, float]] | None = None,
        samples: Sequence[list[str]] | None = None,
        temperature_hint: SemanticRole | None = None,
        sheet_id: str | None = None,
    ) -> RoleAssignment:
        """Assign roles to columns.

        Args:
            profiles: Column profiles from ``ColumnProfiler``.
            header_scores: Per-column keyword scores from ``HeaderAnalyzer``;
                None (synthetic headers) scores every header 0.0.
            samples: Per-column sample values for the semantic classifier.
            temperature_hint: Which temperature role an undistinguished
                temperature column should take.  Without it such a column is
                reported as ambiguous and left unassigned.
            sheet_id: Used only in warnings.

        Returns:
            The ``RoleAssignment`` with per-pair score diagnostics.

        Raises:
            LowConfidence: If an assignment falls below
                ``trustworthy_confidence`` and ``fail_on_low_confidence`` is set.
        """
        warnings: list[StowError] = []
        signals = self._semantic_signals(profiles, samples, warnings, sheet_id)

        scores: list[RoleScore] = []
        for profile in profiles:
            column_headers = (
                header_scores[profile.column_index]
                if header_scores is not None and profile.column_index < len(header_scores)
                else {}
            )
            signal = signals.get(profile.column_index) if signals is not None else None
            for role in ROLE_ORDER:
                scores.append(
                    self._score(
                        profile,
                        role,
                        column_headers.get(role, 0.0),
                        signal,
                        signals is not None,
                    )
                )

        candidates = [s for s in scores if s.eligible]
        candidates, ambiguous = self._resolve_temperature_ties(candidates, temperature_hint)

        roles: dict[SemanticRole, RoleMatch] = {}
        used_columns: set[int] = set()
        candidates.sort(
            key=lambda s: (-s.combined, s.column_index, ROLE_ORDER.index(s.role))
        )
        for score in candidates:
            if score.role in roles or score.column_index in used_columns:
                continue
            roles[score.role] = RoleMatch(
                column_index=score.column_index,
                confidence=round(min(1.0, max(0.0, score.combined)), 6),
            )
            used_columns.add(score.column_index)

        ambiguous = [a for a in ambiguous if a.column_index not in used_columns]
        for entry in ambiguous:
            message = (
                f"Column {entry.column_index} looks like a temperature but the "
                "header does not say whether it is the set point or the actual "
                "reading; both roles left unassigned"
            )
            logger.warning("%s (sheet=%s)", message, sheet_id)
            warnings.append(
                StowError(
                    code=ErrorCode.W_TEMPERATURE_AMBIGUOUS,
                    message=message,
                    sheet_id=sheet_id,
                    stage="assign",
                    recoverable=True,
                )
            )

        for role, match in roles.items():
            if match.confidence < self._config.trustworthy_confidence:
                message = (
                    f"Role '{role.value}' assigned to column {match.column_index} "
                    f"with low confidence {match.confidence:.2f}"
                )
                if self._config.fail_on_low_confidence:
                    raise LowConfidence(
                        code=ErrorCode.W_LOW_CONFIDENCE,
                        message=message,
                        sheet_id=sheet_id,
                        stage="assign",
                        recoverable=True,
                    )
                logger.warning("%s (sheet=%s)", message, sheet_id)
                warnings.append(
                    StowError(
                        code=ErrorCode.W_LOW_CONFIDENCE,
                        message=message,
                        sheet_id=sheet_id,
                        stage="assign",
                        recoverable=True,
                    )
                )

        logger.debug(
            "Assigned roles %s (sheet=%s)",
            {role.value: m.column_index for role, m in roles.items()},
            sheet_id,
        )
        return RoleAssignment(
            roles=roles, ambiguous=ambiguous, scores=scores, warnings=warnings
        )

    # -- internal helpers ----------------------------------------------------

    def _score(
        self,
        profile: ColumnProfile,
        role: SemanticRole,
        header_score: float,
        signal: SemanticSignal | None,
        semantic_active: bool,
    ) -> RoleScore:
        policy = self._config.policy_for(role)
        content = profile.density(role)
        weighted = policy.content_weight * content + policy.header_weight * header_score
        total_weight = policy.content_weight + policy.header_weight

        semantic_score: float | None = None
        if semantic_active and signal is not None:
            semantic_score = signal.confidence if signal.role is role else 0.0
            weighted += self._config.semantic_weight * semantic_score
            total_weight += self._config.semantic_weight

        combined = weighted / total_weight if total_weight > 0 else 0.0
        combined = min(1.0, max(0.0, combined))
        eligible = (
            profile.matches(role) >= max(1, policy.min_matches)
            and combined >= policy.min_score
        )
        return RoleScore(
            role=role,
            column_index=profile.column_index,
            content_score=content,
            header_score=header_score,
            semantic_score=semantic_score,
            combined=combined,
            eligible=eligible,
        )

    def _resolve_temperature_ties(
        self,
        candidates: list[RoleScore],
        temperature_hint: SemanticRole | None,
    ) -> tuple[list[RoleScore], list[AmbiguousColumn]]:
        """Drop set/actual candidates on columns whose headers cannot tell them apart."""
        by_column: dict[int, dict[SemanticRole, RoleScore]] = {}
        for score in candidates:
            if score.role in TEMPERATURE_ROLES:
                by_column.setdefault(score.column_index, {})[score.role] = score

        dropped: set[tuple[int, SemanticRole]] = set()
        ambiguous: list[AmbiguousColumn] = []
        for column, pair in sorted(by_column.items()):
            if len(pair) != 2:
                continue
            set_score = pair[SemanticRole.TEMPERATURE_SET]
            actual_score = pair[SemanticRole.TEMPERATURE_ACTUAL]
            if abs(set_score.combined - actual_score.combined) > _TIE_EPSILON:
                continue
            if temperature_hint in TEMPERATURE_ROLES:
                other = (
                    SemanticRole.TEMPERATURE_ACTUAL
                    if temperature_hint is SemanticRole.TEMPERATURE_SET
                    else SemanticRole.TEMPERATURE_SET
                )
                dropped.add((column, other))
                continue
            dropped.add((column, SemanticRole.TEMPERATURE_SET))
            dropped.add((column, SemanticRole.TEMPERATURE_ACTUAL))
            ambiguous.append(
                AmbiguousColumn(
                    column_index=column,
                    roles=list(TEMPERATURE_ROLES),
                    confidence=set_score.combined,
                )
            )

        kept = [s for s in candidates if (s.column_index, s.role) not in dropped]
        return kept, ambiguous

    def _semantic_signals(
        self,
        profiles: Sequence[ColumnProfile],
        samples: Sequence[list[str]] | None,
        warnings: list[StowError],
        sheet_id: str | None,
    ) -> dict[int, SemanticSignal | None] | None:
        """Ask the optional classifier about every column.

        Returns None when no classifier is configured or it fails, which the
        scorer treats as "signal absent".
        """
        if self._classifier is None:
            return None
        signals: dict[int, SemanticSignal | None] = {}
        for profile in profiles:
            column_samples = (
                list(samples[profile.column_index])
                if samples is not None and profile.column_index < len(samples)
                else []
            )
            try:
                signals[profile.column_index] = self._classifier.classify_column(
                    profile.header_text, column_samples
                )
            except Exception as exc:
                logger.warning(
                    "Semantic classifier unavailable, continuing without it: %s", exc
                )
                warnings.append(
                    StowError(
                        code=ErrorCode.W_SEMANTIC_UNAVAILABLE,
                        message=f"Semantic classifier failed: {exc}",
                        sheet_id=sheet_id,
                        stage="assign",
                        recoverable=True,
                    )
                )
                return None
        return signals
