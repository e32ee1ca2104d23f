"""Header keyword scoring.

Each role has a vocabulary of strong and weak keywords.  Header text is
lower-cased and split on non-alphanumerics; short keywords must match a
whole token, longer ones may also match inside a token (``containerno``).
Temperature set/actual share one base vocabulary and are pulled apart by
qualifier words.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

from stowkit.cells import cell_text
from stowkit.models import SemanticRole

STRONG_WEIGHT = 0.8
WEAK_WEIGHT = 0.4
MULTI_HIT_BONUS = 0.2
QUALIFIER_WEIGHT = 0.3
QUALIFIER_ONLY_SCORE = 0.5

_VOCABULARY: dict[SemanticRole, tuple[frozenset[str], frozenset[str]]] = {
    SemanticRole.CONTAINER_ID: (
        frozenset({"container", "containers", "cntr", "ctnr", "equipment"}),
        frozenset({"id", "no", "nr", "nbr", "number", "box", "unit", "equip"}),
    ),
    SemanticRole.STOWAGE: (
        frozenset({"stowage", "stow", "bay", "position", "slot", "brt", "location"}),
        frozenset({"pos", "cell", "loc", "plan", "row", "tier"}),
    ),
    SemanticRole.UN_NUMBER: (
        frozenset({"un", "unno", "unnr", "unnumber"}),
        frozenset({"no", "nr", "number", "substance"}),
    ),
    SemanticRole.DG_CLASS: (
        frozenset({"class", "imo", "imdg", "hazard", "dg"}),
        frozenset({"division", "cls", "haz", "dangerous", "hazardous"}),
    ),
}

_TEMPERATURE_VOCABULARY: tuple[frozenset[str], frozenset[str]] = (
    frozenset({"temperature", "temp", "celsius", "degc", "degrees"}),
    frozenset({"reefer", "setpoint", "deg", "cold", "frozen", "chilled"}),
)

_SET_QUALIFIERS = frozenset({"set", "setpoint", "target", "required", "req", "setting", "sp"})
_ACTUAL_QUALIFIERS = frozenset(
    {"actual", "act", "manifest", "current", "measured", "probe", "reading"}
)

# Words that mark a row as a header row even when no role keyword is present.
_GENERAL_HEADER_WORDS = frozenset(
    {"cargo", "type", "weight", "commodity", "seal", "pol", "pod", "size", "iso"}
)

_TOKEN_SPLIT_RE = re.compile(r"[^a-z0-9]+")


def _tokens(text: str) -> list[str]:
    return [token for token in _TOKEN_SPLIT_RE.split(text.lower()) if token]


def _hits(tokens: Sequence[str], keywords: frozenset[str]) -> set[str]:
    """Return the tokens that match any of *keywords*."""
    found: set[str] = set()
    for token in tokens:
        if token in keywords or any(
            len(keyword) >= 4 and keyword in token for keyword in keywords
        ):
            found.add(token)
    return found


def _vocabulary_score(
    tokens: Sequence[str],
    vocabulary: tuple[frozenset[str], frozenset[str]],
) -> float:
    strong, weak = vocabulary
    strong_hits = _hits(tokens, strong)
    weak_hits = _hits(tokens, weak) - strong_hits
    if not strong_hits and not weak_hits:
        return 0.0
    score = STRONG_WEIGHT if strong_hits else WEAK_WEIGHT
    if len(strong_hits | weak_hits) >= 2:
        score += MULTI_HIT_BONUS
    return min(1.0, score)


def _temperature_score(text: str, tokens: Sequence[str], role: SemanticRole) -> float:
    base = _vocabulary_score(tokens, _TEMPERATURE_VOCABULARY)
    if base == 0.0 and "°" in text:
        base = WEAK_WEIGHT
    has_set = bool(_hits(tokens, _SET_QUALIFIERS))
    has_actual = bool(_hits(tokens, _ACTUAL_QUALIFIERS))
    own, other = (
        (has_set, has_actual)
        if role is SemanticRole.TEMPERATURE_SET
        else (has_actual, has_set)
    )
    if base == 0.0:
        return QUALIFIER_ONLY_SCORE if own and not other else 0.0
    score = base
    if own:
        score += QUALIFIER_WEIGHT
    if other:
        score -= QUALIFIER_WEIGHT
    return max(0.0, min(1.0, score))


class HeaderAnalyzer:
    """Scores header cells against the role vocabularies."""

    # -- public API ----------------------------------------------------------

    def score_header(self, header: Any, role: SemanticRole) -> float:
        """Keyword score of one header cell for *role*, in [0, 1].

        Missing, numeric or garbled headers score 0.0.
        """
        text = cell_text(header)
        if not text:
            return 0.0
        tokens = _tokens(text)
        if role in (SemanticRole.TEMPERATURE_SET, SemanticRole.TEMPERATURE_ACTUAL):
            return _temperature_score(text, tokens, role)
        return _vocabulary_score(tokens, _VOCABULARY[role])

    def score_row(self, row: Sequence[Any]) -> list[dict[SemanticRole, float]]:
        """Score every cell of a header row for every role."""
        return [
            {role: self.score_header(value, role) for role in SemanticRole}
            for value in row
        ]

    def count_keywords(self, row: Sequence[Any]) -> int:
        """Count distinct header keywords across the cells of *row*."""
        found: set[str] = set()
        for value in row:
            text = cell_text(value)
            if not text:
                continue
            tokens = _tokens(text)
            for strong, weak in (*_VOCABULARY.values(), _TEMPERATURE_VOCABULARY):
                found |= _hits(tokens, strong)
            found |= _hits(tokens, _GENERAL_HEADER_WORDS)
        return len(found)
