"""Shared test fixtures for stowkit tests.

Provides a default ``StowkitConfig``, a generator of check-digit-valid
container IDs, grid builders for the common sheet shapes, and mock
implementations of the ``SemanticClassifier`` and ``LLMBackend`` protocols.
"""

from __future__ import annotations

from typing import Any

import pytest

from stowkit.config import StowkitConfig
from stowkit.models import SemanticRole, SemanticSignal
from stowkit.patterns import compute_check_digit


def valid_container_id(owner: str, serial: int) -> str:
    """Build an ISO 6346 container ID with a correct check digit."""
    prefix = f"{owner}{serial:06d}"
    return f"{prefix}{compute_check_digit(prefix)}"


# ---------------------------------------------------------------------------
# Config / data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def sample_config() -> StowkitConfig:
    """Return a StowkitConfig with all defaults."""
    return StowkitConfig()


@pytest.fixture()
def signed_tail_config() -> StowkitConfig:
    """Config that splits off a sign-off tail after two blank rows."""
    return StowkitConfig(tail_blank_row_gap=2)


@pytest.fixture()
def container_ids() -> list[str]:
    """Twelve distinct, check-digit-valid container IDs."""
    return [valid_container_id("MSKU", 100000 + i * 7) for i in range(12)]


@pytest.fixture()
def stowage_sheet(container_ids: list[str]) -> list[list[Any]]:
    """A reference list: banner, header, and twelve rows with stowage."""
    rows: list[list[Any]] = [
        ["BAYPLAN LIST", "BAYPLAN LIST", "BAYPLAN LIST", "BAYPLAN LIST", "BAYPLAN LIST"],
        ["No.", "Container ID", "Stowage", "Temp Set", "Commodity"],
    ]
    for i, cid in enumerate(container_ids):
        rows.append([i + 1, cid, f"{i + 1:02d}.02.82", "-18.0 C", "FROZEN FISH"])
    return rows


@pytest.fixture()
def block_sheet(container_ids: list[str]) -> list[list[Any]]:
    """A block-structured sheet: two header rows, three blocks, a sign-off tail.

    The tail is only split off when ``tail_blank_row_gap`` is 2 or more;
    with the default config it belongs to the last block.
    """
    return [
        ["COLD TREATMENT REPORT", None, None],
        ["Container", "Reading", "Remark"],
        [container_ids[2], "", ""],
        ["", "(5) PROBE 3", "1.1"],
        ["", "", "ok"],
        [container_ids[0], "", ""],
        ["", "(5) PROBE 3", "1.2"],
        ["", "", "ok"],
        [container_ids[1], "", ""],
        ["", "(5) PROBE 3", "1.3"],
        ["", "", "ok"],
        [None, None, None],
        [None, None, None],
        ["Signed", "Inspector", None],
    ]


# ---------------------------------------------------------------------------
# Mock Backends
# ---------------------------------------------------------------------------


class MockSemanticClassifier:
    """Semantic classifier answering from a header -> signal table.

    Headers not in the table get no opinion.  Every call is recorded.
    """

    def __init__(
        self,
        answers: dict[str, SemanticSignal] | None = None,
        error: Exception | None = None,
    ) -> None:
        self._answers = dict(answers or {})
        self._error = error
        self.calls: list[tuple[str, list[str]]] = []

    def classify_column(self, header: str, samples: list[str]) -> SemanticSignal | None:
        self.calls.append((header, list(samples)))
        if self._error is not None:
            raise self._error
        return self._answers.get(header)


class MockLLMBackend:
    """Mock LLM backend popping queued responses or exceptions per call."""

    def __init__(self, responses: list[dict | Exception] | None = None) -> None:
        self._responses: list[dict | Exception] = list(responses or [])
        self.calls: list[dict] = []

    def classify(
        self,
        prompt: str,
        model: str,
        temperature: float = 0.1,
        timeout: float | None = None,
    ) -> dict:
        self.calls.append(
            {
                "prompt": prompt,
                "model": model,
                "temperature": temperature,
                "timeout": timeout,
            }
        )
        if not self._responses:
            raise RuntimeError("MockLLMBackend: no more responses queued")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def signal_for():
    """Factory for SemanticSignal objects."""

    def _make(role: SemanticRole | None, confidence: float = 0.9) -> SemanticSignal:
        return SemanticSignal(role=role, confidence=confidence, reasoning="mock")

    return _make
