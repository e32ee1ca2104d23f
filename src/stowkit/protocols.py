"""Capability protocols for stowkit.

Both protocols are ``@runtime_checkable`` so callers can optionally verify
conformance with ``isinstance`` checks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from stowkit.models import SemanticSignal


@runtime_checkable
class SemanticClassifier(Protocol):
    """Optional per-column semantic classifier (e.g. an LLM or embedding model)."""

    def classify_column(self, header: str, samples: list[str]) -> SemanticSignal | None:
        """Suggest a role for a column from its header and sample values.

        Returns None when the classifier has no opinion.
        """
        ...


@runtime_checkable
class LLMBackend(Protocol):
    """Interface for LLM backends that answer with parsed JSON."""

    def classify(
        self,
        prompt: str,
        model: str,
        temperature: float = 0.1,
        timeout: float | None = None,
    ) -> dict:
        """Send a classification prompt and return the parsed JSON response."""
        ...
