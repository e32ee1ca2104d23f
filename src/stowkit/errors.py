"""Normalized error codes, structured error model, and raisable exceptions.

Sheet-level problems are collected as ``StowError`` models on the candidate
that produced them so a multi-sheet scan never aborts half-way.  Run-level
failures and layout violations are raised as ``StowkitException`` subclasses
that carry the same structured model on ``.error``.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ErrorCode(str, Enum):
    """Normalized error codes for the stowkit pipeline.

    Codes prefixed with ``E_`` are errors; codes prefixed with ``W_`` are
    non-fatal warnings.
    """

    # Structure errors
    E_STRUCTURE_NOT_FOUND = "E_STRUCTURE_NOT_FOUND"
    E_SHEET_SKIPPED = "E_SHEET_SKIPPED"
    E_ROLE_UNASSIGNED = "E_ROLE_UNASSIGNED"
    E_NO_VALID_SHEET = "E_NO_VALID_SHEET"

    # Block layout errors
    E_BLOCK_INTEGRITY = "E_BLOCK_INTEGRITY"

    # Semantic classification errors
    E_CLASSIFY_INCONCLUSIVE = "E_CLASSIFY_INCONCLUSIVE"
    E_LLM_TIMEOUT = "E_LLM_TIMEOUT"
    E_LLM_MALFORMED_JSON = "E_LLM_MALFORMED_JSON"
    E_LLM_SCHEMA_INVALID = "E_LLM_SCHEMA_INVALID"
    E_LLM_CONFIDENCE_OOB = "E_LLM_CONFIDENCE_OOB"

    # Warnings (non-fatal)
    W_LOW_CONFIDENCE = "W_LOW_CONFIDENCE"
    W_TEMPERATURE_AMBIGUOUS = "W_TEMPERATURE_AMBIGUOUS"
    W_SEMANTIC_UNAVAILABLE = "W_SEMANTIC_UNAVAILABLE"
    W_LLM_RETRY = "W_LLM_RETRY"
    W_STOWAGE_MISSING = "W_STOWAGE_MISSING"
    W_INJECTION_SKIPPED = "W_INJECTION_SKIPPED"
    W_DUPLICATE_CONTAINER = "W_DUPLICATE_CONTAINER"


class StowError(BaseModel):
    """Structured error with code, message, and context.

    Each error carries an ``ErrorCode``, a human-readable message, and
    optional context about which sheet and processing stage produced it.
    """

    code: ErrorCode
    message: str
    sheet_id: str | None = None
    stage: str | None = None
    recoverable: bool = False


class StowkitException(Exception):
    """Raisable exception wrapping a ``StowError`` data model.

    The structured error is available as ``.error``; ``code``, ``message``,
    ``stage`` and ``recoverable`` delegate to it.
    """

    def __init__(self, **kwargs: object) -> None:
        self.error = StowError(**kwargs)  # type: ignore[arg-type]
        super().__init__(self.error.message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code

    @property
    def message(self) -> str:
        return self.error.message

    @property
    def sheet_id(self) -> str | None:
        return self.error.sheet_id

    @property
    def stage(self) -> str | None:
        return self.error.stage

    @property
    def recoverable(self) -> bool:
        return self.error.recoverable


class StructureError(StowkitException):
    """No header row and no container-ID rows could be located."""


class NoRoleAssigned(StowkitException):
    """A role required by the caller has no column above its threshold."""


class LowConfidence(StowkitException):
    """An assignment was made below the trustworthy confidence band.

    Normally reported as a ``W_LOW_CONFIDENCE`` warning; raised only when
    ``StowkitConfig.fail_on_low_confidence`` is set.
    """


class BlockIntegrityViolation(StowkitException):
    """Header, blocks and tail do not partition the grid exactly."""
