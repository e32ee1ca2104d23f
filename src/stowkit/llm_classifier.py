"""LLM-backed semantic column classifier with schema validation.

Implements the ``SemanticClassifier`` protocol on top of any ``LLMBackend``.
The column header and a few sample values are sent to the model, the answer
is validated against a Pydantic schema, and the result is returned as a
``SemanticSignal``.  Sample values are masked to their shape (``AAAA9999999``)
unless ``log_sample_data`` is enabled, so raw cargo data never leaves the
process by default.

The classifier fails closed: when every attempt fails it returns None and
the role assigner carries on with content and header signals only.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Literal

from pydantic import BaseModel, Field, ValidationError

from stowkit.config import StowkitConfig
from stowkit.errors import ErrorCode, StowError
from stowkit.models import SemanticRole, SemanticSignal
from stowkit.protocols import LLMBackend

logger = logging.getLogger("stowkit")

_JSON_HINT = (
    "\n\nIMPORTANT: Your previous response was not valid JSON. "
    "Respond with ONLY a JSON object."
)


# ---------------------------------------------------------------------------
# LLM Response Schema
# ---------------------------------------------------------------------------


class LLMColumnResponse(BaseModel):
    """Schema for validating LLM column-role output.

    Confidence bounds are checked manually (not via Field constraints) to
    allow clamping instead of rejection.
    """

    role: Literal[
        "container_id",
        "stowage",
        "un_number",
        "dg_class",
        "temperature_set",
        "temperature_actual",
        "unknown",
    ]
    confidence: float
    reasoning: str = Field(min_length=1)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _mask_value(value: str) -> str:
    """Reduce a value to its shape: letters -> ``A``, digits -> ``9``."""
    masked = re.sub(r"[A-Za-z]", "A", value)
    return re.sub(r"\d", "9", masked)


# ---------------------------------------------------------------------------
# LLM Column Classifier
# ---------------------------------------------------------------------------


class LLMColumnClassifier:
    """Suggests a semantic role for a column using an LLM backend."""

    def __init__(self, llm: LLMBackend, config: StowkitConfig | None = None) -> None:
        self._llm = llm
        self._config = config or StowkitConfig()
        self.last_errors: list[StowError] = []

    # -- public API ----------------------------------------------------------

    def classify_column(self, header: str, samples: list[str]) -> SemanticSignal | None:
        """Classify one column from its header and sample values.

        Args:
            header: Header text of the column ("" for synthetic headers).
            samples: Raw sample values as strings.

        Returns:
            A :class:`SemanticSignal`, or None when the model answered
            ``unknown`` or every attempt failed.
        """
        prompt = self._build_prompt(header, samples)
        errors: list[StowError] = []
        self.last_errors = errors
        max_attempts = 2  # 1 original + 1 retry

        for attempt in range(max_attempts):
            if attempt > 0:
                errors.append(
                    StowError(
                        code=ErrorCode.W_LLM_RETRY,
                        message=f"Retrying LLM column classification (attempt {attempt + 1}/{max_attempts})",
                        stage="semantic",
                        recoverable=True,
                    )
                )

            try:
                raw_dict = self._llm.classify(
                    prompt=prompt,
                    model=self._config.classification_model,
                    temperature=self._config.llm_temperature,
                    timeout=self._config.backend_timeout_seconds,
                )
            except json.JSONDecodeError as exc:
                errors.append(
                    StowError(
                        code=ErrorCode.E_LLM_MALFORMED_JSON,
                        message=f"LLM returned unparseable JSON: {exc}",
                        stage="semantic",
                        recoverable=True,
                    )
                )
                prompt = prompt + _JSON_HINT
                continue
            except TimeoutError:
                errors.append(
                    StowError(
                        code=ErrorCode.E_LLM_TIMEOUT,
                        message=f"LLM backend timed out after {self._config.backend_timeout_seconds}s",
                        stage="semantic",
                        recoverable=True,
                    )
                )
                continue
            except Exception as exc:
                errors.append(
                    StowError(
                        code=ErrorCode.E_LLM_MALFORMED_JSON,
                        message=f"LLM backend error: {exc}",
                        stage="semantic",
                        recoverable=True,
                    )
                )
                prompt = prompt + _JSON_HINT
                continue

            if self._config.log_llm_prompts:
                logger.debug("LLM prompt:\n%s", self._redact(prompt))
                logger.debug("LLM response: %s", self._redact(str(raw_dict)))

            parsed = self._validate_response(raw_dict, errors)
            if parsed is None:
                prompt = (
                    prompt
                    + "\n\nIMPORTANT: Your previous response had schema errors. "
                    "Ensure 'role' is one of the listed roles, 'confidence' is a "
                    "float and 'reasoning' is a non-empty string. Respond with "
                    "ONLY a JSON object."
                )
                continue

            if parsed.role == "unknown":
                return None
            return SemanticSignal(
                role=SemanticRole(parsed.role),
                confidence=parsed.confidence,
                reasoning=parsed.reasoning,
            )

        errors.append(
            StowError(
                code=ErrorCode.E_CLASSIFY_INCONCLUSIVE,
                message="LLM column classification failed after all retry attempts",
                stage="semantic",
                recoverable=True,
            )
        )
        logger.warning(
            "LLM column classification failed for header %r; treating as no signal",
            self._redact(header),
        )
        return None

    # -- internal helpers ----------------------------------------------------

    def _build_prompt(self, header: str, samples: list[str]) -> str:
        shown = samples[: self._config.max_sample_values]
        if self._config.log_sample_data:
            rendered = [self._redact(value) for value in shown]
            sample_label = "Sample values"
        else:
            rendered = [_mask_value(value) for value in shown]
            sample_label = "Sample value shapes (A=letter, 9=digit)"

        return (
            "You are labelling a column of a shipping container cargo list.\n"
            "Choose the role the column plays:\n"
            "\n"
            '- "container_id": ISO 6346 container numbers (4 letters + 7 digits)\n'
            '- "stowage": Bay-Row-Tier stowage positions (e.g. 12.34.56)\n'
            '- "un_number": 4-digit UN numbers of dangerous goods\n'
            '- "dg_class": IMDG hazard classes 1-9\n'
            '- "temperature_set": reefer set-point temperature\n'
            '- "temperature_actual": measured / manifested reefer temperature\n'
            '- "unknown": none of the above\n'
            "\n"
            "Respond with JSON only:\n"
            "{\n"
            '  "role": "<one of the roles above>",\n'
            '  "confidence": <float between 0.0 and 1.0>,\n'
            '  "reasoning": "brief explanation"\n'
            "}\n"
            "\n"
            f"Header: {self._redact(header) or '[none]'}\n"
            f"{sample_label}: [{', '.join(rendered)}]"
        )

    def _validate_response(
        self, raw: dict, errors: list[StowError]
    ) -> LLMColumnResponse | None:
        try:
            response = LLMColumnResponse(**raw)
        except (TypeError, ValidationError) as exc:
            errors.append(
                StowError(
                    code=ErrorCode.E_LLM_SCHEMA_INVALID,
                    message=f"LLM response failed schema validation: {exc}",
                    stage="semantic",
                    recoverable=True,
                )
            )
            return None

        if response.confidence < 0.0 or response.confidence > 1.0:
            original = response.confidence
            clamped = max(0.0, min(1.0, response.confidence))
            errors.append(
                StowError(
                    code=ErrorCode.E_LLM_CONFIDENCE_OOB,
                    message=f"Confidence {original} outside [0.0, 1.0], clamped to {clamped}",
                    stage="semantic",
                    recoverable=True,
                )
            )
            response = response.model_copy(update={"confidence": clamped})

        return response

    def _redact(self, text: str) -> str:
        result = text
        for pattern in self._config.redact_patterns:
            result = re.sub(pattern, "[REDACTED]", result)
        return result
