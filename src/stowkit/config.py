"""Configuration model for the stowkit pipeline.

Provides ``StowkitConfig`` with every tunable threshold, scan window and
weight used by the classifier and the block reorderer.  Supports loading
overrides from YAML or JSON files via the ``from_file()`` classmethod.
"""

from __future__ import annotations

import json
import pathlib

from pydantic import BaseModel, Field

from stowkit.models import SemanticRole


class RolePolicy(BaseModel):
    """Scoring weights and acceptance thresholds for one semantic role.

    ``combined = content_weight * density + header_weight * header_score``
    (plus ``semantic_weight`` from ``StowkitConfig`` when a semantic signal
    is available).  A column is eligible for the role only when it has at
    least ``min_matches`` content matches and ``combined >= min_score``.
    """

    content_weight: float = Field(ge=0.0, le=1.0)
    header_weight: float = Field(ge=0.0, le=1.0)
    min_score: float = Field(default=0.3, ge=0.0, le=1.0)
    min_matches: int = Field(default=1, ge=0)


def _default_role_policies() -> dict[SemanticRole, RolePolicy]:
    return {
        SemanticRole.CONTAINER_ID: RolePolicy(
            content_weight=0.8, header_weight=0.2, min_score=0.05
        ),
        SemanticRole.STOWAGE: RolePolicy(
            content_weight=0.7, header_weight=0.3, min_score=0.3
        ),
        SemanticRole.TEMPERATURE_SET: RolePolicy(
            content_weight=0.4, header_weight=0.6, min_score=0.35
        ),
        SemanticRole.TEMPERATURE_ACTUAL: RolePolicy(
            content_weight=0.4, header_weight=0.6, min_score=0.35
        ),
        SemanticRole.UN_NUMBER: RolePolicy(
            content_weight=0.6, header_weight=0.4, min_score=0.3
        ),
        SemanticRole.DG_CLASS: RolePolicy(
            content_weight=0.5, header_weight=0.5, min_score=0.4
        ),
    }


class StowkitConfig(BaseModel):
    """All tunable parameters with sensible defaults.

    Override individual values via constructor kwargs or load a complete
    config from a file with ``StowkitConfig.from_file(path)``.
    """

    # --- Identity ---
    engine_version: str = "stowkit:1.0.0"

    # --- Scan windows ---
    profile_scan_rows: int = 200
    header_scan_rows: int = 30
    container_lookahead_rows: int = 5
    synthetic_scan_rows: int = 50
    min_sheet_rows: int = 3
    banner_min_cells: int = 3
    sheet_skip_patterns: list[str] = [
        r"^(summary|index|total|overview|toc|contents)$",
        r"(summary|total|\(\d+\)|recap|overview)$",
    ]

    # --- Role scoring ---
    role_policies: dict[SemanticRole, RolePolicy] = Field(
        default_factory=_default_role_policies
    )
    semantic_weight: float = 0.2

    # --- Sheet selection ---
    trustworthy_confidence: float = 0.5
    sheet_confidence_floor: float = 0.3
    near_tie_margin: float = 0.1
    min_rows_for_size_bonus: int = 10
    fail_on_low_confidence: bool = False

    # --- Block reordering ---
    injection_prefix_rows: int = 8
    injection_anchor_labels: list[str] = ["(5) PROBE 3"]
    tail_blank_row_gap: int = 0

    # --- Semantic (LLM) column classifier ---
    classification_model: str = "qwen2.5:7b"
    llm_temperature: float = 0.1
    backend_timeout_seconds: float = 30.0
    max_sample_values: int = 5

    # --- Logging / PII safety ---
    log_sample_data: bool = False
    log_llm_prompts: bool = False
    redact_patterns: list[str] = []

    def policy_for(self, role: SemanticRole) -> RolePolicy:
        """Return the scoring policy for *role*, falling back to the defaults."""
        policy = self.role_policies.get(role)
        if policy is None:
            policy = _default_role_policies()[role]
        return policy

    @classmethod
    def from_file(cls, path: str) -> StowkitConfig:
        """Load configuration from a YAML or JSON file.

        File format is detected by extension: ``.yaml`` / ``.yml`` for YAML,
        ``.json`` for JSON.  Any keys present in the file override the
        corresponding defaults; keys not present retain their defaults.

        Args:
            path: Filesystem path to the configuration file.

        Returns:
            A fully-populated ``StowkitConfig`` instance.

        Raises:
            FileNotFoundError: If *path* does not exist.
            ValueError: If the file extension is not recognized.
            ImportError: If a YAML file is provided but ``pyyaml`` is not
                installed.
        """
        file_path = pathlib.Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        suffix = file_path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            try:
                import yaml  # type: ignore[import-untyped]
            except ImportError as exc:
                raise ImportError(
                    "pyyaml is required to load YAML config files. "
                    "Install it with: pip install pyyaml"
                ) from exc
            with open(file_path) as fh:
                data = yaml.safe_load(fh)
        elif suffix == ".json":
            with open(file_path) as fh:
                data = json.load(fh)
        else:
            raise ValueError(
                f"Unsupported config file extension '{suffix}'. "
                "Use .yaml, .yml, or .json."
            )

        if data is None:
            data = {}

        return cls(**data)
