"""Tests for StowkitConfig defaults, role policies and from_file()."""

from __future__ import annotations

import json
import tempfile

import pytest
import yaml
from pydantic import ValidationError

from stowkit.config import RolePolicy, StowkitConfig
from stowkit.models import SemanticRole


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------


class TestConfigDefaults:
    def test_engine_version(self, sample_config: StowkitConfig) -> None:
        assert sample_config.engine_version == "stowkit:1.0.0"

    def test_scan_windows(self, sample_config: StowkitConfig) -> None:
        assert sample_config.profile_scan_rows == 200
        assert sample_config.header_scan_rows == 30
        assert sample_config.container_lookahead_rows == 5
        assert sample_config.synthetic_scan_rows == 50
        assert sample_config.min_sheet_rows == 3

    def test_selection_thresholds(self, sample_config: StowkitConfig) -> None:
        assert sample_config.trustworthy_confidence == 0.5
        assert sample_config.sheet_confidence_floor == 0.3
        assert sample_config.near_tie_margin == 0.1
        assert sample_config.fail_on_low_confidence is False

    def test_block_settings(self, sample_config: StowkitConfig) -> None:
        assert sample_config.injection_prefix_rows == 8
        assert sample_config.injection_anchor_labels == ["(5) PROBE 3"]
        assert sample_config.tail_blank_row_gap == 0

    def test_llm_and_logging(self, sample_config: StowkitConfig) -> None:
        assert sample_config.classification_model == "qwen2.5:7b"
        assert sample_config.llm_temperature == 0.1
        assert sample_config.backend_timeout_seconds == 30.0
        assert sample_config.log_sample_data is False
        assert sample_config.log_llm_prompts is False
        assert sample_config.redact_patterns == []

    def test_every_role_has_a_policy(self, sample_config: StowkitConfig) -> None:
        for role in SemanticRole:
            policy = sample_config.policy_for(role)
            assert 0.0 <= policy.min_score <= 1.0
            assert policy.content_weight + policy.header_weight == pytest.approx(1.0)

    def test_container_policy_leans_on_content(self, sample_config: StowkitConfig) -> None:
        policy = sample_config.policy_for(SemanticRole.CONTAINER_ID)
        assert policy.content_weight > policy.header_weight


# ---------------------------------------------------------------------------
# Overrides
# ---------------------------------------------------------------------------


class TestConfigCustom:
    def test_override_scalar(self) -> None:
        cfg = StowkitConfig(near_tie_margin=0.05)
        assert cfg.near_tie_margin == 0.05

    def test_partial_policy_table_falls_back_to_defaults(self) -> None:
        cfg = StowkitConfig(
            role_policies={
                SemanticRole.STOWAGE: RolePolicy(content_weight=1.0, header_weight=0.0)
            }
        )
        assert cfg.policy_for(SemanticRole.STOWAGE).header_weight == 0.0
        assert cfg.policy_for(SemanticRole.DG_CLASS).min_score == 0.4

    def test_policy_weights_are_bounded(self) -> None:
        with pytest.raises(ValidationError):
            RolePolicy(content_weight=1.5, header_weight=0.0)


# ---------------------------------------------------------------------------
# from_file()
# ---------------------------------------------------------------------------


class TestConfigFromFile:
    def test_loads_json(self) -> None:
        data = {"classification_model": "custom:3b", "tail_blank_row_gap": 3}
        with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as fh:
            json.dump(data, fh)
            fh.flush()
            cfg = StowkitConfig.from_file(fh.name)
        assert cfg.classification_model == "custom:3b"
        assert cfg.tail_blank_row_gap == 3
        assert cfg.engine_version == "stowkit:1.0.0"

    def test_loads_yaml_with_role_policies(self) -> None:
        data = {
            "header_scan_rows": 10,
            "role_policies": {
                "stowage": {"content_weight": 0.9, "header_weight": 0.1, "min_score": 0.5}
            },
        }
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as fh:
            yaml.dump(data, fh)
            fh.flush()
            cfg = StowkitConfig.from_file(fh.name)
        assert cfg.header_scan_rows == 10
        assert cfg.policy_for(SemanticRole.STOWAGE).min_score == 0.5

    def test_empty_yml(self) -> None:
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yml", delete=False) as fh:
            fh.write("")
            fh.flush()
            cfg = StowkitConfig.from_file(fh.name)
        assert cfg == StowkitConfig()

    def test_missing_file(self) -> None:
        with pytest.raises(FileNotFoundError):
            StowkitConfig.from_file("/nonexistent/stowkit.yaml")

    def test_unsupported_extension(self) -> None:
        with tempfile.NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as fh:
            fh.write("x = 1")
            fh.flush()
            with pytest.raises(ValueError, match="Unsupported"):
                StowkitConfig.from_file(fh.name)
