# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Unit tests for policy document parsing, validation and defaults."""

from __future__ import annotations

import pytest

from flakeguard.enums import EnumErrorCode
from flakeguard.errors import PolicyValidationError
from flakeguard.models import DEFAULT_EXCLUDE_PATHS, ModelPolicyConfig, ModelTeamOverride
from flakeguard.policy import (
    default_policy_config,
    dump_policy_document,
    parse_policy_document,
    validate_policy_document,
)

VALID_POLICY = """
flaky_threshold: 0.5
warn_threshold: 0.2
min_occurrences: 8
auto_quarantine_enabled: true
labels_required: [ci-quarantine]
exempted_tests: ["*test_critical*"]
team_overrides:
  payments:
    flaky_threshold: 0.8
scoring_weights:
  failure_rate: 0.5
  inconsistency: 0.3
  recency: 0.1
  branch_diversity: 0.1
"""


class TestParsePolicyDocument:
    def test_valid_document(self) -> None:
        config = parse_policy_document(VALID_POLICY)

        assert config.flaky_threshold == 0.5
        assert config.warn_threshold == 0.2
        assert config.min_occurrences == 8
        assert config.labels_required == ("ci-quarantine",)
        assert config.team_overrides == {
            "payments": ModelTeamOverride(flaky_threshold=0.8)
        }
        assert config.scoring_weights.failure_rate == 0.5

    def test_omitted_fields_take_defaults(self) -> None:
        config = parse_policy_document("warn_threshold: 0.25\n")

        assert config.flaky_threshold == 0.6
        assert config.exclude_paths == DEFAULT_EXCLUDE_PATHS

    def test_empty_document_rejected(self) -> None:
        with pytest.raises(PolicyValidationError) as exc_info:
            parse_policy_document("")

        assert exc_info.value.errors == ["(root): expected a mapping, got NoneType"]

    def test_yaml_syntax_error_reports_line(self) -> None:
        with pytest.raises(PolicyValidationError) as exc_info:
            parse_policy_document("flaky_threshold: 0.5: 0.6\n")

        assert exc_info.value.error_code is EnumErrorCode.POLICY_INVALID
        assert exc_info.value.errors[0].startswith("line ")

    @pytest.mark.parametrize(
        ("document", "field"),
        [
            ("flaky_threshold: 1.5\n", "flaky_threshold"),
            ("min_occurrences: 0\n", "min_occurrences"),
            ("lookback_days: 400\n", "lookback_days"),
            ("rolling_window_size: 4\n", "rolling_window_size"),
            ("quarantine_duration_days: 0\n", "quarantine_duration_days"),
            ("unknown_key: 1\n", "unknown_key"),
            ("team_overrides:\n  core:\n    warn_threshold: -0.1\n", "team_overrides.core.warn_threshold"),
        ],
    )
    def test_field_errors_are_reported_by_path(self, document: str, field: str) -> None:
        with pytest.raises(PolicyValidationError) as exc_info:
            parse_policy_document(document)

        assert any(e.startswith(f"{field}: ") for e in exc_info.value.errors)

    def test_warn_above_quarantine_rejected(self) -> None:
        config, errors = validate_policy_document(
            {"warn_threshold": 0.7, "flaky_threshold": 0.6}
        )

        assert config is None
        assert len(errors) == 1
        assert "must not exceed" in errors[0]

    @pytest.mark.parametrize("boundary", [0.0, 1.0])
    def test_threshold_boundaries_survive_dump_and_parse(self, boundary: float) -> None:
        config = ModelPolicyConfig(
            flaky_threshold=boundary,
            warn_threshold=boundary,
            lookback_days=365,
            rolling_window_size=5,
        )

        assert parse_policy_document(dump_policy_document(config)) == config

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("min_occurrences", 1),
            ("min_recent_failures", 1),
            ("rolling_window_size", 5),
            ("rolling_window_size", 500),
            ("lookback_days", 1),
            ("lookback_days", 365),
            ("quarantine_duration_days", 365),
        ],
    )
    def test_integer_bounds_accepted(self, field: str, value: int) -> None:
        config = parse_policy_document(f"{field}: {value}\n")

        assert getattr(config, field) == value
        assert parse_policy_document(dump_policy_document(config)) == config

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("min_occurrences", 0),
            ("min_occurrences", -3),
            ("min_recent_failures", 0),
            ("rolling_window_size", 4),
            ("rolling_window_size", 501),
            ("lookback_days", 0),
            ("lookback_days", 366),
            ("quarantine_duration_days", 0),
        ],
    )
    def test_integer_bounds_rejected(self, field: str, value: int) -> None:
        config, errors = validate_policy_document({field: value})

        assert config is None
        assert len(errors) == 1
        assert errors[0].startswith(f"{field}: ")

    def test_default_dump_parses_back(self) -> None:
        assert parse_policy_document(dump_policy_document(ModelPolicyConfig())) == (
            ModelPolicyConfig()
        )


class TestDefaultPolicyConfig:
    def test_environment_thresholds(self) -> None:
        config = default_policy_config(
            {"FLAKE_WARN_THRESHOLD": "0.2", "FLAKE_QUARANTINE_THRESHOLD": "0.9"}
        )

        assert config.warn_threshold == 0.2
        assert config.flaky_threshold == 0.9

    @pytest.mark.parametrize("value", ["abc", "1.5", "-0.1", "  "])
    def test_unusable_values_ignored(self, value: str) -> None:
        config = default_policy_config({"FLAKE_WARN_THRESHOLD": value})

        assert config.warn_threshold == 0.3

    def test_inconsistent_pair_falls_back_to_builtin(self) -> None:
        config = default_policy_config(
            {"FLAKE_WARN_THRESHOLD": "0.8", "FLAKE_QUARANTINE_THRESHOLD": "0.5"}
        )

        assert config == ModelPolicyConfig()

    def test_reads_process_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FLAKE_QUARANTINE_THRESHOLD", "0.75")
        monkeypatch.delenv("FLAKE_WARN_THRESHOLD", raising=False)

        assert default_policy_config().flaky_threshold == 0.75
