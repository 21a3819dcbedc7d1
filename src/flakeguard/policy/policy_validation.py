# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Policy document parsing and validation.

Policy documents are YAML mappings validated against ``ModelPolicyConfig``
(``extra="forbid"``), so unknown keys and out-of-range values are reported
per field as ``field.path: message``. A valid document replaces every
default; fields it omits take the model defaults.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

import yaml
from pydantic import ValidationError

from flakeguard.errors import PolicyValidationError
from flakeguard.models import ModelPolicyConfig

logger = logging.getLogger(__name__)

ENV_WARN_THRESHOLD: str = "FLAKE_WARN_THRESHOLD"
ENV_QUARANTINE_THRESHOLD: str = "FLAKE_QUARANTINE_THRESHOLD"


def format_validation_errors(error: ValidationError) -> list[str]:
    """Render pydantic errors as ``field.path: message`` strings."""
    messages: list[str] = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"]) or "(root)"
        messages.append(f"{location}: {detail['msg']}")
    return messages


def validate_policy_document(
    raw: object,
) -> tuple[ModelPolicyConfig | None, list[str]]:
    """Validate an already-parsed policy document.

    Args:
        raw: Result of ``yaml.safe_load`` on the policy file.

    Returns:
        ``(config, [])`` when valid, ``(None, errors)`` otherwise.
    """
    if not isinstance(raw, Mapping):
        return None, [f"(root): expected a mapping, got {type(raw).__name__}"]
    try:
        return ModelPolicyConfig.model_validate(dict(raw)), []
    except ValidationError as e:
        return None, format_validation_errors(e)


def parse_policy_document(text: str) -> ModelPolicyConfig:
    """Parse and validate policy YAML.

    Raises:
        PolicyValidationError: On YAML syntax errors or schema violations.
    """
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        where = f"line {mark.line + 1}" if mark is not None else "(root)"
        raise PolicyValidationError(
            "Policy document is not valid YAML",
            errors=[f"{where}: {getattr(e, 'problem', None) or type(e).__name__}"],
        ) from e
    config, errors = validate_policy_document(raw)
    if config is None:
        raise PolicyValidationError(
            f"Policy document failed validation ({len(errors)} errors)",
            errors=errors,
        )
    return config


def dump_policy_document(config: ModelPolicyConfig) -> str:
    """Serialize a policy as YAML that ``parse_policy_document`` reads back."""
    return yaml.safe_dump(
        config.model_dump(mode="json"),
        sort_keys=False,
        default_flow_style=False,
    )


def _env_threshold(environ: Mapping[str, str], name: str) -> float | None:
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        value = float(raw)
    except ValueError:
        logger.warning(
            "Ignoring non-numeric threshold from environment",
            extra={"variable": name},
        )
        return None
    if not 0.0 <= value <= 1.0:
        logger.warning(
            "Ignoring out-of-range threshold from environment",
            extra={"variable": name, "value": value},
        )
        return None
    return value


def default_policy_config(
    environ: Mapping[str, str] | None = None,
) -> ModelPolicyConfig:
    """Defaults used when a repository has no valid policy document.

    ``FLAKE_WARN_THRESHOLD`` and ``FLAKE_QUARANTINE_THRESHOLD`` override the
    two thresholds; an inconsistent pair is discarded.
    """
    env = os.environ if environ is None else environ
    overrides: dict[str, float] = {}
    warn = _env_threshold(env, ENV_WARN_THRESHOLD)
    if warn is not None:
        overrides["warn_threshold"] = warn
    quarantine = _env_threshold(env, ENV_QUARANTINE_THRESHOLD)
    if quarantine is not None:
        overrides["flaky_threshold"] = quarantine
    try:
        return ModelPolicyConfig(**overrides)
    except ValidationError as e:
        logger.warning(
            "Environment thresholds rejected, using built-in defaults",
            extra={"errors": format_validation_errors(e)},
        )
        return ModelPolicyConfig()


__all__: list[str] = [
    "ENV_QUARANTINE_THRESHOLD",
    "ENV_WARN_THRESHOLD",
    "default_policy_config",
    "dump_policy_document",
    "format_validation_errors",
    "parse_policy_document",
    "validate_policy_document",
]
