# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Policy resolution, decision evaluation and quarantine management."""

from flakeguard.policy.policy_engine import PolicyEngine
from flakeguard.policy.policy_source_github import POLICY_FILE_PATH, PolicySourceGitHub
from flakeguard.policy.policy_validation import (
    default_policy_config,
    dump_policy_document,
    parse_policy_document,
    validate_policy_document,
)
from flakeguard.policy.protocol_policy_source import ProtocolPolicySource
from flakeguard.policy.service_quarantine import ServiceQuarantine

__all__: list[str] = [
    "POLICY_FILE_PATH",
    "PolicyEngine",
    "PolicySourceGitHub",
    "ProtocolPolicySource",
    "ServiceQuarantine",
    "default_policy_config",
    "dump_policy_document",
    "parse_policy_document",
    "validate_policy_document",
]
