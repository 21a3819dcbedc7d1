# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""FlakeGuard Enumerations Module.

Exports:
    EnumErrorCode: Machine-readable error codes
    EnumFlakePattern: Failure pattern classification
    EnumFlakeRecommendation: Recommendation attached to a flake score
    EnumInfraTransportType: Transport type for error context
    EnumJobKind: Ingestion or analysis job
    EnumJobPhase: Job progress phase
    EnumJobPriority: Job submission priority
    EnumJobStatus: Job lifecycle status
    EnumPolicyAction: Policy decision action
    EnumPolicySource: Origin of a resolved policy configuration
    EnumQuarantineState: Quarantine decision state
    EnumSeverity: Four-level severity/priority scale
    EnumTestStatus: Test execution outcome
"""

from flakeguard.enums.enum_error_code import EnumErrorCode
from flakeguard.enums.enum_flake_pattern import EnumFlakePattern
from flakeguard.enums.enum_flake_recommendation import EnumFlakeRecommendation
from flakeguard.enums.enum_infra_transport_type import EnumInfraTransportType
from flakeguard.enums.enum_job_kind import EnumJobKind
from flakeguard.enums.enum_job_phase import EnumJobPhase
from flakeguard.enums.enum_job_priority import EnumJobPriority
from flakeguard.enums.enum_job_status import EnumJobStatus
from flakeguard.enums.enum_policy_action import EnumPolicyAction
from flakeguard.enums.enum_policy_source import EnumPolicySource
from flakeguard.enums.enum_quarantine_state import EnumQuarantineState
from flakeguard.enums.enum_severity import EnumSeverity
from flakeguard.enums.enum_test_status import EnumTestStatus

__all__: list[str] = [
    "EnumErrorCode",
    "EnumFlakePattern",
    "EnumFlakeRecommendation",
    "EnumInfraTransportType",
    "EnumJobKind",
    "EnumJobPhase",
    "EnumJobPriority",
    "EnumJobStatus",
    "EnumPolicyAction",
    "EnumPolicySource",
    "EnumQuarantineState",
    "EnumSeverity",
    "EnumTestStatus",
]
