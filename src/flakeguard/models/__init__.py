# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""FlakeGuard Data Models.

Frozen pydantic models shared by the ingestion, scoring, policy and job
layers.
"""

from flakeguard.models.model_analysis_result import ModelAnalysisResult
from flakeguard.models.model_artifact import ModelArtifact
from flakeguard.models.model_artifact_filter import (
    DEFAULT_MAX_SIZE_BYTES,
    DEFAULT_NAME_PATTERNS,
    ModelArtifactFilter,
)
from flakeguard.models.model_evaluation_context import ModelEvaluationContext
from flakeguard.models.model_failure_cluster import ModelFailureCluster
from flakeguard.models.model_flake_features import ModelFlakeFeatures
from flakeguard.models.model_flake_score import ModelFlakeScore
from flakeguard.models.model_ingestion_result import ModelIngestionResult
from flakeguard.models.model_job import ModelJob
from flakeguard.models.model_job_error import ModelJobError
from flakeguard.models.model_job_progress import ModelJobProgress
from flakeguard.models.model_job_status_response import ModelJobStatusResponse
from flakeguard.models.model_job_submission import ModelJobSubmission
from flakeguard.models.model_job_submission_response import (
    ModelJobSubmissionResponse,
)
from flakeguard.models.model_occurrence import ModelOccurrence
from flakeguard.models.model_parsed_test_case import ModelParsedTestCase
from flakeguard.models.model_parsed_test_suite import ModelParsedTestSuite
from flakeguard.models.model_policy_cache_entry import ModelPolicyCacheEntry
from flakeguard.models.model_policy_cache_stats import ModelPolicyCacheStats
from flakeguard.models.model_policy_config import (
    DEFAULT_EXCLUDE_PATHS,
    ModelPolicyConfig,
)
from flakeguard.models.model_policy_decision import ModelPolicyDecision
from flakeguard.models.model_postgres_store_config import ModelPostgresStoreConfig
from flakeguard.models.model_quarantine_decision import ModelQuarantineDecision
from flakeguard.models.model_quarantine_proposal import ModelQuarantineProposal
from flakeguard.models.model_report_parse_result import ModelReportParseResult
from flakeguard.models.model_repository_ref import ModelRepositoryRef
from flakeguard.models.model_retry_state import ModelRetryState
from flakeguard.models.model_scoring_weights import ModelScoringWeights
from flakeguard.models.model_team_override import ModelTeamOverride
from flakeguard.models.model_test_case_key import ModelTestCaseKey
from flakeguard.models.model_test_case_record import ModelTestCaseRecord

__all__: list[str] = [
    "DEFAULT_EXCLUDE_PATHS",
    "DEFAULT_MAX_SIZE_BYTES",
    "DEFAULT_NAME_PATTERNS",
    "ModelAnalysisResult",
    "ModelArtifact",
    "ModelArtifactFilter",
    "ModelEvaluationContext",
    "ModelFailureCluster",
    "ModelFlakeFeatures",
    "ModelFlakeScore",
    "ModelIngestionResult",
    "ModelJob",
    "ModelJobError",
    "ModelJobProgress",
    "ModelJobStatusResponse",
    "ModelJobSubmission",
    "ModelJobSubmissionResponse",
    "ModelOccurrence",
    "ModelParsedTestCase",
    "ModelParsedTestSuite",
    "ModelPolicyCacheEntry",
    "ModelPolicyCacheStats",
    "ModelPolicyConfig",
    "ModelPolicyDecision",
    "ModelPostgresStoreConfig",
    "ModelQuarantineDecision",
    "ModelQuarantineProposal",
    "ModelReportParseResult",
    "ModelRepositoryRef",
    "ModelRetryState",
    "ModelScoringWeights",
    "ModelTeamOverride",
    "ModelTestCaseKey",
    "ModelTestCaseRecord",
]
