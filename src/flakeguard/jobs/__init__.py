# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Job orchestration: stores, pipelines, decision sinks and workers."""

from flakeguard.jobs.decision_sink_inmemory import InMemoryDecisionSink, PublishedAnalysis
from flakeguard.jobs.decision_sink_logging import DecisionSinkLogging
from flakeguard.jobs.job_store_inmemory import InMemoryJobStore
from flakeguard.jobs.job_store_postgres import StoreJobPostgres
from flakeguard.jobs.pipeline_analysis import PipelineAnalysis
from flakeguard.jobs.pipeline_ingestion import PipelineIngestion
from flakeguard.jobs.protocol_decision_sink import ProtocolDecisionSink
from flakeguard.jobs.protocol_job_pipeline import ProgressCallback, ProtocolJobPipeline
from flakeguard.jobs.protocol_job_store import ProtocolJobStore
from flakeguard.jobs.service_job_orchestrator import ServiceJobOrchestrator, job_id_for

__all__: list[str] = [
    "DecisionSinkLogging",
    "InMemoryDecisionSink",
    "InMemoryJobStore",
    "PipelineAnalysis",
    "PipelineIngestion",
    "ProgressCallback",
    "ProtocolDecisionSink",
    "ProtocolJobPipeline",
    "ProtocolJobStore",
    "PublishedAnalysis",
    "ServiceJobOrchestrator",
    "StoreJobPostgres",
    "job_id_for",
]
