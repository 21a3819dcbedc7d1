# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""FlakeGuard - CI flaky-test detection, scoring and quarantine policy.

This package ingests CI test-report artifacts, records per-test execution
history, scores flakiness and turns scores into policy decisions:

- ingestion: artifact retrieval, streaming archive extraction, JUnit parsing
- storage: test case identities and append-only occurrences
- scoring: multi-factor flakiness scorer and failure clustering
- policy: cached repository policy resolution, decisions and quarantine
- jobs: idempotent, retryable ingestion/analysis job orchestration
"""

__version__ = "0.1.0"

__all__: list[str] = ["__version__"]
