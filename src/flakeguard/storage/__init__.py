# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Test history persistence: test cases, occurrences, scores, quarantine."""

from flakeguard.storage.protocol_test_history_store import ProtocolTestHistoryStore
from flakeguard.storage.service_occurrence_writer import ServiceOccurrenceWriter
from flakeguard.storage.store_history_inmemory import InMemoryTestHistoryStore
from flakeguard.storage.store_history_postgres import StoreTestHistoryPostgres

__all__: list[str] = [
    "InMemoryTestHistoryStore",
    "ProtocolTestHistoryStore",
    "ServiceOccurrenceWriter",
    "StoreTestHistoryPostgres",
]
