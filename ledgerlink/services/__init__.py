"""Reconciliation services."""

from ledgerlink.services.linking import (
    LinkedSummary,
    LinkError,
    RecordNotFoundError,
    apply_matches,
    link_records,
    linked_summary,
    unlink_records,
)
from ledgerlink.services.reconciliation import (
    DEFAULT_CONFIG,
    ConfigurationError,
    MatchOrchestrator,
    ReconciliationConfig,
    execute_matching,
    execute_sequentially,
    load_reconciliation_config,
    reconcile_sequentially,
    run_matching,
)
from ledgerlink.services.record_store import InMemoryRecordStore, RecordStore, RecordStoreError

__all__ = [
    "DEFAULT_CONFIG",
    "ConfigurationError",
    "InMemoryRecordStore",
    "LinkError",
    "LinkedSummary",
    "MatchOrchestrator",
    "RecordNotFoundError",
    "RecordStore",
    "RecordStoreError",
    "ReconciliationConfig",
    "apply_matches",
    "execute_matching",
    "execute_sequentially",
    "link_records",
    "linked_summary",
    "load_reconciliation_config",
    "reconcile_sequentially",
    "run_matching",
    "unlink_records",
]
