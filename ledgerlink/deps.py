"""Common FastAPI dependencies for consistent type annotations.

Usage:
    from ledgerlink.deps import RecordStoreDep, ReconciliationConfigDep

    async def my_endpoint(store: RecordStoreDep, config: ReconciliationConfigDep):
        ...
"""

import asyncio
from typing import Annotated

from fastapi import Depends

from ledgerlink.services.reconciliation import ReconciliationConfig, load_reconciliation_config
from ledgerlink.services.record_store import InMemoryRecordStore

_record_store = InMemoryRecordStore()

# Serializes every read-match-write cycle against the store.
store_lock = asyncio.Lock()


def get_record_store() -> InMemoryRecordStore:
    return _record_store


def get_reconciliation_config() -> ReconciliationConfig:
    return load_reconciliation_config()


RecordStoreDep = Annotated[InMemoryRecordStore, Depends(get_record_store)]
ReconciliationConfigDep = Annotated[ReconciliationConfig, Depends(get_reconciliation_config)]

__all__ = [
    "ReconciliationConfigDep",
    "RecordStoreDep",
    "get_reconciliation_config",
    "get_record_store",
    "store_lock",
]
