"""Record store boundary used by the reconciliation caller."""

import threading
from collections.abc import Iterable
from typing import Protocol

from ledgerlink.logger import get_logger
from ledgerlink.models import MatchableRecord

logger = get_logger(__name__)


class RecordStoreError(Exception):
    """Base exception for record store errors."""


class RecordStore(Protocol):
    """What the engine's caller needs from persistent storage."""

    def get_record(self, record_id: str) -> MatchableRecord | None: ...

    def list_records(self) -> list[MatchableRecord]: ...

    def update_record(self, record: MatchableRecord) -> None: ...


class InMemoryRecordStore:
    """Dict-backed store keyed by record id, in insertion order."""

    def __init__(self, records: Iterable[MatchableRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, MatchableRecord] = {}
        self.replace_all(records)

    def replace_all(self, records: Iterable[MatchableRecord]) -> int:
        """Swap in a new snapshot; duplicate ids are rejected."""
        fresh: dict[str, MatchableRecord] = {}
        for record in records:
            if record.id in fresh:
                raise RecordStoreError(f"Duplicate record id {record.id}")
            fresh[record.id] = record
        with self._lock:
            self._records = fresh
        return len(fresh)

    def get_record(self, record_id: str) -> MatchableRecord | None:
        with self._lock:
            return self._records.get(record_id)

    def list_records(self) -> list[MatchableRecord]:
        with self._lock:
            return list(self._records.values())

    def update_record(self, record: MatchableRecord) -> None:
        with self._lock:
            if record.id not in self._records:
                raise RecordStoreError(f"Record {record.id} not found")
            self._records[record.id] = record
        logger.debug("Record updated", record_id=record.id, links=len(record.existing_links))

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
