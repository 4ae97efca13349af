"""In-memory record store."""

from datetime import date

import pytest

from ledgerlink.services.record_store import InMemoryRecordStore, RecordStoreError


def test_store_round_trip(bank_record, context_record) -> None:
    store = InMemoryRecordStore([bank_record("B1", "1.00", date(2024, 1, 1))])
    assert len(store) == 1

    count = store.replace_all(
        [bank_record("B2", "2.00", date(2024, 1, 2)), context_record("O1", "2.00", date(2024, 1, 2))]
    )

    assert count == 2
    assert store.get_record("B1") is None
    assert [r.id for r in store.list_records()] == ["B2", "O1"]


def test_update_record_replaces_by_id(bank_record) -> None:
    record = bank_record("B1", "1.00", date(2024, 1, 1))
    store = InMemoryRecordStore([record])

    store.update_record(record.with_links(["O1"]))

    assert store.get_record("B1").existing_links == ("O1",)


def test_update_unknown_record_fails(bank_record) -> None:
    store = InMemoryRecordStore()
    with pytest.raises(RecordStoreError, match="not found"):
        store.update_record(bank_record("B1", "1.00", date(2024, 1, 1)))


def test_duplicate_ids_are_rejected_and_snapshot_kept(bank_record) -> None:
    original = bank_record("B0", "1.00", date(2024, 1, 1))
    store = InMemoryRecordStore([original])

    with pytest.raises(RecordStoreError, match="Duplicate record id B1"):
        store.replace_all(
            [bank_record("B1", "1.00", date(2024, 1, 1)), bank_record("B1", "2.00", date(2024, 1, 1))]
        )

    assert store.list_records() == [original]
