"""Match application and manual link maintenance."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerlink.models import Cardinality, Confidence, DuplicateRecordIdError, MatchResult, PatternType
from ledgerlink.services.linking import (
    LinkError,
    RecordNotFoundError,
    apply_matches,
    link_records,
    linked_summary,
    unlink_records,
)

DAY = date(2024, 4, 10)


def _match(charge_id: str, *context_ids: str) -> MatchResult:
    return MatchResult(
        charge_id=charge_id,
        context_ids=context_ids,
        cardinality=Cardinality.for_count(len(context_ids)),
        confidence=Confidence.HIGH,
        total_amount=Decimal("75.00"),
        charge_amount=Decimal("75.00"),
        amount_difference=Decimal("0"),
        max_day_difference=0,
        pattern_type=PatternType.AMAZON_ORDERS,
    )


@pytest.fixture
def records(bank_record, context_record):
    return [
        bank_record("B1", "75.00", DAY),
        bank_record("B2", "10.00", DAY, links=("O9",)),
        context_record("O1", "30.00", DAY),
        context_record("O2", "45.00", DAY),
        context_record("O9", "10.00", DAY),
    ]


def test_apply_matches_overwrites_links_and_keeps_order(records) -> None:
    updated = apply_matches(records, [_match("B1", "O1", "O2")])

    assert [r.id for r in updated] == [r.id for r in records]
    assert updated[0].existing_links == ("O1", "O2")
    assert updated[1].existing_links == ("O9",)
    # Inputs are untouched.
    assert records[0].existing_links == ()


def test_apply_matches_is_idempotent(records) -> None:
    matches = [_match("B1", "O1", "O2")]
    once = apply_matches(records, matches)
    twice = apply_matches(once, matches)
    assert once == twice


def test_apply_matches_skips_unknown_charge(records) -> None:
    updated = apply_matches(records, [_match("missing", "O1")])
    assert updated == records


def test_link_records_sets_links(records) -> None:
    updated = link_records(records, "B1", ["O2", "O1", "O2"])
    assert updated.id == "B1"
    assert updated.existing_links == ("O2", "O1")


@pytest.mark.parametrize(
    ("charge_id", "context_ids", "message"),
    [
        ("B1", [], "At least one"),
        ("O1", ["O2"], "context-only"),
        ("B1", ["B2"], "not a context-only"),
        ("B1", ["O9"], "already linked to B2"),
    ],
)
def test_link_records_rejects_invalid_requests(records, charge_id, context_ids, message) -> None:
    with pytest.raises(LinkError, match=message):
        link_records(records, charge_id, context_ids)


def test_link_records_reports_missing_records(records) -> None:
    with pytest.raises(RecordNotFoundError, match="Charge record nope"):
        link_records(records, "nope", ["O1"])
    with pytest.raises(RecordNotFoundError, match="Context record nope"):
        link_records(records, "B1", ["nope"])


def test_relinking_own_context_is_allowed(records) -> None:
    updated = link_records(records, "B2", ["O9", "O1"])
    assert updated.existing_links == ("O9", "O1")


def test_unlink_records(records, bank_record) -> None:
    linked = records + [bank_record("B3", "75.00", DAY, links=("O1", "O2"))]

    partial = unlink_records(linked, "B3", ["O1"])
    assert partial.existing_links == ("O2",)

    cleared = unlink_records(linked, "B3")
    assert cleared.existing_links == ()

    with pytest.raises(LinkError, match="no linked records"):
        unlink_records(linked, "B1")


def test_linked_summary(records, bank_record) -> None:
    linked = records + [bank_record("B3", "76.00", DAY, links=("O1", "O2", "gone"))]

    summary = linked_summary(linked, "B3")

    assert [r.id for r in summary.linked] == ["O1", "O2"]
    assert summary.total_amount == Decimal("75.00")
    assert summary.amount_difference == Decimal("1.00")

    empty = linked_summary(linked, "B1")
    assert empty.linked == ()
    assert empty.amount_difference == Decimal("0")


def test_apply_matches_rejects_duplicate_ids(records, bank_record) -> None:
    with pytest.raises(DuplicateRecordIdError, match="Duplicate record id B1"):
        apply_matches([*records, bank_record("B1", "1.00", DAY)], [_match("B1", "O1")])
