"""Pattern tables and charge/context classification."""

from datetime import date
from decimal import Decimal

import pytest

from ledgerlink.models import MatchableRecord, PatternType, RecordOrigin
from ledgerlink.services.classification import classify
from ledgerlink.services.patterns import (
    PatternRule,
    PatternTableError,
    default_pattern_tables,
    parse_pattern_tables,
)

TABLES = default_pattern_tables()


@pytest.mark.parametrize(
    ("pattern_type", "description"),
    [
        (PatternType.AMAZON_ORDERS, "AMZN Mktp DE*2K4"),
        (PatternType.AMAZON_ORDERS, "Amazon Payments Europe"),
        (PatternType.PAYPAL, "PP *1234 Spotify"),
        (PatternType.PAYPAL, "PayPal (Europe) S.a.r.l."),
        (PatternType.CARD_ACQUIRER, "Advanzia Bank S.A."),
        (PatternType.CARD_ACQUIRER, "Gebührenfrei Mastercard Gold"),
    ],
)
def test_charge_patterns_match_bank_descriptions(pattern_type: PatternType, description: str) -> None:
    record = MatchableRecord(id="B", date=date(2024, 1, 1), amount=Decimal("-1"), description=description)
    assert TABLES[pattern_type].matches_charge(record)


def test_beneficiary_is_checked_too() -> None:
    record = MatchableRecord(
        id="B",
        date=date(2024, 1, 1),
        amount=Decimal("-10"),
        description="SEPA Lastschrift",
        beneficiary="PayPal Europe",
    )
    assert TABLES[PatternType.PAYPAL].matches_charge(record)
    assert not TABLES[PatternType.AMAZON_ORDERS].matches_charge(record)


def test_classify_splits_roles(bank_record, context_record) -> None:
    records = [
        bank_record("B1", "49.99", date(2024, 3, 5)),
        bank_record("B2", "12.00", date(2024, 3, 5), description="REWE Markt"),
        context_record("O1", "49.99", date(2024, 3, 3)),
        context_record("P1", "49.99", date(2024, 3, 3), origin=RecordOrigin.PAYPAL),
    ]

    result = classify(records, TABLES[PatternType.AMAZON_ORDERS])

    assert [r.id for r in result.charge_side] == ["B1"]
    assert [r.id for r in result.context_side] == ["O1"]
    assert result.invalid == []


def test_context_only_record_is_never_charge_side(context_record) -> None:
    order = context_record("O1", "10.00", date(2024, 3, 3), description="Amazon order 123")
    result = classify([order], TABLES[PatternType.AMAZON_ORDERS])
    assert result.charge_side == []
    assert [r.id for r in result.context_side] == ["O1"]


def test_invalid_eligible_records_are_set_aside(bank_record, context_record) -> None:
    records = [
        bank_record("B1", "49.99", None),
        context_record("O1", Decimal("NaN"), date(2024, 3, 3)),
        bank_record("B2", "5.00", None, description="Unrelated"),
    ]

    result = classify(records, TABLES[PatternType.AMAZON_ORDERS])

    assert result.charge_side == []
    assert result.context_side == []
    assert [r.id for r in result.invalid] == ["B1", "O1"]


def test_build_rejects_bad_regex() -> None:
    with pytest.raises(PatternTableError, match="Invalid pattern"):
        PatternRule.build(PatternType.PAYPAL, ["paypal("], RecordOrigin.PAYPAL)


def test_build_rejects_empty_table() -> None:
    with pytest.raises(PatternTableError, match="empty"):
        PatternRule.build(PatternType.PAYPAL, [], RecordOrigin.PAYPAL)


def test_parse_pattern_tables_overlays_defaults() -> None:
    tables = parse_pattern_tables(
        {"paypal": {"charge_patterns": ["klarna"], "max_date_difference_days": 4}}
    )

    paypal = tables[PatternType.PAYPAL]
    assert [p.pattern for p in paypal.charge_patterns] == ["klarna"]
    assert paypal.context_origin == RecordOrigin.PAYPAL
    assert paypal.max_date_difference_days == 4
    assert tables[PatternType.AMAZON_ORDERS] == TABLES[PatternType.AMAZON_ORDERS]


def test_parse_pattern_tables_rejects_unknown_entries() -> None:
    with pytest.raises(PatternTableError, match="Unknown pattern type"):
        parse_pattern_tables({"ebay": {"charge_patterns": ["ebay"]}})
    with pytest.raises(PatternTableError, match="Unknown context origin"):
        parse_pattern_tables({"paypal": {"context_origin": "venmo"}})
