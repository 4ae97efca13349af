"""Confidence labels, review scores and tolerance re-checks."""

from datetime import date
from decimal import Decimal

from ledgerlink.models import Cardinality, Confidence, MatchResult, PatternType
from ledgerlink.services.reconciliation import DEFAULT_CONFIG
from ledgerlink.services.scoring import (
    amount_score,
    describe_amounts,
    score_match,
    score_proximity,
    within_tolerance,
)


def _result(cardinality: Cardinality, charge: str, total: str) -> MatchResult:
    return MatchResult(
        charge_id="B1",
        context_ids=("O1",) if cardinality == Cardinality.ONE_TO_ONE else ("O1", "O2"),
        cardinality=cardinality,
        confidence=Confidence.MEDIUM,
        total_amount=Decimal(total),
        charge_amount=Decimal(charge),
        amount_difference=abs(Decimal(total) - Decimal(charge)),
        max_day_difference=1,
        pattern_type=PatternType.AMAZON_ORDERS,
    )


def test_amount_score_formula() -> None:
    assert amount_score(Decimal("20.00"), Decimal("22.00")) == 90.0
    assert amount_score(Decimal("20.00"), Decimal("20.00")) == 100.0
    assert amount_score(Decimal("10.00"), Decimal("35.00")) == 0.0
    assert amount_score(Decimal("0"), Decimal("0")) == 100.0
    assert amount_score(Decimal("0"), Decimal("1")) == 0.0


def test_high_confidence_needs_close_amount_and_date(context_record) -> None:
    matched = [context_record("O1", "49.99", date(2024, 3, 3))]
    card = score_match(
        matched, Decimal("49.99"), Decimal("49.99"), 2, auto_eligible=True, config=DEFAULT_CONFIG
    )
    assert card.confidence == Confidence.HIGH
    assert card.score == 100.0


def test_later_posting_is_medium(context_record) -> None:
    matched = [context_record("O1", "49.99", date(2024, 3, 1))]
    card = score_match(
        matched, Decimal("49.99"), Decimal("49.99"), 4, auto_eligible=True, config=DEFAULT_CONFIG
    )
    assert card.confidence == Confidence.MEDIUM


def test_sum_outside_exact_tolerance_is_medium(context_record) -> None:
    matched = [
        context_record("O1", "30.00", date(2024, 4, 9)),
        context_record("O2", "45.50", date(2024, 4, 9)),
    ]
    card = score_match(
        matched, Decimal("75.00"), Decimal("75.50"), 1, auto_eligible=True, config=DEFAULT_CONFIG
    )
    assert card.confidence == Confidence.MEDIUM


def test_suggestions_are_always_low(context_record) -> None:
    matched = [context_record("O4", "22.00", date(2024, 1, 1))]
    card = score_match(
        matched, Decimal("20.00"), Decimal("22.00"), 0, auto_eligible=False, config=DEFAULT_CONFIG
    )
    assert card.confidence == Confidence.LOW
    assert card.score == 90.0


def test_reason_embeds_the_quantities() -> None:
    reason = describe_amounts(2, Decimal("75"), Decimal("74.5"))
    assert "2 record(s)" in reason
    assert "74.50" in reason
    assert "75.00" in reason
    assert "0.50" in reason


def test_proximity_score_is_flat_and_low(context_record) -> None:
    listed = [context_record("O1", "5.00", date(2024, 1, 1))]
    card = score_proximity(
        listed, Decimal("80.00"), Decimal("5.00"), found_count=3, window_days=10, config=DEFAULT_CONFIG
    )
    assert card.confidence == Confidence.LOW
    assert card.score == 30.0
    assert "Found 3 candidate(s) within 10 days" in card.reason


def test_within_tolerance_uses_cardinality_specific_bound() -> None:
    assert within_tolerance(_result(Cardinality.ONE_TO_ONE, "10.00", "10.05"), DEFAULT_CONFIG)
    assert not within_tolerance(_result(Cardinality.ONE_TO_ONE, "10.00", "10.50"), DEFAULT_CONFIG)
    # N:1 gets max(2%, 1.00)
    assert within_tolerance(_result(Cardinality.MANY_TO_ONE, "10.00", "10.50"), DEFAULT_CONFIG)
    assert not within_tolerance(_result(Cardinality.MANY_TO_ONE, "10.00", "11.50"), DEFAULT_CONFIG)
