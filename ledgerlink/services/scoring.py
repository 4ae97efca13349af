"""Confidence levels, review scores and audit reasons for matches."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING

from ledgerlink.models import Cardinality, Confidence, MatchableRecord, MatchResult
from ledgerlink.services.combination import sum_tolerance

if TYPE_CHECKING:
    from ledgerlink.services.reconciliation import ReconciliationConfig


@dataclass(frozen=True)
class ScoreCard:
    confidence: Confidence
    # 0-100 ranking, higher is more likely correct.
    score: float
    reason: str


def amount_score(target: Decimal, actual: Decimal) -> float:
    """Score amount agreement (0-100) relative to the charge amount."""
    difference = abs(actual - target)
    if target == 0:
        return 100.0 if difference == 0 else 0.0
    ratio = max(Decimal("0"), Decimal("100") - (difference / target) * Decimal("100"))
    return float(round(ratio, 2))


def describe_amounts(count: int, target: Decimal, actual: Decimal) -> str:
    difference = abs(actual - target)
    return f"{count} record(s) totaling {actual:.2f} (charge: {target:.2f}, diff: {difference:.2f})"


def score_match(
    matched: Sequence[MatchableRecord],
    target: Decimal,
    actual: Decimal,
    max_day_difference: int,
    *,
    auto_eligible: bool,
    config: ReconciliationConfig,
) -> ScoreCard:
    """Label an amount-reconciled set of context records.

    First rule wins:
    - high: auto-eligible, within the exact tolerance and close in date
    - medium: auto-eligible otherwise (later posting, or an N:1 sum)
    - low: surfaced only as a suggestion
    """
    difference = abs(actual - target)
    if not auto_eligible:
        confidence = Confidence.LOW
    elif (
        difference <= config.exact_match_tolerance
        and max_day_difference <= config.high_confidence_max_days
    ):
        confidence = Confidence.HIGH
    else:
        confidence = Confidence.MEDIUM

    return ScoreCard(
        confidence=confidence,
        score=amount_score(target, actual),
        reason=describe_amounts(len(matched), target, actual),
    )


def score_proximity(
    listed: Sequence[MatchableRecord],
    target: Decimal,
    actual: Decimal,
    *,
    found_count: int,
    window_days: int,
    config: ReconciliationConfig,
) -> ScoreCard:
    """Flat low score for candidates found by date proximity alone.

    ``listed`` is the capped set surfaced to the reviewer and ``actual`` its
    total; ``found_count`` is how many candidates the window held.
    """
    return ScoreCard(
        confidence=Confidence.LOW,
        score=float(config.proximity_suggestion_score),
        reason=(
            f"Found {found_count} candidate(s) within {window_days} days for manual review; "
            f"{describe_amounts(len(listed), target, actual)}"
        ),
    )


def match_tolerance(result: MatchResult, config: ReconciliationConfig) -> Decimal:
    """Tolerance an accepted match of this cardinality is allowed."""
    if result.cardinality == Cardinality.ONE_TO_ONE:
        return config.exact_match_tolerance
    return sum_tolerance(
        result.charge_amount,
        config.sum_match_tolerance_percent,
        config.absolute_tolerance_floor,
    )


def within_tolerance(result: MatchResult, config: ReconciliationConfig) -> bool:
    """Re-check that an accepted match honours its tolerance."""
    return result.amount_difference <= match_tolerance(result, config)
