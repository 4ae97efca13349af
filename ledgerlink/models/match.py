"""Match and suggestion models produced by the reconciliation engine."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class PatternType(str, Enum):
    """Reconciliation scenario being resolved."""

    AMAZON_ORDERS = "amazon_orders"
    PAYPAL = "paypal"
    CARD_ACQUIRER = "card_acquirer"


class Confidence(str, Enum):
    """Confidence level of a match or suggestion."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Cardinality(str, Enum):
    """Shape of a match between charge-side and context-side records."""

    ONE_TO_ONE = "one_to_one"
    MANY_TO_ONE = "many_to_one"
    # Representable for stored manual links; no matching pass emits it.
    ONE_TO_MANY = "one_to_many"

    @classmethod
    def for_count(cls, context_count: int) -> "Cardinality":
        return cls.ONE_TO_ONE if context_count == 1 else cls.MANY_TO_ONE


@dataclass(frozen=True)
class MatchResult:
    """Accepted match between one charge record and its context records."""

    charge_id: str
    context_ids: tuple[str, ...]
    cardinality: Cardinality
    confidence: Confidence
    total_amount: Decimal
    charge_amount: Decimal
    amount_difference: Decimal
    max_day_difference: int
    pattern_type: PatternType


@dataclass(frozen=True)
class MatchSuggestion:
    """Unresolved candidate link surfaced for human review, never auto-applied."""

    charge_id: str
    context_ids: tuple[str, ...]
    cardinality: Cardinality
    confidence: Confidence
    total_amount: Decimal
    charge_amount: Decimal
    amount_difference: Decimal
    max_day_difference: int
    pattern_type: PatternType
    # Scores are 0-100 rankings, not monetary values.
    score: float
    reason: str


@dataclass
class MatchingStats:
    """Counters for one matching run."""

    charge_records_processed: int = 0
    context_records_processed: int = 0
    auto_matched: int = 0
    suggestions_generated: int = 0
    unmatched_charge_records: int = 0
    unmatched_context_records: int = 0
    already_linked_charge_records: int = 0
    already_linked_context_records: int = 0
    invalid_records: int = 0


@dataclass
class MatchingOutcome:
    """Everything a matching run produced."""

    pattern_type: PatternType
    matches: list[MatchResult] = field(default_factory=list)
    suggestions: list[MatchSuggestion] = field(default_factory=list)
    stats: MatchingStats = field(default_factory=MatchingStats)
    invalid_record_ids: list[str] = field(default_factory=list)
