"""Split a flat record set into charge-side and context-side roles."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from ledgerlink.logger import get_logger
from ledgerlink.models import MatchableRecord
from ledgerlink.services.patterns import PatternRule

logger = get_logger(__name__)


@dataclass
class ClassifiedRecords:
    """Disjoint roles for one matching pass."""

    charge_side: list[MatchableRecord] = field(default_factory=list)
    context_side: list[MatchableRecord] = field(default_factory=list)
    # Eligible for this pattern type but unusable (bad date or amount).
    invalid: list[MatchableRecord] = field(default_factory=list)


def is_charge_candidate(record: MatchableRecord, rule: PatternRule) -> bool:
    return not record.is_context_only and rule.matches_charge(record)


def is_context_candidate(record: MatchableRecord, rule: PatternRule) -> bool:
    return record.is_context_only and rule.matches_context(record)


def classify(records: Iterable[MatchableRecord], rule: PatternRule) -> ClassifiedRecords:
    """Partition records for ``rule.pattern_type``.

    Records that are neither charge- nor context-side are left out entirely.
    Eligible records with an invalid date or amount go to ``invalid`` so the
    rest of the set can still be reconciled.
    """
    result = ClassifiedRecords()
    for record in records:
        if is_charge_candidate(record, rule):
            target = result.charge_side
        elif is_context_candidate(record, rule):
            target = result.context_side
        else:
            continue

        if not record.is_valid:
            logger.warning(
                "Excluding record with invalid date or amount",
                record_id=record.id,
                pattern_type=rule.pattern_type.value,
                date=str(record.date),
                amount=str(record.amount),
            )
            result.invalid.append(record)
            continue
        target.append(record)
    return result
