"""Write match results back onto records, plus manual link maintenance."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal

from ledgerlink.logger import get_logger
from ledgerlink.models import MatchableRecord, MatchResult, ensure_unique_ids

logger = get_logger(__name__)


class LinkError(Exception):
    """Base exception for link maintenance errors."""


class RecordNotFoundError(LinkError):
    """Record id not present in the record set."""


@dataclass(frozen=True)
class LinkedSummary:
    """A charge record with the context records it links to."""

    charge: MatchableRecord
    linked: tuple[MatchableRecord, ...]
    total_amount: Decimal
    amount_difference: Decimal


def apply_matches(
    records: Iterable[MatchableRecord],
    matches: Iterable[MatchResult],
) -> list[MatchableRecord]:
    """Return records with each matched charge's links set to its context ids.

    Links are overwritten, not appended, so applying the same matches again
    leaves the records unchanged. Input order is preserved. Duplicate record
    ids raise DuplicateRecordIdError.
    """
    records = list(records)
    ensure_unique_ids(records)
    by_id = {record.id: record for record in records}

    for match in matches:
        charge = by_id.get(match.charge_id)
        if charge is None:
            logger.warning(
                "Match references unknown charge record - skipping",
                charge_id=match.charge_id,
                pattern_type=match.pattern_type.value,
            )
            continue
        by_id[charge.id] = charge.with_links(match.context_ids)

    return list(by_id.values())


def _index(records: Iterable[MatchableRecord]) -> dict[str, MatchableRecord]:
    return {record.id: record for record in records}


def _require(index: dict[str, MatchableRecord], record_id: str, label: str) -> MatchableRecord:
    record = index.get(record_id)
    if record is None:
        raise RecordNotFoundError(f"{label} {record_id} not found")
    return record


def link_records(
    records: Iterable[MatchableRecord],
    charge_id: str,
    context_ids: Sequence[str],
) -> MatchableRecord:
    """Manually link context records to a charge; returns the updated charge."""
    if not context_ids:
        raise LinkError("At least one context record id is required")

    index = _index(records)
    charge = _require(index, charge_id, "Charge record")
    if charge.is_context_only:
        raise LinkError("Cannot link records to a context-only record")

    for context_id in context_ids:
        context = _require(index, context_id, "Context record")
        if not context.is_context_only:
            raise LinkError(f"Record {context_id} is not a context-only record")

    wanted = set(context_ids)
    for other in index.values():
        if other.id == charge_id:
            continue
        taken = wanted.intersection(other.existing_links)
        if taken:
            raise LinkError(
                f"Context record(s) {', '.join(sorted(taken))} already linked to {other.id}"
            )

    # dict.fromkeys drops duplicates while keeping the caller's order
    updated = charge.with_links(dict.fromkeys(context_ids))
    logger.info("Linked records manually", charge_id=charge_id, context_ids=list(updated.existing_links))
    return updated


def unlink_records(
    records: Iterable[MatchableRecord],
    charge_id: str,
    context_ids: Sequence[str] | None = None,
) -> MatchableRecord:
    """Remove the given links (or all of them) from a charge; returns the updated charge."""
    charge = _require(_index(records), charge_id, "Charge record")
    if not charge.is_linked:
        raise LinkError("Charge record has no linked records")

    if context_ids:
        removed = set(context_ids)
        remaining = [link for link in charge.existing_links if link not in removed]
    else:
        remaining = []

    logger.info(
        "Unlinked records",
        charge_id=charge_id,
        removed=len(charge.existing_links) - len(remaining),
    )
    return charge.with_links(remaining)


def linked_summary(records: Iterable[MatchableRecord], charge_id: str) -> LinkedSummary:
    """Context records linked to ``charge_id`` and how far their total is off."""
    index = _index(records)
    charge = _require(index, charge_id, "Charge record")
    linked = tuple(index[link] for link in charge.existing_links if link in index)
    total = sum((record.magnitude for record in linked), Decimal("0"))
    difference = abs(charge.magnitude - total) if linked else Decimal("0")
    return LinkedSummary(
        charge=charge,
        linked=linked,
        total_amount=total,
        amount_difference=difference,
    )
