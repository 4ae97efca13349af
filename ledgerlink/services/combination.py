"""Find a subset of context records whose amounts reconcile against one charge."""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from ledgerlink.models import MatchableRecord

DEFAULT_ABSOLUTE_FLOOR = Decimal("1.00")
DEFAULT_SEARCH_LIMIT = 8


@dataclass(frozen=True)
class SolverOutcome:
    """A candidate subset and how well it reconciles.

    ``within_tolerance`` False marks a near-miss: the closest subset found,
    useful for manual review but never for an automatic match.
    """

    records: tuple[MatchableRecord, ...]
    total: Decimal
    difference: Decimal
    tolerance: Decimal
    within_tolerance: bool
    strategy: str

    @property
    def record_ids(self) -> tuple[str, ...]:
        return tuple(record.id for record in self.records)


def sum_tolerance(target: Decimal, tolerance_percent: Decimal, absolute_floor: Decimal) -> Decimal:
    """Allowed slack for a summed match: a percentage of the target, never below the floor."""
    return max(target * tolerance_percent, absolute_floor)


def _in_input_order(
    candidates: Sequence[MatchableRecord], chosen: Sequence[MatchableRecord]
) -> tuple[MatchableRecord, ...]:
    chosen_ids = {record.id for record in chosen}
    return tuple(record for record in candidates if record.id in chosen_ids)


def greedy_select(
    candidates: Sequence[MatchableRecord],
    target: Decimal,
    tolerance: Decimal,
) -> list[MatchableRecord]:
    """Take the largest amounts first while the remainder stays within tolerance.

    Returns the accumulated records whether or not they reconcile; callers
    check the total.
    """
    selected: list[MatchableRecord] = []
    remaining = target
    # sorted() is stable with reverse=True, so equal amounts keep pool order
    for record in sorted(candidates, key=lambda r: r.magnitude, reverse=True):
        amount = record.magnitude
        if amount <= remaining + tolerance:
            selected.append(record)
            remaining -= amount
            if abs(remaining) <= tolerance:
                break
    return selected


def exhaustive_search(
    candidates: Sequence[MatchableRecord],
    target: Decimal,
) -> tuple[tuple[MatchableRecord, ...], Decimal] | None:
    """Closest non-empty subset by (difference, size), first enumerated on ties.

    Costs 2^n subsets; callers bound ``len(candidates)``.
    """
    amounts = [record.magnitude for record in candidates]
    n = len(amounts)
    best_key: tuple[Decimal, int] | None = None
    best_mask = 0
    best_total = Decimal("0")

    for mask in range(1, 1 << n):
        total = Decimal("0")
        size = 0
        for index in range(n):
            if mask >> index & 1:
                total += amounts[index]
                size += 1
        key = (abs(total - target), size)
        if best_key is None or key < best_key:
            best_key = key
            best_mask = mask
            best_total = total

    if best_key is None:
        return None
    subset = tuple(candidates[index] for index in range(n) if best_mask >> index & 1)
    return subset, best_total


def solve(
    candidates: Sequence[MatchableRecord],
    target: Decimal,
    tolerance_percent: Decimal,
    *,
    absolute_floor: Decimal = DEFAULT_ABSOLUTE_FLOOR,
    search_limit: int = DEFAULT_SEARCH_LIMIT,
) -> SolverOutcome | None:
    """Find context records summing to ``target`` within tolerance.

    Greedy descent runs first. If it fails and the pool is small enough, every
    subset is enumerated and the closest one wins; when even that one is
    outside tolerance it is returned as a near-miss, provided it is closer to
    the target than nothing at all. ``None`` means no combination was found.
    """
    if not candidates:
        return None

    tolerance = sum_tolerance(target, tolerance_percent, absolute_floor)

    greedy = greedy_select(candidates, target, tolerance)
    if greedy:
        total = sum((record.magnitude for record in greedy), Decimal("0"))
        difference = abs(total - target)
        if difference <= tolerance:
            return SolverOutcome(
                records=_in_input_order(candidates, greedy),
                total=total,
                difference=difference,
                tolerance=tolerance,
                within_tolerance=True,
                strategy="greedy",
            )

    if len(candidates) > search_limit:
        return None

    found = exhaustive_search(candidates, target)
    if found is None:
        return None
    subset, total = found
    difference = abs(total - target)
    within = difference <= tolerance
    if not within and difference >= target:
        return None
    return SolverOutcome(
        records=subset,
        total=total,
        difference=difference,
        tolerance=tolerance,
        within_tolerance=within,
        strategy="exhaustive",
    )
