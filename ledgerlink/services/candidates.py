"""Date-window candidate selection."""

from collections.abc import Collection, Iterable

from ledgerlink.models import MatchableRecord


def day_difference(a: MatchableRecord, b: MatchableRecord) -> int:
    """Absolute distance in calendar days between two valid records."""
    return abs((a.date - b.date).days)


def select_candidates(
    charge: MatchableRecord,
    context_pool: Iterable[MatchableRecord],
    excluded: Collection[str],
    max_days: int,
) -> list[MatchableRecord]:
    """Context records within ``max_days`` of the charge, either side, not excluded.

    The window is inclusive and the pool order is preserved.
    """
    return [
        record
        for record in context_pool
        if record.id not in excluded and day_difference(charge, record) <= max_days
    ]


def max_day_difference(charge: MatchableRecord, records: Iterable[MatchableRecord]) -> int:
    return max((day_difference(charge, record) for record in records), default=0)
