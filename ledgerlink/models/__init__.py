"""Domain models package."""

from ledgerlink.models.match import (
    Cardinality,
    Confidence,
    MatchingOutcome,
    MatchingStats,
    MatchResult,
    MatchSuggestion,
    PatternType,
)
from ledgerlink.models.record import (
    DuplicateRecordIdError,
    MatchableRecord,
    RecordOrigin,
    ensure_unique_ids,
)

__all__ = [
    "Cardinality",
    "Confidence",
    "DuplicateRecordIdError",
    "MatchResult",
    "MatchSuggestion",
    "MatchableRecord",
    "MatchingOutcome",
    "MatchingStats",
    "PatternType",
    "RecordOrigin",
    "ensure_unique_ids",
]
