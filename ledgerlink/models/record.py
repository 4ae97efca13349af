"""Normalized transaction records consumed by the reconciliation engine."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any


class RecordOrigin(str, Enum):
    """Import source a record came from."""

    AMAZON = "amazon"
    PAYPAL = "paypal"
    CARD = "card"
    BANK_STATEMENT = "bank-statement"
    MANUAL = "manual"
    IMPORT = "import"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | RecordOrigin | None) -> RecordOrigin:
        if isinstance(value, RecordOrigin):
            return value
        if not value:
            return cls.UNKNOWN
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


def parse_record_date(value: Any) -> date | None:
    """Parse an ISO date (or datetime) payload value, None when malformed."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def parse_record_amount(value: Any) -> Decimal:
    """Parse a monetary payload value, Decimal('NaN') when malformed."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None:
        return Decimal("NaN")
    try:
        # str() first so floats keep their printed value, not their binary one
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return Decimal("NaN")


class DuplicateRecordIdError(ValueError):
    """Two records in one snapshot share an id."""


def ensure_unique_ids(records: Iterable[MatchableRecord]) -> None:
    seen: set[str] = set()
    for record in records:
        if record.id in seen:
            raise DuplicateRecordIdError(f"Duplicate record id {record.id}")
        seen.add(record.id)


_TRUE_STRINGS = frozenset({"true", "1", "yes", "y", "on"})


def parse_record_flag(value: Any) -> bool:
    """Parse a boolean payload value; strings other than true-like ones are False."""
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


@dataclass(frozen=True)
class MatchableRecord:
    """One transaction as seen by the matcher.

    ``amount`` keeps the sign the importer produced; matching only ever
    compares magnitudes. ``existing_links`` is the only field the engine
    rewrites (see ``services.linking``).
    """

    id: str
    date: date | None
    amount: Decimal
    description: str = ""
    beneficiary: str | None = None
    origin: RecordOrigin = RecordOrigin.UNKNOWN
    is_context_only: bool = False
    existing_links: tuple[str, ...] = field(default_factory=tuple)

    @property
    def magnitude(self) -> Decimal:
        return abs(self.amount)

    @property
    def is_linked(self) -> bool:
        return len(self.existing_links) > 0

    @property
    def is_valid(self) -> bool:
        """True when the record has a real date and a finite amount."""
        return (
            isinstance(self.date, date)
            and isinstance(self.amount, Decimal)
            and self.amount.is_finite()
        )

    def with_links(self, links: Iterable[str]) -> MatchableRecord:
        return replace(self, existing_links=tuple(links))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MatchableRecord:
        """Build a record from a loosely-typed payload without raising on bad values."""
        links = data.get("existing_links") or ()
        beneficiary = data.get("beneficiary")
        return cls(
            id=str(data["id"]),
            date=parse_record_date(data.get("date")),
            amount=parse_record_amount(data.get("amount")),
            description=str(data.get("description") or ""),
            beneficiary=None if beneficiary is None else str(beneficiary),
            origin=RecordOrigin.parse(data.get("origin")),
            is_context_only=parse_record_flag(data.get("is_context_only")),
            existing_links=tuple(str(link) for link in links),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat() if self.date else None,
            "amount": str(self.amount),
            "description": self.description,
            "beneficiary": self.beneficiary,
            "origin": self.origin.value,
            "is_context_only": self.is_context_only,
            "existing_links": list(self.existing_links),
        }
