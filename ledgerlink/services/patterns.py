"""Classification pattern tables for each reconciliation scenario."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from ledgerlink.models import MatchableRecord, PatternType, RecordOrigin


class PatternTableError(ValueError):
    """Raised when a pattern table entry cannot be compiled."""


@dataclass(frozen=True)
class PatternRule:
    """How to split a record set into charge-side and context-side records.

    A record is charge-side when its description or beneficiary matches one
    of ``charge_patterns``; context-side when it is context-only and came from
    ``context_origin``.
    """

    pattern_type: PatternType
    charge_patterns: tuple[re.Pattern[str], ...]
    context_origin: RecordOrigin
    max_date_difference_days: int | None = None

    @classmethod
    def build(
        cls,
        pattern_type: PatternType,
        patterns: Iterable[str],
        context_origin: RecordOrigin,
        max_date_difference_days: int | None = None,
    ) -> PatternRule:
        compiled: list[re.Pattern[str]] = []
        for raw in patterns:
            try:
                compiled.append(re.compile(raw, re.IGNORECASE))
            except re.error as exc:
                raise PatternTableError(f"Invalid pattern {raw!r} for {pattern_type.value}: {exc}") from exc
        if not compiled:
            raise PatternTableError(f"Pattern table for {pattern_type.value} is empty")
        return cls(
            pattern_type=pattern_type,
            charge_patterns=tuple(compiled),
            context_origin=context_origin,
            max_date_difference_days=max_date_difference_days,
        )

    def matches_charge(self, record: MatchableRecord) -> bool:
        texts = (record.description or "", record.beneficiary or "")
        return any(pattern.search(text) for pattern in self.charge_patterns for text in texts if text)

    def matches_context(self, record: MatchableRecord) -> bool:
        return record.origin == self.context_origin


AMAZON_BANK_PATTERNS = (
    r"amazon",
    r"amzn",
    r"amazon\.de",
    r"amazon\s+payments",
    r"amazon\s+eu",
    r"amz\*|amzn\*",
)

PAYPAL_BANK_PATTERNS = (
    r"paypal",
    r"pp\s*\*",
    r"paypal\s*\(europe\)",
    r"paypal\s*pte",
)

CARD_ACQUIRER_BANK_PATTERNS = (
    r"advanzia",
    r"geb(u|ü)hrenfrei",
    r"mastercard",
)


def default_pattern_tables() -> dict[PatternType, PatternRule]:
    """Built-in pattern tables, one rule per pattern type."""
    return {
        PatternType.AMAZON_ORDERS: PatternRule.build(
            PatternType.AMAZON_ORDERS,
            AMAZON_BANK_PATTERNS,
            RecordOrigin.AMAZON,
        ),
        # PayPal debits post to the bank within a few days of the payment.
        PatternType.PAYPAL: PatternRule.build(
            PatternType.PAYPAL,
            PAYPAL_BANK_PATTERNS,
            RecordOrigin.PAYPAL,
            max_date_difference_days=3,
        ),
        PatternType.CARD_ACQUIRER: PatternRule.build(
            PatternType.CARD_ACQUIRER,
            CARD_ACQUIRER_BANK_PATTERNS,
            RecordOrigin.CARD,
        ),
    }


def parse_pattern_tables(
    raw: Mapping[str, Any] | None,
    base: Mapping[PatternType, PatternRule] | None = None,
) -> dict[PatternType, PatternRule]:
    """Overlay pattern tables from a YAML ``patterns:`` mapping onto ``base``.

    Expected shape::

        patterns:
          paypal:
            charge_patterns: ["paypal", "pp\\s*\\*"]
            context_origin: paypal
            max_date_difference_days: 3
    """
    tables = dict(base if base is not None else default_pattern_tables())
    for key, entry in (raw or {}).items():
        try:
            pattern_type = PatternType(key)
        except ValueError as exc:
            raise PatternTableError(f"Unknown pattern type {key!r}") from exc
        entry = entry or {}
        current = tables.get(pattern_type)

        if "charge_patterns" in entry:
            patterns: Iterable[str] = entry["charge_patterns"] or []
        elif current is not None:
            patterns = [p.pattern for p in current.charge_patterns]
        else:
            patterns = []

        if "context_origin" in entry:
            origin = RecordOrigin.parse(entry["context_origin"])
            if origin == RecordOrigin.UNKNOWN:
                raise PatternTableError(
                    f"Unknown context origin {entry['context_origin']!r} for {pattern_type.value}"
                )
        elif current is not None:
            origin = current.context_origin
        else:
            raise PatternTableError(f"Pattern table for {pattern_type.value} needs a context_origin")

        if "max_date_difference_days" in entry:
            window = entry["max_date_difference_days"]
            window = int(window) if window is not None else None
        else:
            window = current.max_date_difference_days if current else None

        tables[pattern_type] = PatternRule.build(pattern_type, patterns, origin, window)
    return tables
