"""Reconciliation matching engine."""

from __future__ import annotations

import os
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledgerlink.config import settings
from ledgerlink.logger import get_logger, log_timing
from ledgerlink.models import (
    Cardinality,
    Confidence,
    MatchableRecord,
    MatchingOutcome,
    MatchResult,
    MatchSuggestion,
    PatternType,
    ensure_unique_ids,
)
from ledgerlink.services.candidates import day_difference, max_day_difference, select_candidates
from ledgerlink.services.classification import classify
from ledgerlink.services.combination import SolverOutcome, solve
from ledgerlink.services.linking import apply_matches
from ledgerlink.services.patterns import (
    PatternRule,
    PatternTableError,
    default_pattern_tables,
    parse_pattern_tables,
)
from ledgerlink.services.record_store import RecordStore
from ledgerlink.services.scoring import ScoreCard, score_match, score_proximity, within_tolerance

logger = get_logger(__name__)

# Upper bound for combination_search_limit; the exhaustive search is 2^n.
MAX_COMBINATION_SEARCH_LIMIT = 16


class ConfigurationError(ValueError):
    """Reconciliation configuration outside sane bounds."""


def _as_decimal(name: str, value: Any) -> Decimal:
    try:
        number = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise ConfigurationError(f"{name} must be a number, got {value!r}") from exc
    if not number.is_finite():
        raise ConfigurationError(f"{name} must be finite, got {value!r}")
    return number


@dataclass(frozen=True)
class ReconciliationConfig:
    """Runtime configuration for reconciliation matching.

    Validated on construction, so an instance is always usable.
    """

    max_date_difference_days: int = 5
    exact_match_tolerance: Decimal = Decimal("0.05")
    sum_match_tolerance_percent: Decimal = Decimal("0.02")
    absolute_tolerance_floor: Decimal = Decimal("1.00")
    combination_search_limit: int = 8
    high_confidence_max_days: int = 2
    suggestion_window_multiplier: int = 2
    suggestion_candidate_cap: int = 10
    proximity_suggestion_score: int = 30
    pattern_tables: Mapping[PatternType, PatternRule] = field(default_factory=default_pattern_tables)

    def __post_init__(self) -> None:
        for name in (
            "exact_match_tolerance",
            "sum_match_tolerance_percent",
            "absolute_tolerance_floor",
        ):
            number = _as_decimal(name, getattr(self, name))
            if number < 0:
                raise ConfigurationError(f"{name} must not be negative")
            object.__setattr__(self, name, number)

        if self.sum_match_tolerance_percent >= 1:
            raise ConfigurationError("sum_match_tolerance_percent is a fraction and must be below 1")
        if self.max_date_difference_days < 0:
            raise ConfigurationError("max_date_difference_days must not be negative")
        if self.high_confidence_max_days < 0:
            raise ConfigurationError("high_confidence_max_days must not be negative")
        if not 1 <= self.combination_search_limit <= MAX_COMBINATION_SEARCH_LIMIT:
            raise ConfigurationError(
                f"combination_search_limit must be between 1 and {MAX_COMBINATION_SEARCH_LIMIT}"
            )
        if self.suggestion_window_multiplier < 1:
            raise ConfigurationError("suggestion_window_multiplier must be at least 1")
        if self.suggestion_candidate_cap < 1:
            raise ConfigurationError("suggestion_candidate_cap must be at least 1")
        if not 0 <= self.proximity_suggestion_score <= 100:
            raise ConfigurationError("proximity_suggestion_score must be between 0 and 100")
        for pattern_type, rule in self.pattern_tables.items():
            if rule.pattern_type != pattern_type:
                raise ConfigurationError(
                    f"Pattern table keyed {pattern_type.value} holds {rule.pattern_type.value}"
                )
            if rule.max_date_difference_days is not None and rule.max_date_difference_days < 0:
                raise ConfigurationError(f"Date window for {pattern_type.value} must not be negative")

    def rule_for(self, pattern_type: PatternType) -> PatternRule:
        try:
            return self.pattern_tables[pattern_type]
        except KeyError as exc:
            raise ConfigurationError(f"No pattern table configured for {pattern_type.value}") from exc

    def tight_window(self, rule: PatternRule) -> int:
        if rule.max_date_difference_days is not None:
            return rule.max_date_difference_days
        return self.max_date_difference_days


DEFAULT_CONFIG = ReconciliationConfig()

_config_cache: ReconciliationConfig | None = None

_MATCHING_KEYS: dict[str, type] = {
    "max_date_difference_days": int,
    "exact_match_tolerance": Decimal,
    "sum_match_tolerance_percent": Decimal,
    "absolute_tolerance_floor": Decimal,
    "combination_search_limit": int,
    "high_confidence_max_days": int,
    "suggestion_window_multiplier": int,
    "suggestion_candidate_cap": int,
    "proximity_suggestion_score": int,
}


def config_from_mapping(raw: Mapping[str, Any]) -> ReconciliationConfig:
    """Build a config from the parsed YAML document (``matching`` and ``patterns``)."""
    if not isinstance(raw, Mapping):
        raise ConfigurationError("Reconciliation config must be a mapping")
    matching = raw.get("matching") or {}
    if not isinstance(matching, Mapping):
        raise ConfigurationError("'matching' section must be a mapping")

    kwargs: dict[str, Any] = {}
    for key, kind in _MATCHING_KEYS.items():
        if key not in matching:
            continue
        value = matching[key]
        if kind is int:
            try:
                kwargs[key] = int(value)
            except (TypeError, ValueError) as exc:
                raise ConfigurationError(f"{key} must be an integer, got {value!r}") from exc
        else:
            kwargs[key] = _as_decimal(key, value)

    patterns = raw.get("patterns")
    if patterns is not None and not isinstance(patterns, Mapping):
        raise ConfigurationError("'patterns' section must be a mapping")
    try:
        kwargs["pattern_tables"] = parse_pattern_tables(patterns)
    except (PatternTableError, TypeError, ValueError) as exc:
        raise ConfigurationError(str(exc)) from exc

    return ReconciliationConfig(**kwargs)


def _apply_env_overrides(config: ReconciliationConfig) -> ReconciliationConfig:
    max_days_env = os.getenv("RECONCILIATION_MAX_DATE_DIFFERENCE_DAYS")
    exact_env = os.getenv("RECONCILIATION_EXACT_MATCH_TOLERANCE")
    percent_env = os.getenv("RECONCILIATION_SUM_TOLERANCE_PERCENT")
    if max_days_env:
        try:
            config = replace(config, max_date_difference_days=int(max_days_env))
        except ValueError as exc:
            raise ConfigurationError(
                f"RECONCILIATION_MAX_DATE_DIFFERENCE_DAYS is not an integer: {max_days_env!r}"
            ) from exc
    if exact_env:
        config = replace(config, exact_match_tolerance=_as_decimal("exact_match_tolerance", exact_env))
    if percent_env:
        config = replace(
            config,
            sum_match_tolerance_percent=_as_decimal("sum_match_tolerance_percent", percent_env),
        )
    return config


def load_reconciliation_config(
    force_reload: bool = False,
    path: Path | None = None,
) -> ReconciliationConfig:
    """Load reconciliation configuration from YAML if available.

    Caches the result to avoid repeated disk I/O. A file that is not valid
    YAML falls back to defaults; values out of bounds raise ConfigurationError.
    """
    global _config_cache
    if _config_cache is not None and not force_reload and path is None:
        return _config_cache

    config_path = path or settings.reconciliation_config_path
    raw: Any = {}
    if config_path.exists():
        try:
            raw = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            logger.warning(
                "Failed to load reconciliation config - using defaults",
                config_path=str(config_path),
                error=str(e),
                error_type=type(e).__name__,
            )
            raw = {}

    config = _apply_env_overrides(config_from_mapping(raw))

    if path is None:
        _config_cache = config
    return config


def sort_for_matching(records: Iterable[MatchableRecord]) -> list[MatchableRecord]:
    """Most recent first; id breaks ties so runs are reproducible."""
    return sorted(records, key=lambda record: (-record.date.toordinal(), record.id))


@dataclass
class _PassState:
    matched_context_ids: set[str]
    matched_charge_ids: set[str] = field(default_factory=set)
    suggested_charge_ids: set[str] = field(default_factory=set)


class MatchOrchestrator:
    """Runs the three ordered passes for one pattern type.

    1. exact 1:1 within the tight date window
    2. N:1 sums via the combination solver; near-misses become suggestions
    3. suggestions from a wider window for whatever is left
    """

    def __init__(self, config: ReconciliationConfig, pattern_type: PatternType) -> None:
        self.config = config
        self.pattern_type = pattern_type
        self.rule = config.rule_for(pattern_type)
        self.window = config.tight_window(self.rule)
        self.suggestion_window = self.window * config.suggestion_window_multiplier

    def run(self, records: Iterable[MatchableRecord]) -> MatchingOutcome:
        records = list(records)
        ensure_unique_ids(records)
        outcome = MatchingOutcome(pattern_type=self.pattern_type)
        stats = outcome.stats

        with log_timing(
            "reconciliation_run",
            logger=logger,
            pattern_type=self.pattern_type.value,
            records=len(records),
        ) as timing:
            classified = classify(records, self.rule)
            stats.charge_records_processed = len(classified.charge_side)
            stats.context_records_processed = len(classified.context_side)
            stats.invalid_records = len(classified.invalid)
            outcome.invalid_record_ids = [record.id for record in classified.invalid]

            charges = sort_for_matching(classified.charge_side)
            pending = [charge for charge in charges if not charge.is_linked]
            stats.already_linked_charge_records = len(charges) - len(pending)

            linked_anywhere = {link for record in records for link in record.existing_links}
            context_pool = sort_for_matching(classified.context_side)
            pre_linked = {
                record.id for record in context_pool if record.is_linked or record.id in linked_anywhere
            }
            stats.already_linked_context_records = len(pre_linked)

            state = _PassState(matched_context_ids=set(pre_linked))
            if pending and len(pre_linked) < len(context_pool):
                self._exact_pass(pending, context_pool, state, outcome)
                self._combination_pass(pending, context_pool, state, outcome)
                self._suggestion_pass(pending, context_pool, state, outcome)

            stats.auto_matched = len(outcome.matches)
            stats.suggestions_generated = len(outcome.suggestions)
            stats.unmatched_charge_records = sum(
                1 for charge in pending if charge.id not in state.matched_charge_ids
            )
            stats.unmatched_context_records = sum(
                1 for record in context_pool if record.id not in state.matched_context_ids
            )
            timing["auto_matched"] = stats.auto_matched
            timing["suggestions"] = stats.suggestions_generated
            timing["invalid_records"] = stats.invalid_records

        return outcome

    # -- passes -----------------------------------------------------------

    def _exact_pass(
        self,
        pending: Sequence[MatchableRecord],
        context_pool: Sequence[MatchableRecord],
        state: _PassState,
        outcome: MatchingOutcome,
    ) -> None:
        tolerance = self.config.exact_match_tolerance
        for charge in pending:
            if charge.id in state.matched_charge_ids:
                continue
            candidates = select_candidates(charge, context_pool, state.matched_context_ids, self.window)
            target = charge.magnitude

            best: MatchableRecord | None = None
            best_key: tuple[Decimal, int, int] | None = None
            for position, candidate in enumerate(candidates):
                difference = abs(candidate.magnitude - target)
                if difference > tolerance:
                    continue
                key = (difference, day_difference(charge, candidate), position)
                if best_key is None or key < best_key:
                    best, best_key = candidate, key

            if best is not None:
                self._emit_match(charge, (best,), Cardinality.ONE_TO_ONE, state, outcome)

        logger.debug(
            "Exact pass finished",
            pattern_type=self.pattern_type.value,
            matched=len(state.matched_charge_ids),
        )

    def _combination_pass(
        self,
        pending: Sequence[MatchableRecord],
        context_pool: Sequence[MatchableRecord],
        state: _PassState,
        outcome: MatchingOutcome,
    ) -> None:
        for charge in pending:
            if charge.id in state.matched_charge_ids:
                continue
            candidates = select_candidates(charge, context_pool, state.matched_context_ids, self.window)
            if len(candidates) < 2:
                continue

            solved = self._solve(candidates, charge.magnitude)
            if solved is None:
                continue

            if solved.within_tolerance and len(solved.records) >= 2:
                self._emit_match(charge, solved.records, Cardinality.MANY_TO_ONE, state, outcome)
                continue

            # Near-miss, or a lone record that reconciles only within the sum
            # tolerance (too loose for a 1:1 match): keep it for review.
            self._emit_amount_suggestion(charge, solved, outcome)
            state.suggested_charge_ids.add(charge.id)

        logger.debug(
            "Combination pass finished",
            pattern_type=self.pattern_type.value,
            matched=len(state.matched_charge_ids),
            suggested=len(state.suggested_charge_ids),
        )

    def _suggestion_pass(
        self,
        pending: Sequence[MatchableRecord],
        context_pool: Sequence[MatchableRecord],
        state: _PassState,
        outcome: MatchingOutcome,
    ) -> None:
        for charge in pending:
            if charge.id in state.matched_charge_ids or charge.id in state.suggested_charge_ids:
                continue
            candidates = select_candidates(
                charge, context_pool, state.matched_context_ids, self.suggestion_window
            )
            if not candidates:
                continue

            solved = self._solve(candidates, charge.magnitude)
            if solved is not None:
                card = self._amount_card(charge, solved)
                if card.score > self.config.proximity_suggestion_score:
                    self._append_suggestion(charge, solved.records, solved.total, card, outcome)
                    state.suggested_charge_ids.add(charge.id)
                    continue

            listed = tuple(candidates[: self.config.suggestion_candidate_cap])
            total = sum((record.magnitude for record in listed), Decimal("0"))
            card = score_proximity(
                listed,
                charge.magnitude,
                total,
                found_count=len(candidates),
                window_days=self.suggestion_window,
                config=self.config,
            )
            self._append_suggestion(
                charge,
                listed,
                total,
                card,
                outcome,
                cardinality=Cardinality.for_count(len(candidates)),
            )
            state.suggested_charge_ids.add(charge.id)

    # -- helpers ----------------------------------------------------------

    def _solve(self, candidates: Sequence[MatchableRecord], target: Decimal) -> SolverOutcome | None:
        return solve(
            candidates,
            target,
            self.config.sum_match_tolerance_percent,
            absolute_floor=self.config.absolute_tolerance_floor,
            search_limit=self.config.combination_search_limit,
        )

    def _amount_card(self, charge: MatchableRecord, solved: SolverOutcome) -> ScoreCard:
        return score_match(
            solved.records,
            charge.magnitude,
            solved.total,
            max_day_difference(charge, solved.records),
            auto_eligible=False,
            config=self.config,
        )

    def _emit_match(
        self,
        charge: MatchableRecord,
        matched: Sequence[MatchableRecord],
        cardinality: Cardinality,
        state: _PassState,
        outcome: MatchingOutcome,
    ) -> None:
        target = charge.magnitude
        total = sum((record.magnitude for record in matched), Decimal("0"))
        days = max_day_difference(charge, matched)
        card = score_match(matched, target, total, days, auto_eligible=True, config=self.config)
        result = MatchResult(
            charge_id=charge.id,
            context_ids=tuple(record.id for record in matched),
            cardinality=cardinality,
            confidence=card.confidence,
            total_amount=total,
            charge_amount=target,
            amount_difference=abs(total - target),
            max_day_difference=days,
            pattern_type=self.pattern_type,
        )

        if not within_tolerance(result, self.config):
            logger.warning(
                "Match exceeds its tolerance - demoting to suggestion",
                charge_id=charge.id,
                amount_difference=str(result.amount_difference),
                cardinality=cardinality.value,
            )
            low = replace(card, confidence=Confidence.LOW)
            self._append_suggestion(charge, matched, total, low, outcome, cardinality=cardinality)
            state.suggested_charge_ids.add(charge.id)
            return

        outcome.matches.append(result)
        state.matched_charge_ids.add(charge.id)
        state.matched_context_ids.update(result.context_ids)

    def _emit_amount_suggestion(
        self,
        charge: MatchableRecord,
        solved: SolverOutcome,
        outcome: MatchingOutcome,
    ) -> None:
        card = self._amount_card(charge, solved)
        self._append_suggestion(charge, solved.records, solved.total, card, outcome)

    def _append_suggestion(
        self,
        charge: MatchableRecord,
        records: Sequence[MatchableRecord],
        total: Decimal,
        card: ScoreCard,
        outcome: MatchingOutcome,
        *,
        cardinality: Cardinality | None = None,
    ) -> None:
        target = charge.magnitude
        outcome.suggestions.append(
            MatchSuggestion(
                charge_id=charge.id,
                context_ids=tuple(record.id for record in records),
                cardinality=cardinality or Cardinality.for_count(len(records)),
                confidence=card.confidence,
                total_amount=total,
                charge_amount=target,
                amount_difference=abs(total - target),
                max_day_difference=max_day_difference(charge, records),
                pattern_type=self.pattern_type,
                score=card.score,
                reason=card.reason,
            )
        )


def run_matching(
    records: Iterable[MatchableRecord],
    pattern_type: PatternType,
    config: ReconciliationConfig | None = None,
) -> MatchingOutcome:
    """Match one pattern type over a record snapshot. Pure: nothing is written."""
    return MatchOrchestrator(config or DEFAULT_CONFIG, pattern_type).run(records)


def reconcile_sequentially(
    records: Iterable[MatchableRecord],
    pattern_types: Sequence[PatternType],
    config: ReconciliationConfig | None = None,
) -> tuple[dict[PatternType, MatchingOutcome], list[MatchableRecord]]:
    """Run several pattern types one after another.

    Each run sees the links written by the previous one, so two pattern types
    can never claim the same context record.
    """
    current = list(records)
    outcomes: dict[PatternType, MatchingOutcome] = {}
    for pattern_type in pattern_types:
        outcome = run_matching(current, pattern_type, config)
        current = apply_matches(current, outcome.matches)
        outcomes[pattern_type] = outcome
    return outcomes, current


def execute_matching(
    store: RecordStore,
    pattern_type: PatternType,
    *,
    config: ReconciliationConfig | None = None,
    apply: bool = True,
) -> MatchingOutcome:
    """Fetch the full record set, match it, and write changed charges back.

    Callers must not run this concurrently against the same store.
    """
    records = store.list_records()
    outcome = run_matching(records, pattern_type, config)
    if not apply or not outcome.matches:
        return outcome

    changed = {match.charge_id for match in outcome.matches}
    for record in apply_matches(records, outcome.matches):
        if record.id in changed:
            store.update_record(record)

    logger.info(
        "Reconciliation matches applied",
        pattern_type=pattern_type.value,
        records_updated=len(changed),
    )
    return outcome


def execute_sequentially(
    store: RecordStore,
    pattern_types: Sequence[PatternType],
    *,
    config: ReconciliationConfig | None = None,
) -> tuple[dict[PatternType, MatchingOutcome], int]:
    """Sequential run over several pattern types; returns outcomes and records written."""
    records = store.list_records()
    links_before = {record.id: record.existing_links for record in records}
    outcomes, updated = reconcile_sequentially(records, pattern_types, config)

    written = 0
    for record in updated:
        if links_before.get(record.id) != record.existing_links:
            store.update_record(record)
            written += 1

    logger.info(
        "Sequential reconciliation finished",
        pattern_types=[pattern_type.value for pattern_type in pattern_types],
        records_updated=written,
    )
    return outcomes, written
