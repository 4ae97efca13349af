"""Reconciliation API router."""

import asyncio

from fastapi import APIRouter

from ledgerlink.config import settings
from ledgerlink.deps import ReconciliationConfigDep, RecordStoreDep, store_lock
from ledgerlink.logger import get_logger, log_exception
from ledgerlink.models import MatchingOutcome, PatternType
from ledgerlink.schemas import (
    LinkedRecordsResponse,
    LinkRequest,
    MatchingStatsResponse,
    MatchResultResponse,
    MatchSuggestionResponse,
    ReconciliationRunResponse,
    RecordResponse,
    RunAllResponse,
    UnlinkRequest,
)
from ledgerlink.services.linking import (
    LinkError,
    RecordNotFoundError,
    link_records,
    linked_summary,
    unlink_records,
)
from ledgerlink.services.reconciliation import execute_matching, execute_sequentially
from ledgerlink.utils import raise_bad_request, raise_not_found

router = APIRouter(prefix="/reconciliation", tags=["reconciliation"])
logger = get_logger(__name__)


def _build_run_response(outcome: MatchingOutcome, *, applied: bool) -> ReconciliationRunResponse:
    return ReconciliationRunResponse(
        pattern_type=outcome.pattern_type,
        applied=applied,
        matches=[MatchResultResponse.model_validate(match) for match in outcome.matches],
        suggestions=[
            MatchSuggestionResponse.model_validate(suggestion) for suggestion in outcome.suggestions
        ],
        stats=MatchingStatsResponse.model_validate(outcome.stats),
        invalid_record_ids=outcome.invalid_record_ids,
    )


@router.post("/run-all", response_model=RunAllResponse)
async def run_all(store: RecordStoreDep, config: ReconciliationConfigDep) -> RunAllResponse:
    """Run every enabled pattern type in order, applying matches between runs."""
    pattern_types = settings.enabled_pattern_types
    async with store_lock:
        outcomes, written = await asyncio.to_thread(
            execute_sequentially, store, pattern_types, config=config
        )
    return RunAllResponse(
        runs=[_build_run_response(outcomes[pattern_type], applied=True) for pattern_type in pattern_types],
        records_updated=written,
    )


@router.post("/{pattern_type}/run", response_model=ReconciliationRunResponse)
async def run_reconciliation(
    pattern_type: PatternType,
    store: RecordStoreDep,
    config: ReconciliationConfigDep,
) -> ReconciliationRunResponse:
    async with store_lock:
        outcome = await asyncio.to_thread(
            execute_matching, store, pattern_type, config=config, apply=True
        )
    return _build_run_response(outcome, applied=True)


@router.get("/{pattern_type}/suggestions", response_model=ReconciliationRunResponse)
async def preview_reconciliation(
    pattern_type: PatternType,
    store: RecordStoreDep,
    config: ReconciliationConfigDep,
) -> ReconciliationRunResponse:
    """Dry run: matches and suggestions are computed but nothing is written."""
    async with store_lock:
        outcome = await asyncio.to_thread(
            execute_matching, store, pattern_type, config=config, apply=False
        )
    return _build_run_response(outcome, applied=False)


@router.post("/link", response_model=RecordResponse)
async def link(payload: LinkRequest, store: RecordStoreDep) -> RecordResponse:
    async with store_lock:
        try:
            updated = link_records(store.list_records(), payload.charge_id, payload.context_ids)
        except RecordNotFoundError as exc:
            raise_not_found("Record", cause=exc)
        except LinkError as exc:
            log_exception(
                logger,
                exc,
                "Manual link rejected",
                level="warning",
                include_traceback=False,
                charge_id=payload.charge_id,
            )
            raise_bad_request(str(exc), cause=exc)
        store.update_record(updated)
    return RecordResponse.from_record(updated)


@router.post("/unlink", response_model=RecordResponse)
async def unlink(payload: UnlinkRequest, store: RecordStoreDep) -> RecordResponse:
    async with store_lock:
        try:
            updated = unlink_records(store.list_records(), payload.charge_id, payload.context_ids)
        except RecordNotFoundError as exc:
            raise_not_found("Record", cause=exc)
        except LinkError as exc:
            log_exception(
                logger,
                exc,
                "Manual unlink rejected",
                level="warning",
                include_traceback=False,
                charge_id=payload.charge_id,
            )
            raise_bad_request(str(exc), cause=exc)
        store.update_record(updated)
    return RecordResponse.from_record(updated)


@router.get("/linked/{record_id}", response_model=LinkedRecordsResponse)
async def get_linked(record_id: str, store: RecordStoreDep) -> LinkedRecordsResponse:
    try:
        summary = linked_summary(store.list_records(), record_id)
    except RecordNotFoundError as exc:
        raise_not_found("Record", cause=exc)
    return LinkedRecordsResponse(
        charge=RecordResponse.from_record(summary.charge),
        linked=[RecordResponse.from_record(record) for record in summary.linked],
        total_amount=summary.total_amount,
        amount_difference=summary.amount_difference,
    )
