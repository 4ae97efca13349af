"""Pydantic schemas for the records and reconciliation API."""

import datetime as dt
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from ledgerlink.models import Cardinality, Confidence, MatchableRecord, PatternType
from ledgerlink.schemas.base import BaseResponse, ListResponse


class RecordPayload(BaseModel):
    """Incoming record.

    ``date`` and ``amount`` accept any JSON value; values that cannot be parsed
    are kept and the record is reported as invalid by the matching run instead
    of failing the whole upload.
    """

    id: str = Field(min_length=1)
    date: Any = None
    amount: Any = None
    description: str = ""
    beneficiary: str | None = None
    origin: str | None = None
    is_context_only: bool = False
    existing_links: list[str] = Field(default_factory=list)

    def to_record(self) -> MatchableRecord:
        return MatchableRecord.from_dict(self.model_dump())


class RecordBatchRequest(BaseModel):
    """Request body to replace the stored record snapshot."""

    records: list[RecordPayload]


class RecordResponse(BaseResponse):
    id: str
    date: dt.date | None
    # String form so malformed (NaN) amounts round-trip.
    amount: str
    description: str
    beneficiary: str | None
    origin: str
    is_context_only: bool
    existing_links: list[str]

    @classmethod
    def from_record(cls, record: MatchableRecord) -> "RecordResponse":
        return cls.model_validate(record.to_dict())


RecordListResponse = ListResponse[RecordResponse]


class MatchResultResponse(BaseResponse):
    """Accepted match written onto the charge record."""

    charge_id: str
    context_ids: list[str]
    cardinality: Cardinality
    confidence: Confidence
    total_amount: Decimal
    charge_amount: Decimal
    amount_difference: Decimal
    max_day_difference: int
    pattern_type: PatternType


class MatchSuggestionResponse(MatchResultResponse):
    """Candidate link for manual review."""

    score: float = Field(ge=0, le=100)
    reason: str


class MatchingStatsResponse(BaseResponse):
    charge_records_processed: int
    context_records_processed: int
    auto_matched: int
    suggestions_generated: int
    unmatched_charge_records: int
    unmatched_context_records: int
    already_linked_charge_records: int
    already_linked_context_records: int
    invalid_records: int


class ReconciliationRunResponse(BaseResponse):
    """Result of one matching run."""

    pattern_type: PatternType
    applied: bool
    matches: list[MatchResultResponse]
    suggestions: list[MatchSuggestionResponse]
    stats: MatchingStatsResponse
    invalid_record_ids: list[str]


class RunAllResponse(BaseModel):
    """Results of a sequential run over several pattern types, in run order."""

    runs: list[ReconciliationRunResponse]
    records_updated: int


class LinkRequest(BaseModel):
    """Request body to link context records to a charge manually."""

    charge_id: str
    context_ids: list[str] = Field(min_length=1)


class UnlinkRequest(BaseModel):
    """Request body to remove links; omit ``context_ids`` to remove all."""

    charge_id: str
    context_ids: list[str] | None = None


class LinkedRecordsResponse(BaseModel):
    charge: RecordResponse
    linked: list[RecordResponse]
    total_amount: Decimal
    amount_difference: Decimal
