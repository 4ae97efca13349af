from ledgerlink.schemas.base import BaseResponse, ListResponse
from ledgerlink.schemas.reconciliation import (
    LinkedRecordsResponse,
    LinkRequest,
    MatchingStatsResponse,
    MatchResultResponse,
    MatchSuggestionResponse,
    ReconciliationRunResponse,
    RecordBatchRequest,
    RecordListResponse,
    RecordPayload,
    RecordResponse,
    RunAllResponse,
    UnlinkRequest,
)

__all__ = [
    "BaseResponse",
    "ListResponse",
    "LinkRequest",
    "LinkedRecordsResponse",
    "MatchResultResponse",
    "MatchSuggestionResponse",
    "MatchingStatsResponse",
    "ReconciliationRunResponse",
    "RecordBatchRequest",
    "RecordListResponse",
    "RecordPayload",
    "RecordResponse",
    "RunAllResponse",
    "UnlinkRequest",
]
