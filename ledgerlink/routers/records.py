"""Record snapshot API router."""

from fastapi import APIRouter

from ledgerlink.deps import RecordStoreDep, store_lock
from ledgerlink.logger import get_logger
from ledgerlink.schemas import RecordBatchRequest, RecordListResponse, RecordResponse
from ledgerlink.services.record_store import RecordStoreError
from ledgerlink.utils import raise_conflict, raise_not_found

router = APIRouter(prefix="/records", tags=["records"])
logger = get_logger(__name__)


@router.put("", response_model=RecordListResponse)
async def replace_records(payload: RecordBatchRequest, store: RecordStoreDep) -> RecordListResponse:
    """Replace the whole record snapshot the engine works on."""
    records = [item.to_record() for item in payload.records]
    async with store_lock:
        try:
            count = store.replace_all(records)
        except RecordStoreError as exc:
            raise_conflict(str(exc), cause=exc)
    logger.info("Record snapshot replaced", records=count)
    return RecordListResponse(
        items=[RecordResponse.from_record(record) for record in records],
        total=count,
    )


@router.get("", response_model=RecordListResponse)
async def list_records(store: RecordStoreDep) -> RecordListResponse:
    records = store.list_records()
    return RecordListResponse(
        items=[RecordResponse.from_record(record) for record in records],
        total=len(records),
    )


@router.get("/{record_id}", response_model=RecordResponse)
async def get_record(record_id: str, store: RecordStoreDep) -> RecordResponse:
    record = store.get_record(record_id)
    if record is None:
        raise_not_found("Record")
    return RecordResponse.from_record(record)
