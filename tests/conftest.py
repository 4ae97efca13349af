"""Test fixtures and configuration."""

from collections.abc import AsyncIterator, Callable
from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from ledgerlink.deps import get_reconciliation_config, get_record_store
from ledgerlink.main import app
from ledgerlink.models import MatchableRecord, RecordOrigin
from ledgerlink.services import reconciliation as reconciliation_service
from ledgerlink.services.reconciliation import DEFAULT_CONFIG
from ledgerlink.services.record_store import InMemoryRecordStore

RecordFactory = Callable[..., MatchableRecord]


# --- Config cache isolation ---
@pytest.fixture(autouse=True)
def reset_config_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    """Every test starts without a cached reconciliation config."""
    monkeypatch.setattr(reconciliation_service, "_config_cache", None)
    for name in (
        "RECONCILIATION_MAX_DATE_DIFFERENCE_DAYS",
        "RECONCILIATION_EXACT_MATCH_TOLERANCE",
        "RECONCILIATION_SUM_TOLERANCE_PERCENT",
    ):
        monkeypatch.delenv(name, raising=False)


# --- Record factories ---
def _amount(value: str | Decimal | int) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


@pytest.fixture
def bank_record() -> RecordFactory:
    """Charge-side bank statement line; description decides the pattern type."""

    def _make(
        record_id: str,
        amount: str | Decimal | int,
        on: date | None,
        description: str = "AMAZON EU SARL",
        links: tuple[str, ...] = (),
    ) -> MatchableRecord:
        return MatchableRecord(
            id=record_id,
            date=on,
            amount=-_amount(amount),
            description=description,
            origin=RecordOrigin.BANK_STATEMENT,
            existing_links=links,
        )

    return _make


@pytest.fixture
def context_record() -> RecordFactory:
    """Context-only record (order, PayPal payment, card statement line)."""

    def _make(
        record_id: str,
        amount: str | Decimal | int,
        on: date | None,
        origin: RecordOrigin = RecordOrigin.AMAZON,
        description: str = "Order",
        links: tuple[str, ...] = (),
    ) -> MatchableRecord:
        return MatchableRecord(
            id=record_id,
            date=on,
            amount=_amount(amount),
            description=description,
            origin=origin,
            is_context_only=True,
            existing_links=links,
        )

    return _make


# --- HTTP client ---
@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest_asyncio.fixture
async def client(store: InMemoryRecordStore) -> AsyncIterator[AsyncClient]:
    app.dependency_overrides[get_record_store] = lambda: store
    app.dependency_overrides[get_reconciliation_config] = lambda: DEFAULT_CONFIG
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
