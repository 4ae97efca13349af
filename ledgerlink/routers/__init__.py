"""API routers."""

from ledgerlink.routers import reconciliation, records

__all__ = ["reconciliation", "records"]
