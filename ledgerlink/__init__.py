"""Ledgerlink - transaction reconciliation engine."""
