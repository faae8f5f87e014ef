"""Ledger engine package."""

from mali.ledger.engine import (
    EntryNotFoundError,
    InvalidInputError,
    InvalidPaymentError,
    LedgerEngine,
    LedgerError,
    summarize,
)

__all__ = [
    "EntryNotFoundError",
    "InvalidInputError",
    "InvalidPaymentError",
    "LedgerEngine",
    "LedgerError",
    "summarize",
]
