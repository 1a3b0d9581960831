"""Data models for reconciliation."""

from .transaction import (
    RawRecord,
    RecordKind,
    DebitCreditIndicator,
    GroupedTransaction,
    ReconciliationResult,
    ReconciliationSummary,
)

__all__ = [
    "RawRecord",
    "RecordKind",
    "DebitCreditIndicator",
    "GroupedTransaction",
    "ReconciliationResult",
    "ReconciliationSummary",
]
