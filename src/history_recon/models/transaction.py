"""Data models for transaction history reconciliation."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

# One element of the fetched history list, passed through as received
RawRecord = Mapping[str, Any]


class RecordKind(Enum):
    """How a raw history record is treated by the reconciler."""

    MAIN = "main"  # dedicated_account, payout
    FEE = "fee"  # internalfees, charges
    IGNORED = "ignored"


class DebitCreditIndicator(Enum):
    """Direction of a transaction from the account holder's perspective."""

    DEBIT = "Debit"
    CREDIT = "Credit"


@dataclass
class GroupedTransaction:
    """
    A main transaction together with the fee records attached to it.

    `record` is a shallow copy of the first raw record seen under `group_key`;
    fees are kept as the original objects, in attachment order.
    """

    id: Any
    group_key: str
    record: dict[str, Any]
    associated_fees: list[RawRecord] = field(default_factory=list)

    # Parsed values used for matching and ordering
    instant: int = 0
    amount_value: float = 0.0

    @property
    def reference(self) -> Any:
        return self.record.get("reference")

    @property
    def transaction_date(self) -> Any:
        return self.record.get("transactionDate")

    @property
    def amount(self) -> Any:
        return self.record.get("amount")

    @property
    def debit_credit_indicator(self) -> Optional[str]:
        return self.record.get("debitCreditIndicator")

    @property
    def is_debit(self) -> bool:
        return self.debit_credit_indicator == DebitCreditIndicator.DEBIT.value

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a field on the flattened view."""
        if key == "id":
            return self.id
        if key == "associatedFees":
            return self.associated_fees
        return self.record.get(key, default)

    def __getitem__(self, key: str) -> Any:
        if key in ("id", "associatedFees") or key in self.record:
            return self.get(key)
        raise KeyError(key)

    def to_dict(self) -> dict[str, Any]:
        """Flattened view: original fields plus `id` and `associatedFees`."""
        return {**self.record, "id": self.id, "associatedFees": list(self.associated_fees)}


@dataclass
class ReconciliationResult:
    """Grouped output of one reconciliation run plus its diagnostics."""

    transactions: list[GroupedTransaction]

    # Records that never made it into `transactions`
    unmatched_fees: list[RawRecord] = field(default_factory=list)
    dropped_records: list[Any] = field(default_factory=list)
    duplicate_transactions: list[RawRecord] = field(default_factory=list)
    duplicate_fees: list[RawRecord] = field(default_factory=list)
    truncated: list[GroupedTransaction] = field(default_factory=list)

    record_count: int = 0
    main_count: int = 0
    fee_count: int = 0

    @property
    def attached_fee_count(self) -> int:
        """Fees attached to any grouped transaction, including truncated ones."""
        return sum(len(t.associated_fees) for t in self.transactions + self.truncated)

    @property
    def is_empty(self) -> bool:
        return not self.transactions


@dataclass
class ReconciliationSummary:
    """Summary figures for a reconciliation run."""

    source_name: str
    reconciliation_date: datetime

    record_count: int
    main_count: int
    fee_count: int
    grouped_count: int
    displayed_count: int
    attached_fee_count: int
    unmatched_fee_count: int
    dropped_count: int
    duplicate_transaction_count: int
    duplicate_fee_count: int
    truncated_count: int

    # Totals over displayed transactions
    total_debits: float = 0.0
    total_credits: float = 0.0
    total_fees: float = 0.0

    # Oldest and newest displayed transactionDate values, as received
    period_start: Optional[str] = None
    period_end: Optional[str] = None

    processing_time_seconds: float = 0.0
    config_file_used: Optional[str] = None

    @property
    def fee_match_rate(self) -> float:
        """Percentage of fee records attached to a transaction."""
        if self.fee_count == 0:
            return 0.0
        return (self.attached_fee_count / self.fee_count) * 100

    @property
    def net_change(self) -> float:
        """Credits minus debits over displayed transactions."""
        return self.total_credits - self.total_debits
