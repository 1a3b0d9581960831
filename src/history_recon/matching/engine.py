"""
Transaction history reconciliation engine.
Groups main transactions, attaches their fee records, and orders the result.
"""

from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any, Optional
import logging

from ..models.transaction import (
    GroupedTransaction,
    RecordKind,
    ReconciliationResult,
    ReconciliationSummary,
)
from ..config import ReconConfig
from ..utils.normalize import (
    group_key,
    key_text,
    parse_amount,
    parse_instant,
    record_kind_text,
)
from .strategies import (
    MatchingStrategy,
    ReferenceInstantAmountStrategy,
    ReferenceInstantStrategy,
)

logger = logging.getLogger(__name__)


class TransactionReconciler:
    """
    Turns a flat history list into grouped transactions with attached fees.

    Reconciliation is a pure function of its input: no I/O, no state kept
    between calls, and malformed records never raise.
    """

    def __init__(self, config: Optional[ReconConfig] = None):
        """
        Initialize the reconciler.

        Args:
            config: Application configuration (defaults when omitted)
        """
        self.config = config or ReconConfig()
        matching = self.config.matching

        self.type_fields = list(matching.type_fields)
        self.main_types = {t.lower() for t in matching.main_types}
        self.fee_types = {t.lower() for t in matching.fee_types}
        self.max_results = matching.max_results
        self.strategy = self._build_strategy()

    def _build_strategy(self) -> MatchingStrategy:
        """Pick the fee predicate from the configured amount rule."""
        matching = self.config.matching
        if matching.amount_rule == "ignore":
            strategy: MatchingStrategy = ReferenceInstantStrategy()
        else:
            strategy = ReferenceInstantAmountStrategy(amount_tolerance=matching.amount_tolerance)
        logger.debug(f"Using fee matching strategy: {strategy.describe()}")
        return strategy

    def classify(self, record: Any) -> RecordKind:
        """Classify a raw record as main transaction, fee, or ignored."""
        if not isinstance(record, Mapping):
            return RecordKind.IGNORED

        kind = record_kind_text(record, self.type_fields)
        if kind in self.main_types:
            return RecordKind.MAIN
        if kind in self.fee_types:
            return RecordKind.FEE
        return RecordKind.IGNORED

    def reconcile(self, records: Optional[Iterable[Any]]) -> list[GroupedTransaction]:
        """
        Group and order a raw history list.

        Args:
            records: Raw records as returned by the history source (None is empty)

        Returns:
            At most `max_results` grouped transactions, newest first
        """
        return self.reconcile_detailed(records).transactions

    def reconcile_detailed(self, records: Optional[Iterable[Any]]) -> ReconciliationResult:
        """
        Group and order a raw history list, keeping what was left out.

        Args:
            records: Raw records as returned by the history source (None is empty)

        Returns:
            ReconciliationResult with the capped transactions and diagnostics
        """
        start_time = datetime.now()

        if records is None or isinstance(records, (str, bytes, Mapping)):
            items: list[Any] = []
        elif isinstance(records, Iterable):
            items = list(records)
        else:
            logger.warning(f"Ignoring history input of type {type(records).__name__}")
            items = []

        result = ReconciliationResult(transactions=[], record_count=len(items))
        logger.info(f"Starting reconciliation: {len(items)} records")

        # Insertion order is first appearance in the input
        grouped: dict[str, GroupedTransaction] = {}
        fees: list[Mapping[str, Any]] = []

        for record in items:
            kind = self.classify(record)

            if kind is RecordKind.MAIN:
                result.main_count += 1
                key = group_key(record)
                if key in grouped:
                    logger.debug(f"Collapsing duplicate transaction {key!r}")
                    result.duplicate_transactions.append(record)
                    continue
                grouped[key] = GroupedTransaction(
                    id=record.get("id") or key,
                    group_key=key,
                    record=dict(record),
                    instant=parse_instant(record.get("transactionDate")),
                    amount_value=parse_amount(record.get("amount")),
                )

            elif kind is RecordKind.FEE:
                fees.append(record)

            else:
                logger.debug(f"Dropping unclassified record: {type(record).__name__}")
                result.dropped_records.append(record)

        result.fee_count = len(fees)
        candidates = list(grouped.values())
        for fee in fees:
            self._attach_fee(fee, candidates, result)

        # sorted() is stable with reverse=True, so equal instants keep input order
        ordered = sorted(candidates, key=lambda t: t.instant, reverse=True)
        result.transactions = ordered[: self.max_results]
        result.truncated = ordered[self.max_results :]

        if result.dropped_records:
            logger.debug(f"Dropped {len(result.dropped_records)} unclassified records")

        elapsed = (datetime.now() - start_time).total_seconds()
        logger.info(
            f"Reconciliation complete in {elapsed:.3f}s: {len(result.transactions)} shown, "
            f"{len(candidates)} grouped, {result.attached_fee_count} fees attached, "
            f"{len(result.unmatched_fees)} fees unmatched, "
            f"{len(result.dropped_records)} records dropped"
        )

        return result

    def _attach_fee(
        self,
        fee: Mapping[str, Any],
        candidates: list[GroupedTransaction],
        result: ReconciliationResult,
    ) -> None:
        """
        Attach a fee to the first matching transaction.

        The first match decides the fee's fate: it is attached there, or
        counted as a duplicate if that transaction already holds an identical fee.
        Unlike the mobile client, a duplicate is not offered to later matches.
        """
        for transaction in candidates:
            if not self.strategy.matches(fee, transaction):
                continue

            if self.strategy.is_duplicate(fee, transaction):
                logger.debug(f"Suppressing duplicate fee on {transaction.group_key!r}")
                result.duplicate_fees.append(fee)
            else:
                transaction.associated_fees.append(fee)
            return

        result.unmatched_fees.append(fee)

    def generate_summary(
        self,
        result: ReconciliationResult,
        source_name: str,
        processing_time: float = 0.0,
    ) -> ReconciliationSummary:
        """
        Generate summary figures for a reconciliation result.

        Args:
            result: Output of reconcile_detailed
            source_name: Name of the history file or endpoint
            processing_time: Time taken in seconds

        Returns:
            Reconciliation summary object
        """
        shown = result.transactions

        total_debits = sum((t.amount_value for t in shown if t.is_debit), 0.0)
        total_credits = sum(
            (t.amount_value for t in shown if t.debit_credit_indicator == "Credit"), 0.0
        )
        total_fees = sum(
            (parse_amount(fee.get("amount")) for t in shown for fee in t.associated_fees), 0.0
        )

        return ReconciliationSummary(
            source_name=source_name,
            reconciliation_date=datetime.now(),
            record_count=result.record_count,
            main_count=result.main_count,
            fee_count=result.fee_count,
            grouped_count=len(shown) + len(result.truncated),
            displayed_count=len(shown),
            attached_fee_count=result.attached_fee_count,
            unmatched_fee_count=len(result.unmatched_fees),
            dropped_count=len(result.dropped_records),
            duplicate_transaction_count=len(result.duplicate_transactions),
            duplicate_fee_count=len(result.duplicate_fees),
            truncated_count=len(result.truncated),
            total_debits=total_debits,
            total_credits=total_credits,
            total_fees=total_fees,
            period_start=key_text(shown[-1].transaction_date) if shown else None,
            period_end=key_text(shown[0].transaction_date) if shown else None,
            processing_time_seconds=processing_time,
            config_file_used=self.config.config_file_path,
        )


def reconcile(
    records: Optional[Iterable[Any]], config: Optional[ReconConfig] = None
) -> list[GroupedTransaction]:
    """Reconcile a raw history list with the given (or default) configuration."""
    return TransactionReconciler(config).reconcile(records)
