"""
Matching strategies for attaching fee records to main transactions.
Each strategy implements one fee-to-transaction predicate.
"""

from abc import ABC, abstractmethod
from typing import Any, Mapping

from ..models.transaction import GroupedTransaction
from ..utils.normalize import fee_identity, parse_amount, parse_instant, reference_of


class MatchingStrategy(ABC):
    """Abstract base class for fee matching strategies."""

    name: str = "base"

    @abstractmethod
    def matches(self, fee: Mapping[str, Any], transaction: GroupedTransaction) -> bool:
        """
        Decide whether a fee belongs to a grouped transaction.

        Args:
            fee: Raw fee record
            transaction: Candidate grouped transaction

        Returns:
            True if the fee may be attached to the transaction
        """
        pass

    def is_duplicate(self, fee: Mapping[str, Any], transaction: GroupedTransaction) -> bool:
        """Check whether an identical fee is already attached to the transaction."""
        identity = fee_identity(fee)
        return any(fee_identity(existing) == identity for existing in transaction.associated_fees)

    def describe(self) -> str:
        """Short human-readable description of the predicate."""
        return self.name


class ReferenceInstantAmountStrategy(MatchingStrategy):
    """
    Default fee predicate: same reference, same instant to the millisecond,
    and amounts closer than the tolerance (strictly).
    """

    name = "reference_instant_amount"

    def __init__(self, amount_tolerance: float = 0.01):
        """
        Initialize with amount tolerance.

        Args:
            amount_tolerance: Amounts must differ by strictly less than this
        """
        self.amount_tolerance = amount_tolerance

    def matches(self, fee: Mapping[str, Any], transaction: GroupedTransaction) -> bool:
        if reference_of(fee) != reference_of(transaction.record):
            return False

        if parse_instant(fee.get("transactionDate")) != transaction.instant:
            return False

        amount_diff = abs(parse_amount(fee.get("amount")) - transaction.amount_value)
        return amount_diff < self.amount_tolerance

    def describe(self) -> str:
        return f"Reference and instant match, amount within {self.amount_tolerance}"


class ReferenceInstantStrategy(MatchingStrategy):
    """Fee predicate that ignores amounts: same reference and same instant."""

    name = "reference_instant"

    def matches(self, fee: Mapping[str, Any], transaction: GroupedTransaction) -> bool:
        return (
            reference_of(fee) == reference_of(transaction.record)
            and parse_instant(fee.get("transactionDate")) == transaction.instant
        )

    def describe(self) -> str:
        return "Reference and instant match"
