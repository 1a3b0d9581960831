"""Plain-text rendering of grouped transactions (row labels, share text)."""

from typing import Any, Mapping, Union

from ..models.transaction import GroupedTransaction
from ..utils.normalize import is_numeric, parse_amount

DEFAULT_CURRENCY = "NGN"

TransactionLike = Union[GroupedTransaction, Mapping[str, Any]]


def format_amount(value: Any) -> str:
    """
    Format an amount with thousands separators and two decimals.

    Non-numeric values are returned unchanged as text.
    """
    if is_numeric(value):
        return f"{parse_amount(value):,.2f}"
    return str(value)


def _field(txn: TransactionLike, *names: str) -> Any:
    for name in names:
        value = txn.get(name)
        if value:
            return value
    return None


def transaction_type_text(txn: TransactionLike, default: str = "N/A") -> str:
    return _field(txn, "transaction_type", "transactionType", "type") or default


def description_text(txn: TransactionLike) -> Any:
    return _field(txn, "transaction_description", "description")


def display_label(txn: TransactionLike) -> str:
    """Title shown on a history row."""
    description = description_text(txn)
    if description:
        return str(description)

    indicator = txn.get("debitCreditIndicator")
    if indicator == "Debit":
        return "Debit Transaction"
    if indicator == "Credit":
        return "Credit Transaction"
    return transaction_type_text(txn, default="Transaction")


def format_fee_line(fee: Mapping[str, Any], currency: str = DEFAULT_CURRENCY) -> str:
    fee_type = transaction_type_text(fee, default="Fee")
    fee_currency = fee.get("currency") or currency
    return f"- {fee_type} ({fee_currency} {format_amount(fee.get('amount') or 0)})"


def format_transaction_details(
    txn: TransactionLike, currency: str = DEFAULT_CURRENCY
) -> str:
    """
    Render the detail view of a transaction as shareable text.

    Args:
        txn: Grouped transaction (or its flattened dict)
        currency: Currency shown when the record carries none

    Returns:
        Multi-line text, with an "Associated Fees" section when fees are attached
    """
    txn_currency = txn.get("currency") or currency
    lines = [
        "Transaction Details:",
        f"Type: {transaction_type_text(txn)}",
        f"Description: {description_text(txn) or 'N/A'}",
        f"Amount: {txn_currency} {format_amount(txn.get('amount') or 0)}",
        f"Direction: {txn.get('debitCreditIndicator') or 'N/A'}",
        f"Date: {txn.get('transactionDate') or 'N/A'}",
        f"Time: {txn.get('transactionTime') or 'N/A'}",
        f"Reference: {txn.get('reference') or 'N/A'}",
    ]

    fees = txn.get("associatedFees") or []
    if fees:
        lines.append("")
        lines.append("Associated Fees:")
        lines.extend(format_fee_line(fee, currency) for fee in fees)

    return "\n".join(lines)
