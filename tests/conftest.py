from __future__ import annotations

from typing import Any

import pytest


def make_record(
    kind: str,
    reference: str | None = "R1",
    date: Any = "2024-01-01T10:00:00Z",
    amount: Any = "100",
    indicator: str | None = "Debit",
    **extra: Any,
) -> dict[str, Any]:
    record: dict[str, Any] = {"type": kind}
    if reference is not None:
        record["reference"] = reference
    if date is not None:
        record["transactionDate"] = date
    if amount is not None:
        record["amount"] = amount
    if indicator is not None:
        record["debitCreditIndicator"] = indicator
    record.update(extra)
    return record


@pytest.fixture
def history_records() -> list[dict[str, Any]]:
    return [
        make_record("payout", "R1", "2024-01-01T10:00:00Z", "100", description="Transfer to Ada"),
        make_record("internalfees", "R1", "2024-01-01T10:00:00Z", "100", None),
        make_record("dedicated_account", "R2", "2024-01-02T09:30:00Z", "2500.50", "Credit"),
        make_record("charges", "R2", "2024-01-02T09:30:00Z", "2500.5", None),
        make_record("airtime", "R3", "2024-01-03T08:00:00Z", "200"),
        make_record("internalfees", "R9", "2024-01-04T08:00:00Z", "10", None),
    ]
