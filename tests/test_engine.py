from __future__ import annotations

import random
from typing import Any

import pytest

from history_recon.config import ReconConfig
from history_recon.matching.engine import TransactionReconciler, reconcile
from history_recon.models.transaction import RecordKind
from history_recon.utils.normalize import fee_identity, parse_instant

from conftest import make_record


def _dates(transactions: list[Any]) -> list[int]:
    return [parse_instant(t.transaction_date) for t in transactions]


def test_basic_grouping_attaches_fee() -> None:
    tx = make_record("payout", "R1", "2024-01-01T10:00:00Z", "100", "Debit")
    fee = make_record("internalfees", "R1", "2024-01-01T10:00:00Z", "100", None)

    result = reconcile([tx, fee])

    assert len(result) == 1
    assert result[0].reference == "R1"
    assert result[0].associated_fees == [fee]
    assert result[0].associated_fees[0] is fee


def test_fee_with_different_amount_is_unmatched_by_default() -> None:
    tx = make_record("payout", "R1", "2024-01-01T10:00:00Z", "100", "Debit")
    fee = make_record("internalfees", "R1", "2024-01-01T10:00:00Z", "5", None)

    detailed = TransactionReconciler().reconcile_detailed([tx, fee])

    assert detailed.transactions[0].associated_fees == []
    assert detailed.unmatched_fees == [fee]


def test_ignore_amount_rule_matches_on_reference_and_instant() -> None:
    config = ReconConfig()
    config.matching.amount_rule = "ignore"
    tx = make_record("payout", "R1", "2024-01-01T10:00:00Z", "100", "Debit")
    fee = make_record("internalfees", "R1", "2024-01-01T10:00:00Z", "5", None)

    result = reconcile([tx, fee], config)

    assert result[0].associated_fees == [fee]


def test_amount_tolerance_boundary_is_strict() -> None:
    tx_a = make_record("payout", "R1", "2024-01-01T10:00:00Z", "100.00", "Debit")
    tx_b = make_record("payout", "R1", "2024-01-01T10:00:00Z", "100.01", "Credit")
    fee = make_record("internalfees", "R1", "2024-01-01T10:00:00Z", "100.00", None)

    result = reconcile([tx_b, tx_a, fee])

    by_amount = {t.amount: t for t in result}
    assert by_amount["100.01"].associated_fees == []
    assert by_amount["100.00"].associated_fees == [fee]


def test_fee_one_cent_off_only_candidate_is_unmatched() -> None:
    tx = make_record("payout", "R1", "2024-01-01T10:00:00Z", "100.01", "Debit")
    fee = make_record("internalfees", "R1", "2024-01-01T10:00:00Z", "100.00", None)

    detailed = TransactionReconciler().reconcile_detailed([tx, fee])

    assert detailed.transactions[0].associated_fees == []
    assert detailed.unmatched_fees == [fee]


def test_amount_within_tolerance_matches() -> None:
    tx = make_record("payout", "R1", "2024-01-01T10:00:00Z", "100.00", "Debit")
    fee = make_record("charges", "R1", "2024-01-01T10:00:00Z", "100.009", None)

    assert reconcile([tx, fee])[0].associated_fees == [fee]


def test_duplicate_main_transactions_collapse_to_first_seen() -> None:
    first = make_record("dedicated_account", description="first copy")
    second = make_record("dedicated_account", description="second copy")

    detailed = TransactionReconciler().reconcile_detailed([first, second])

    assert len(detailed.transactions) == 1
    assert detailed.transactions[0].get("description") == "first copy"
    assert detailed.duplicate_transactions == [second]


def test_more_than_ten_transactions_keeps_ten_most_recent() -> None:
    records = [
        make_record("payout", f"R{day}", f"2024-01-{day:02d}T10:00:00Z", "100")
        for day in range(1, 16)
    ]

    detailed = TransactionReconciler().reconcile_detailed(records)

    assert len(detailed.transactions) == 10
    assert [t.reference for t in detailed.transactions] == [f"R{d}" for d in range(15, 5, -1)]
    assert [t.reference for t in detailed.truncated] == [f"R{d}" for d in range(5, 0, -1)]


def test_cap_is_applied_after_sorting() -> None:
    records = [
        make_record("payout", f"R{day}", f"2024-02-{day:02d}T10:00:00Z", "100")
        for day in range(12, 0, -1)
    ]
    # Newest record arrives last
    records.append(make_record("payout", "NEWEST", "2024-03-01T10:00:00Z", "100"))

    result = reconcile(records)

    assert result[0].reference == "NEWEST"
    assert len(result) == 10


def test_empty_and_none_input() -> None:
    assert reconcile([]) == []
    assert reconcile(None) == []


def test_unknown_types_are_dropped() -> None:
    unknown = make_record("unknown_type_xyz", "R1")
    tx = make_record("payout", "R1")

    detailed = TransactionReconciler().reconcile_detailed([unknown, tx])

    assert len(detailed.transactions) == 1
    assert detailed.transactions[0].get("type") == "payout"
    assert detailed.dropped_records == [unknown]
    for txn in detailed.transactions:
        assert unknown not in txn.associated_fees


def test_non_mapping_elements_are_ignored() -> None:
    tx = make_record("payout", "R1")

    detailed = TransactionReconciler().reconcile_detailed([None, 5, "payout", tx])

    assert len(detailed.transactions) == 1
    assert detailed.dropped_records == [None, 5, "payout"]


def test_only_fees_yields_empty_output() -> None:
    fee = make_record("internalfees", "R1")

    detailed = TransactionReconciler().reconcile_detailed([fee])

    assert detailed.transactions == []
    assert detailed.unmatched_fees == [fee]


def test_type_lookup_is_case_insensitive_with_fallback_fields() -> None:
    upper = make_record("PAYOUT", "R1", "2024-01-01T10:00:00Z")
    camel = {"transactionType": "Dedicated_Account", "reference": "R2",
             "transactionDate": "2024-01-02T10:00:00Z", "amount": "5"}
    snake = {"type": "", "transaction_type": "payout", "reference": "R3",
             "transactionDate": "2024-01-03T10:00:00Z", "amount": "5"}
    numeric_type = {"type": 7, "transaction_type": "payout", "reference": "R4",
                    "transactionDate": "2024-01-04T10:00:00Z", "amount": "5"}

    result = reconcile([upper, camel, snake, numeric_type])

    assert [t.reference for t in result] == ["R4", "R3", "R2", "R1"]


def test_id_defaults_to_group_key() -> None:
    with_id = make_record("payout", "R1", id="tx-42")
    without_id = make_record("payout", "R2", "2024-01-01T10:00:00Z", 250.0, "Credit")

    result = reconcile([with_id, without_id])

    ids = {t.reference: t.id for t in result}
    assert ids["R1"] == "tx-42"
    assert ids["R2"] == "R22024-01-01T10:00:00Z250Credit"


def test_output_is_a_shallow_copy_of_the_record() -> None:
    tx = make_record("payout", "R1", currency="NGN")

    grouped = reconcile([tx])[0]
    flat = grouped.to_dict()

    assert flat["currency"] == "NGN"
    assert flat["associatedFees"] == []
    assert flat["id"] == grouped.id
    assert "associatedFees" not in tx
    grouped.record["currency"] = "USD"
    assert tx["currency"] == "NGN"


def test_fee_attaches_to_first_inserted_matching_transaction() -> None:
    debit = make_record("payout", "R1", indicator="Debit")
    credit = make_record("payout", "R1", indicator="Credit")
    fee = make_record("internalfees", "R1", indicator=None)

    result = reconcile([debit, credit, fee])

    fees_by_indicator = {t.debit_credit_indicator: t.associated_fees for t in result}
    assert fees_by_indicator["Debit"] == [fee]
    assert fees_by_indicator["Credit"] == []


def test_exact_duplicate_fee_is_suppressed_everywhere() -> None:
    debit = make_record("payout", "R1", indicator="Debit")
    credit = make_record("payout", "R1", indicator="Credit")
    fee = make_record("internalfees", "R1", indicator=None)
    fee_copy = dict(fee)

    detailed = TransactionReconciler().reconcile_detailed([debit, credit, fee, fee_copy])

    attached = [f for t in detailed.transactions for f in t.associated_fees]
    assert attached == [fee]
    assert detailed.duplicate_fees == [fee_copy]


def test_fees_differing_only_in_raw_amount_text_are_both_kept() -> None:
    tx = make_record("payout", "R1", amount="100")
    fee_a = make_record("internalfees", "R1", amount="100", indicator=None)
    fee_b = make_record("internalfees", "R1", amount="100.0", indicator=None)

    result = reconcile([tx, fee_a, fee_b])

    assert result[0].associated_fees == [fee_a, fee_b]


def test_date_match_is_millisecond_exact() -> None:
    tx = make_record("payout", "R1", "2024-01-01T10:00:00Z")
    late_fee = make_record("internalfees", "R1", "2024-01-01T10:00:00.001Z", indicator=None)
    same_instant_fee = make_record(
        "internalfees", "R1", "2024-01-01T11:00:00+01:00", indicator=None
    )

    detailed = TransactionReconciler().reconcile_detailed([tx, late_fee, same_instant_fee])

    assert detailed.transactions[0].associated_fees == [same_instant_fee]
    assert detailed.unmatched_fees == [late_fee]


def test_unparseable_dates_match_each_other_and_sort_oldest() -> None:
    broken_tx = make_record("payout", "R1", "garbage")
    broken_fee = make_record("internalfees", "R1", "invalid-date", indicator=None)
    dated_tx = make_record("payout", "R2", "1999-12-31T23:59:59Z")

    result = reconcile([broken_tx, dated_tx, broken_fee])

    assert [t.reference for t in result] == ["R2", "R1"]
    assert result[1].associated_fees == [broken_fee]


def test_empty_reference_fee_matches_empty_reference_transaction() -> None:
    tx = make_record("payout", None)
    fee = make_record("internalfees", "", indicator=None)

    assert reconcile([tx, fee])[0].associated_fees == [fee]


def test_missing_amounts_default_to_zero() -> None:
    tx = make_record("payout", "R1", amount=None)
    fee = make_record("internalfees", "R1", amount="n/a", indicator=None)

    grouped = reconcile([tx, fee])[0]

    assert grouped.amount_value == 0.0
    assert grouped.associated_fees == [fee]
    assert grouped.group_key == "R12024-01-01T10:00:00Z0Debit"


def test_equal_dates_keep_input_order() -> None:
    records = [make_record("payout", f"R{i}", "2024-01-01T10:00:00Z") for i in range(5)]

    assert [t.reference for t in reconcile(records)] == [f"R{i}" for i in range(5)]


def test_configured_cap() -> None:
    config = ReconConfig()
    config.matching.max_results = 3
    records = [make_record("payout", f"R{d}", f"2024-01-{d:02d}") for d in range(1, 6)]

    assert [t.reference for t in reconcile(records, config)] == ["R5", "R4", "R3"]


def _random_records(rng: random.Random, count: int) -> list[Any]:
    kinds = ["payout", "dedicated_account", "internalfees", "charges", "airtime", "unknown_type_xyz"]
    dates = ["2024-01-01T10:00:00Z", "2024-01-02T10:00:00Z", "2024-01-03", "bad", None]
    amounts = ["100", "100.00", "5", 5, None, "abc"]
    records: list[Any] = []
    for _ in range(count):
        records.append(
            make_record(
                rng.choice(kinds),
                rng.choice(["R1", "R2", None]),
                rng.choice(dates),
                rng.choice(amounts),
                rng.choice(["Debit", "Credit", None]),
            )
        )
    return records


def test_invariants_hold_for_random_histories() -> None:
    rng = random.Random(20240101)
    reconciler = TransactionReconciler()

    for _ in range(200):
        records = _random_records(rng, rng.randint(0, 40))

        first = reconciler.reconcile(records)
        second = reconciler.reconcile(records)

        assert first == second
        assert len(first) <= 10

        dates = _dates(first)
        assert dates == sorted(dates, reverse=True)

        seen_ids: set[int] = set()
        seen_triples: list[Any] = []
        for txn in first:
            assert txn.get("type") != "unknown_type_xyz"
            for fee in txn.associated_fees:
                assert id(fee) not in seen_ids
                assert fee.get("type") != "unknown_type_xyz"
                seen_ids.add(id(fee))
                assert fee_identity(fee) not in seen_triples
                seen_triples.append(fee_identity(fee))


def test_generate_summary_counts(history_records: list[dict[str, Any]]) -> None:
    reconciler = TransactionReconciler()
    detailed = reconciler.reconcile_detailed(history_records)

    summary = reconciler.generate_summary(detailed, source_name="history.json")

    assert summary.record_count == 6
    assert summary.main_count == 2
    assert summary.fee_count == 3
    assert summary.displayed_count == 2
    assert summary.attached_fee_count == 2
    assert summary.unmatched_fee_count == 1
    assert summary.dropped_count == 1
    assert summary.total_debits == 100.0
    assert summary.total_credits == 2500.5
    assert summary.total_fees == 2600.5
    assert summary.period_end == "2024-01-02T09:30:00Z"
    assert summary.period_start == "2024-01-01T10:00:00Z"
    assert round(summary.fee_match_rate, 1) == 66.7


def test_classify_and_flattened_lookup() -> None:
    reconciler = TransactionReconciler()
    assert reconciler.classify(make_record("PAYOUT")) is RecordKind.MAIN
    assert reconciler.classify(make_record("Charges")) is RecordKind.FEE
    assert reconciler.classify({"type": 7}) is RecordKind.IGNORED
    assert reconciler.classify("payout") is RecordKind.IGNORED

    detailed = reconciler.reconcile_detailed([make_record("payout", "R1")])
    grouped = detailed.transactions[0]
    assert not detailed.is_empty
    assert grouped["reference"] == "R1"
    assert grouped["associatedFees"] == []
    with pytest.raises(KeyError):
        grouped["currency"]
    assert reconciler.reconcile_detailed([]).is_empty


def test_partial_dates_do_not_raise_and_sort_oldest() -> None:
    dated = make_record("payout", "A", "2025-01-01T00:00:00Z", "1")
    time_only = make_record("payout", "B", "10:30", "1")
    month_day = make_record("payout", "C", "Jan 5", "1")
    hour = make_record("payout", "D", "10am", "1")

    result = reconcile([time_only, month_day, hour, dated])

    assert [t.reference for t in result] == ["A", "B", "C", "D"]
    assert [t.instant for t in result[1:]] == [0, 0, 0]
