"""Unit tests for summary aggregation and report rows"""

import pytest
from datetime import date
from decimal import Decimal
from spendcore.constants import AnomalyStatus, DetectorRule, Severity
from spendcore.models import Anomaly, Category, Transaction, anomaly_id_for
from spendcore.tools.summary_tools import build_report_rows, summarize

TRANSPORT = 2


def make_txn(txn_id, amount, description, category_id=None, day=1, currency="THB"):
    return Transaction(
        id=txn_id,
        upload_id="upl_test",
        txn_date=date(2026, 1, day),
        description=description,
        amount=Decimal(amount),
        currency=currency,
        category_id=category_id,
    )


def make_anomaly(txn_id, status=AnomalyStatus.OPEN):
    return Anomaly(
        id=anomaly_id_for(txn_id, DetectorRule.STATISTICAL_OUTLIER),
        transaction_id=txn_id,
        rule_name=DetectorRule.STATISTICAL_OUTLIER,
        severity=Severity.HIGH,
        detail="test",
        status=status,
    )


@pytest.fixture
def scenario_transactions():
    return [
        make_txn("t1", "-100", "Grab Ride", TRANSPORT, day=3),
        make_txn("t2", "-50", "Grab Ride", TRANSPORT, day=1),
        make_txn("t3", "-5000", "Unknown Shop", None, day=2),
        make_txn("t4", "10000", "Salary", None, day=4),
    ]


def test_scenario_totals(scenario_transactions):
    summary = summarize(scenario_transactions, [])

    assert summary.total_income == Decimal("10000")
    assert summary.total_expense == Decimal("5150")
    assert summary.net_balance == Decimal("4850")
    assert summary.by_category == {TRANSPORT: Decimal("150")}
    assert summary.uncategorized_expense == Decimal("5000")
    assert summary.txn_count == 4
    assert summary.currencies == ["THB"]


def test_aggregation_identity_is_exact():
    """Decimal sums avoid float drift such as 0.1 + 0.2"""
    txns = [
        make_txn("a", "0.10", "x", 1),
        make_txn("b", "0.20", "y", 1),
        make_txn("c", "-0.30", "z", 1),
        make_txn("d", "1234567.89", "salary"),
    ]

    summary = summarize(txns, [])

    assert summary.total_income - summary.total_expense == summary.net_balance
    assert summary.total_expense == Decimal("0.30")
    assert sum(summary.by_category.values()) <= summary.total_expense


def test_by_category_equals_expense_when_all_categorized():
    txns = [make_txn("a", "-10", "x", 1), make_txn("b", "-15.50", "y", 3), make_txn("c", "-4.50", "z", 1)]

    summary = summarize(txns, [])

    assert summary.by_category == {1: Decimal("14.50"), 3: Decimal("15.50")}
    assert list(summary.by_category) == [1, 3]
    assert sum(summary.by_category.values()) == summary.total_expense


def test_empty_input_yields_zeros():
    summary = summarize([], [])

    assert summary.total_income == 0
    assert summary.total_expense == 0
    assert summary.net_balance == 0
    assert summary.anomaly_count == 0
    assert summary.txn_count == 0
    assert summary.by_category == {}


def test_zero_amount_counts_as_neither(scenario_transactions):
    summary = summarize(scenario_transactions + [make_txn("t5", "0", "Fee waived")], [])
    assert summary.total_income == Decimal("10000")
    assert summary.total_expense == Decimal("5150")
    assert summary.txn_count == 5


def test_only_open_anomalies_are_counted(scenario_transactions):
    anomalies = [
        make_anomaly("t1"),
        make_anomaly("t2", status=AnomalyStatus.CONFIRMED),
        make_anomaly("t3", status=AnomalyStatus.DISMISSED),
        make_anomaly("t4"),
    ]
    assert summarize(scenario_transactions, anomalies).anomaly_count == 2


def test_mixed_currencies_are_reported():
    txns = [make_txn("a", "-10", "x", currency="THB"), make_txn("b", "-10", "y", currency="USD")]
    assert summarize(txns, []).currencies == ["THB", "USD"]


def test_summary_serializes_camel_case(scenario_transactions):
    data = summarize(scenario_transactions, []).model_dump(by_alias=True)
    assert {"totalIncome", "totalExpense", "netBalance", "anomalyCount", "byCategory"} <= set(data)


def test_report_rows_sorted_with_names(scenario_transactions):
    categories = [Category(id=TRANSPORT, name="Transport")]

    rows = build_report_rows(scenario_transactions, categories)

    assert [row.txn_date.day for row in rows] == [1, 2, 3, 4]
    assert [row.category_name for row in rows] == ["Transport", "Uncategorized", "Transport", "Uncategorized"]
    assert rows[0].amount == Decimal("-50")


def test_report_rows_unknown_category_is_uncategorized():
    rows = build_report_rows([make_txn("a", "-10", "x", category_id=42)], [])
    assert rows[0].category_name == "Uncategorized"
    assert rows[0].category_id == 42


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
