"""Unit tests for anomaly detection tools"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from spendcore.constants import AnomalyStatus, DetectorRule, OutlierBaseline, Severity
from spendcore.models import DetectionSettings, Transaction, anomaly_id_for
from spendcore.tools.anomaly_tools import (
    detect_anomalies,
    detect_duplicate_signals,
    detect_large_amounts,
    detect_statistical_outliers,
    filter_new_anomalies,
    outflows_of
)

BASE_DATE = date(2026, 1, 1)


def make_txn(txn_id, amount, description="Shop", day_offset=0):
    return Transaction(
        id=txn_id,
        upload_id="upl_test",
        txn_date=BASE_DATE + timedelta(days=day_offset),
        description=description,
        amount=Decimal(amount),
    )


@pytest.fixture
def scenario_transactions():
    """Two small rides, one large purchase and a salary credit"""
    return [
        make_txn("t1", "-100", "Grab Ride", 0),
        make_txn("t2", "-50", "Grab Ride", 1),
        make_txn("t3", "-5000", "Unknown Shop", 2),
        make_txn("t4", "10000", "Salary", 3),
    ]


def triples(anomalies):
    return {(a.transaction_id, a.rule_name, a.severity) for a in anomalies}


def test_outflows_of_ignores_inflows(scenario_transactions):
    assert [t.id for t in outflows_of(scenario_transactions)] == ["t1", "t2", "t3"]


def test_scenario_flags_large_purchase_high(scenario_transactions):
    anomalies = detect_anomalies(scenario_transactions, DetectionSettings())

    assert triples(anomalies) == {("t3", DetectorRule.STATISTICAL_OUTLIER, Severity.HIGH)}

    anomaly = anomalies[0]
    assert anomaly.status == AnomalyStatus.OPEN
    assert anomaly.upload_id == "upl_test"
    assert anomaly.evidence['mean'] == "75.00"
    assert anomaly.evidence['stddev'] == "25.00"
    assert anomaly.id == anomaly_id_for("t3", DetectorRule.STATISTICAL_OUTLIER)


def test_batch_baseline_uses_whole_distribution(scenario_transactions):
    """Against the full set a single large value cannot clear mean + 2 stddev of three samples"""
    settings = DetectionSettings(baseline=OutlierBaseline.BATCH)
    outflows = outflows_of(scenario_transactions)

    assert detect_statistical_outliers(outflows, settings) == []


def test_batch_baseline_flags_clear_outlier():
    outflows = [make_txn(f"t{i}", "-100") for i in range(9)] + [make_txn("big", "-1000")]
    settings = DetectionSettings(baseline=OutlierBaseline.BATCH)

    anomalies = detect_statistical_outliers(outflows, settings)

    # mean 190, stddev 270: 1000 is exactly 3 stddev above, so not HIGH
    assert triples(anomalies) == {("big", DetectorRule.STATISTICAL_OUTLIER, Severity.MEDIUM)}


def test_medium_severity_between_thresholds():
    """Leave-one-out baseline of [100, 50]: mean 75, stddev 25; 140 sits between 125 and 150"""
    outflows = [make_txn("a", "-100"), make_txn("b", "-50"), make_txn("c", "-140")]

    anomalies = detect_statistical_outliers(outflows, DetectionSettings())

    assert triples(anomalies) == {("c", DetectorRule.STATISTICAL_OUTLIER, Severity.MEDIUM)}


def test_value_exactly_at_threshold_not_flagged():
    outflows = [make_txn("a", "-100"), make_txn("b", "-50"), make_txn("c", "-125")]
    assert detect_statistical_outliers(outflows, DetectionSettings()) == []


@pytest.mark.parametrize("amounts", [
    [],
    ["-500"],
    ["-20", "-20", "-20", "-20"],
])
def test_degenerate_batches_produce_no_outliers(amounts):
    outflows = [make_txn(f"t{i}", amount) for i, amount in enumerate(amounts)]
    assert detect_statistical_outliers(outflows, DetectionSettings()) == []


def test_only_inflows_produce_nothing():
    txns = [make_txn("t1", "100"), make_txn("t2", "99999")]
    assert detect_anomalies(txns, DetectionSettings()) == []


def test_outflow_above_identical_others_is_high():
    """900 against [10, 10]: the baseline has no spread, so the deviation is unbounded"""
    outflows = [make_txn("a", "-10"), make_txn("b", "-10"), make_txn("c", "-900")]

    anomalies = detect_statistical_outliers(outflows, DetectionSettings())

    assert triples(anomalies) == {("c", DetectorRule.STATISTICAL_OUTLIER, Severity.HIGH)}
    assert anomalies[0].evidence['z_score'] is None
    assert anomalies[0].evidence['mean'] == "10.00"


def test_single_large_payment_among_equal_ones():
    settings = DetectionSettings(large_amount_threshold=None)
    txns = [make_txn(f"t{i}", "-100", f"Shop {i}") for i in range(9)]
    txns.append(make_txn("t9", "-5000", "Shop 9"))

    anomalies = detect_anomalies(txns, settings)

    assert triples(anomalies) == {("t9", DetectorRule.STATISTICAL_OUTLIER, Severity.HIGH)}


def test_outflow_below_identical_others_not_flagged():
    outflows = [make_txn("a", "-500"), make_txn("b", "-500"), make_txn("c", "-20")]
    assert detect_statistical_outliers(outflows, DetectionSettings()) == []


def test_two_outflows_have_no_leave_one_out_baseline():
    outflows = [make_txn("a", "-100"), make_txn("b", "-101")]
    assert detect_statistical_outliers(outflows, DetectionSettings()) == []


def test_evenly_spread_batch_differs_by_baseline():
    """Leave-one-out flags the top of 10..50; the whole-set rule does not"""
    outflows = [make_txn(f"t{i}", f"-{10 * (i + 1)}") for i in range(5)]

    default = detect_statistical_outliers(outflows, DetectionSettings())
    batch = detect_statistical_outliers(outflows, DetectionSettings(baseline=OutlierBaseline.BATCH))

    assert triples(default) == {("t4", DetectorRule.STATISTICAL_OUTLIER, Severity.MEDIUM)}
    assert batch == []


def test_duplicate_signal_within_window():
    txns = [
        make_txn("t1", "-120.00", "KFC  Central World", 0),
        make_txn("t2", "-120", "kfc central world", 2),
        make_txn("t3", "-120.00", "KFC Central World", 10),
    ]

    anomalies = detect_duplicate_signals(txns, DetectionSettings())

    assert triples(anomalies) == {
        ("t1", DetectorRule.DUPLICATE_SIGNAL, Severity.LOW),
        ("t2", DetectorRule.DUPLICATE_SIGNAL, Severity.LOW),
    }
    by_txn = {a.transaction_id: a for a in anomalies}
    assert by_txn["t1"].evidence['duplicate_of'] == ["t2"]
    assert by_txn["t2"].evidence['duplicate_of'] == ["t1"]


def test_monthly_subscription_is_not_a_duplicate():
    txns = [
        make_txn("t1", "-419", "Netflix", 0),
        make_txn("t2", "-419", "Netflix", 31),
    ]
    assert detect_duplicate_signals(txns, DetectionSettings()) == []


def test_different_amounts_are_not_duplicates():
    txns = [make_txn("t1", "-100", "Grab Ride"), make_txn("t2", "-50", "Grab Ride")]
    assert detect_duplicate_signals(txns, DetectionSettings()) == []


def test_duplicate_window_zero_requires_same_day():
    settings = DetectionSettings(duplicate_window_days=0)
    txns = [
        make_txn("t1", "-60", "Coffee", 0),
        make_txn("t2", "-60", "Coffee", 0),
        make_txn("t3", "-60", "Coffee", 1),
    ]

    anomalies = detect_duplicate_signals(txns, settings)

    assert {a.transaction_id for a in anomalies} == {"t1", "t2"}


def test_blank_descriptions_never_duplicate():
    txns = [make_txn("t1", "-60", "  "), make_txn("t2", "-60", "")]
    assert detect_duplicate_signals(txns, DetectionSettings()) == []


def test_large_amount_at_threshold():
    txns = [make_txn("t1", "-10000.00"), make_txn("t2", "-9999.99")]

    anomalies = detect_large_amounts(txns, DetectionSettings())

    assert triples(anomalies) == {("t1", DetectorRule.LARGE_AMOUNT, Severity.MEDIUM)}


def test_large_amount_disabled():
    settings = DetectionSettings(large_amount_threshold=None)
    assert detect_large_amounts([make_txn("t1", "-50000")], settings) == []


def test_large_amount_ignores_inflows():
    assert detect_anomalies([make_txn("t1", "50000")], DetectionSettings()) == []


def test_rules_combine_per_transaction():
    amounts = ["-100", "-110", "-90", "-105", "-95"]
    txns = [make_txn(f"t{i}", amount, f"Shop {i}") for i, amount in enumerate(amounts)]
    txns.append(make_txn("big", "-20000", "Car"))

    anomalies = detect_anomalies(txns, DetectionSettings())

    assert [(a.transaction_id, a.rule_name) for a in anomalies] == [
        ("big", DetectorRule.STATISTICAL_OUTLIER),
        ("big", DetectorRule.LARGE_AMOUNT),
    ]


def test_detection_is_idempotent(scenario_transactions):
    first = detect_anomalies(scenario_transactions, DetectionSettings())
    second = detect_anomalies(scenario_transactions, DetectionSettings())

    assert triples(first) == triples(second)
    assert [a.id for a in first] == [a.id for a in second]


def test_detection_does_not_mutate_transactions(scenario_transactions):
    before = [t.model_dump() for t in scenario_transactions]
    detect_anomalies(scenario_transactions, DetectionSettings())
    assert [t.model_dump() for t in scenario_transactions] == before


def test_filter_new_anomalies_skips_existing(scenario_transactions):
    existing = detect_anomalies(scenario_transactions, DetectionSettings())
    again = detect_anomalies(scenario_transactions, DetectionSettings())

    assert filter_new_anomalies(again, existing) == []


def test_filter_new_anomalies_collapses_repeats(scenario_transactions):
    candidates = detect_anomalies(scenario_transactions, DetectionSettings())
    assert len(filter_new_anomalies(candidates + candidates, [])) == len(candidates)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
