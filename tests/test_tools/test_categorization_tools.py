"""Unit tests for keyword-rule categorization tools"""

import pytest
from datetime import date
from decimal import Decimal
from spendcore.models import CategorizationRule, Transaction
from spendcore.tools.categorization_tools import (
    classify,
    classify_batch,
    order_rules,
    override_category,
    ClassificationResult
)

FOOD, TRANSPORT, SHOPPING, TRANSFER = 1, 2, 3, 6


def make_rule(rule_id, keyword, category_id, priority=0):
    return CategorizationRule(id=rule_id, keyword=keyword, category_id=category_id, priority=priority)


def make_txn(txn_id, description, amount="-120.00", **kwargs):
    return Transaction(
        id=txn_id,
        upload_id="upl_test",
        txn_date=date(2026, 1, 10),
        description=description,
        amount=Decimal(amount),
        **kwargs
    )


@pytest.fixture
def rules():
    """Rules in deliberately shuffled order"""
    return [
        make_rule(10, "KFC", FOOD, priority=10),
        make_rule(8, "GRAB", TRANSPORT, priority=8),
        make_rule(11, "SHOPEE", SHOPPING, priority=10),
        make_rule(5, "TRANSFER", TRANSFER, priority=5),
    ]


def test_order_rules_by_priority_then_id(rules):
    """Lower priority first, ties broken by ascending id"""
    ordered = order_rules(rules)
    assert [r.id for r in ordered] == [5, 8, 10, 11]


def test_classify_case_insensitive(rules):
    result = classify("ซื้อ kfc อาหาร", order_rules(rules))
    assert result == ClassificationResult(FOOD, 10)
    assert result.matched


def test_classify_unmatched_returns_nulls(rules):
    result = classify("RANDOM_STORE_XYZ_NOTHING", order_rules(rules))
    assert result.category_id is None
    assert result.matched_rule_id is None
    assert not result.matched


def test_classify_empty_description(rules):
    assert classify("", order_rules(rules)) == ClassificationResult(None, None)


def test_first_match_wins_over_longer_keyword():
    """'grab' at priority 1 beats the more specific 'grab food' at priority 2"""
    ordered = order_rules([
        make_rule(2, "grab food", FOOD, priority=2),
        make_rule(1, "grab", TRANSPORT, priority=1),
    ])
    assert classify("GRAB FOOD PAYMENT", ordered).category_id == TRANSPORT


def test_priority_tie_broken_by_rule_id():
    ordered = order_rules([
        make_rule(7, "shop", SHOPPING, priority=3),
        make_rule(4, "shopee", FOOD, priority=3),
    ])
    assert classify("SHOPEE ORDER", ordered).matched_rule_id == 4


def test_classify_is_deterministic(rules):
    ordered = order_rules(rules)
    results = {classify("SHOPEE แต่มี GRAB FOOD", ordered) for _ in range(20)}
    assert results == {ClassificationResult(TRANSPORT, 8)}


def test_classify_batch_assigns_and_counts_matches(rules):
    txns = [make_txn("t1", "KFC lunch"), make_txn("t2", "GRAB taxi"), make_txn("t3", "nothing here")]
    matches = []

    result = classify_batch(txns, rules, on_match=matches.append)

    assert result == txns
    assert [t.category_id for t in txns] == [FOOD, TRANSPORT, None]
    assert [t.matched_rule_id for t in txns] == [10, 8, None]
    assert matches == [10, 8]


def test_classify_batch_skips_overrides(rules):
    pinned = make_txn("t1", "KFC lunch", category_id=SHOPPING, override=True)
    matches = []

    classify_batch([pinned], rules, on_match=matches.append)

    assert pinned.category_id == SHOPPING
    assert pinned.matched_rule_id is None
    assert matches == []


def test_classify_batch_is_idempotent(rules):
    txns = [make_txn("t1", "KFC lunch"), make_txn("t2", "SHOPEE order")]
    matches = []

    classify_batch(txns, rules, on_match=matches.append)
    first = [(t.category_id, t.matched_rule_id) for t in txns]
    classify_batch(txns, rules, on_match=matches.append)
    second = [(t.category_id, t.matched_rule_id) for t in txns]

    assert first == second
    # One increment per transaction evaluated per run
    assert len(matches) == 4


def test_classify_batch_clears_stale_assignment(rules):
    """A rule removed since the last run no longer applies"""
    txn = make_txn("t1", "KFC lunch")
    classify_batch([txn], rules)
    assert txn.category_id == FOOD

    classify_batch([txn], [r for r in rules if r.keyword != "KFC"])
    assert txn.category_id is None
    assert txn.matched_rule_id is None


def test_classify_batch_empty():
    assert classify_batch([], []) == []


def test_override_category_is_sticky(rules):
    txn = make_txn("t1", "KFC lunch")
    classify_batch([txn], rules)

    override_category(txn, SHOPPING)
    assert txn.override is True
    assert txn.matched_rule_id is None

    classify_batch([txn], [make_rule(99, "lunch", TRANSFER, priority=0)])
    assert txn.category_id == SHOPPING


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
