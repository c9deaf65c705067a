"""Keyword-rule categorization tools"""

from typing import Callable, Iterable, List, NamedTuple, Optional, Sequence
from spendcore.models import CategorizationRule, Transaction
from spendcore.utils.logging import get_logger
from spendcore.utils.metrics import transactions_classified, transactions_skipped_override

logger = get_logger(__name__)


class ClassificationResult(NamedTuple):
    """Outcome of classifying one description"""
    category_id: Optional[int]
    matched_rule_id: Optional[int]

    @property
    def matched(self) -> bool:
        return self.matched_rule_id is not None


UNCLASSIFIED = ClassificationResult(None, None)


def order_rules(rules: Iterable[CategorizationRule]) -> List[CategorizationRule]:
    """Sort rules into evaluation order: priority ascending, then id ascending"""
    return sorted(rules, key=lambda rule: rule.sort_key)


def classify(description: str, rules: Sequence[CategorizationRule]) -> ClassificationResult:
    """
    Assign at most one category to a description.

    First match wins, not best match: the first rule (in the given order)
    whose lower-cased keyword occurs in the lower-cased description decides
    the category, even if a later rule has a longer keyword.

    Args:
        description: Free-text transaction description
        rules: Rules already in evaluation order (see order_rules)

    Returns:
        ClassificationResult; both fields None when nothing matches
    """
    text = (description or "").lower()
    if not text:
        return UNCLASSIFIED

    for rule in rules:
        keyword = rule.keyword.strip().lower()
        if keyword and keyword in text:
            return ClassificationResult(rule.category_id, rule.id)

    return UNCLASSIFIED


def classify_batch(
    transactions: Iterable[Transaction],
    rules: Iterable[CategorizationRule],
    on_match: Optional[Callable[[int], None]] = None
) -> List[Transaction]:
    """
    Categorize a batch of transactions in place.

    Transactions with override=True are never touched. Every other
    transaction is re-evaluated against the current rules, so running the
    batch twice without rule changes gives the same assignments.

    Args:
        transactions: Transactions to categorize
        rules: Current rule set (any order; sorted here)
        on_match: Called with the winning rule id once per matched transaction

    Returns:
        The same transactions, in input order
    """
    ordered = order_rules(rules)
    results = []
    matched = unmatched = skipped = 0

    for txn in transactions:
        results.append(txn)

        if txn.override:
            skipped += 1
            continue

        outcome = classify(txn.description, ordered)
        txn.category_id = outcome.category_id
        txn.matched_rule_id = outcome.matched_rule_id

        if outcome.matched:
            matched += 1
            if on_match is not None:
                on_match(outcome.matched_rule_id)
        else:
            unmatched += 1

    transactions_classified.labels(outcome='matched').inc(matched)
    transactions_classified.labels(outcome='unmatched').inc(unmatched)
    transactions_skipped_override.inc(skipped)

    logger.info(
        "Classified transaction batch",
        matched=matched,
        unmatched=unmatched,
        skipped_override=skipped,
        rule_count=len(ordered)
    )
    return results


def override_category(transaction: Transaction, category_id: Optional[int]) -> Transaction:
    """
    Manually set a transaction's category.

    The assignment becomes sticky: later classify_batch runs skip it.
    Passing None pins the transaction as uncategorized.
    """
    transaction.category_id = category_id
    transaction.matched_rule_id = None
    transaction.override = True
    return transaction
