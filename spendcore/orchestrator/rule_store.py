"""In-memory rule store: categorization rules and category reference data."""

import threading
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional
from spendcore.constants import DEFAULT_RULE_PRIORITY
from spendcore.models import Category, CategorizationRule
from spendcore.tools.categorization_tools import order_rules
from spendcore.utils.errors import NotFoundError, ProtectedRuleError, ValidationError
from spendcore.utils.logging import get_logger
from spendcore.utils.metrics import rule_matches, rule_mutations

logger = get_logger(__name__)


class RuleStore:
    """
    Ordered categorization rules plus the categories they point at.

    Every mutation is visible to the next list() call. match_count
    increments are serialized by a lock within this process; concurrent
    processes sharing a database may undercount, which is acceptable for an
    informational counter.
    """

    def __init__(self, categories: Optional[Iterable[Category]] = None,
                 rules: Optional[Iterable[CategorizationRule]] = None):
        self._lock = threading.Lock()
        self._categories: Dict[int, Category] = {c.id: c for c in (categories or [])}
        self._rules: Dict[int, CategorizationRule] = {}
        self._next_id = 1

        for rule in rules or []:
            self._check_category(rule.category_id)
            self._rules[rule.id] = rule
            self._next_id = max(self._next_id, rule.id + 1)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "RuleStore":
        """
        Build a store seeded with the configured system categories and rules.

        Seeded rules are protected (system=True) and numbered in file order.
        """
        categories = [Category(**entry) for entry in config.get('categories') or []]
        rules = []
        for rule_id, entry in enumerate(config.get('rules') or [], start=1):
            keyword = str(entry.get('keyword') or "").strip()
            if not keyword:
                raise ValidationError(f"Seed rule {rule_id} has an empty keyword")
            rules.append(CategorizationRule(
                id=rule_id,
                keyword=keyword,
                category_id=entry['category_id'],
                priority=entry.get('priority', DEFAULT_RULE_PRIORITY),
                system=entry.get('system', True),
            ))

        store = cls(categories=categories, rules=rules)
        logger.info("Rule store seeded", categories=len(categories), rules=len(rules))
        return store

    # Categories

    def list_categories(self) -> List[Category]:
        return sorted(self._categories.values(), key=lambda c: c.id)

    def get_category(self, category_id: int) -> Category:
        category = self._categories.get(category_id)
        if category is None:
            raise NotFoundError(f"Category {category_id} not found", category_id=category_id)
        return category

    def has_category(self, category_id: int) -> bool:
        return category_id in self._categories

    # Rules

    def list(self) -> List[CategorizationRule]:
        """Rules in evaluation order (priority asc, id asc), as snapshots"""
        with self._lock:
            return [rule.model_copy() for rule in order_rules(self._rules.values())]

    def get(self, rule_id: int) -> CategorizationRule:
        with self._lock:
            return self._get_locked(rule_id).model_copy()

    def add(self, keyword: str, category_id: int, priority: Optional[int] = None) -> CategorizationRule:
        """
        Create a user rule.

        Raises:
            ValidationError: Empty keyword or unknown category
        """
        keyword = self._clean_keyword(keyword, operation='add')
        self._check_category(category_id, operation='add')

        with self._lock:
            rule = CategorizationRule(
                id=self._next_id,
                keyword=keyword,
                category_id=category_id,
                priority=DEFAULT_RULE_PRIORITY if priority is None else priority,
                created_at=datetime.now(),
            )
            self._rules[rule.id] = rule
            self._next_id += 1

        rule_mutations.labels(operation='add', status='success').inc()
        logger.info("Rule added", rule_id=rule.id, keyword=rule.keyword, category_id=category_id,
                    priority=rule.priority)
        return rule.model_copy()

    def update(self, rule_id: int, keyword: str, category_id: int,
               priority: Optional[int] = None) -> CategorizationRule:
        """
        Edit a user rule; priority is kept when omitted.

        Raises:
            NotFoundError: Unknown rule id
            ProtectedRuleError: System rule
            ValidationError: Empty keyword or unknown category
        """
        with self._lock:
            rule = self._get_mutable_locked(rule_id, operation='update')
            keyword = self._clean_keyword(keyword, operation='update')
            self._check_category(category_id, operation='update')

            rule.keyword = keyword
            rule.category_id = category_id
            if priority is not None:
                rule.priority = priority
            snapshot = rule.model_copy()

        rule_mutations.labels(operation='update', status='success').inc()
        logger.info("Rule updated", rule_id=rule_id, keyword=keyword, category_id=category_id,
                    priority=snapshot.priority)
        return snapshot

    def delete(self, rule_id: int) -> None:
        """
        Remove a user rule.

        Raises:
            NotFoundError: Unknown rule id
            ProtectedRuleError: System rule
        """
        with self._lock:
            self._get_mutable_locked(rule_id, operation='delete')
            del self._rules[rule_id]

        rule_mutations.labels(operation='delete', status='success').inc()
        logger.info("Rule deleted", rule_id=rule_id)

    def record_match(self, rule_id: int) -> None:
        """Increment a rule's match counter; rules deleted meanwhile are ignored"""
        with self._lock:
            rule = self._rules.get(rule_id)
            if rule is None:
                logger.debug("Match recorded for missing rule", rule_id=rule_id)
                return
            rule.match_count += 1
            category_id = rule.category_id

        rule_matches.labels(category_id=str(category_id)).inc()

    # Internals

    def _get_locked(self, rule_id: int) -> CategorizationRule:
        rule = self._rules.get(rule_id)
        if rule is None:
            raise NotFoundError(f"Rule {rule_id} not found", rule_id=rule_id)
        return rule

    def _get_mutable_locked(self, rule_id: int, operation: str) -> CategorizationRule:
        try:
            rule = self._get_locked(rule_id)
        except NotFoundError:
            rule_mutations.labels(operation=operation, status='rejected').inc()
            raise
        if rule.system:
            rule_mutations.labels(operation=operation, status='rejected').inc()
            logger.warning(f"Refused to {operation} system rule", rule_id=rule_id)
            raise ProtectedRuleError(f"System rule {rule_id} cannot be modified", rule_id=rule_id)
        return rule

    def _clean_keyword(self, keyword: Optional[str], operation: str = 'add') -> str:
        cleaned = (keyword or "").strip()
        if not cleaned:
            rule_mutations.labels(operation=operation, status='rejected').inc()
            raise ValidationError("Keyword must not be empty", field='keyword')
        return cleaned

    def _check_category(self, category_id: Optional[int], operation: str = 'add') -> None:
        if category_id is None or category_id not in self._categories:
            rule_mutations.labels(operation=operation, status='rejected').inc()
            raise ValidationError(f"Unknown category {category_id}", field='category_id')
