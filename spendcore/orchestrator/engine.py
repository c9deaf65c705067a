"""Engine facade - coordinates rules, categorization, detection and review"""

import time
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Union
from spendcore.constants import ReviewDecision
from spendcore.models import Anomaly, Category, CategorizationRule, ReportRow, Summary, Transaction
from spendcore.orchestrator.rule_store import RuleStore
from spendcore.orchestrator.state_manager import StateManager
from spendcore.loaders.csv_loader import rows_to_transactions
from spendcore.tools.anomaly_tools import detect_anomalies
from spendcore.tools.categorization_tools import classify_batch, override_category
from spendcore.tools.summary_tools import build_report_rows, summarize
from spendcore.utils.config_loader import load_config, get_detection_settings
from spendcore.utils.errors import ValidationError
from spendcore.utils.logging import get_logger
from spendcore.utils.metrics import manual_overrides, upload_processing_time

logger = get_logger(__name__)


class SpendEngine:
    """Synchronous API over the rule store, categorizer, detector and aggregator"""

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        rule_store: Optional[RuleStore] = None,
        state: Optional[StateManager] = None
    ):
        self.config = config if config is not None else load_config()
        self.settings = get_detection_settings(self.config)
        self.rules = rule_store if rule_store is not None else RuleStore.from_config(self.config)
        self.state = state if state is not None else StateManager()

    # Rule management

    def list_rules(self) -> List[CategorizationRule]:
        return self.rules.list()

    def add_rule(self, keyword: str, category_id: int, priority: Optional[int] = None) -> CategorizationRule:
        return self.rules.add(keyword, category_id, priority)

    def update_rule(self, rule_id: int, keyword: str, category_id: int,
                    priority: Optional[int] = None) -> CategorizationRule:
        return self.rules.update(rule_id, keyword, category_id, priority)

    def delete_rule(self, rule_id: int) -> None:
        self.rules.delete(rule_id)

    def list_categories(self) -> List[Category]:
        return self.rules.list_categories()

    # Categorization

    def classify_batch(
        self,
        transactions: Iterable[Transaction],
        rules: Optional[Iterable[CategorizationRule]] = None
    ) -> List[Transaction]:
        """
        Categorize transactions with the given rules (current store rules by default).

        Override-protected transactions are returned untouched. Each winning
        rule's match_count is incremented in the store.
        """
        rules = self.rules.list() if rules is None else list(rules)
        return classify_batch(transactions, rules, on_match=self.rules.record_match)

    def override_category(self, transaction_id: str, category_id: int) -> Transaction:
        """
        Pin a stored transaction to a category chosen by a human.

        Raises:
            NotFoundError: Unknown transaction
            ValidationError: Unknown category
        """
        if not self.rules.has_category(category_id):
            raise ValidationError(f"Unknown category {category_id}", field='category_id')

        txn = self.state.get_transaction(transaction_id)
        previous = txn.category_id
        override_category(txn, category_id)

        manual_overrides.inc()
        logger.info("Category overridden", transaction_id=transaction_id,
                    previous_category_id=previous, category_id=category_id)
        return txn

    def reclassify_upload(self, upload_id: str) -> List[Transaction]:
        """Re-run categorization over a stored upload, e.g. after rule edits"""
        transactions = self.state.list_transactions(upload_id)
        return self.classify_batch(transactions)

    # Anomalies

    def detect_anomalies(self, transactions: Iterable[Transaction]) -> List[Anomaly]:
        """Pure detection with the configured thresholds; nothing is stored"""
        return detect_anomalies(transactions, self.settings)

    def detect_upload_anomalies(self, upload_id: str) -> List[Anomaly]:
        """Detect over a stored upload and persist only anomalies not seen before"""
        candidates = self.detect_anomalies(self.state.list_transactions(upload_id))
        return self.state.save_anomalies(candidates)

    def list_anomalies(self, upload_id: Optional[str] = None) -> List[Anomaly]:
        return self.state.list_anomalies(upload_id)

    def review_anomaly(self, anomaly_id: str, decision: Union[str, ReviewDecision]) -> Anomaly:
        """
        Confirm or dismiss an open anomaly.

        Raises:
            NotFoundError: Unknown anomaly
            ValidationError: Decision is not confirmed/dismissed
            AlreadyResolvedError: Anomaly was already reviewed
        """
        return self.state.review_anomaly(anomaly_id, decision)

    # Reporting

    def summarize(self, transactions: Iterable[Transaction], anomalies: Iterable[Anomaly]) -> Summary:
        return summarize(transactions, anomalies)

    def summarize_upload(self, upload_id: str) -> Summary:
        return summarize(self.state.list_transactions(upload_id), self.state.list_anomalies(upload_id))

    def report_rows(self, upload_id: str) -> List[ReportRow]:
        return build_report_rows(self.state.list_transactions(upload_id), self.rules.list_categories())

    # Pipeline

    def process_upload(self, upload_id: str, rows: Any) -> Dict[str, Any]:
        """
        Run the upload pipeline on normalized rows (dicts or a DataFrame).

        Raises:
            IngestionError: Rows are missing columns or unparseable
        """
        return self.process_transactions(upload_id, rows_to_transactions(upload_id, rows))

    def process_transactions(self, upload_id: str, transactions: List[Transaction]) -> Dict[str, Any]:
        """
        Categorize, store and scan one upload's transactions.

        Args:
            upload_id: Upload the transactions belong to
            transactions: Freshly ingested transactions

        Returns:
            Run summary dictionary
        """
        start_time = time.time()
        run_log = logger.bind(upload_id=upload_id)
        run_log.info("Processing upload", transaction_count=len(transactions))

        # Saving first restores manual overrides from an earlier run of this upload
        self.state.save_transactions(upload_id, transactions)
        self.classify_batch(transactions)
        created = self.detect_upload_anomalies(upload_id)

        summary = self.summarize_upload(upload_id)
        duration = time.time() - start_time
        upload_processing_time.observe(duration)

        result = {
            'upload_id': upload_id,
            'status': 'completed',
            'transaction_count': len(transactions),
            'categorized_count': sum(1 for t in transactions if t.category_id is not None),
            'anomalies_created': len(created),
            'summary': summary,
            'completed_at': datetime.now().isoformat(),
            'duration_seconds': duration
        }

        run_log.info(
            "Upload processed",
            anomalies_created=result['anomalies_created'],
            duration_seconds=round(duration, 3)
        )
        return result
