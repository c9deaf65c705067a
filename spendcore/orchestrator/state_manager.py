"""In-memory state for transactions and anomalies, keyed by upload."""

import threading
from typing import Dict, Iterable, List, Optional, Union
from spendcore.constants import ReviewDecision
from spendcore.models import Anomaly, Transaction
from spendcore.orchestrator.review_workflow import apply_review
from spendcore.tools.anomaly_tools import filter_new_anomalies
from spendcore.utils.errors import NotFoundError, ValidationError
from spendcore.utils.logging import get_logger
from spendcore.utils.metrics import anomalies_created, anomalies_open

logger = get_logger(__name__)


class StateManager:
    """
    Process-local store standing in for the upload database.

    Transactions and anomalies are grouped by upload id and referenced by
    opaque ids. Anomalies are unique per (transaction, rule).
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._transactions: Dict[str, Dict[str, Transaction]] = {}
        self._txn_upload: Dict[str, str] = {}
        self._anomalies: Dict[str, Anomaly] = {}

    # Transactions

    def save_transactions(self, upload_id: str, transactions: Iterable[Transaction]) -> int:
        """
        Store (or replace) transactions under an upload.

        A replaced transaction keeps its manual override. Transaction ids
        are unique across uploads.

        Returns:
            Count saved

        Raises:
            ValidationError: An id already belongs to another upload
        """
        transactions = list(transactions)
        with self._lock:
            for txn in transactions:
                owner = self._txn_upload.get(txn.id)
                if owner is not None and owner != upload_id:
                    raise ValidationError(
                        f"Transaction {txn.id} already belongs to upload {owner}",
                        transaction_id=txn.id,
                        upload_id=owner
                    )

            self.restore_overrides(upload_id, transactions)
            bucket = self._transactions.setdefault(upload_id, {})
            for txn in transactions:
                bucket[txn.id] = txn
                self._txn_upload[txn.id] = upload_id

        logger.info("Saved transactions", upload_id=upload_id, count=len(transactions))
        return len(transactions)

    def restore_overrides(self, upload_id: str, transactions: Iterable[Transaction]) -> int:
        """Copy manual overrides from stored transactions onto re-ingested ones with the same id"""
        restored = 0
        with self._lock:
            bucket = self._transactions.get(upload_id, {})
            for txn in transactions:
                stored = bucket.get(txn.id)
                if stored is None or not stored.override or stored is txn:
                    continue
                txn.category_id = stored.category_id
                txn.matched_rule_id = None
                txn.override = True
                restored += 1

        if restored:
            logger.info("Restored manual overrides", upload_id=upload_id, count=restored)
        return restored

    def get_transaction(self, transaction_id: str) -> Transaction:
        with self._lock:
            upload_id = self._txn_upload.get(transaction_id)
            if upload_id is None:
                raise NotFoundError(f"Transaction {transaction_id} not found", transaction_id=transaction_id)
            return self._transactions[upload_id][transaction_id]

    def list_transactions(self, upload_id: str) -> List[Transaction]:
        """Transactions of an upload in ingestion order"""
        with self._lock:
            if upload_id not in self._transactions:
                raise NotFoundError(f"Upload {upload_id} not found", upload_id=upload_id)
            return list(self._transactions[upload_id].values())

    def list_uploads(self) -> List[str]:
        with self._lock:
            return list(self._transactions)

    def delete_upload(self, upload_id: str) -> None:
        """Drop an upload with its transactions and anomalies"""
        with self._lock:
            if upload_id not in self._transactions:
                raise NotFoundError(f"Upload {upload_id} not found", upload_id=upload_id)
            for txn_id in self._transactions.pop(upload_id):
                self._txn_upload.pop(txn_id, None)
            self._anomalies = {
                key: anomaly for key, anomaly in self._anomalies.items()
                if anomaly.upload_id != upload_id
            }
            self._refresh_open_gauge()

        logger.info("Deleted upload", upload_id=upload_id)

    # Anomalies

    def save_anomalies(self, candidates: Iterable[Anomaly]) -> List[Anomaly]:
        """
        Persist anomalies that do not exist yet.

        Returns:
            Only the newly stored anomalies
        """
        with self._lock:
            fresh = filter_new_anomalies(candidates, self._anomalies.values())
            for anomaly in fresh:
                self._anomalies[anomaly.id] = anomaly
                anomalies_created.labels(
                    rule_name=anomaly.rule_name.value,
                    severity=anomaly.severity.value
                ).inc()
            self._refresh_open_gauge()

        logger.info("Saved anomalies", created=len(fresh))
        return fresh

    def get_anomaly(self, anomaly_id: str) -> Anomaly:
        with self._lock:
            anomaly = self._anomalies.get(anomaly_id)
            if anomaly is None:
                raise NotFoundError(f"Anomaly {anomaly_id} not found", anomaly_id=anomaly_id)
            return anomaly

    def list_anomalies(self, upload_id: Optional[str] = None) -> List[Anomaly]:
        """Anomalies, newest first, optionally limited to one upload"""
        with self._lock:
            anomalies = [
                anomaly for anomaly in self._anomalies.values()
                if upload_id is None or anomaly.upload_id == upload_id
            ]
        return sorted(anomalies, key=lambda a: a.created_at, reverse=True)

    def review_anomaly(self, anomaly_id: str, decision: Union[str, ReviewDecision]) -> Anomaly:
        """Resolve a stored anomaly; see review_workflow.apply_review"""
        with self._lock:
            anomaly = self.get_anomaly(anomaly_id)
            apply_review(anomaly, decision)
            self._refresh_open_gauge()
        return anomaly

    def _refresh_open_gauge(self) -> None:
        anomalies_open.set(sum(1 for anomaly in self._anomalies.values() if anomaly.is_open))
