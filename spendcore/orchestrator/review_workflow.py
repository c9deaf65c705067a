"""Anomaly review state machine: open -> confirmed | dismissed"""

import threading
from datetime import datetime
from typing import Optional, Union
from spendcore.constants import AnomalyStatus, ReviewDecision, REVIEW_TRANSITIONS
from spendcore.models import Anomaly
from spendcore.utils.errors import AlreadyResolvedError, ValidationError
from spendcore.utils.logging import get_logger
from spendcore.utils.metrics import anomalies_reviewed, review_conflicts

logger = get_logger(__name__)

# Check-and-set of status must be atomic so the first reviewer wins
_review_lock = threading.Lock()


def parse_decision(decision: Union[str, ReviewDecision]) -> ReviewDecision:
    """Accept 'confirmed' / 'dismissed' (any case) or a ReviewDecision"""
    if isinstance(decision, ReviewDecision):
        return decision
    try:
        return ReviewDecision(str(decision).strip().lower())
    except ValueError:
        raise ValidationError(
            f"Invalid review decision: {decision!r}",
            allowed=[d.value for d in ReviewDecision]
        )


def apply_review(
    anomaly: Anomaly,
    decision: Union[str, ReviewDecision],
    reviewed_at: Optional[datetime] = None
) -> Anomaly:
    """
    Resolve an open anomaly.

    Both resolved states are terminal. Reviewing an anomaly that already
    left 'open' fails, and reviewed_at is never overwritten.

    Args:
        anomaly: Anomaly to resolve (mutated in place)
        decision: confirmed or dismissed
        reviewed_at: Transition time (defaults to now)

    Returns:
        The resolved anomaly

    Raises:
        ValidationError: Unknown decision
        AlreadyResolvedError: Anomaly is not open
    """
    target = AnomalyStatus(parse_decision(decision).value)

    with _review_lock:
        current = AnomalyStatus(anomaly.status)
        if target not in REVIEW_TRANSITIONS[current]:
            review_conflicts.inc()
            logger.warning(
                "Review rejected: anomaly already resolved",
                anomaly_id=anomaly.id,
                status=current.value,
                requested=target.value
            )
            raise AlreadyResolvedError(
                f"Anomaly {anomaly.id} is already {current.value}",
                anomaly_id=anomaly.id,
                status=current.value
            )

        anomaly.status = target
        anomaly.reviewed_at = reviewed_at or datetime.now()

    anomalies_reviewed.labels(decision=target.value).inc()
    logger.info("Anomaly reviewed", anomaly_id=anomaly.id, decision=target.value)
    return anomaly
