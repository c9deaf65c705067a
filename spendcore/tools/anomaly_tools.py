"""Anomaly detection tools using statistical and duplicate heuristics"""

import re
from decimal import Decimal, localcontext
from typing import Dict, Any, Iterable, List, Optional, Tuple
import pandas as pd
from spendcore.constants import DetectorRule, OutlierBaseline, Severity
from spendcore.models import Anomaly, DetectionSettings, Transaction, anomaly_id_for
from spendcore.utils.logging import get_logger

logger = get_logger(__name__)

# Output ordering per transaction
RULE_ORDER = {
    DetectorRule.STATISTICAL_OUTLIER: 0,
    DetectorRule.LARGE_AMOUNT: 1,
    DetectorRule.DUPLICATE_SIGNAL: 2,
}

_WHITESPACE = re.compile(r"\s+")

# Working precision for the distribution moments
_STATS_PRECISION = 50


def _new_anomaly(txn: Transaction, rule: DetectorRule, severity: Severity,
                 detail: str, evidence: Dict[str, Any]) -> Anomaly:
    return Anomaly(
        id=anomaly_id_for(txn.id, rule),
        transaction_id=txn.id,
        upload_id=txn.upload_id,
        rule_name=rule,
        severity=severity,
        detail=detail,
        evidence=evidence,
    )


def _moments(total: Decimal, total_sq: Decimal, count: int) -> Tuple[Decimal, Decimal]:
    """Mean and population standard deviation from running sums"""
    with localcontext() as ctx:
        ctx.prec = _STATS_PRECISION
        mean = total / count
        variance = total_sq / count - mean * mean
        # Rounding can leave a tiny negative residue for constant data
        if variance <= 0:
            return +mean, Decimal(0)
        return +mean, variance.sqrt()


def outflows_of(transactions: Iterable[Transaction]) -> List[Transaction]:
    """Outflow transactions (amount < 0) in input order"""
    return [txn for txn in transactions if txn.is_outflow]


def detect_statistical_outliers(
    outflows: List[Transaction],
    settings: Optional[DetectionSettings] = None
) -> List[Anomaly]:
    """
    Flag outflows whose magnitude exceeds mean + k * stddev.

    Severity is HIGH above mean + high_severity_sigma * stddev, MEDIUM
    otherwise. The batch baseline scores every outflow against the whole
    set. With the default leave_one_out baseline each outflow is scored
    against the other outflows, so a single large payment does not inflate
    its own baseline:

    - when the other outflows all share one amount, any larger outflow is
      an unbounded deviation and is flagged HIGH;
    - a baseline needs at least two other outflows, so batches of two are
      never scored;
    - on evenly spread batches (10, 20, 30, 40, 50) the top value can be
      flagged although it sits within mean + k * stddev of the whole set.

    Args:
        outflows: Outflow transactions
        settings: Threshold policy (defaults when omitted)

    Returns:
        List of open STATISTICAL_OUTLIER anomalies; empty when the batch
        has no spread
    """
    settings = settings or DetectionSettings()
    leave_one_out = settings.baseline == OutlierBaseline.LEAVE_ONE_OUT

    if len(outflows) < (3 if leave_one_out else 2):
        return []

    magnitudes = [txn.magnitude for txn in outflows]
    total = sum(magnitudes, Decimal(0))
    total_sq = sum((m * m for m in magnitudes), Decimal(0))
    count = len(magnitudes)

    _, batch_stddev = _moments(total, total_sq, count)
    if batch_stddev == 0:
        logger.debug("Zero spread in outflows, skipping outlier scoring", count=count)
        return []

    k = Decimal(str(settings.sigma))
    high_k = Decimal(str(settings.high_severity_sigma))

    anomalies = []
    for txn, magnitude in zip(outflows, magnitudes):
        if leave_one_out:
            mean, stddev = _moments(total - magnitude, total_sq - magnitude * magnitude, count - 1)
        else:
            mean, stddev = _moments(total, total_sq, count)

        if stddev == 0:
            # Only reachable with leave_one_out: the others are all equal
            if magnitude > mean:
                detail = f"Outflow {magnitude} exceeds {count - 1} other outflows that are all {mean:.2f}"
                evidence = {
                    'magnitude': str(magnitude),
                    'mean': f"{mean:.2f}",
                    'stddev': "0.00",
                    'threshold': f"{mean:.2f}",
                    'z_score': None,
                    'baseline': settings.baseline.value,
                }
                anomalies.append(
                    _new_anomaly(txn, DetectorRule.STATISTICAL_OUTLIER, Severity.HIGH, detail, evidence)
                )
            continue

        threshold = mean + k * stddev
        if magnitude <= threshold:
            continue

        z_score = (magnitude - mean) / stddev
        severity = Severity.HIGH if magnitude > mean + high_k * stddev else Severity.MEDIUM

        detail = (
            f"Outflow {magnitude} is {z_score:.1f} standard deviations above "
            f"the mean {mean:.2f} (threshold {threshold:.2f})"
        )
        evidence = {
            'magnitude': str(magnitude),
            'mean': f"{mean:.2f}",
            'stddev': f"{stddev:.2f}",
            'threshold': f"{threshold:.2f}",
            'z_score': round(float(z_score), 2),
            'baseline': settings.baseline.value,
        }
        anomalies.append(_new_anomaly(txn, DetectorRule.STATISTICAL_OUTLIER, severity, detail, evidence))

    logger.info(f"Found {len(anomalies)} statistical outliers", outflow_count=count)
    return anomalies


def _description_key(description: str) -> str:
    return _WHITESPACE.sub(" ", (description or "").strip().lower())


def detect_duplicate_signals(
    outflows: List[Transaction],
    settings: Optional[DetectionSettings] = None
) -> List[Anomaly]:
    """
    Flag outflows that look like duplicates of one another.

    Two outflows are duplicate-looking when they share the normalized
    description and the exact absolute amount, and their dates are at most
    duplicate_window_days apart. Each such transaction gets one LOW
    DUPLICATE_SIGNAL anomaly listing its partners.

    Args:
        outflows: Outflow transactions
        settings: Threshold policy (defaults when omitted)

    Returns:
        List of open DUPLICATE_SIGNAL anomalies
    """
    settings = settings or DetectionSettings()

    if len(outflows) < 2:
        return []

    df = pd.DataFrame({
        'pos': range(len(outflows)),
        'txn_id': [txn.id for txn in outflows],
        'desc_key': [_description_key(txn.description) for txn in outflows],
        'amount_key': [format(txn.magnitude.normalize(), 'f') for txn in outflows],
        'txn_date': pd.to_datetime([txn.txn_date for txn in outflows]),
    })
    df = df[df['desc_key'] != ""]

    window = settings.duplicate_window_days
    partners_by_pos: Dict[int, List[str]] = {}

    for _, group in df.groupby(['desc_key', 'amount_key'], sort=True):
        if len(group) < 2:
            continue

        for row in group.itertuples(index=False):
            gap_days = (group['txn_date'] - row.txn_date).abs().dt.days
            partners = group[(gap_days <= window) & (group['pos'] != row.pos)]
            if not partners.empty:
                partners_by_pos[row.pos] = partners['txn_id'].tolist()

    anomalies = []
    for pos in sorted(partners_by_pos):
        txn = outflows[pos]
        partners = partners_by_pos[pos]
        detail = (
            f"Same description and amount {txn.magnitude} as {len(partners)} other "
            f"outflow(s) within {window} day(s)"
        )
        evidence = {'duplicate_of': partners, 'window_days': window}
        anomalies.append(_new_anomaly(txn, DetectorRule.DUPLICATE_SIGNAL, Severity.LOW, detail, evidence))

    logger.info(f"Found {len(anomalies)} duplicate signals", outflow_count=len(outflows))
    return anomalies


def detect_large_amounts(
    outflows: List[Transaction],
    settings: Optional[DetectionSettings] = None
) -> List[Anomaly]:
    """Flag outflows at or above the configured large amount threshold (MEDIUM)"""
    settings = settings or DetectionSettings()
    threshold = settings.large_amount_threshold

    if threshold is None:
        return []

    anomalies = []
    for txn in outflows:
        if txn.magnitude >= threshold:
            detail = f"Outflow {txn.magnitude} meets the large amount threshold of {threshold}"
            evidence = {'magnitude': str(txn.magnitude), 'threshold': str(threshold)}
            anomalies.append(_new_anomaly(txn, DetectorRule.LARGE_AMOUNT, Severity.MEDIUM, detail, evidence))

    return anomalies


def detect_anomalies(
    transactions: Iterable[Transaction],
    settings: Optional[DetectionSettings] = None
) -> List[Anomaly]:
    """
    Run every detector rule over one consistent snapshot of the batch.

    Detection is pure: nothing is persisted and calling it twice on the same
    transactions yields the same (transaction, rule, severity) triples.
    Callers deduplicate against stored anomalies with filter_new_anomalies.

    Args:
        transactions: Transactions of one upload (inflows are ignored)
        settings: Threshold policy (defaults when omitted)

    Returns:
        New open anomalies ordered by transaction position, then rule
    """
    settings = settings or DetectionSettings()
    snapshot = list(transactions)
    outflows = outflows_of(snapshot)

    logger.info(f"Detecting anomalies in {len(outflows)} outflows", transaction_count=len(snapshot))

    candidates = (
        detect_statistical_outliers(outflows, settings)
        + detect_large_amounts(outflows, settings)
        + detect_duplicate_signals(outflows, settings)
    )

    position = {txn.id: i for i, txn in enumerate(snapshot)}
    candidates.sort(key=lambda a: (position.get(a.transaction_id, len(snapshot)), RULE_ORDER[a.rule_name]))

    # One anomaly per (transaction, rule) even if ids repeat in the input
    return filter_new_anomalies(candidates, [])


def filter_new_anomalies(candidates: Iterable[Anomaly], existing: Iterable[Anomaly]) -> List[Anomaly]:
    """Drop candidates whose (transaction, rule) pair already has an anomaly"""
    seen = {anomaly.key for anomaly in existing}
    fresh = []
    for anomaly in candidates:
        if anomaly.key in seen:
            continue
        seen.add(anomaly.key)
        fresh.append(anomaly)
    return fresh
