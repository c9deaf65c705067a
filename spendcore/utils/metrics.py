"""Prometheus metrics definitions"""

from prometheus_client import Counter, Histogram, Gauge


# Categorization metrics
transactions_classified = Counter(
    'spendcore_transactions_classified_total',
    'Transactions evaluated by the categorizer',
    labelnames=['outcome']  # matched, unmatched
)

transactions_skipped_override = Counter(
    'spendcore_transactions_skipped_override_total',
    'Transactions left untouched because of a manual override'
)

rule_matches = Counter(
    'spendcore_rule_matches_total',
    'Rule classifications won, by target category',
    labelnames=['category_id']
)

rule_mutations = Counter(
    'spendcore_rule_mutations_total',
    'Rule store mutations',
    labelnames=['operation', 'status']  # add/update/delete, success/rejected
)

manual_overrides = Counter(
    'spendcore_manual_overrides_total',
    'Manual category overrides'
)

# Anomaly metrics
anomalies_created = Counter(
    'spendcore_anomalies_created_total',
    'Anomalies persisted',
    labelnames=['rule_name', 'severity']
)

anomalies_reviewed = Counter(
    'spendcore_anomalies_reviewed_total',
    'Anomalies reviewed by humans',
    labelnames=['decision']  # confirmed, dismissed
)

review_conflicts = Counter(
    'spendcore_review_conflicts_total',
    'Review attempts on anomalies that were already resolved'
)

anomalies_open = Gauge(
    'spendcore_anomalies_open',
    'Anomalies awaiting human review'
)

# Pipeline metrics
upload_processing_time = Histogram(
    'spendcore_upload_processing_seconds',
    'Time to categorize, detect and store one upload',
    buckets=[0.01, 0.05, 0.1, 0.5, 1, 5, 30]
)

transactions_ingested = Counter(
    'spendcore_transactions_ingested_total',
    'Transactions accepted from normalized rows'
)
