"""Summary aggregation and report tools"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, Iterable, List
from spendcore.constants import UNCATEGORIZED_LABEL
from spendcore.models import Anomaly, Category, ReportRow, Summary, Transaction
from spendcore.utils.logging import get_logger

logger = get_logger(__name__)

ZERO = Decimal(0)


def summarize(transactions: Iterable[Transaction], anomalies: Iterable[Anomaly]) -> Summary:
    """
    Aggregate income, expense and per-category spend.

    All sums are exact Decimal additions, so the result is reproducible and
    total_income - total_expense == net_balance holds exactly. Expenses with
    no category count toward total_expense but are left out of by_category.

    Args:
        transactions: Transactions to summarize
        anomalies: Anomalies of the same upload; only open ones are counted

    Returns:
        Summary (all zeros for empty input)
    """
    total_income = ZERO
    total_expense = ZERO
    uncategorized = ZERO
    by_category: Dict[int, Decimal] = defaultdict(lambda: ZERO)
    currencies = set()
    txn_count = 0

    for txn in transactions:
        txn_count += 1
        currencies.add(txn.currency)

        if txn.amount > 0:
            total_income += txn.amount
        elif txn.amount < 0:
            total_expense += txn.magnitude
            if txn.category_id is None:
                uncategorized += txn.magnitude
            else:
                by_category[txn.category_id] += txn.magnitude

    anomaly_count = sum(1 for anomaly in anomalies if anomaly.is_open)

    if len(currencies) > 1:
        logger.warning("Summarizing transactions in more than one currency", currencies=sorted(currencies))

    return Summary(
        total_income=total_income,
        total_expense=total_expense,
        net_balance=total_income - total_expense,
        anomaly_count=anomaly_count,
        txn_count=txn_count,
        by_category=dict(sorted(by_category.items())),
        uncategorized_expense=uncategorized,
        currencies=sorted(currencies),
    )


def build_report_rows(transactions: Iterable[Transaction], categories: Iterable[Category]) -> List[ReportRow]:
    """
    Report lines ordered by transaction date, with category names resolved.

    Unknown or missing categories are reported as "Uncategorized".
    """
    names = {category.id: category.name for category in categories}
    rows = []

    for txn in sorted(transactions, key=lambda t: t.txn_date):
        name = names.get(txn.category_id, UNCATEGORIZED_LABEL) if txn.category_id is not None else UNCATEGORIZED_LABEL
        rows.append(ReportRow(
            txn_date=txn.txn_date,
            description=txn.description,
            amount=txn.amount,
            currency=txn.currency,
            category_id=txn.category_id,
            category_name=name,
        ))

    return rows
