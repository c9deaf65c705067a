"""Data models for the categorization and anomaly engine"""

from .transaction import Transaction
from .category import Category, CategorizationRule
from .anomaly import Anomaly, anomaly_id_for
from .summary import Summary, ReportRow
from .settings import DetectionSettings

__all__ = [
    "Transaction",
    "Category",
    "CategorizationRule",
    "Anomaly",
    "anomaly_id_for",
    "Summary",
    "ReportRow",
    "DetectionSettings",
]
