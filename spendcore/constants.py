"""Constants and enums for the categorization and anomaly engine"""

from decimal import Decimal
from enum import Enum


class Severity(str, Enum):
    """Anomaly severity levels"""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class AnomalyStatus(str, Enum):
    """Anomaly review lifecycle"""
    OPEN = "open"
    CONFIRMED = "confirmed"
    DISMISSED = "dismissed"


class ReviewDecision(str, Enum):
    """Human review decisions"""
    CONFIRMED = "confirmed"
    DISMISSED = "dismissed"


class DetectorRule(str, Enum):
    """Names of the anomaly detector rules"""
    STATISTICAL_OUTLIER = "STATISTICAL_OUTLIER"
    DUPLICATE_SIGNAL = "DUPLICATE_SIGNAL"
    LARGE_AMOUNT = "LARGE_AMOUNT"


class OutlierBaseline(str, Enum):
    """Which distribution a transaction is scored against"""
    LEAVE_ONE_OUT = "leave_one_out"
    BATCH = "batch"


# Legal review edges: every resolved state is terminal
REVIEW_TRANSITIONS = {
    AnomalyStatus.OPEN: {AnomalyStatus.CONFIRMED, AnomalyStatus.DISMISSED},
    AnomalyStatus.CONFIRMED: set(),
    AnomalyStatus.DISMISSED: set(),
}

# Default configuration values
DEFAULT_CURRENCY = "THB"
DEFAULT_CATEGORY_COLOR = "#6366F1"
DEFAULT_RULE_PRIORITY = 0
DEFAULT_OUTLIER_SIGMA = 2.0
DEFAULT_HIGH_SEVERITY_SIGMA = 3.0
DEFAULT_DATE_WINDOW_DAYS = 3
DEFAULT_LARGE_AMOUNT_THRESHOLD = Decimal("10000.00")

UNCATEGORIZED_LABEL = "Uncategorized"
