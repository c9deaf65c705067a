"""Anomaly detection settings model"""

from pydantic import BaseModel, Field, model_validator
from decimal import Decimal
from typing import Optional
from spendcore.constants import (
    OutlierBaseline,
    DEFAULT_OUTLIER_SIGMA,
    DEFAULT_HIGH_SEVERITY_SIGMA,
    DEFAULT_DATE_WINDOW_DAYS,
    DEFAULT_LARGE_AMOUNT_THRESHOLD,
)


class DetectionSettings(BaseModel):
    """Canonical threshold policy for the anomaly detectors"""

    sigma: float = Field(default=DEFAULT_OUTLIER_SIGMA, gt=0, description="Outlier multiplier k")
    high_severity_sigma: float = Field(
        default=DEFAULT_HIGH_SEVERITY_SIGMA, gt=0, description="Multiplier above which severity is HIGH"
    )
    baseline: OutlierBaseline = Field(
        default=OutlierBaseline.LEAVE_ONE_OUT, description="Distribution each outflow is scored against"
    )
    duplicate_window_days: int = Field(
        default=DEFAULT_DATE_WINDOW_DAYS, ge=0, description="Max day gap for duplicate signals"
    )
    large_amount_threshold: Optional[Decimal] = Field(
        default=DEFAULT_LARGE_AMOUNT_THRESHOLD, description="Outflow size flagged as large (None disables)"
    )

    @model_validator(mode="after")
    def check_thresholds(self):
        if self.large_amount_threshold is not None and self.large_amount_threshold <= 0:
            raise ValueError("large_amount_threshold must be positive")
        return self

    class Config:
        frozen = True
