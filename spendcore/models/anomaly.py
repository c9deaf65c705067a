"""Anomaly data model"""

import uuid
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional, Dict, Any
from spendcore.constants import Severity, AnomalyStatus, DetectorRule

# Namespace for deterministic anomaly IDs
ANOMALY_NAMESPACE = uuid.UUID("5b0f3f0e-6a51-4c57-9d1e-2f6f0c8a9e11")


def anomaly_id_for(transaction_id: str, rule_name: DetectorRule) -> str:
    """One ID per (transaction, detector rule) pair"""
    return str(uuid.uuid5(ANOMALY_NAMESPACE, f"{transaction_id}:{DetectorRule(rule_name).value}"))


class Anomaly(BaseModel):
    """Flagged transaction awaiting (or after) human review"""

    id: str = Field(..., description="Anomaly ID derived from transaction and rule")
    transaction_id: str = Field(..., description="ID of flagged transaction")
    upload_id: Optional[str] = Field(None, description="Upload owning the transaction")
    rule_name: DetectorRule = Field(..., description="Detector rule that fired")
    severity: Severity = Field(..., description="Review priority")
    detail: str = Field(..., description="Human-readable explanation")
    evidence: Dict[str, Any] = Field(
        default_factory=dict,
        description="Numbers behind the decision (mean, stddev, duplicate ids)"
    )
    status: AnomalyStatus = Field(default=AnomalyStatus.OPEN, description="Review status")
    reviewed_at: Optional[datetime] = Field(None, description="When the anomaly left 'open'")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")

    @property
    def key(self) -> tuple:
        return (self.transaction_id, self.rule_name)

    @property
    def is_open(self) -> bool:
        return self.status == AnomalyStatus.OPEN

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": "0d6c8a52-6f2b-5b55-9d6a-1f7e5d8f2c10",
                "transactionId": "txn_0003",
                "uploadId": "upl_2026_01",
                "ruleName": "STATISTICAL_OUTLIER",
                "severity": "HIGH",
                "detail": "Outflow 5000.00 is 197.0 standard deviations above the mean 75.00 (threshold 125.00)",
                "evidence": {"mean": "75.00", "stddev": "25.00", "z_score": 197.0},
                "status": "open"
            }
        }
