"""Transaction data model"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from spendcore.constants import DEFAULT_CURRENCY


class Transaction(BaseModel):
    """Transaction entity, immutable once ingested apart from its category assignment"""

    id: str = Field(..., description="Opaque unique transaction ID")
    upload_id: str = Field(..., description="ID of the owning upload batch")
    txn_date: date = Field(..., description="Transaction date")
    description: str = Field(..., description="Free-text description from the statement")
    amount: Decimal = Field(..., description="Signed amount; negative is an outflow")
    currency: str = Field(default=DEFAULT_CURRENCY, description="ISO-like currency code")
    category_id: Optional[int] = Field(None, description="Assigned category (null = uncategorized)")
    matched_rule_id: Optional[int] = Field(None, description="Rule that produced the assignment")
    override: bool = Field(default=False, description="True once a human set the category")
    created_at: datetime = Field(default_factory=datetime.now, description="Ingestion timestamp")

    @property
    def is_outflow(self) -> bool:
        return self.amount < 0

    @property
    def magnitude(self) -> Decimal:
        return abs(self.amount)

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        validate_assignment = True
        json_schema_extra = {
            "example": {
                "id": "txn_0001",
                "uploadId": "upl_2026_01",
                "txnDate": "2026-01-14",
                "description": "GRAB RIDE BANGKOK",
                "amount": "-100.00",
                "currency": "THB",
                "categoryId": 2,
                "matchedRuleId": 3,
                "override": False
            }
        }
