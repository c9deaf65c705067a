"""Summary and report data models"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional


class Summary(BaseModel):
    """Derived income/expense summary for a set of transactions"""

    total_income: Decimal = Field(default=Decimal("0"), description="Sum of positive amounts")
    total_expense: Decimal = Field(default=Decimal("0"), description="Sum of outflow magnitudes")
    net_balance: Decimal = Field(default=Decimal("0"), description="total_income - total_expense")
    anomaly_count: int = Field(default=0, description="Open anomalies")
    txn_count: int = Field(default=0, description="Transactions summarized")
    by_category: Dict[int, Decimal] = Field(
        default_factory=dict,
        description="Category ID -> outflow magnitude (categorized expenses only)"
    )
    uncategorized_expense: Decimal = Field(default=Decimal("0"), description="Expense with no category")
    currencies: List[str] = Field(default_factory=list, description="Currency codes seen")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ReportRow(BaseModel):
    """One line of the upload report"""

    txn_date: date
    description: str
    amount: Decimal
    currency: str
    category_id: Optional[int] = None
    category_name: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True
