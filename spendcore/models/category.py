"""Category and categorization rule data models"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from datetime import datetime
from spendcore.constants import DEFAULT_CATEGORY_COLOR, DEFAULT_RULE_PRIORITY


class Category(BaseModel):
    """Spending category (reference data)"""

    id: int = Field(..., description="Category ID")
    name: str = Field(..., description="Display name")
    color: str = Field(default=DEFAULT_CATEGORY_COLOR, description="Presentation hint (hex)")
    system: bool = Field(default=False, description="Built-in, non-deletable category")

    class Config:
        alias_generator = to_camel
        populate_by_name = True


class CategorizationRule(BaseModel):
    """Keyword rule mapping description substrings to a category"""

    id: int = Field(..., description="Rule ID, also the tie-breaker within a priority")
    keyword: str = Field(..., description="Case-insensitive substring pattern")
    category_id: int = Field(..., description="Category assigned on match")
    priority: int = Field(default=DEFAULT_RULE_PRIORITY, description="Lower value is evaluated first")
    match_count: int = Field(default=0, ge=0, description="Times this rule won a classification")
    system: bool = Field(default=False, description="Protected rule, cannot be edited or deleted")
    created_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")

    @property
    def sort_key(self) -> tuple:
        return (self.priority, self.id)

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "id": 3,
                "keyword": "grab",
                "categoryId": 2,
                "priority": 5,
                "matchCount": 41,
                "system": True
            }
        }
