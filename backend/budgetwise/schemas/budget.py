"""
Pydantic schemas for Budget entity.
"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from budgetwise.core.utils import as_utc


class BudgetBase(BaseModel):
    """Base budget schema."""
    name: str = Field(min_length=1, max_length=100)
    limit_amount: Decimal = Field(ge=0)  # Spending cap for this category


class BudgetCreate(BudgetBase):
    """Schema for budget creation."""
    color: Optional[str] = None  # Picked from the palette when omitted


class Budget(BudgetBase):
    """Budget category as stored by the backend."""
    id: str
    owner_id: str
    color: str
    created_at: datetime
    
    model_config = {"from_attributes": True, "frozen": True}
    
    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return as_utc(v)


class EnrichedBudget(Budget):
    """Budget with spending derived from the current expense list."""
    spent: Decimal = Decimal(0)
    remaining: Decimal = Decimal(0)  # limit_amount - spent, may go negative
    utilization_pct: Decimal = Decimal(0)  # Raw percentage, never capped
