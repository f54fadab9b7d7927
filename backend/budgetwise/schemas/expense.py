"""
Pydantic schemas for Expense entity.
"""
from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from decimal import Decimal
from budgetwise.core.utils import as_utc


class ExpenseBase(BaseModel):
    """Base expense schema."""
    budget_id: str
    name: str = Field(min_length=1, max_length=200)
    amount: Decimal = Field(ge=0)


class ExpenseCreate(ExpenseBase):
    """Schema for expense creation."""
    pass


class Expense(ExpenseBase):
    """Single spend event as stored by the backend."""
    id: str
    owner_id: str
    created_at: datetime
    
    model_config = {"from_attributes": True, "frozen": True}
    
    @field_validator("created_at")
    @classmethod
    def normalize_created_at(cls, v: datetime) -> datetime:
        return as_utc(v)


class ExpenseTableRow(BaseModel):
    """Row of the expense table with a snapshot of its budget's name and color."""
    id: str
    name: str
    amount: Decimal
    date: datetime
    budget_id: str
    budget_name: str
    color: str
    
    model_config = {"frozen": True}
