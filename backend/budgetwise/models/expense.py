"""
Expense model for tracking spending.
"""
from sqlalchemy import Column, String, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from budgetwise.db.base import BaseModel


class Expense(BaseModel):
    """Expense model representing a single spending event."""
    __tablename__ = "expenses"
    
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    budget_id = Column(String(36), ForeignKey("budgets.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    amount = Column(Numeric(15, 2), nullable=False)
    
    # Relationships
    owner = relationship("User", back_populates="expenses")
    budget = relationship("Budget", back_populates="expenses")
