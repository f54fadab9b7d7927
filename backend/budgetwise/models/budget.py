"""
Budget model for spending categories.
"""
from sqlalchemy import Column, String, Numeric, ForeignKey
from sqlalchemy.orm import relationship
from budgetwise.db.base import BaseModel


class Budget(BaseModel):
    """Budget category with a spending limit."""
    __tablename__ = "budgets"
    
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    budget = Column(Numeric(15, 2), nullable=False)  # Limit amount
    spent = Column(Numeric(15, 2), nullable=False, default=0)  # Denormalized, kept by the mutation gate
    color = Column(String(20), nullable=False)
    
    # Relationships
    owner = relationship("User", back_populates="budgets")
    expenses = relationship("Expense", back_populates="budget", cascade="all, delete-orphan")
