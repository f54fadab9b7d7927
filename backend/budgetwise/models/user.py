"""
User model mirroring the hosted auth user table.
"""
from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from budgetwise.db.base import BaseModel


class User(BaseModel):
    """Account owner; credentials live with the auth provider, not here."""
    __tablename__ = "users"
    
    email = Column(String(100), unique=True, nullable=True, index=True)
    name = Column(String(100), nullable=True)
    
    # Relationships
    budgets = relationship("Budget", back_populates="owner", cascade="all, delete-orphan")
    expenses = relationship("Expense", back_populates="owner", cascade="all, delete-orphan")
