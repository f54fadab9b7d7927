"""
Declarative base shared by all SQLAlchemy models.
"""
import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from budgetwise.core.utils import utcnow

Base = declarative_base()


def new_id() -> str:
    """Generate a primary key in the same uuid4 format the hosted backend uses."""
    return str(uuid.uuid4())


class BaseModel(Base):
    """Abstract model with string id and timestamps."""
    __abstract__ = True
    
    id = Column(String(36), primary_key=True, default=new_id)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
