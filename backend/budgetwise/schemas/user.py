"""
Pydantic schemas for User entity.
"""
from pydantic import BaseModel
from typing import Optional


class UserIdentity(BaseModel):
    """Authenticated user as reported by the backend."""
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    
    model_config = {"from_attributes": True, "frozen": True}
