"""
User Schemas - Pydantic models for user data serialization.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from .models import UserRole


class UserResponse(BaseModel):
    """Public view of a user account"""
    id: str
    name: str
    email: str
    role: UserRole
    created_at: Optional[datetime] = None

    class Config:
        """Configuration for Pydantic model to enable ORM mode"""
        from_attributes = True


class UserSummary(BaseModel):
    """Minimal user reference embedded in record and version responses"""
    id: str
    name: str

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    """Bearer token returned by the login endpoint"""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
