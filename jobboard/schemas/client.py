"""
ART Job Board - Client Schemas

Pydantic schemas for client management.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from jobboard.models.client import LoyaltyTier


# ===========================================
# REQUEST SCHEMAS
# ===========================================

class ClientCreateRequest(BaseModel):
    """Schema for creating a client."""
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    timezone: Optional[str] = Field(None, max_length=64, description="IANA timezone")
    notes: Optional[str] = None


class ClientUpdateRequest(BaseModel):
    """Schema for updating a client. Loyalty fields go through /loyalty."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    timezone: Optional[str] = Field(None, max_length=64)
    notes: Optional[str] = None
    is_active: Optional[bool] = None


# ===========================================
# RESPONSE SCHEMAS
# ===========================================

class ClientResponse(BaseModel):
    """Schema for client response."""
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    timezone: Optional[str] = None
    notes: Optional[str] = None
    is_active: bool
    loyalty_tier: LoyaltyTier
    created_at: datetime

    class Config:
        from_attributes = True
