"""
ART Job Board - Loyalty Schemas

Pydantic schemas for loyalty tier state and administration.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from jobboard.models.client import LoyaltyTier


# ===========================================
# REQUEST SCHEMAS
# ===========================================

class EvaluateRequest(BaseModel):
    """Closed month to evaluate; defaults to the previous month."""
    month: Optional[str] = Field(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$", description="YYYY-MM")


class ManualTierRequest(BaseModel):
    """Set a tier by hand, or release an existing override."""
    tier: Optional[LoyaltyTier] = None
    reason: Optional[str] = Field(None, max_length=500)
    clear: bool = Field(False, description="Release the override instead of setting one")


class AdjustRequest(BaseModel):
    """Signed adjustment to a protection balance."""
    delta: int = Field(..., description="Positive to add, negative to remove")


class CashbackApplyRequest(BaseModel):
    """Spend cashback credit."""
    amount: float = Field(..., gt=0)
    note: Optional[str] = Field(None, max_length=255)


# ===========================================
# RESPONSE SCHEMAS
# ===========================================

class MonthlyUsageResponse(BaseModel):
    """One evaluated month."""
    month: str
    units: float
    tier: LoyaltyTier
    price_per_unit: float
    total_billed: float
    points_earned: int
    points_balance: int
    protection_awarded: bool
    protection_used: bool
    change_reason: Optional[str] = None

    class Config:
        from_attributes = True


class CashbackEntryResponse(BaseModel):
    """Cashback ledger line."""
    id: UUID
    amount: float
    from_tier: Optional[LoyaltyTier] = None
    to_tier: Optional[LoyaltyTier] = None
    note: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class LoyaltyStateResponse(BaseModel):
    """Client loyalty state with history."""
    id: UUID
    name: str
    loyalty_tier: LoyaltyTier
    previous_tier: Optional[LoyaltyTier] = None
    tier_effective_date: Optional[datetime] = None
    manual_tier_override: bool
    manual_override_reason: Optional[str] = None
    protection_points: int
    protection_months: int
    protection_tier: Optional[LoyaltyTier] = None
    cashback_balance: float
    total_units_billed: float
    monthly_history: List[MonthlyUsageResponse] = []

    class Config:
        from_attributes = True


class CashbackResponse(BaseModel):
    """Cashback balance and ledger."""
    client_id: UUID
    cashback_balance: float
    entries: List[CashbackEntryResponse] = []


class EvaluationResponse(BaseModel):
    """Result of evaluating one client for one month."""
    client_id: UUID
    month: str
    skipped: bool
    reason: Optional[str] = None
    pending_projects: List[str] = []
    units: Optional[float] = None
    previous_tier: Optional[LoyaltyTier] = None
    tier: Optional[LoyaltyTier] = None
    tier_changed: bool = False
    points_earned: int = 0
    protection_used: bool = False
    protection_awarded: bool = False
    cashback_awarded: float = 0


class EvaluationSummaryResponse(BaseModel):
    """Result of evaluating every active client."""
    month: str
    total: int
    evaluated: int
    skipped: int
    errors: int
