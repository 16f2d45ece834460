"""
ART Job Board - Pricing Schemas
"""

from typing import List, Optional

from pydantic import BaseModel


class TierPriceResponse(BaseModel):
    """Prices for one plan at one tier, per market."""
    tier: str
    min_monthly_units: int
    AUD: Optional[float] = None
    USD: Optional[float] = None
    EUR: Optional[float] = None
    NOK: Optional[float] = None


class PlanTypeResponse(BaseModel):
    """Plan type with its tier prices."""
    label: str
    base_aud: float
    unit_of_measure: str
    discountable: bool
    tiers: List[TierPriceResponse]


class ConversionResponse(BaseModel):
    """Currency conversion result."""
    amount: float
    from_currency: str
    to_currency: str
    converted: float
