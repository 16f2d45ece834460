"""
ART Job Board - Pricing Router

Plan-type price table and market conversion.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from jobboard.dependencies import require_permission
from jobboard.models.client import LoyaltyTier
from jobboard.models.user import User
from jobboard.schemas.pricing import ConversionResponse, PlanTypeResponse
from jobboard.services.pricing_service import BASE_CURRENCY, convert_price, plan_price_table
from jobboard.utils.permissions import Permission


router = APIRouter()


@router.get(
    "/plan-types",
    response_model=List[PlanTypeResponse],
    summary="List plan types",
    description="Every plan type with its per-market price at each tier, or at one tier.",
)
async def list_plan_types(
    tier: Optional[LoyaltyTier] = Query(None),
    current_user: User = Depends(require_permission(Permission.VIEW_PRICING)),
):
    return plan_price_table(tier)


@router.get(
    "/convert",
    response_model=ConversionResponse,
    summary="Convert a price between markets",
)
async def convert(
    amount: float = Query(...),
    from_currency: str = Query(BASE_CURRENCY, alias="from"),
    to_currency: str = Query("USD", alias="to"),
    current_user: User = Depends(require_permission(Permission.VIEW_PRICING)),
):
    converted = convert_price(amount, from_currency, to_currency)
    return ConversionResponse(
        amount=amount,
        from_currency=from_currency.upper(),
        to_currency=to_currency.upper(),
        converted=converted,
    )
