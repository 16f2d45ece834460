"""
ART Job Board - Loyalty Router

API endpoints for loyalty tier state, monthly evaluation and admin
adjustments.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from jobboard.database import get_async_session
from jobboard.dependencies import require_permission
from jobboard.models.user import User
from jobboard.schemas.loyalty import (
    AdjustRequest,
    CashbackApplyRequest,
    CashbackResponse,
    EvaluateRequest,
    EvaluationResponse,
    EvaluationSummaryResponse,
    LoyaltyStateResponse,
    ManualTierRequest,
)
from jobboard.services.loyalty_tier_service import LoyaltyTierService
from jobboard.utils.error_handling import ErrorCode, ValidationException
from jobboard.utils.permissions import Permission


router = APIRouter()


@router.get(
    "/clients/{client_id}",
    response_model=LoyaltyStateResponse,
    summary="Get loyalty state",
    description="Current tier, protection balances, cashback and monthly history.",
)
async def get_loyalty_state(
    client_id: UUID,
    current_user: User = Depends(require_permission(Permission.VIEW_CLIENTS)),
    db: AsyncSession = Depends(get_async_session),
):
    service = LoyaltyTierService(db)
    return await service.get_client(client_id)


@router.post(
    "/clients/{client_id}/evaluate",
    response_model=EvaluationResponse,
    summary="Evaluate client tier",
    description="Evaluate one client for a closed month (default: previous month).",
)
async def evaluate_client(
    client_id: UUID,
    request: Optional[EvaluateRequest] = None,
    current_user: User = Depends(require_permission(Permission.MANAGE_LOYALTY)),
    db: AsyncSession = Depends(get_async_session),
):
    service = LoyaltyTierService(db)
    return await service.evaluate_monthly_tier(client_id, request.month if request else None)


@router.post(
    "/evaluate-all",
    response_model=EvaluationSummaryResponse,
    summary="Evaluate all clients",
    description="Run the monthly evaluation for every active client.",
)
async def evaluate_all(
    request: Optional[EvaluateRequest] = None,
    current_user: User = Depends(require_permission(Permission.MANAGE_LOYALTY)),
    db: AsyncSession = Depends(get_async_session),
):
    service = LoyaltyTierService(db)
    return await service.run_monthly_evaluation_for_all_clients(request.month if request else None)


@router.post(
    "/clients/{client_id}/manual-tier",
    response_model=LoyaltyStateResponse,
    summary="Set tier manually",
    description="Override the tier, or release an override with clear=true.",
)
async def manual_tier(
    client_id: UUID,
    request: ManualTierRequest,
    current_user: User = Depends(require_permission(Permission.MANAGE_LOYALTY)),
    db: AsyncSession = Depends(get_async_session),
):
    service = LoyaltyTierService(db)
    if request.clear:
        return await service.clear_manual_override(client_id)
    if request.tier is None:
        raise ValidationException("tier is required unless clear is set", field="tier", code=ErrorCode.INVALID_TIER)
    return await service.manual_tier_update(client_id, request.tier, request.reason or f"Set by {current_user.email}")


@router.post(
    "/clients/{client_id}/protection-points",
    response_model=LoyaltyStateResponse,
    summary="Adjust protection points",
)
async def adjust_points(
    client_id: UUID,
    request: AdjustRequest,
    current_user: User = Depends(require_permission(Permission.MANAGE_LOYALTY)),
    db: AsyncSession = Depends(get_async_session),
):
    service = LoyaltyTierService(db)
    return await service.adjust_protection_points(client_id, request.delta)


@router.post(
    "/clients/{client_id}/protection-months",
    response_model=LoyaltyStateResponse,
    summary="Adjust protection months",
)
async def adjust_months(
    client_id: UUID,
    request: AdjustRequest,
    current_user: User = Depends(require_permission(Permission.MANAGE_LOYALTY)),
    db: AsyncSession = Depends(get_async_session),
):
    service = LoyaltyTierService(db)
    return await service.adjust_protection_months(client_id, request.delta)


@router.get(
    "/clients/{client_id}/cashback",
    response_model=CashbackResponse,
    summary="Get cashback ledger",
)
async def get_cashback(
    client_id: UUID,
    current_user: User = Depends(require_permission(Permission.VIEW_CLIENTS)),
    db: AsyncSession = Depends(get_async_session),
):
    service = LoyaltyTierService(db)
    client = await service.get_client(client_id)
    return CashbackResponse(
        client_id=client.id,
        cashback_balance=client.cashback_balance,
        entries=client.cashback_history,
    )


@router.post(
    "/clients/{client_id}/cashback/apply",
    response_model=CashbackResponse,
    summary="Apply cashback",
    description="Spend cashback credit against an invoice.",
)
async def apply_cashback(
    client_id: UUID,
    request: CashbackApplyRequest,
    current_user: User = Depends(require_permission(Permission.MANAGE_LOYALTY)),
    db: AsyncSession = Depends(get_async_session),
):
    service = LoyaltyTierService(db)
    client = await service.apply_cashback(client_id, request.amount, request.note)
    return CashbackResponse(
        client_id=client.id,
        cashback_balance=client.cashback_balance,
        entries=client.cashback_history,
    )
