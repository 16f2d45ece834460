"""
ART Job Board - Pricing Snapshot Service

Freezes price, tier and quantity onto a project when its estimate is sent.
Once present on a sent project the snapshot is authoritative for every
invoice and display calculation; the client's current tier is not
consulted again.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Optional, Union

from jobboard.models.client import LoyaltyTier
from jobboard.models.project import EstimateStatus, Project
from jobboard.services.pricing_service import (
    BASE_CURRENCY,
    MANUAL_PRICE,
    NEARMAP_REBATE,
    convert_price,
    estimator_pay,
    get_plan_type,
    unit_price,
)
from jobboard.utils.error_handling import InvalidAmountException, PricingSnapshotMissingException


def capture_pricing_snapshot(
    plan_type: Optional[str],
    qty: Optional[Union[Decimal, int, float]],
    tier: Union[LoyaltyTier, str],
    manual_price: Optional[Union[Decimal, int, float]] = None,
    captured_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Build the frozen pricing record for a sent estimate.

    Raises:
        InvalidPlanTypeException: plan type missing or unknown
        InvalidAmountException: quantity missing or not positive
    """
    get_plan_type(plan_type)
    if qty is None or Decimal(str(qty)) <= 0:
        raise InvalidAmountException(
            qty,
            field="qty",
            message="Quantity must be set before the estimate is sent",
        )

    tier_name = tier.value if isinstance(tier, LoyaltyTier) else str(tier)
    quantity = Decimal(str(qty))
    price_each = unit_price(plan_type, tier_name, BASE_CURRENCY, manual_price)
    captured_at = captured_at or datetime.now(timezone.utc)

    return {
        "price_each": float(price_each),
        "total_price": float(price_each * quantity),
        "loyalty_tier": tier_name,
        "qty": float(quantity),
        "plan_type": plan_type,
        "currency": BASE_CURRENCY,
        "captured_at": captured_at.isoformat(),
    }


@dataclass
class ProjectPricing:
    """Resolved pricing for a project."""
    price_each: Optional[Decimal]
    total_price: Optional[Decimal]
    loyalty_tier: str
    currency: str
    source: str  # "snapshot" or "live"
    estimator_pay: Decimal
    captured_at: Optional[str] = None


def resolve_project_pricing(
    project: Project,
    client_tier: Union[LoyaltyTier, str],
    currency: str = BASE_CURRENCY,
) -> ProjectPricing:
    """
    Price a project for display or invoicing.

    Sent projects use their snapshot; a sent project without one is an
    error rather than a silent recalculation. Everything else is priced
    live from the client's current tier.
    """
    pay = estimator_pay(project.est_qty, project.estimator_id is not None)

    if project.estimate_status == EstimateStatus.SENT:
        snapshot = project.pricing_snapshot
        if not snapshot:
            raise PricingSnapshotMissingException(project.id)

        aud_each = Decimal(str(snapshot["price_each"]))
        quantity = Decimal(str(snapshot["qty"])) if snapshot.get("qty") is not None else project.qty
        price_each = _in_currency(aud_each, snapshot.get("plan_type"), currency)
        return ProjectPricing(
            price_each=price_each,
            total_price=_total(price_each, quantity),
            loyalty_tier=snapshot["loyalty_tier"],
            currency=currency,
            source="snapshot",
            estimator_pay=pay,
            captured_at=snapshot.get("captured_at"),
        )

    tier_name = client_tier.value if isinstance(client_tier, LoyaltyTier) else str(client_tier)
    price_each = None
    # Manual Price waits for the estimator-entered price
    awaiting_price = project.plan_type == MANUAL_PRICE and project.manual_price is None
    if project.plan_type and not awaiting_price:
        price_each = unit_price(project.plan_type, tier_name, currency, project.manual_price)
    return ProjectPricing(
        price_each=price_each,
        total_price=_total(price_each, project.qty),
        loyalty_tier=tier_name,
        currency=currency,
        source="live",
        estimator_pay=pay,
    )


def _in_currency(aud_each: Decimal, plan_type: Optional[str], currency: str) -> Optional[Decimal]:
    if currency.upper() == BASE_CURRENCY:
        return aud_each
    if plan_type == NEARMAP_REBATE:
        return None
    return convert_price(aud_each, BASE_CURRENCY, currency)


def _total(price_each: Optional[Decimal], qty: Optional[Union[Decimal, int, float]]) -> Optional[Decimal]:
    if price_each is None or qty is None:
        return None
    return price_each * Decimal(str(qty))
