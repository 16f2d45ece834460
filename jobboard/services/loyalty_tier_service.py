"""
ART Job Board - Loyalty Tier Service

Monthly loyalty tier evaluation with point-based downgrade protection.

Tiers (units in the previous closed month):
- Casual: below the Pro minimum, full price
- Pro: >= 6 units, 20% off
- Elite: >= 11 units, 30% off

Protection:
- Pro and Elite clients earn one point per unit above their current
  tier minimum.
- Points convert into protection months (5 points per Pro month,
  10 points per Elite month), capped at 3 banked months.
- A month below the tier minimum consumes one matching protection month
  instead of downgrading.
- On a Pro -> Elite promotion every banked Pro month becomes 5 Elite
  points.

Cashback:
- A one-off credit for each upward tier move, once per (from, to) pair,
  for clients who had already been billed for the minimum units.
"""

import calendar
import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Dict, FrozenSet, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from jobboard.config import settings
from jobboard.models.client import CashbackEntry, Client, ClientMonthlyUsage, LoyaltyTier
from jobboard.models.project import EstimateStatus, Project
from jobboard.utils.error_handling import (
    ClientNotFoundException,
    InsufficientCashbackException,
    InvalidAmountException,
    ValidationException,
    ErrorCode,
)

logger = logging.getLogger(__name__)


# Standard plan reference price used for price-per-unit figures
REFERENCE_UNIT_PRICE_AUD = Decimal("100")

TIER_RANK = {
    LoyaltyTier.CASUAL: 0,
    LoyaltyTier.PRO: 1,
    LoyaltyTier.ELITE: 2,
}


# ===========================================
# TIER DEFINITIONS
# ===========================================

@dataclass(frozen=True)
class TierDefinition:
    """Loyalty tier thresholds and benefits."""
    name: LoyaltyTier
    min_monthly_units: int
    discount_percent: int
    protection_points_required: Optional[int] = None

    @property
    def multiplier(self) -> Decimal:
        return (Decimal(100) - Decimal(self.discount_percent)) / Decimal(100)

    @property
    def price_per_unit(self) -> Decimal:
        return REFERENCE_UNIT_PRICE_AUD * self.multiplier


def tier_definitions() -> List[TierDefinition]:
    """Tier definitions, highest first."""
    return [
        TierDefinition(
            LoyaltyTier.ELITE,
            settings.loyalty_elite_min_units,
            30,
            settings.loyalty_elite_points_per_month,
        ),
        TierDefinition(
            LoyaltyTier.PRO,
            settings.loyalty_pro_min_units,
            20,
            settings.loyalty_pro_points_per_month,
        ),
        TierDefinition(LoyaltyTier.CASUAL, 0, 0),
    ]


def _as_tier(tier: Union[LoyaltyTier, str]) -> LoyaltyTier:
    if isinstance(tier, LoyaltyTier):
        return tier
    try:
        return LoyaltyTier(tier)
    except ValueError:
        raise ValidationException(
            message=f"Unknown loyalty tier: {tier}",
            field="tier",
            code=ErrorCode.INVALID_TIER,
            details={"allowed": [t.value for t in LoyaltyTier]},
        )


def get_tier_definition(tier: Union[LoyaltyTier, str]) -> TierDefinition:
    """Get the definition for a tier name."""
    name = _as_tier(tier)
    for definition in tier_definitions():
        if definition.name == name:
            return definition
    raise ValidationException(message=f"Unknown loyalty tier: {tier}", field="tier", code=ErrorCode.INVALID_TIER)


def calculate_tier(units: Union[Decimal, int, float]) -> TierDefinition:
    """Tier earned by a month's unit count."""
    value = Decimal(str(units))
    for definition in tier_definitions():
        if value >= definition.min_monthly_units:
            return definition
    return tier_definitions()[-1]


def price_per_unit(tier: Union[LoyaltyTier, str]) -> Decimal:
    """Standard plan price per unit at a tier."""
    return get_tier_definition(tier).price_per_unit


# ===========================================
# PROTECTION
# ===========================================

def calculate_protection_points(units: Union[Decimal, int, float], current_tier: Union[LoyaltyTier, str]) -> int:
    """Whole units above the current tier minimum. Casual earns nothing."""
    definition = get_tier_definition(current_tier)
    if definition.name == LoyaltyTier.CASUAL:
        return 0
    surplus = Decimal(str(units)) - definition.min_monthly_units
    return max(0, int(surplus))


def award_protection(
    points_balance: int,
    protection_months: int,
    tier: Union[LoyaltyTier, str],
) -> Tuple[int, int, bool]:
    """
    Convert banked points into protection months at the tier rate.

    Returns (points_left, months, awarded).
    """
    definition = get_tier_definition(tier)
    required = definition.protection_points_required
    if not required:
        return points_balance, protection_months, False

    awarded = False
    while points_balance >= required and protection_months < settings.loyalty_max_protection_months:
        points_balance -= required
        protection_months += 1
        awarded = True
    return points_balance, protection_months, awarded


def apply_protection(
    current_tier: Union[LoyaltyTier, str],
    units: Union[Decimal, int, float],
    protection_tier: Optional[LoyaltyTier],
    protection_months: int,
) -> Tuple[bool, int]:
    """
    Consume a protection month when units fall below the tier minimum.

    Returns (protection_used, months_left). Without matching protection
    the banked months are forfeited.
    """
    definition = get_tier_definition(current_tier)
    if Decimal(str(units)) >= definition.min_monthly_units:
        return False, protection_months

    if protection_tier == definition.name and protection_months > 0:
        return True, protection_months - 1
    return False, 0


def convert_protection_on_promotion(
    protection_tier: Optional[LoyaltyTier],
    protection_months: int,
    points_balance: int,
) -> Tuple[Optional[LoyaltyTier], int, int]:
    """
    Pro months become Elite points on a Pro -> Elite promotion.

    Returns (protection_tier, months, points).
    """
    if protection_tier != LoyaltyTier.PRO:
        return protection_tier, protection_months, points_balance

    converted = protection_months * settings.loyalty_pro_to_elite_points
    return LoyaltyTier.ELITE, 0, points_balance + converted


# ===========================================
# EVALUATION
# ===========================================

@dataclass
class LoyaltyState:
    """Snapshot of a client's loyalty fields."""
    tier: LoyaltyTier
    protection_points: int = 0
    protection_months: int = 0
    protection_tier: Optional[LoyaltyTier] = None
    total_units_billed: Decimal = Decimal("0")
    cashback_pairs: FrozenSet[Tuple[LoyaltyTier, LoyaltyTier]] = field(default_factory=frozenset)

    @classmethod
    def from_client(cls, client: Client) -> "LoyaltyState":
        pairs = frozenset(
            (entry.from_tier, entry.to_tier)
            for entry in client.cashback_history
            if entry.from_tier is not None and entry.to_tier is not None
        )
        return cls(
            tier=client.loyalty_tier,
            protection_points=client.protection_points or 0,
            protection_months=client.protection_months or 0,
            protection_tier=client.protection_tier,
            total_units_billed=Decimal(str(client.total_units_billed or 0)),
            cashback_pairs=pairs,
        )


@dataclass
class TierEvaluation:
    """Outcome of one monthly evaluation."""
    units: Decimal
    previous_tier: LoyaltyTier
    calculated_tier: LoyaltyTier
    tier: LoyaltyTier
    discount_percent: int
    price_per_unit: Decimal
    points_earned: int
    points_balance: int
    protection_months: int
    protection_tier: Optional[LoyaltyTier]
    protection_used: bool
    protection_awarded: bool
    cashback_awarded: Decimal

    @property
    def tier_changed(self) -> bool:
        return self.tier != self.previous_tier

    @property
    def total_billed(self) -> Decimal:
        return self.units * self.price_per_unit


def evaluate_client_tier(
    state: LoyaltyState,
    units: Union[Decimal, int, float],
    hold_tier: bool = False,
) -> TierEvaluation:
    """
    Evaluate a client's tier from a closed month's units.

    With hold_tier the current tier is kept as-is (persistent manual
    override); points are still earned and banked.
    """
    units = Decimal(str(units))
    current = state.tier
    calculated = calculate_tier(units).name
    points_earned = calculate_protection_points(units, current)

    months = state.protection_months
    protection_tier = state.protection_tier
    points = state.protection_points
    protection_used = False

    if hold_tier:
        final = current
    else:
        final = calculated
        if units < get_tier_definition(current).min_monthly_units:
            protection_used, months = apply_protection(current, units, protection_tier, months)
            if protection_used:
                final = current
            else:
                protection_tier = None

        if current == LoyaltyTier.PRO and final == LoyaltyTier.ELITE:
            protection_tier, months, points = convert_protection_on_promotion(protection_tier, months, points)

    points += points_earned
    points, months, protection_awarded = award_protection(points, months, final)
    if protection_awarded:
        protection_tier = final

    cashback = Decimal("0")
    if (
        not hold_tier
        and TIER_RANK[final] > TIER_RANK[current]
        and state.total_units_billed >= settings.loyalty_cashback_min_units
        and (current, final) not in state.cashback_pairs
    ):
        cashback = Decimal(str(settings.loyalty_cashback_amount))

    definition = get_tier_definition(final)
    return TierEvaluation(
        units=units,
        previous_tier=current,
        calculated_tier=calculated,
        tier=final,
        discount_percent=definition.discount_percent,
        price_per_unit=definition.price_per_unit,
        points_earned=points_earned,
        points_balance=points,
        protection_months=months,
        protection_tier=protection_tier if months > 0 else None,
        protection_used=protection_used,
        protection_awarded=protection_awarded,
        cashback_awarded=cashback,
    )


# ===========================================
# MONTH HELPERS
# ===========================================

def month_key(value: date) -> str:
    """YYYY-MM key for a date."""
    return f"{value.year:04d}-{value.month:02d}"


def previous_month(today: Optional[date] = None) -> str:
    """Most recently closed calendar month."""
    if today is None:
        today = datetime.now(ZoneInfo(settings.default_client_timezone)).date()
    year, month = (today.year, today.month - 1) if today.month > 1 else (today.year - 1, 12)
    return f"{year:04d}-{month:02d}"


def month_bounds(month: str) -> Tuple[date, date]:
    """First and last day of a YYYY-MM month."""
    try:
        year, month_number = (int(part) for part in month.split("-"))
        last_day = calendar.monthrange(year, month_number)[1]
    except (ValueError, calendar.IllegalMonthError):
        raise ValidationException(message=f"Invalid month: {month}. Expected YYYY-MM.", field="month")
    return date(year, month_number, 1), date(year, month_number, last_day)


# ===========================================
# PERSISTENCE
# ===========================================

class LoyaltyTierService:
    """Service for loyalty tier evaluation and administration."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_client(self, client_id: uuid.UUID, for_update: bool = False) -> Client:
        """Get client with loyalty history loaded."""
        query = (
            select(Client)
            .options(
                selectinload(Client.monthly_history),
                selectinload(Client.cashback_history),
            )
            .where(Client.id == client_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()

        result = await self.db.execute(query)
        client = result.scalar_one_or_none()
        if not client:
            raise ClientNotFoundException(client_id)
        return client

    async def get_month_units(self, client_id: uuid.UUID, month: str) -> Tuple[Decimal, List[Project]]:
        """
        Units billed in a month, and the projects still missing a quantity.

        Cancelled projects are ignored.
        """
        start, end = month_bounds(month)
        result = await self.db.execute(
            select(Project)
            .where(Project.client_id == client_id)
            .where(Project.posting_date >= start)
            .where(Project.posting_date <= end)
            .where(Project.estimate_status != EstimateStatus.CANCELLED)
            .order_by(Project.project_number)
        )
        projects = list(result.scalars().all())

        pending = [p for p in projects if not p.qty]
        units = sum((Decimal(str(p.qty)) for p in projects if p.qty), Decimal("0"))
        return units, pending

    async def evaluate_monthly_tier(
        self,
        client_id: uuid.UUID,
        month: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Evaluate one client for a closed month.

        Skipped while any of the month's projects lack a quantity, and
        when the month has already been recorded.
        """
        month = month or previous_month()
        client = await self.get_client(client_id, for_update=True)

        if any(entry.month == month for entry in client.monthly_history):
            logger.info(f"Tier evaluation for {client.name} ({month}) already recorded")
            return {"client_id": str(client.id), "month": month, "skipped": True, "reason": "already_evaluated"}

        units, pending = await self.get_month_units(client.id, month)
        if pending:
            logger.info(
                f"Tier evaluation for {client.name} ({month}) skipped: "
                f"{len(pending)} project(s) missing Qty"
            )
            return {
                "client_id": str(client.id),
                "month": month,
                "skipped": True,
                "reason": "projects_missing_qty",
                "pending_projects": [p.project_number for p in pending],
            }

        change_reason = None
        hold_tier = False
        if client.manual_tier_override:
            if settings.loyalty_manual_override_policy == "persistent":
                hold_tier = True
                change_reason = "manual override held"
            else:
                client.manual_tier_override = False
                client.manual_override_reason = None
                change_reason = "manual override released"

        state = LoyaltyState.from_client(client)
        evaluation = evaluate_client_tier(state, units, hold_tier=hold_tier)
        now = datetime.now(timezone.utc)

        if evaluation.tier_changed:
            client.previous_tier = evaluation.previous_tier
            client.loyalty_tier = evaluation.tier
            client.tier_effective_date = now
            change_reason = change_reason or (
                "promotion" if TIER_RANK[evaluation.tier] > TIER_RANK[evaluation.previous_tier] else "downgrade"
            )
            logger.info(f"Tier change for {client.name}: {evaluation.previous_tier.value} -> {evaluation.tier.value}")

        if evaluation.protection_used:
            logger.info(
                f"Protection used for {client.name}: {evaluation.tier.value} kept, "
                f"{evaluation.protection_months} month(s) left"
            )

        client.protection_points = evaluation.points_balance
        client.protection_months = evaluation.protection_months
        client.protection_tier = evaluation.protection_tier
        client.total_units_billed = Decimal(str(client.total_units_billed or 0)) + units

        if evaluation.cashback_awarded:
            client.cashback_balance = Decimal(str(client.cashback_balance or 0)) + evaluation.cashback_awarded
            self.db.add(CashbackEntry(
                client_id=client.id,
                amount=evaluation.cashback_awarded,
                from_tier=evaluation.previous_tier,
                to_tier=evaluation.tier,
                note=f"Requalified {evaluation.previous_tier.value} -> {evaluation.tier.value}",
            ))
            logger.info(f"Cashback ${evaluation.cashback_awarded} awarded to {client.name}")

        self.db.add(ClientMonthlyUsage(
            client_id=client.id,
            month=month,
            units=units,
            tier=evaluation.tier,
            price_per_unit=evaluation.price_per_unit,
            total_billed=evaluation.total_billed,
            points_earned=evaluation.points_earned,
            points_balance=evaluation.points_balance,
            protection_awarded=evaluation.protection_awarded,
            protection_used=evaluation.protection_used,
            change_reason=change_reason,
        ))

        await self.db.commit()
        logger.info(f"Monthly tier evaluation complete for {client.name} ({month}): {evaluation.tier.value}")

        return {
            "client_id": str(client.id),
            "month": month,
            "skipped": False,
            "units": str(units),
            "previous_tier": evaluation.previous_tier.value,
            "tier": evaluation.tier.value,
            "tier_changed": evaluation.tier_changed,
            "points_earned": evaluation.points_earned,
            "protection_used": evaluation.protection_used,
            "protection_awarded": evaluation.protection_awarded,
            "cashback_awarded": str(evaluation.cashback_awarded),
        }

    async def run_monthly_evaluation_for_all_clients(self, month: Optional[str] = None) -> Dict[str, Any]:
        """Evaluate every active client; one failure does not stop the run."""
        month = month or previous_month()
        result = await self.db.execute(
            select(Client.id, Client.name).where(Client.is_active == True).order_by(Client.name)
        )
        clients = result.all()

        summary: Dict[str, Any] = {"month": month, "total": len(clients), "evaluated": 0, "skipped": 0, "errors": 0}
        for client_id, name in clients:
            try:
                outcome = await self.evaluate_monthly_tier(client_id, month)
            except Exception as e:
                await self.db.rollback()
                summary["errors"] += 1
                logger.error(f"Tier evaluation failed for {name}: {e}", exc_info=True)
                continue

            if outcome["skipped"]:
                summary["skipped"] += 1
            else:
                summary["evaluated"] += 1

        logger.info(
            f"Monthly tier evaluation {month}: {summary['evaluated']} evaluated, "
            f"{summary['skipped']} skipped, {summary['errors']} errors"
        )
        return summary

    # ===========================================
    # ADMIN OPERATIONS
    # ===========================================

    async def manual_tier_update(
        self,
        client_id: uuid.UUID,
        tier: Union[LoyaltyTier, str],
        reason: str,
    ) -> Client:
        """Set a client's tier by hand."""
        new_tier = _as_tier(tier)
        client = await self.get_client(client_id, for_update=True)

        if client.loyalty_tier != new_tier:
            client.previous_tier = client.loyalty_tier
            client.loyalty_tier = new_tier
            client.tier_effective_date = datetime.now(timezone.utc)
        client.manual_tier_override = True
        client.manual_override_reason = reason

        await self.db.commit()
        logger.info(f"Manual tier update for {client.name}: {new_tier.value} ({reason})")
        return await self.get_client(client_id)

    async def clear_manual_override(self, client_id: uuid.UUID) -> Client:
        """Hand the client back to monthly evaluation."""
        client = await self.get_client(client_id, for_update=True)
        client.manual_tier_override = False
        client.manual_override_reason = None
        await self.db.commit()
        return await self.get_client(client_id)

    async def adjust_protection_points(self, client_id: uuid.UUID, delta: int) -> Client:
        """Add or remove protection points, never below zero."""
        client = await self.get_client(client_id, for_update=True)
        client.protection_points = max(0, (client.protection_points or 0) + delta)
        await self.db.commit()
        logger.info(f"Protection points for {client.name} adjusted by {delta:+d}: {client.protection_points}")
        return await self.get_client(client_id)

    async def adjust_protection_months(self, client_id: uuid.UUID, delta: int) -> Client:
        """Add or remove protection months, clamped to the allowed range."""
        client = await self.get_client(client_id, for_update=True)
        months = (client.protection_months or 0) + delta
        client.protection_months = min(settings.loyalty_max_protection_months, max(0, months))

        if client.protection_months == 0:
            client.protection_tier = None
        elif client.protection_tier is None and client.loyalty_tier != LoyaltyTier.CASUAL:
            client.protection_tier = client.loyalty_tier

        await self.db.commit()
        logger.info(f"Protection months for {client.name} adjusted by {delta:+d}: {client.protection_months}")
        return await self.get_client(client_id)

    async def apply_cashback(
        self,
        client_id: uuid.UUID,
        amount: Union[Decimal, float, str],
        note: Optional[str] = None,
    ) -> Client:
        """Spend cashback credit against an invoice."""
        value = Decimal(str(amount))
        if value <= 0:
            raise InvalidAmountException(amount)

        client = await self.get_client(client_id, for_update=True)
        balance = Decimal(str(client.cashback_balance or 0))
        if value > balance:
            raise InsufficientCashbackException(float(value), float(balance))

        client.cashback_balance = balance - value
        self.db.add(CashbackEntry(
            client_id=client.id,
            amount=-value,
            note=note or "Applied to invoice",
        ))
        await self.db.commit()
        logger.info(f"Cashback ${value} applied for {client.name}, balance ${client.cashback_balance}")
        return await self.get_client(client_id)
