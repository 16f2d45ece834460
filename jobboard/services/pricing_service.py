"""
ART Job Board - Pricing Service

Plan-type pricing table and currency conversion.

Prices are defined in AUD. Discountable plans are multiplied by the
client's loyalty tier factor and rounded up to the currency increment.
Other markets are priced with a two-factor conversion:

    local = aud * (COL[currency] / COL["AUD"]) * FX[currency]

which approximates fair cross-market pricing rather than a literal
exchange-rate conversion.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING, ROUND_FLOOR
from typing import Any, Dict, List, Optional, Union

from jobboard.config import settings
from jobboard.models.client import LoyaltyTier
from jobboard.services.loyalty_tier_service import get_tier_definition, tier_definitions
from jobboard.utils.error_handling import (
    InvalidAmountException,
    InvalidCurrencyException,
    InvalidPlanTypeException,
)

logger = logging.getLogger(__name__)


# ===========================================
# MARKET CONFIGURATION
# ===========================================

BASE_CURRENCY = "AUD"

FX_RATES: Dict[str, Decimal] = {
    "AUD": Decimal("1"),
    "USD": Decimal("0.67"),
    "EUR": Decimal("0.60"),
    "NOK": Decimal("6.7"),
}

COST_OF_LIVING_INDEX: Dict[str, Decimal] = {
    "AUD": Decimal("100"),
    "USD": Decimal("104"),
    "EUR": Decimal("90"),
    "NOK": Decimal("120"),
}

ROUNDING_INCREMENTS: Dict[str, Decimal] = {
    "AUD": Decimal("5"),
    "USD": Decimal("5"),
    "EUR": Decimal("5"),
    "NOK": Decimal("50"),
}

SUPPORTED_CURRENCIES = tuple(FX_RATES.keys())


# ===========================================
# PLAN TYPES
# ===========================================

MANUAL_PRICE = "Manual Price"
NEARMAP_REBATE = "Nearmap Rebate"


@dataclass(frozen=True)
class PlanType:
    """Static plan-type reference data."""
    label: str
    base_aud: Decimal
    unit_of_measure: str  # "ea", "hr" or ""
    discountable: bool = True


PLAN_TYPES: Dict[str, PlanType] = {
    plan.label: plan
    for plan in (
        PlanType("Basic", Decimal("75"), "ea"),
        PlanType("Standard", Decimal("100"), "ea"),
        PlanType("Std Highset", Decimal("115"), "ea"),
        PlanType("Detailed", Decimal("130"), "ea"),
        PlanType("Dtd Highset", Decimal("150"), "ea"),
        PlanType("Complex", Decimal("100"), "hr"),
        PlanType("Commercial", Decimal("100"), "hr"),
        PlanType("Townhouses", Decimal("100"), "hr"),
        PlanType("Hourly", Decimal("100"), "hr"),
        PlanType("Wall Cladding", Decimal("100"), "hr"),
        # Estimator enters the real price
        PlanType(MANUAL_PRICE, Decimal("1"), "", discountable=False),
        # Flat negative adjustment, AUD only
        PlanType(NEARMAP_REBATE, Decimal("-5"), "", discountable=False),
    )
}


def get_plan_type(label: Optional[str]) -> PlanType:
    """Look up a plan type by label."""
    if not label or label not in PLAN_TYPES:
        raise InvalidPlanTypeException(label)
    return PLAN_TYPES[label]


# ===========================================
# ROUNDING & CONVERSION
# ===========================================

def round_up_to(value: Decimal, step: Decimal) -> Decimal:
    """Round up to the next multiple of step."""
    return (value / step).to_integral_value(rounding=ROUND_CEILING) * step


def round_down_to(value: Decimal, step: Decimal) -> Decimal:
    """Round down to the previous multiple of step."""
    return (value / step).to_integral_value(rounding=ROUND_FLOOR) * step


def _check_currency(currency: str) -> str:
    code = (currency or "").upper()
    if code not in FX_RATES:
        raise InvalidCurrencyException(currency, list(SUPPORTED_CURRENCIES))
    return code


def market_factor(currency: str) -> Decimal:
    """Combined cost-of-living and FX factor from AUD into a market."""
    code = _check_currency(currency)
    return (COST_OF_LIVING_INDEX[code] / COST_OF_LIVING_INDEX[BASE_CURRENCY]) * FX_RATES[code]


def convert_price(
    amount: Union[Decimal, int, float, str],
    from_currency: str = BASE_CURRENCY,
    to_currency: str = "USD",
) -> Decimal:
    """
    Convert a price between markets.

    Away from AUD the result is rounded up to the target increment.
    Back into AUD it is rounded down, so a price on the AUD grid survives
    an AUD -> X -> AUD round trip within one AUD increment. Conversions
    between two foreign markets go through unrounded AUD.
    """
    source = _check_currency(from_currency)
    target = _check_currency(to_currency)
    value = Decimal(str(amount))

    if source == target:
        return value

    aud = value / market_factor(source)
    if target == BASE_CURRENCY:
        return round_down_to(aud, ROUNDING_INCREMENTS[BASE_CURRENCY])

    return round_up_to(aud * market_factor(target), ROUNDING_INCREMENTS[target])


# ===========================================
# UNIT PRICING
# ===========================================

def _tier_multiplier(tier: Union[LoyaltyTier, str]) -> Decimal:
    return get_tier_definition(tier).multiplier


def discounted_aud(plan: PlanType, tier: Union[LoyaltyTier, str]) -> Decimal:
    """Unrounded tier price in AUD."""
    if not plan.discountable:
        return plan.base_aud
    return plan.base_aud * _tier_multiplier(tier)


def unit_price(
    plan_type: Optional[str],
    tier: Union[LoyaltyTier, str],
    currency: str = BASE_CURRENCY,
    manual_price: Optional[Union[Decimal, int, float, str]] = None,
) -> Optional[Decimal]:
    """
    Price per unit for a plan type at a loyalty tier.

    Returns None where a plan is not offered in the market
    (Nearmap Rebate outside AUD).
    """
    plan = get_plan_type(plan_type)
    code = _check_currency(currency)

    if plan.label == MANUAL_PRICE:
        if manual_price is None:
            raise InvalidAmountException(
                manual_price,
                field="manual_price",
                message="Manual Price projects require an estimator-entered price",
            )
        aud = Decimal(str(manual_price))
    else:
        aud = discounted_aud(plan, tier)

    if code == BASE_CURRENCY:
        if plan.discountable:
            return round_up_to(aud, ROUNDING_INCREMENTS[BASE_CURRENCY])
        return aud

    if plan.label == NEARMAP_REBATE:
        return None
    return round_up_to(aud * market_factor(code), ROUNDING_INCREMENTS[code])


def plan_price_table(tier: Union[LoyaltyTier, str, None] = None) -> List[Dict[str, Any]]:
    """
    Every plan with its per-market prices.

    With a tier, each plan carries that tier's prices only; without one,
    prices for all tiers are listed.
    """
    tiers = [get_tier_definition(tier)] if tier else tier_definitions()
    table = []
    for plan in PLAN_TYPES.values():
        tier_rows = []
        for definition in tiers:
            row: Dict[str, Any] = {
                "tier": definition.name.value,
                "min_monthly_units": definition.min_monthly_units,
            }
            for currency in SUPPORTED_CURRENCIES:
                row[currency] = unit_price(
                    plan.label,
                    definition.name,
                    currency,
                    manual_price=plan.base_aud if plan.label == MANUAL_PRICE else None,
                )
            tier_rows.append(row)
        table.append({
            "label": plan.label,
            "base_aud": plan.base_aud,
            "unit_of_measure": plan.unit_of_measure,
            "discountable": plan.discountable,
            "tiers": tier_rows,
        })
    return table


def estimator_pay(
    est_qty: Optional[Union[Decimal, int, float]],
    has_estimator: bool = True,
) -> Decimal:
    """Estimator payout for a project: EstQty at the configured rate."""
    if not has_estimator or not est_qty:
        return Decimal("0")
    return Decimal(str(est_qty)) * Decimal(str(settings.estimator_rate_per_unit))
