"""
ART Job Board - Pricing Unit Tests

Tests for the plan-type pricing table and market conversion:
- Tier discounts and AUD rounding
- Manual Price and Nearmap Rebate handling
- Cross-market conversion and rounding increments
"""

from decimal import Decimal

import pytest

from jobboard.models.client import LoyaltyTier
from jobboard.services.pricing_service import (
    PLAN_TYPES,
    convert_price,
    estimator_pay,
    market_factor,
    plan_price_table,
    round_down_to,
    round_up_to,
    unit_price,
)
from jobboard.utils.error_handling import (
    InvalidAmountException,
    InvalidCurrencyException,
    InvalidPlanTypeException,
)


class TestTierPricing:
    """Tests for tier-discounted AUD prices."""

    def test_standard_plan_prices_per_tier(self):
        assert unit_price("Standard", LoyaltyTier.CASUAL) == Decimal("100")
        assert unit_price("Standard", LoyaltyTier.PRO) == Decimal("80")
        assert unit_price("Standard", LoyaltyTier.ELITE) == Decimal("70")

    def test_discounted_price_rounds_up_to_five(self):
        # 115 * 0.8 = 92
        assert unit_price("Std Highset", "Pro") == Decimal("95")
        # 115 * 0.7 = 80.5
        assert unit_price("Std Highset", "Elite") == Decimal("85")
        # 75 * 0.7 = 52.5
        assert unit_price("Basic", "Elite") == Decimal("55")

    def test_tier_accepts_string_names(self):
        assert unit_price("Detailed", "Casual") == unit_price("Detailed", LoyaltyTier.CASUAL)

    def test_unknown_plan_type_rejected(self):
        with pytest.raises(InvalidPlanTypeException):
            unit_price("Mansion", LoyaltyTier.PRO)

    def test_missing_plan_type_rejected(self):
        with pytest.raises(InvalidPlanTypeException):
            unit_price(None, LoyaltyTier.PRO)


class TestSpecialPlans:
    """Tests for plans that are never discounted."""

    def test_manual_price_is_not_discounted_or_rounded(self):
        assert unit_price("Manual Price", LoyaltyTier.ELITE, manual_price=Decimal("123.45")) == Decimal("123.45")

    def test_manual_price_requires_value(self):
        with pytest.raises(InvalidAmountException):
            unit_price("Manual Price", LoyaltyTier.ELITE)

    def test_nearmap_rebate_is_flat_in_aud(self):
        assert unit_price("Nearmap Rebate", LoyaltyTier.ELITE) == Decimal("-5")
        assert unit_price("Nearmap Rebate", LoyaltyTier.CASUAL) == Decimal("-5")

    def test_nearmap_rebate_not_offered_outside_aud(self):
        assert unit_price("Nearmap Rebate", LoyaltyTier.PRO, "USD") is None
        assert unit_price("Nearmap Rebate", LoyaltyTier.PRO, "NOK") is None


class TestMarketConversion:
    """Tests for cross-market pricing."""

    def test_market_factor_combines_cost_of_living_and_fx(self):
        assert market_factor("AUD") == Decimal("1")
        assert market_factor("USD") == Decimal("0.6968")
        assert market_factor("NOK") == Decimal("8.04")

    def test_local_price_uses_unrounded_aud(self):
        # 80.5 * 8.04 = 647.22 -> 650
        assert unit_price("Std Highset", "Elite", "NOK") == Decimal("650")
        # 80 * 0.6968 = 55.744 -> 60
        assert unit_price("Standard", "Pro", "USD") == Decimal("60")

    def test_nok_prices_are_multiples_of_fifty(self):
        for label in PLAN_TYPES:
            if label in ("Manual Price", "Nearmap Rebate"):
                continue
            for tier in LoyaltyTier:
                assert unit_price(label, tier, "NOK") % 50 == 0

    def test_convert_away_from_aud_rounds_up(self):
        assert convert_price(Decimal("80"), "AUD", "USD") == Decimal("60")
        assert convert_price(Decimal("100"), "AUD", "EUR") == Decimal("55")

    def test_convert_back_to_aud_rounds_down(self):
        # 60 / 0.6968 = 86.1...
        assert convert_price(Decimal("60"), "USD", "AUD") == Decimal("85")

    def test_round_trip_stays_within_one_increment(self):
        for aud in range(50, 205, 5):
            for currency in ("USD", "EUR", "NOK"):
                local = convert_price(aud, "AUD", currency)
                back = convert_price(local, currency, "AUD")
                assert abs(back - Decimal(aud)) <= Decimal("5")

    def test_same_currency_is_identity(self):
        assert convert_price(Decimal("72.50"), "USD", "usd") == Decimal("72.50")

    def test_unsupported_currency_rejected(self):
        with pytest.raises(InvalidCurrencyException):
            convert_price(100, "AUD", "GBP")


class TestHelpers:
    """Tests for rounding helpers, the price table and estimator pay."""

    def test_rounding_helpers(self):
        assert round_up_to(Decimal("92"), Decimal("5")) == Decimal("95")
        assert round_up_to(Decimal("95"), Decimal("5")) == Decimal("95")
        assert round_down_to(Decimal("89.9"), Decimal("5")) == Decimal("85")

    def test_price_table_for_one_tier(self):
        table = plan_price_table(LoyaltyTier.PRO)
        standard = next(row for row in table if row["label"] == "Standard")
        assert len(standard["tiers"]) == 1
        assert standard["tiers"][0]["AUD"] == Decimal("80")
        assert standard["tiers"][0]["USD"] == Decimal("60")

    def test_price_table_lists_all_tiers(self):
        table = plan_price_table()
        assert len(table) == len(PLAN_TYPES)
        assert [row["tier"] for row in table[0]["tiers"]] == ["Elite", "Pro", "Casual"]

    def test_estimator_pay(self):
        assert estimator_pay(Decimal("3")) == Decimal("90")
        assert estimator_pay(Decimal("3"), has_estimator=False) == Decimal("0")
        assert estimator_pay(None) == Decimal("0")
