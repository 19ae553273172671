"""
EaseMail Billing - Usage Rater Tests

Unit tests for rating one metered service: free tier, overrides,
tiered and flat pricing, and the settings fallback.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from billing_engine.schemas import (
    BillingSettings,
    OrganizationOverride,
    ServiceType,
    UsagePricing,
)
from billing_engine.services.usage_rater import RatingSource, rate
from billing_engine.utils.error_handling import InvalidAmountException, MissingRateError


class TestFreeTier:
    """The free allowance is consumed before any rate applies."""

    def test_consumption_within_free_tier(self, sms_pricing, sms_tiers):
        charge = rate(ServiceType.SMS, Decimal("100"), sms_pricing, tiers=sms_tiers)

        assert charge.amount == Decimal("0.00")
        assert charge.billable_quantity == Decimal("0")
        assert charge.rated_by == RatingSource.FREE_TIER
        assert charge.is_chargeable is False

    def test_one_unit_over_free_tier(self, sms_pricing, sms_tiers):
        charge = rate(ServiceType.SMS, Decimal("101"), sms_pricing, tiers=sms_tiers)

        assert charge.billable_quantity == Decimal("1")
        assert charge.amount == Decimal("0.01")

    def test_free_tier_not_prorated_by_seats(self, sms_pricing, sms_tiers):
        """A pricing row's free tier is per organization, not per seat."""
        charge = rate(ServiceType.SMS, Decimal("150"), sms_pricing, tiers=sms_tiers, seat_count=10)
        assert charge.free_tier_amount == Decimal("100")

    def test_settings_free_tier_scales_with_seats(self):
        settings = BillingSettings(
            ai_overage_rate=Decimal("0.01"),
            ai_free_requests_monthly=Decimal("100"),
        )
        charge = rate(ServiceType.AI, Decimal("350"), None, settings=settings, seat_count=3)

        assert charge.free_tier_amount == Decimal("300")
        assert charge.billable_quantity == Decimal("50")
        assert charge.amount == Decimal("0.50")
        assert charge.rated_by == RatingSource.SETTINGS_FALLBACK


class TestTieredRating:
    """Tiered services go through the tier resolver on the billable quantity."""

    def test_sms_spanning_tiers(self, sms_pricing, sms_tiers):
        """1500 consumed, 100 free: 1000 * 0.01 + 400 * 0.005 = 12.00."""
        charge = rate(ServiceType.SMS, Decimal("1500"), sms_pricing, tiers=sms_tiers)

        assert charge.billable_quantity == Decimal("1400")
        assert charge.amount == Decimal("12.00")
        assert charge.unit_price is None
        assert charge.rated_by == RatingSource.TIERED
        assert [band.quantity for band in charge.bands] == [Decimal("1000"), Decimal("400")]

    def test_tiered_without_tiers_uses_base_rate(self, sms_pricing):
        charge = rate(ServiceType.SMS, Decimal("300"), sms_pricing)

        assert charge.amount == Decimal("2.00")
        assert charge.rated_by == RatingSource.FLAT
        assert charge.bands == ()


class TestOverrideRating:
    """An override rate replaces the whole rate, tiers included."""

    def test_override_ignores_tiers(self, sms_pricing, sms_tiers):
        override = OrganizationOverride(organization_id=uuid4(), custom_sms_rate=Decimal("0.02"))
        charge = rate(ServiceType.SMS, Decimal("1500"), sms_pricing, tiers=sms_tiers, override=override)

        assert charge.amount == Decimal("28.00")
        assert charge.unit_price == Decimal("0.02")
        assert charge.rated_by == RatingSource.OVERRIDE

    def test_zero_override_bills_nothing(self, ai_pricing):
        override = OrganizationOverride(organization_id=uuid4(), custom_ai_rate=Decimal("0"))
        charge = rate(ServiceType.AI, Decimal("5000"), ai_pricing, override=override)

        assert charge.amount == Decimal("0.00")
        assert charge.rated_by == RatingSource.OVERRIDE

    def test_override_still_honours_free_tier(self, sms_pricing):
        override = OrganizationOverride(organization_id=uuid4(), custom_sms_rate=Decimal("0.02"))
        charge = rate(ServiceType.SMS, Decimal("50"), sms_pricing, override=override)

        assert charge.amount == Decimal("0.00")
        assert charge.rated_by == RatingSource.FREE_TIER


class TestFlatRating:
    """Flat services bill every billable unit at the base rate."""

    def test_legacy_model_name_is_flat(self, ai_pricing):
        """3500 requests, 1000 free, 0.002 each."""
        charge = rate(ServiceType.AI, Decimal("3500"), ai_pricing)

        assert charge.amount == Decimal("5.00")
        assert charge.unit_price == Decimal("0.002")
        assert charge.rated_by == RatingSource.FLAT

    def test_rounds_half_up(self):
        pricing = UsagePricing(service_type=ServiceType.STORAGE, base_rate=Decimal("0.125"), unit="gb")
        charge = rate(ServiceType.STORAGE, Decimal("1"), pricing)

        assert charge.amount == Decimal("0.13")

    def test_float_consumption_goes_through_str(self):
        pricing = UsagePricing(service_type=ServiceType.STORAGE, base_rate=Decimal("1"), unit="gb")
        charge = rate(ServiceType.STORAGE, 0.1, pricing)

        assert charge.quantity == Decimal("0.1")
        assert charge.amount == Decimal("0.10")


class TestSwitches:
    """Admin switches that stop usage billing."""

    def test_inactive_pricing_bills_nothing(self):
        pricing = UsagePricing(
            service_type=ServiceType.STORAGE,
            base_rate=Decimal("0.10"),
            unit="gb",
            is_active=False,
        )
        settings = BillingSettings(storage_overage_rate=Decimal("0.50"))
        charge = rate(ServiceType.STORAGE, Decimal("100"), pricing, settings=settings)

        assert charge.amount == Decimal("0.00")
        assert charge.rated_by == RatingSource.SERVICE_DISABLED

    def test_overage_disabled(self, ai_pricing):
        settings = BillingSettings(allow_overage_charges=False)
        charge = rate(ServiceType.AI, Decimal("5000"), ai_pricing, settings=settings)

        assert charge.amount == Decimal("0.00")
        assert charge.billable_quantity == Decimal("4000")
        assert charge.rated_by == RatingSource.OVERAGE_DISABLED


class TestRatingErrors:
    """Bad input and missing configuration."""

    def test_negative_consumption(self, ai_pricing):
        with pytest.raises(InvalidAmountException):
            rate(ServiceType.AI, Decimal("-1"), ai_pricing)

    def test_missing_rate(self):
        with pytest.raises(MissingRateError) as exc_info:
            rate(ServiceType.STORAGE, Decimal("10"), None, settings=BillingSettings())

        assert exc_info.value.category == "storage"

    def test_zero_usage_needs_no_rate(self):
        charge = rate(ServiceType.STORAGE, Decimal("0"), None, settings=BillingSettings())
        assert charge.amount == Decimal("0.00")
