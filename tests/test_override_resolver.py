"""
EaseMail Billing - Override Resolver Tests

Precedence: organization override, then configured base rate, then the
billing settings fallback. Nothing silently defaults to zero.
"""

import pytest
from decimal import Decimal
from uuid import uuid4

from billing_engine.schemas import (
    BillingSettings,
    OrganizationOverride,
    RateCategory,
    ServiceType,
    UsagePricing,
)
from billing_engine.services.override_resolver import has_override, override_rate, resolve_rate
from billing_engine.utils.error_handling import ErrorCode, MissingRateError


@pytest.fixture
def override() -> OrganizationOverride:
    return OrganizationOverride(
        organization_id=uuid4(),
        custom_monthly_rate=Decimal("8.00"),
        custom_sms_rate=Decimal("0.02"),
        custom_ai_rate=Decimal("0"),
    )


class TestOverrideLookup:
    """None means no override; zero is a real rate."""

    def test_no_override_object(self):
        assert override_rate(RateCategory.SMS, None) is None
        assert has_override(RateCategory.SMS, None) is False

    def test_field_set(self, override):
        assert override_rate(RateCategory.SMS, override) == Decimal("0.02")

    def test_field_unset(self, override):
        assert override_rate(RateCategory.STORAGE, override) is None
        assert has_override(RateCategory.ANNUAL_BASE, override) is False

    def test_zero_override_is_an_override(self, override):
        assert has_override(RateCategory.AI, override) is True
        assert override_rate(RateCategory.AI, override) == Decimal("0")


class TestSubscriptionRates:
    """Seat rates come from the override or the plan."""

    def test_plan_monthly_rate(self, team_plan):
        assert resolve_rate(RateCategory.MONTHLY_BASE, plan=team_plan) == Decimal("10.00")

    def test_plan_annual_rate(self, team_plan):
        assert resolve_rate(RateCategory.ANNUAL_BASE, plan=team_plan) == Decimal("100.00")

    def test_override_wins_over_plan(self, team_plan, override):
        rate = resolve_rate(RateCategory.MONTHLY_BASE, plan=team_plan, override=override)
        assert rate == Decimal("8.00")

    def test_unset_override_field_falls_back_to_plan(self, team_plan, override):
        rate = resolve_rate(RateCategory.ANNUAL_BASE, plan=team_plan, override=override)
        assert rate == Decimal("100.00")

    def test_no_plan_no_override(self):
        with pytest.raises(MissingRateError) as exc_info:
            resolve_rate(RateCategory.MONTHLY_BASE)

        assert exc_info.value.category == "monthly_base"
        assert exc_info.value.code == ErrorCode.MISSING_RATE

    def test_settings_never_price_seats(self):
        settings = BillingSettings(default_sms_rate=Decimal("0.01"))
        with pytest.raises(MissingRateError):
            resolve_rate(RateCategory.MONTHLY_BASE, settings=settings)


class TestUsageRates:
    """Metered rates come from the override, the pricing row or settings."""

    def test_usage_pricing_base_rate(self, ai_pricing):
        assert resolve_rate(RateCategory.AI, usage_pricing=ai_pricing) == Decimal("0.002")

    def test_override_wins_over_usage_pricing(self, sms_pricing, override):
        rate = resolve_rate(RateCategory.SMS, usage_pricing=sms_pricing, override=override)
        assert rate == Decimal("0.02")

    def test_zero_override_wins(self, ai_pricing, override):
        rate = resolve_rate(RateCategory.AI, usage_pricing=ai_pricing, override=override)
        assert rate == Decimal("0")

    def test_settings_fallback(self):
        settings = BillingSettings(storage_overage_rate=Decimal("0.10"))
        assert resolve_rate(RateCategory.STORAGE, settings=settings) == Decimal("0.10")

    def test_pricing_row_wins_over_settings(self):
        pricing = UsagePricing(service_type=ServiceType.SMS, base_rate=Decimal("0.03"), unit="message")
        settings = BillingSettings(default_sms_rate=Decimal("0.01"))

        assert resolve_rate(RateCategory.SMS, usage_pricing=pricing, settings=settings) == Decimal("0.03")

    def test_nothing_configured(self):
        with pytest.raises(MissingRateError) as exc_info:
            resolve_rate(RateCategory.STORAGE, settings=BillingSettings())

        assert exc_info.value.category == "storage"
        assert exc_info.value.retryable is False
