"""
EaseMail Billing - Test Configuration

Pytest fixtures and configuration.
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from billing_engine.schemas import (
    BillingSettings,
    Plan,
    PricingConfig,
    PricingModel,
    PricingTier,
    ServiceType,
    UsageFact,
    UsagePricing,
)


PERIOD_START = datetime(2026, 3, 1, tzinfo=timezone.utc)
PERIOD_END = datetime(2026, 4, 1, tzinfo=timezone.utc)


@pytest.fixture
def team_plan() -> Plan:
    """$10/seat monthly, $100/seat annual, 1-50 seats."""
    return Plan(
        name="team",
        display_name="Team",
        base_price_monthly=Decimal("10.00"),
        base_price_annual=Decimal("100.00"),
        min_seats=1,
        max_seats=50,
    )


@pytest.fixture
def sms_pricing() -> UsagePricing:
    """Tiered SMS pricing with 100 free messages."""
    return UsagePricing(
        service_type=ServiceType.SMS,
        pricing_model=PricingModel.TIERED,
        base_rate=Decimal("0.01"),
        unit="message",
        free_tier_amount=Decimal("100"),
    )


@pytest.fixture
def sms_tiers(sms_pricing: UsagePricing):
    """[0-1000 @ 0.01, 1000-inf @ 0.005]"""
    return (
        PricingTier(
            usage_pricing_id=sms_pricing.id,
            tier_name="Standard",
            min_quantity=Decimal("0"),
            max_quantity=Decimal("1000"),
            rate_per_unit=Decimal("0.01"),
        ),
        PricingTier(
            usage_pricing_id=sms_pricing.id,
            tier_name="Volume",
            min_quantity=Decimal("1000"),
            max_quantity=None,
            rate_per_unit=Decimal("0.005"),
        ),
    )


@pytest.fixture
def ai_pricing() -> UsagePricing:
    """Flat AI pricing, legacy per_unit model name."""
    return UsagePricing(
        service_type=ServiceType.AI,
        pricing_model="per_unit",
        base_rate=Decimal("0.002"),
        unit="request",
        free_tier_amount=Decimal("1000"),
    )


@pytest.fixture
def billing_settings() -> BillingSettings:
    return BillingSettings(
        trial_period_days=14,
        grace_period_days=7,
        annual_discount_percent=Decimal("10"),
    )


@pytest.fixture
def pricing_config(team_plan, sms_pricing, sms_tiers, ai_pricing, billing_settings) -> PricingConfig:
    """Snapshot with no organization override."""
    return PricingConfig(
        plan=team_plan,
        usage_pricing=(sms_pricing, ai_pricing),
        tiers=sms_tiers,
        settings=billing_settings,
    )


@pytest.fixture
def make_usage():
    """Factory for UsageFact values in the March 2026 period."""
    def _make(seat_count: int = 5, **kwargs) -> UsageFact:
        kwargs.setdefault("organization_id", uuid4())
        kwargs.setdefault("period_start", PERIOD_START)
        kwargs.setdefault("period_end", PERIOD_END)
        return UsageFact(seat_count=seat_count, **kwargs)
    return _make
