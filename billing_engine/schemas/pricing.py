"""
EaseMail Billing - Pricing Configuration Schemas

Immutable pydantic snapshots of the admin-managed pricing data:
plans, usage pricing, tier ladders, global billing settings and
per-organization overrides. The rating engine only ever reads these.
"""

from decimal import Decimal
from typing import Optional, Tuple
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from billing_engine.schemas.enums import (
    LEGACY_FLAT_MODELS,
    PricingModel,
    RateCategory,
    ServiceType,
)


# Ten years; longer trial or grace windows are data-entry mistakes
MAX_PERIOD_DAYS = 3650


class FrozenModel(BaseModel):
    """Base for immutable engine values."""
    model_config = ConfigDict(frozen=True, extra="forbid")


# ===========================================
# PLAN
# ===========================================

class Plan(FrozenModel):
    """Subscription plan with per-seat pricing."""
    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1, max_length=50)
    display_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    base_price_monthly: Decimal = Field(..., ge=0, description="Price per seat per month")
    base_price_annual: Decimal = Field(..., ge=0, description="Price per seat per year")
    min_seats: int = Field(1, ge=1)
    max_seats: Optional[int] = Field(None, ge=1, description="None for unlimited")
    is_active: bool = True

    @model_validator(mode="after")
    def check_seat_range(self) -> "Plan":
        if self.max_seats is not None and self.max_seats < self.min_seats:
            raise ValueError(
                f"max_seats ({self.max_seats}) must be >= min_seats ({self.min_seats})"
            )
        return self

    def base_rate(self, category: RateCategory) -> Decimal:
        """Base per-seat rate for a subscription category."""
        if category == RateCategory.ANNUAL_BASE:
            return self.base_price_annual
        return self.base_price_monthly


# ===========================================
# USAGE PRICING
# ===========================================

class UsagePricing(FrozenModel):
    """Usage-based pricing definition for one metered service."""
    id: UUID = Field(default_factory=uuid4)
    service_type: ServiceType
    pricing_model: PricingModel = PricingModel.FLAT
    base_rate: Decimal = Field(..., ge=0)
    unit: str = Field(..., min_length=1, max_length=50)
    free_tier_amount: Decimal = Field(Decimal("0"), ge=0)
    description: Optional[str] = None
    is_active: bool = True

    @field_validator("pricing_model", mode="before")
    @classmethod
    def normalize_pricing_model(cls, value):
        if isinstance(value, str) and value.lower() in LEGACY_FLAT_MODELS:
            return PricingModel.FLAT
        return value


class PricingTier(FrozenModel):
    """
    One band of a volume-discount ladder.

    Ladder shape (contiguous, starting at zero) is checked by the tier
    resolver so a bad ladder surfaces as a configuration error.
    """
    id: UUID = Field(default_factory=uuid4)
    usage_pricing_id: UUID
    tier_name: Optional[str] = None
    min_quantity: Decimal
    max_quantity: Optional[Decimal] = None
    rate_per_unit: Decimal

    @property
    def is_open_ended(self) -> bool:
        return self.max_quantity is None


# ===========================================
# GLOBAL BILLING SETTINGS
# ===========================================

class BillingSettings(FrozenModel):
    """
    Typed view of the flat billing_settings key/value store.

    Loaded once per billing invocation (see services.settings_loader).
    """
    trial_period_days: int = Field(30, ge=0, le=MAX_PERIOD_DAYS)
    grace_period_days: int = Field(7, ge=0, le=MAX_PERIOD_DAYS)
    annual_discount_percent: Decimal = Field(Decimal("20"), ge=0, le=100)
    auto_suspend_on_failure: bool = True
    allow_overage_charges: bool = True
    minimum_charge: Decimal = Field(
        Decimal("0.50"), ge=0, description="Billing runs skip invoices totalling less than this"
    )

    # Last-resort rates when a service has no usage_pricing row
    default_sms_rate: Optional[Decimal] = Field(None, ge=0)
    ai_overage_rate: Optional[Decimal] = Field(None, ge=0)
    storage_overage_rate: Optional[Decimal] = Field(None, ge=0)

    # Per-seat allowances used with the fallback rates
    ai_free_requests_monthly: Decimal = Field(Decimal("0"), ge=0)
    storage_included_gb: Decimal = Field(Decimal("0"), ge=0)

    def fallback_rate(self, service_type: ServiceType) -> Optional[Decimal]:
        return {
            ServiceType.SMS: self.default_sms_rate,
            ServiceType.AI: self.ai_overage_rate,
            ServiceType.STORAGE: self.storage_overage_rate,
        }[ServiceType(service_type)]

    def fallback_free_tier_per_seat(self, service_type: ServiceType) -> Decimal:
        return {
            ServiceType.SMS: Decimal("0"),
            ServiceType.AI: self.ai_free_requests_monthly,
            ServiceType.STORAGE: self.storage_included_gb,
        }[ServiceType(service_type)]


# ===========================================
# ORGANIZATION OVERRIDE
# ===========================================

class OrganizationOverride(FrozenModel):
    """
    Custom pricing for one organization.

    None means "use the default"; Decimal("0") is a real zero rate.
    """
    id: UUID = Field(default_factory=uuid4)
    organization_id: UUID
    plan_id: Optional[UUID] = None
    custom_monthly_rate: Optional[Decimal] = Field(None, ge=0)
    custom_annual_rate: Optional[Decimal] = Field(None, ge=0)
    custom_sms_rate: Optional[Decimal] = Field(None, ge=0)
    custom_ai_rate: Optional[Decimal] = Field(None, ge=0)
    custom_storage_rate: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None

    def rate_for(self, category: RateCategory) -> Optional[Decimal]:
        return {
            RateCategory.MONTHLY_BASE: self.custom_monthly_rate,
            RateCategory.ANNUAL_BASE: self.custom_annual_rate,
            RateCategory.SMS: self.custom_sms_rate,
            RateCategory.AI: self.custom_ai_rate,
            RateCategory.STORAGE: self.custom_storage_rate,
        }[RateCategory(category)]


# ===========================================
# SNAPSHOT
# ===========================================

class PricingConfig(FrozenModel):
    """Consistent read-only pricing snapshot for one organization."""
    plan: Optional[Plan] = None
    usage_pricing: Tuple[UsagePricing, ...] = ()
    tiers: Tuple[PricingTier, ...] = ()
    settings: BillingSettings = Field(default_factory=BillingSettings)
    override: Optional[OrganizationOverride] = None

    @field_validator("usage_pricing")
    @classmethod
    def unique_service_types(cls, value: Tuple[UsagePricing, ...]) -> Tuple[UsagePricing, ...]:
        seen = set()
        for pricing in value:
            if pricing.service_type in seen:
                raise ValueError(f"duplicate usage pricing for service '{pricing.service_type.value}'")
            seen.add(pricing.service_type)
        return value

    def usage_pricing_for(self, service_type: ServiceType) -> Optional[UsagePricing]:
        service_type = ServiceType(service_type)
        for pricing in self.usage_pricing:
            if pricing.service_type == service_type:
                return pricing
        return None

    def tiers_for(self, usage_pricing: Optional[UsagePricing]) -> Tuple[PricingTier, ...]:
        if usage_pricing is None:
            return ()
        return tuple(t for t in self.tiers if t.usage_pricing_id == usage_pricing.id)
