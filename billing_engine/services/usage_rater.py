"""
EaseMail Billing - Usage Rater

Rates one metered service for one billing period:

1. Inactive usage pricing is an admin kill-switch: nothing is billed.
2. The free tier is consumed first (never prorated).
3. An organization override rate replaces the whole rate, tiers included.
4. Tiered services go through the tier resolver.
5. Everything else is billable quantity times the resolved base rate.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Sequence, Tuple

from billing_engine.schemas.enums import PricingModel, RateCategory, ServiceType
from billing_engine.schemas.pricing import (
    BillingSettings,
    OrganizationOverride,
    PricingTier,
    UsagePricing,
)
from billing_engine.services.override_resolver import override_rate, resolve_rate
from billing_engine.services.tier_resolver import TierBand, bands_total, tier_breakdown
from billing_engine.utils.error_handling import validate_amount
from billing_engine.utils.money import ZERO, quantize_money

logger = logging.getLogger(__name__)


class RatingSource(str, Enum):
    """What priced a usage charge."""
    OVERRIDE = "override"
    TIERED = "tiered"
    FLAT = "flat"
    SETTINGS_FALLBACK = "settings_fallback"
    FREE_TIER = "free_tier"
    SERVICE_DISABLED = "service_disabled"
    OVERAGE_DISABLED = "overage_disabled"


@dataclass(frozen=True)
class UsageCharge:
    """Rated usage for one service."""
    service_type: ServiceType
    quantity: Decimal
    free_tier_amount: Decimal
    billable_quantity: Decimal
    unit_price: Optional[Decimal]
    amount: Decimal
    rated_by: RatingSource
    bands: Tuple[TierBand, ...] = ()

    @property
    def is_chargeable(self) -> bool:
        return self.amount > ZERO


def free_tier_for(
    service_type: ServiceType,
    usage_pricing: Optional[UsagePricing],
    settings: Optional[BillingSettings],
    seat_count: int,
) -> Decimal:
    """Free allowance: the pricing row's amount, else the per-seat setting."""
    if usage_pricing is not None:
        return usage_pricing.free_tier_amount
    if settings is None:
        return ZERO
    return settings.fallback_free_tier_per_seat(service_type) * seat_count


def rate(
    service_type: ServiceType,
    quantity_consumed: Decimal,
    usage_pricing: Optional[UsagePricing],
    tiers: Sequence[PricingTier] = (),
    override: Optional[OrganizationOverride] = None,
    settings: Optional[BillingSettings] = None,
    seat_count: int = 1,
    places: int = 2,
) -> UsageCharge:
    """
    Compute the usage charge for one service.

    Raises:
        InvalidAmountException: negative consumption
        MissingRateError: no override, pricing row or settings fallback
        InvalidTierLadderError / UnboundedQuantityError: bad tier ladder
    """
    service_type = ServiceType(service_type)
    category = RateCategory.for_service(service_type)
    quantity = validate_amount(quantity_consumed, field=f"per_service.{service_type.value}")

    free_tier = free_tier_for(service_type, usage_pricing, settings, seat_count)

    def _charge(
        billable: Decimal,
        amount: Decimal,
        unit_price: Optional[Decimal],
        source: RatingSource,
        bands: Tuple[TierBand, ...] = (),
    ) -> UsageCharge:
        return UsageCharge(
            service_type=service_type,
            quantity=quantity,
            free_tier_amount=free_tier,
            billable_quantity=billable,
            unit_price=unit_price,
            amount=quantize_money(amount, places),
            rated_by=source,
            bands=bands,
        )

    if usage_pricing is not None and not usage_pricing.is_active:
        logger.debug(f"Usage pricing for {service_type.value} is inactive; not billed")
        return _charge(ZERO, ZERO, None, RatingSource.SERVICE_DISABLED)

    billable = max(quantity - free_tier, ZERO)
    if billable == ZERO:
        return _charge(ZERO, ZERO, None, RatingSource.FREE_TIER)

    if settings is not None and not settings.allow_overage_charges:
        return _charge(billable, ZERO, None, RatingSource.OVERAGE_DISABLED)

    custom = override_rate(category, override)
    if custom is not None:
        return _charge(billable, billable * custom, custom, RatingSource.OVERRIDE)

    if usage_pricing is not None and usage_pricing.pricing_model == PricingModel.TIERED and tiers:
        bands = tuple(tier_breakdown(billable, tiers, service_type))
        return _charge(billable, bands_total(bands, places), None, RatingSource.TIERED, bands)

    base_rate = resolve_rate(category, usage_pricing=usage_pricing, override=override, settings=settings)
    source = RatingSource.FLAT if usage_pricing is not None else RatingSource.SETTINGS_FALLBACK
    return _charge(billable, billable * base_rate, base_rate, source)
