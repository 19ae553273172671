"""
EaseMail Billing - Override Resolver

Effective rate lookup with a fixed precedence:

1. Organization override field for the category (verbatim, tiers ignored)
2. Plan base price (subscription) or usage pricing base rate (metered)
3. Billing settings last-resort rate (metered services with no pricing row)

A category nothing can price is a configuration error. It never
defaults to zero, which would under-bill.
"""

from decimal import Decimal
from typing import Optional

from billing_engine.schemas.enums import RateCategory, ServiceType
from billing_engine.schemas.pricing import (
    BillingSettings,
    OrganizationOverride,
    Plan,
    UsagePricing,
)
from billing_engine.utils.error_handling import MissingRateError


def override_rate(
    category: RateCategory,
    override: Optional[OrganizationOverride],
) -> Optional[Decimal]:
    """Custom rate for the category, or None when there is no override."""
    if override is None:
        return None
    return override.rate_for(category)


def has_override(category: RateCategory, override: Optional[OrganizationOverride]) -> bool:
    return override_rate(category, override) is not None


def resolve_rate(
    category: RateCategory,
    plan: Optional[Plan] = None,
    usage_pricing: Optional[UsagePricing] = None,
    override: Optional[OrganizationOverride] = None,
    settings: Optional[BillingSettings] = None,
) -> Decimal:
    """
    Resolve the effective per-unit (or per-seat) rate for a category.

    Raises:
        MissingRateError: no override, no base rate and no fallback
    """
    category = RateCategory(category)

    custom = override_rate(category, override)
    if custom is not None:
        return custom

    if category.is_subscription:
        if plan is not None:
            return plan.base_rate(category)
        raise MissingRateError(category)

    if usage_pricing is not None:
        return usage_pricing.base_rate

    if settings is not None:
        fallback = settings.fallback_rate(ServiceType(category.value))
        if fallback is not None:
            return fallback

    raise MissingRateError(category)
