"""
EaseMail Billing - Schemas Package

Immutable pydantic values consumed and produced by the rating engine.
"""

from billing_engine.schemas.enums import (
    BillingCycle,
    LifecycleState,
    LineItemKind,
    PricingModel,
    RateCategory,
    ServiceType,
    SettingDataType,
)
from billing_engine.schemas.pricing import (
    BillingSettings,
    OrganizationOverride,
    Plan,
    PricingConfig,
    PricingTier,
    UsagePricing,
)
from billing_engine.schemas.usage import AccountTimeline, UsageFact
from billing_engine.schemas.invoice import Invoice, LineItem, LineItemBand

__all__ = [
    # Enums
    "BillingCycle",
    "LifecycleState",
    "LineItemKind",
    "PricingModel",
    "RateCategory",
    "ServiceType",
    "SettingDataType",
    # Pricing configuration
    "BillingSettings",
    "OrganizationOverride",
    "Plan",
    "PricingConfig",
    "PricingTier",
    "UsagePricing",
    # Usage
    "AccountTimeline",
    "UsageFact",
    # Invoice
    "Invoice",
    "LineItem",
    "LineItemBand",
]
