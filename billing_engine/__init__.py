"""
EaseMail Billing - Usage Rating Engine

Computes exact, reproducible invoices from a pricing snapshot and a
billing period's usage facts.
"""

from billing_engine.schemas import (
    AccountTimeline,
    BillingCycle,
    BillingSettings,
    Invoice,
    LifecycleState,
    LineItem,
    OrganizationOverride,
    Plan,
    PricingConfig,
    PricingModel,
    PricingTier,
    RateCategory,
    ServiceType,
    UsageFact,
    UsagePricing,
)
from billing_engine.services.invoice_calculator import compute_invoice
from billing_engine.utils.error_handling import (
    ConfigurationError,
    InvalidSettingError,
    InvalidTierLadderError,
    MissingRateError,
    OverrideMismatchError,
    PlanNotFoundError,
    SeatCountOutOfRangeError,
    UnboundedQuantityError,
)

__version__ = "1.0.0"

__all__ = [
    "compute_invoice",
    "AccountTimeline",
    "BillingCycle",
    "BillingSettings",
    "Invoice",
    "LifecycleState",
    "LineItem",
    "OrganizationOverride",
    "Plan",
    "PricingConfig",
    "PricingModel",
    "PricingTier",
    "RateCategory",
    "ServiceType",
    "UsageFact",
    "UsagePricing",
    "ConfigurationError",
    "InvalidSettingError",
    "InvalidTierLadderError",
    "MissingRateError",
    "OverrideMismatchError",
    "PlanNotFoundError",
    "SeatCountOutOfRangeError",
    "UnboundedQuantityError",
]
