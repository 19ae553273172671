"""
EaseMail Billing - SQLAlchemy Models Package

Read-only mappings of the admin pricing tables.
"""

from billing_engine.models.base import BaseModel, TimestampMixin
from billing_engine.models.pricing import (
    BillingSetting,
    OrganizationPricingOverride,
    PricingPlan,
    PricingTierRecord,
    UsagePricingRecord,
)

__all__ = [
    "BaseModel",
    "TimestampMixin",
    "BillingSetting",
    "OrganizationPricingOverride",
    "PricingPlan",
    "PricingTierRecord",
    "UsagePricingRecord",
]
