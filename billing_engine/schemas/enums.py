"""
EaseMail Billing - Pricing Enums

Enums shared by the pricing schemas, the ORM models and the rating services.
Kept in their own module to avoid circular imports.
"""

from enum import Enum


class ServiceType(str, Enum):
    """Metered services billed on top of the subscription."""
    SMS = "sms"          # per message
    AI = "ai"            # per request
    STORAGE = "storage"  # per GB


class PricingModel(str, Enum):
    """How a metered service is rated."""
    FLAT = "flat"
    TIERED = "tiered"


# Admin tables store these legacy model names; both rate every unit at base_rate
LEGACY_FLAT_MODELS = frozenset({"per_unit", "overage"})


class BillingCycle(str, Enum):
    """Billing cycle options."""
    MONTHLY = "monthly"
    ANNUAL = "annual"


class RateCategory(str, Enum):
    """Rate categories an organization override can replace."""
    MONTHLY_BASE = "monthly_base"
    ANNUAL_BASE = "annual_base"
    SMS = "sms"
    AI = "ai"
    STORAGE = "storage"

    @property
    def is_subscription(self) -> bool:
        return self in (RateCategory.MONTHLY_BASE, RateCategory.ANNUAL_BASE)

    @classmethod
    def for_service(cls, service_type: ServiceType) -> "RateCategory":
        return cls(ServiceType(service_type).value)

    @classmethod
    def for_cycle(cls, billing_cycle: BillingCycle) -> "RateCategory":
        if BillingCycle(billing_cycle) == BillingCycle.ANNUAL:
            return cls.ANNUAL_BASE
        return cls.MONTHLY_BASE


class LifecycleState(str, Enum):
    """Account billing lifecycle states."""
    TRIAL = "trial"
    ACTIVE = "active"
    GRACE = "grace"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class LineItemKind(str, Enum):
    """Invoice line item kinds."""
    SUBSCRIPTION = "subscription"
    USAGE = "usage"
    TRIAL = "trial"
    CANCELLED = "cancelled"


class SettingDataType(str, Enum):
    """Declared data types of rows in the billing_settings store."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    JSON = "json"
