"""
EaseMail Billing - Invoice Schemas

Immutable invoice value produced by the invoice calculator.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Tuple
from uuid import UUID

from pydantic import Field, computed_field

from billing_engine.schemas.enums import (
    BillingCycle,
    LifecycleState,
    LineItemKind,
    ServiceType,
)
from billing_engine.schemas.pricing import FrozenModel


# ===========================================
# LINE ITEM SCHEMAS
# ===========================================

class LineItemBand(FrozenModel):
    """Part of a tiered usage quantity rated inside one tier."""
    tier_name: Optional[str] = None
    min_quantity: Decimal
    max_quantity: Optional[Decimal] = None
    quantity: Decimal
    rate_per_unit: Decimal


class LineItem(FrozenModel):
    """One itemized charge on an invoice."""
    kind: LineItemKind
    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Decimal("0")
    unit_price: Optional[Decimal] = Field(None, description="Effective per-unit price, None when tiered")
    amount: Decimal = Decimal("0.00")
    service_type: Optional[ServiceType] = None
    bands: Tuple[LineItemBand, ...] = ()


# ===========================================
# INVOICE
# ===========================================

class Invoice(FrozenModel):
    """Fully itemized charge for one organization and billing period."""
    organization_id: UUID
    period_start: datetime
    period_end: datetime
    billing_cycle: BillingCycle
    state: LifecycleState
    subscription_charge: Decimal = Decimal("0.00")
    usage_charges: Dict[ServiceType, Decimal] = Field(default_factory=dict)
    total_charge: Decimal = Decimal("0.00")  # before tax
    tax_rate: Optional[Decimal] = None
    tax_amount: Decimal = Decimal("0.00")
    amount_due: Decimal = Decimal("0.00")
    line_items: Tuple[LineItem, ...] = ()
    in_grace_period: bool = False
    suspended: bool = False
    currency: str = "USD"

    @computed_field
    @property
    def is_billable(self) -> bool:
        """Whether charges were computed for this period."""
        return self.state not in (LifecycleState.TRIAL, LifecycleState.CANCELLED)

    def invoice_number(self, sequence: int) -> str:
        """Format INV-YYYYMM-NNNN for the period; the sequence is owned by storage."""
        if sequence < 1:
            raise ValueError("invoice sequence starts at 1")
        return f"INV-{self.period_start:%Y%m}-{sequence:04d}"

    def usage_charge(self, service_type: ServiceType) -> Decimal:
        return self.usage_charges.get(ServiceType(service_type), Decimal("0.00"))
