"""
EaseMail Billing - Pricing Models

ORM mappings for the admin-managed pricing tables:
- pricing_plans
- usage_pricing / pricing_tiers (volume discounts)
- organization_pricing_overrides
- billing_settings (flat key/value store)

The admin console owns writes; the billing engine reads snapshots.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    String, Text, Integer, Boolean, DateTime, Numeric, ForeignKey, func
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_engine.database import Base
from billing_engine.models.base import BaseModel


class PricingPlan(BaseModel):
    """
    Subscription plan configuration.
    Prices are per seat.
    """
    __tablename__ = "pricing_plans"

    name: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
        comment="individual, team, enterprise, custom"
    )
    display_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    base_price_monthly: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Price per user per month"
    )
    base_price_annual: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        comment="Price per user per year"
    )

    min_seats: Mapped[int] = mapped_column(Integer, default=1)
    max_seats: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="NULL for unlimited"
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)


class UsagePricingRecord(BaseModel):
    """Usage-based pricing for SMS, AI and storage."""
    __tablename__ = "usage_pricing"

    service_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        index=True,
        comment="sms, ai, storage"
    )
    pricing_model: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="per_unit, tiered, overage"
    )
    base_rate: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
    unit: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="message, request, gb"
    )
    free_tier_amount: Mapped[Decimal] = mapped_column(
        Numeric(14, 4),
        nullable=False,
        default=Decimal("0"),
        server_default="0",
        comment="Units included before charges apply"
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    tiers: Mapped[List["PricingTierRecord"]] = relationship(
        back_populates="usage_pricing",
        order_by="PricingTierRecord.min_quantity",
    )


class PricingTierRecord(Base):
    """Volume-based pricing tier for a usage pricing row."""
    __tablename__ = "pricing_tiers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    usage_pricing_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("usage_pricing.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tier_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    min_quantity: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    max_quantity: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(14, 4),
        nullable=True,
        comment="NULL for unlimited"
    )
    rate_per_unit: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    usage_pricing: Mapped["UsagePricingRecord"] = relationship(back_populates="tiers")


class OrganizationPricingOverride(BaseModel):
    """Custom pricing for a specific organization (at most one per org)."""
    __tablename__ = "organization_pricing_overrides"

    organization_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        nullable=False,
        unique=True,
        index=True,
    )
    plan_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("pricing_plans.id"),
        nullable=True,
        index=True,
    )

    # NULL means "use the default rate"
    custom_monthly_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    custom_annual_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    custom_sms_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 4), nullable=True)
    custom_ai_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 4), nullable=True)
    custom_storage_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 4), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class BillingSetting(Base):
    """Global billing configuration setting (key/value)."""
    __tablename__ = "billing_settings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    setting_key: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    setting_value: Mapped[str] = mapped_column(Text, nullable=False)
    data_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="string, number, boolean, json"
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
