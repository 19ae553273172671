"""
EaseMail Billing - Pricing Snapshot Service

Read-only configuration source for the rating engine. Reads the admin
pricing tables once and freezes them into a PricingConfig, so a billing
computation never sees configuration change halfway through.

Usage:
    service = PricingSnapshotService(db)
    shared = await service.load_shared()
    config = await service.build_snapshot(org_id, plan_name="team", shared=shared)
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union
from uuid import UUID

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.models.pricing import (
    BillingSetting,
    OrganizationPricingOverride,
    PricingPlan,
    PricingTierRecord,
    UsagePricingRecord,
)
from billing_engine.schemas.pricing import (
    BillingSettings,
    OrganizationOverride,
    Plan,
    PricingConfig,
    PricingTier,
    UsagePricing,
)
from billing_engine.services.settings_loader import load_billing_settings
from billing_engine.utils.error_handling import ConfigurationError, PlanNotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SharedPricing:
    """Configuration shared by every organization in one billing run."""
    settings: BillingSettings
    usage_pricing: Tuple[UsagePricing, ...]
    tiers: Tuple[PricingTier, ...]


# =============================================================================
# ROW CONVERSION
# =============================================================================

def plan_from_row(row: PricingPlan) -> Plan:
    return Plan(
        id=row.id,
        name=row.name,
        display_name=row.display_name,
        description=row.description,
        base_price_monthly=row.base_price_monthly,
        base_price_annual=row.base_price_annual,
        min_seats=row.min_seats if row.min_seats is not None else 1,
        max_seats=row.max_seats,
        is_active=bool(row.is_active),
    )


def usage_pricing_from_row(row: UsagePricingRecord) -> UsagePricing:
    return UsagePricing(
        id=row.id,
        service_type=row.service_type,
        pricing_model=row.pricing_model,
        base_rate=row.base_rate,
        unit=row.unit,
        free_tier_amount=row.free_tier_amount or 0,
        description=row.description,
        is_active=bool(row.is_active),
    )


def tier_from_row(row: PricingTierRecord) -> PricingTier:
    return PricingTier(
        id=row.id,
        usage_pricing_id=row.usage_pricing_id,
        tier_name=row.tier_name,
        min_quantity=row.min_quantity,
        max_quantity=row.max_quantity,
        rate_per_unit=row.rate_per_unit,
    )


def override_from_row(row: OrganizationPricingOverride) -> OrganizationOverride:
    return OrganizationOverride(
        id=row.id,
        organization_id=row.organization_id,
        plan_id=row.plan_id,
        custom_monthly_rate=row.custom_monthly_rate,
        custom_annual_rate=row.custom_annual_rate,
        custom_sms_rate=row.custom_sms_rate,
        custom_ai_rate=row.custom_ai_rate,
        custom_storage_rate=row.custom_storage_rate,
        notes=row.notes,
    )


def convert_row(converter: Callable[[Any], Any], row: Any, label: str) -> Any:
    """Convert an ORM row, reporting bad admin data as a configuration error."""
    try:
        return converter(row)
    except ValidationError as e:
        raise ConfigurationError(
            message=f"Invalid {label} row {getattr(row, 'id', None)}: {e.error_count()} validation error(s)",
            details={"table": label, "row_id": str(getattr(row, "id", None)), "errors": str(e)},
        )


class PricingSnapshotService:
    """Builds immutable pricing snapshots from the admin tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ===========================================
    # GLOBAL CONFIGURATION
    # ===========================================

    async def load_settings(self) -> BillingSettings:
        """Load the billing_settings store into typed settings."""
        result = await self.db.execute(select(BillingSetting).order_by(BillingSetting.setting_key))
        return load_billing_settings(result.scalars().all())

    async def load_usage_pricing(self) -> Tuple[UsagePricing, ...]:
        """
        Load every usage pricing row, active or not.

        Inactive rows must reach the rater so the kill-switch applies
        instead of the settings fallback rate.
        """
        result = await self.db.execute(
            select(UsagePricingRecord).order_by(UsagePricingRecord.service_type)
        )
        return tuple(convert_row(usage_pricing_from_row, row, "usage_pricing") for row in result.scalars().all())

    async def load_tiers(self, usage_pricing_ids: Iterable[UUID]) -> Tuple[PricingTier, ...]:
        """Load tier ladders for the given usage pricing rows."""
        ids: List[UUID] = list(usage_pricing_ids)
        if not ids:
            return ()
        result = await self.db.execute(
            select(PricingTierRecord)
            .where(PricingTierRecord.usage_pricing_id.in_(ids))
            .order_by(PricingTierRecord.usage_pricing_id, PricingTierRecord.min_quantity)
        )
        return tuple(convert_row(tier_from_row, row, "pricing_tiers") for row in result.scalars().all())

    async def load_shared(self) -> SharedPricing:
        """Load the configuration common to all organizations."""
        settings = await self.load_settings()
        usage_pricing = await self.load_usage_pricing()
        tiers = await self.load_tiers(p.id for p in usage_pricing)
        logger.info(
            f"Loaded pricing configuration: {len(usage_pricing)} usage pricing row(s), "
            f"{len(tiers)} tier(s)"
        )
        return SharedPricing(settings=settings, usage_pricing=usage_pricing, tiers=tiers)

    # ===========================================
    # PER-ORGANIZATION CONFIGURATION
    # ===========================================

    async def get_override(self, organization_id: UUID) -> Optional[OrganizationOverride]:
        """Get the organization's pricing override, if any."""
        result = await self.db.execute(
            select(OrganizationPricingOverride)
            .where(OrganizationPricingOverride.organization_id == organization_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return convert_row(override_from_row, row, "organization_pricing_overrides")

    async def get_plan(self, plan: Union[UUID, str]) -> Plan:
        """
        Get a plan by id or by name.

        Raises:
            PlanNotFoundError: no such plan
        """
        if isinstance(plan, UUID):
            query = select(PricingPlan).where(PricingPlan.id == plan)
        else:
            query = select(PricingPlan).where(PricingPlan.name == plan)

        result = await self.db.execute(query)
        row = result.scalar_one_or_none()
        if row is None:
            raise PlanNotFoundError(plan)
        return convert_row(plan_from_row, row, "pricing_plans")

    async def build_snapshot(
        self,
        organization_id: UUID,
        plan_name: Optional[str] = None,
        shared: Optional[SharedPricing] = None,
    ) -> PricingConfig:
        """
        Build the pricing snapshot for one organization.

        The override's plan_id wins over plan_name. With neither, the
        snapshot has no plan and only override rates can price seats.
        """
        if shared is None:
            shared = await self.load_shared()

        override = await self.get_override(organization_id)

        plan: Optional[Plan] = None
        if override is not None and override.plan_id is not None:
            plan = await self.get_plan(override.plan_id)
        elif plan_name:
            plan = await self.get_plan(plan_name)

        return PricingConfig(
            plan=plan,
            usage_pricing=shared.usage_pricing,
            tiers=shared.tiers,
            settings=shared.settings,
            override=override,
        )
