"""
EaseMail Billing - Usage Fact Schemas

Per-period inputs supplied by the metering side of the product.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterator, Optional, Tuple
from uuid import UUID

from pydantic import Field, model_validator

from billing_engine.schemas.enums import BillingCycle, ServiceType
from billing_engine.schemas.pricing import FrozenModel


def _is_aware(value: datetime) -> bool:
    return value.tzinfo is not None and value.tzinfo.utcoffset(value) is not None


class AccountTimeline(FrozenModel):
    """Account timestamps the lifecycle policy needs."""
    created_at: datetime
    last_payment_failed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    def timestamps(self) -> Iterator[Tuple[str, datetime]]:
        for name in ("created_at", "last_payment_failed_at", "cancelled_at"):
            value = getattr(self, name)
            if value is not None:
                yield f"account.{name}", value


class UsageFact(FrozenModel):
    """Aggregated consumption for one organization and billing period."""
    organization_id: UUID
    period_start: datetime
    period_end: datetime
    seat_count: int = Field(..., ge=0)
    billing_cycle: BillingCycle = BillingCycle.MONTHLY
    per_service: Dict[ServiceType, Decimal] = Field(default_factory=dict)
    account: Optional[AccountTimeline] = None
    as_of: Optional[datetime] = None
    tax_rate: Optional[Decimal] = Field(
        None, ge=0, le=1, description="Sales tax as a fraction (0.08 for 8%), None for untaxed"
    )

    @model_validator(mode="after")
    def check_timestamps(self) -> "UsageFact":
        # Aware and naive datetimes cannot be compared
        stamps = [("period_start", self.period_start), ("period_end", self.period_end)]
        if self.as_of is not None:
            stamps.append(("as_of", self.as_of))
        if self.account is not None:
            stamps.extend(self.account.timestamps())

        aware = {name for name, value in stamps if _is_aware(value)}
        if aware and len(aware) != len(stamps):
            naive = [name for name, _ in stamps if name not in aware]
            raise ValueError(
                f"timestamps must all be timezone-aware or all naive; naive: {', '.join(naive)}"
            )

        if self.period_end <= self.period_start:
            raise ValueError("period_end must be after period_start")
        return self

    @property
    def evaluated_at(self) -> datetime:
        """Point in time the lifecycle is judged at; never the wall clock."""
        return self.as_of or self.period_end
