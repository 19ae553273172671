"""
EaseMail Billing - Billing Run Service

Runs the rating engine for many organizations in one billing period.
Each organization is computed independently: one organization's bad
configuration is recorded as a failure and never aborts the others.
Configuration failures are not retryable and go to an operator.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from billing_engine.config import settings as app_settings
from billing_engine.schemas.invoice import Invoice
from billing_engine.schemas.pricing import PricingConfig
from billing_engine.schemas.usage import UsageFact
from billing_engine.services.invoice_calculator import compute_invoice
from billing_engine.services.pricing_snapshot_service import PricingSnapshotService
from billing_engine.utils.error_handling import AppException
from billing_engine.utils.money import ZERO, format_currency_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillingRunFailure:
    """An organization that could not be billed."""
    organization_id: UUID
    error_code: str
    message: str
    retryable: bool = False
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class BillingRunResult:
    """Outcome of a billing run."""
    invoices: List[Invoice] = field(default_factory=list)
    failures: List[BillingRunFailure] = field(default_factory=list)
    below_minimum: List[Invoice] = field(default_factory=list)

    @property
    def total_billed(self) -> Decimal:
        return sum((invoice.total_charge for invoice in self.invoices), ZERO)

    @property
    def total_due(self) -> Decimal:
        """Billed totals including sales tax."""
        return sum((invoice.amount_due for invoice in self.invoices), ZERO)

    @property
    def succeeded(self) -> int:
        return len(self.invoices)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def skipped(self) -> int:
        return len(self.below_minimum)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "skipped": self.skipped,
            "total_billed": str(self.total_billed),
            "total_due": str(self.total_due),
            "failures": [
                {
                    "organization_id": str(f.organization_id),
                    "error_code": f.error_code,
                    "message": f.message,
                    "retryable": f.retryable,
                }
                for f in self.failures
            ],
        }


def _failure(organization_id: UUID, error: AppException) -> BillingRunFailure:
    return BillingRunFailure(
        organization_id=organization_id,
        error_code=error.code.value,
        message=error.message,
        retryable=error.retryable,
        details=dict(error.details),
    )


def run_billing_period(jobs: Iterable[Tuple[PricingConfig, UsageFact]]) -> BillingRunResult:
    """
    Compute invoices for (snapshot, usage) pairs, isolating per-organization errors.

    Invoices whose pre-tax total is below the snapshot's minimum_charge are
    set aside in `below_minimum` and not billed this period.
    """
    result = BillingRunResult()

    for config, usage in jobs:
        try:
            invoice = compute_invoice(config, usage)
        except AppException as e:
            logger.error(f"Billing failed for org {usage.organization_id}: [{e.code.value}] {e.message}")
            result.failures.append(_failure(usage.organization_id, e))
            continue
        if invoice.total_charge < config.settings.minimum_charge:
            logger.info(
                f"Skipping org {usage.organization_id}: total {invoice.total_charge} "
                f"below minimum charge {config.settings.minimum_charge}"
            )
            result.below_minimum.append(invoice)
            continue
        result.invoices.append(invoice)

    logger.info(
        f"Billing run complete: {result.succeeded} invoice(s), {result.skipped} below minimum, "
        f"{result.failed} failure(s), "
        f"total {format_currency_decimal(result.total_billed, app_settings.billing_currency)}"
    )
    return result


class BillingRunService:
    """
    Database-backed billing run.

    Usage:
        service = BillingRunService(db)
        result = await service.run(usage_facts, plan_names={org_id: "team"})
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.snapshots = PricingSnapshotService(db)

    async def run(
        self,
        usage_facts: Iterable[UsageFact],
        plan_names: Optional[Dict[UUID, str]] = None,
    ) -> BillingRunResult:
        """Build one snapshot per organization, then rate every organization."""
        plan_names = plan_names or {}
        shared = await self.snapshots.load_shared()

        jobs: List[Tuple[PricingConfig, UsageFact]] = []
        snapshot_failures: List[BillingRunFailure] = []

        for usage in usage_facts:
            try:
                config = await self.snapshots.build_snapshot(
                    usage.organization_id,
                    plan_name=plan_names.get(usage.organization_id),
                    shared=shared,
                )
            except AppException as e:
                logger.error(f"Could not load pricing for org {usage.organization_id}: {e.message}")
                snapshot_failures.append(_failure(usage.organization_id, e))
                continue
            jobs.append((config, usage))

        result = run_billing_period(jobs)
        result.failures[:0] = snapshot_failures
        return result
