"""
EaseMail Billing - Invoice Calculator

Entry point of the rating engine. Combines the seat-based subscription
charge with every metered service charge into one itemized invoice.

The calculation is a pure function of (PricingConfig, UsageFact): no I/O,
no wall clock and no shared state, so re-running a billing job for the
same inputs produces a byte-identical invoice.

Usage:
    invoice = compute_invoice(config, usage)
    invoice.total_charge          # Decimal("62.00")
    invoice.model_dump_json()     # stable serialization
"""

import logging
from decimal import Decimal
from typing import Dict, List, Optional

from billing_engine.config import settings as app_settings
from billing_engine.schemas.enums import (
    BillingCycle,
    LineItemKind,
    RateCategory,
    ServiceType,
)
from billing_engine.schemas.invoice import Invoice, LineItem, LineItemBand
from billing_engine.schemas.pricing import Plan, PricingConfig
from billing_engine.schemas.usage import UsageFact
from billing_engine.services.lifecycle_policy import LifecycleDecision, evaluate_lifecycle
from billing_engine.services.override_resolver import has_override, resolve_rate
from billing_engine.services.usage_rater import UsageCharge, rate
from billing_engine.utils.error_handling import OverrideMismatchError, SeatCountOutOfRangeError
from billing_engine.utils.money import ZERO, percent_to_factor, quantize_money

logger = logging.getLogger(__name__)


# Units shown on usage line items when no pricing row names one
DEFAULT_UNITS = {
    ServiceType.SMS: "message",
    ServiceType.AI: "request",
    ServiceType.STORAGE: "gb",
}


def check_override_owner(config: PricingConfig, usage: UsageFact) -> None:
    """Reject a snapshot whose override was negotiated for another organization."""
    if config.override is not None and config.override.organization_id != usage.organization_id:
        raise OverrideMismatchError(usage.organization_id, config.override.organization_id)


def compute_tax(subtotal: Decimal, tax_rate: Optional[Decimal], places: int = 2) -> Decimal:
    """Sales tax on the pre-tax total, rounded half-up once."""
    if tax_rate is None:
        return quantize_money(ZERO, places)
    return quantize_money(subtotal * tax_rate, places)


def check_seat_count(seat_count: int, plan: Optional[Plan]) -> None:
    """
    Reject seat counts outside the plan range.

    Never clamps: an out-of-range count is an upstream data bug.
    """
    if plan is None:
        return
    if seat_count < plan.min_seats or (plan.max_seats is not None and seat_count > plan.max_seats):
        raise SeatCountOutOfRangeError(seat_count, plan.min_seats, plan.max_seats)


def effective_seat_rate(config: PricingConfig, billing_cycle: BillingCycle) -> Decimal:
    """
    Per-seat rate for the cycle.

    Annual cycles get the global annual discount, unless the organization
    override already set the annual rate (it is the negotiated final price).
    """
    category = RateCategory.for_cycle(billing_cycle)
    seat_rate = resolve_rate(category, plan=config.plan, override=config.override)

    if category == RateCategory.ANNUAL_BASE and not has_override(category, config.override):
        seat_rate = seat_rate * percent_to_factor(config.settings.annual_discount_percent)
    return seat_rate


def compute_subscription_charge(config: PricingConfig, usage: UsageFact, places: int = 2) -> LineItem:
    """Seat-based subscription line item."""
    check_seat_count(usage.seat_count, config.plan)
    seat_rate = effective_seat_rate(config, usage.billing_cycle)
    amount = quantize_money(seat_rate * usage.seat_count, places)

    plan_name = config.plan.display_name if config.plan is not None else "Custom"
    cycle = "Annual" if usage.billing_cycle == BillingCycle.ANNUAL else "Monthly"
    return LineItem(
        kind=LineItemKind.SUBSCRIPTION,
        description=f"{plan_name} ({cycle}) - {usage.seat_count} seat(s)",
        quantity=Decimal(usage.seat_count),
        unit_price=seat_rate,
        amount=amount,
    )


def compute_usage_charges(config: PricingConfig, usage: UsageFact, places: int = 2) -> List[UsageCharge]:
    """Rate every service present in the usage fact, in ServiceType order."""
    charges: List[UsageCharge] = []
    for service_type in ServiceType:
        if service_type not in usage.per_service:
            continue
        usage_pricing = config.usage_pricing_for(service_type)
        charges.append(
            rate(
                service_type,
                usage.per_service[service_type],
                usage_pricing,
                tiers=config.tiers_for(usage_pricing),
                override=config.override,
                settings=config.settings,
                seat_count=usage.seat_count,
                places=places,
            )
        )
    return charges


def _usage_line_item(charge: UsageCharge, config: PricingConfig) -> LineItem:
    usage_pricing = config.usage_pricing_for(charge.service_type)
    unit = usage_pricing.unit if usage_pricing is not None else DEFAULT_UNITS[charge.service_type]
    return LineItem(
        kind=LineItemKind.USAGE,
        description=f"{charge.service_type.value.upper()} usage ({charge.billable_quantity} billable {unit})",
        quantity=charge.billable_quantity,
        unit_price=charge.unit_price,
        amount=charge.amount,
        service_type=charge.service_type,
        bands=tuple(
            LineItemBand(
                tier_name=band.tier.tier_name,
                min_quantity=band.tier.min_quantity,
                max_quantity=band.tier.max_quantity,
                quantity=band.quantity,
                rate_per_unit=band.tier.rate_per_unit,
            )
            for band in charge.bands
        ),
    )


def _zero_invoice(usage: UsageFact, decision: LifecycleDecision, currency: str) -> Invoice:
    kind = LineItemKind(decision.state.value)
    return Invoice(
        organization_id=usage.organization_id,
        period_start=usage.period_start,
        period_end=usage.period_end,
        billing_cycle=usage.billing_cycle,
        state=decision.state,
        subscription_charge=quantize_money(ZERO),
        usage_charges={},
        total_charge=quantize_money(ZERO),
        tax_rate=usage.tax_rate,
        tax_amount=quantize_money(ZERO),
        amount_due=quantize_money(ZERO),
        line_items=(LineItem(kind=kind, description=kind.value, amount=quantize_money(ZERO)),),
        currency=currency,
    )


def compute_invoice(config: PricingConfig, usage: UsageFact) -> Invoice:
    """
    Compute the invoice for one organization and billing period.

    All or nothing: either a complete invoice is returned or a
    ConfigurationError is raised.

    Raises:
        MissingRateError, InvalidTierLadderError, UnboundedQuantityError,
        SeatCountOutOfRangeError, OverrideMismatchError
    """
    places = app_settings.currency_minor_units
    currency = app_settings.billing_currency

    check_override_owner(config, usage)

    decision = evaluate_lifecycle(config.settings, usage.account, usage.evaluated_at)
    if not decision.is_billable:
        logger.debug(f"Org {usage.organization_id} is in {decision.state.value}; zero-charge invoice")
        return _zero_invoice(usage, decision, currency)

    subscription_item = compute_subscription_charge(config, usage, places)
    usage_charges = compute_usage_charges(config, usage, places)

    line_items = [subscription_item]
    charges_by_service: Dict[ServiceType, Decimal] = {}
    for charge in usage_charges:
        charges_by_service[charge.service_type] = charge.amount
        if charge.is_chargeable:
            line_items.append(_usage_line_item(charge, config))

    total = subscription_item.amount + sum(charges_by_service.values(), ZERO)
    tax_amount = compute_tax(total, usage.tax_rate, places)

    if decision.suspended:
        logger.info(f"Org {usage.organization_id} is suspended; computed back-billing total {total}")

    return Invoice(
        organization_id=usage.organization_id,
        period_start=usage.period_start,
        period_end=usage.period_end,
        billing_cycle=usage.billing_cycle,
        state=decision.state,
        subscription_charge=subscription_item.amount,
        usage_charges=charges_by_service,
        total_charge=total,
        tax_rate=usage.tax_rate,
        tax_amount=tax_amount,
        amount_due=total + tax_amount,
        line_items=tuple(line_items),
        in_grace_period=decision.in_grace_period,
        suspended=decision.suspended,
        currency=currency,
    )
