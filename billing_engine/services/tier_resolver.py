"""
EaseMail Billing - Tier Resolver

Progressive (marginal) volume pricing. Each tier charges its own rate only
for the part of the quantity that falls inside its band, the same way
income tax brackets work. There is no cliff at tier boundaries.

Example, tiers [0-1000 @ 0.01, 1000-inf @ 0.005] and 1400 units:
    1000 * 0.01 + 400 * 0.005 = 12.00
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from billing_engine.schemas.enums import ServiceType
from billing_engine.schemas.pricing import PricingTier
from billing_engine.utils.error_handling import InvalidTierLadderError, UnboundedQuantityError
from billing_engine.utils.money import ZERO, quantize_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TierBand:
    """Portion of a quantity rated inside one tier (unrounded)."""
    tier: PricingTier
    quantity: Decimal
    amount: Decimal


def validate_tier_ladder(
    tiers: Sequence[PricingTier],
    service_type: Optional[ServiceType] = None,
) -> Tuple[PricingTier, ...]:
    """
    Sort a ladder and check it partitions [0, infinity).

    Returns the sorted ladder.

    Raises:
        InvalidTierLadderError: empty ladder, not starting at zero, gap,
            overlap, empty band, open-ended tier before the last, or a
            negative rate.
    """
    label = service_type if service_type is not None else "unknown"
    if not tiers:
        raise InvalidTierLadderError(label, "ladder has no tiers")

    ladder = tuple(sorted(tiers, key=lambda t: t.min_quantity))

    if ladder[0].min_quantity != ZERO:
        raise InvalidTierLadderError(
            label, f"first tier starts at {ladder[0].min_quantity}, expected 0"
        )

    for index, tier in enumerate(ladder):
        if tier.rate_per_unit < ZERO:
            raise InvalidTierLadderError(
                label, f"tier starting at {tier.min_quantity} has negative rate {tier.rate_per_unit}"
            )
        is_last = index == len(ladder) - 1
        if tier.max_quantity is None:
            if not is_last:
                raise InvalidTierLadderError(
                    label, f"open-ended tier starting at {tier.min_quantity} is not the last tier"
                )
            continue
        if tier.max_quantity <= tier.min_quantity:
            raise InvalidTierLadderError(
                label, f"tier [{tier.min_quantity}, {tier.max_quantity}) is empty"
            )
        if not is_last:
            next_min = ladder[index + 1].min_quantity
            if next_min > tier.max_quantity:
                raise InvalidTierLadderError(
                    label, f"gap between {tier.max_quantity} and {next_min}"
                )
            if next_min < tier.max_quantity:
                raise InvalidTierLadderError(
                    label, f"overlap between {next_min} and {tier.max_quantity}"
                )

    return ladder


def tier_breakdown(
    quantity: Decimal,
    tiers: Sequence[PricingTier],
    service_type: Optional[ServiceType] = None,
) -> List[TierBand]:
    """
    Split a quantity across the ladder.

    Amounts are full precision; callers round once on the total.
    """
    label = service_type if service_type is not None else "unknown"
    if quantity < ZERO:
        raise InvalidTierLadderError(label, f"negative quantity {quantity}")

    ladder = validate_tier_ladder(tiers, service_type)
    bands: List[TierBand] = []

    for tier in ladder:
        upper = quantity if tier.max_quantity is None else min(quantity, tier.max_quantity)
        band_quantity = max(upper - tier.min_quantity, ZERO)
        if band_quantity > ZERO:
            bands.append(TierBand(tier=tier, quantity=band_quantity, amount=band_quantity * tier.rate_per_unit))
        if tier.max_quantity is None or quantity <= tier.max_quantity:
            return bands

    # Walked off the end of a ladder whose last tier is bounded
    raise UnboundedQuantityError(label, quantity)


def charge_for_quantity(
    quantity: Decimal,
    tiers: Sequence[PricingTier],
    service_type: Optional[ServiceType] = None,
    places: int = 2,
) -> Decimal:
    """
    Charge for a quantity under a tiered ladder, rounded half-up once.

    Raises:
        InvalidTierLadderError: malformed ladder or negative quantity
        UnboundedQuantityError: quantity beyond the last bounded tier
    """
    bands = tier_breakdown(quantity, tiers, service_type)
    logger.debug(f"Tiered charge for {service_type}: {quantity} units over {len(bands)} band(s)")
    return bands_total(bands, places)


def bands_total(bands: Sequence[TierBand], places: int = 2) -> Decimal:
    """Sum band amounts at full precision, then round half-up once."""
    return quantize_money(sum((band.amount for band in bands), ZERO), places)
