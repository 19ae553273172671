"""
EaseMail Billing - Services Package

Rating engine services and the read-only configuration source.
"""

from billing_engine.services.tier_resolver import (
    TierBand,
    charge_for_quantity,
    tier_breakdown,
    validate_tier_ladder,
)
from billing_engine.services.override_resolver import has_override, override_rate, resolve_rate
from billing_engine.services.usage_rater import RatingSource, UsageCharge, rate
from billing_engine.services.lifecycle_policy import LifecycleDecision, evaluate_lifecycle
from billing_engine.services.invoice_calculator import compute_invoice
from billing_engine.services.settings_loader import (
    BillingSettingRecord,
    load_billing_settings,
    parse_setting_value,
)
from billing_engine.services.pricing_snapshot_service import PricingSnapshotService, SharedPricing
from billing_engine.services.billing_run_service import (
    BillingRunFailure,
    BillingRunResult,
    BillingRunService,
    run_billing_period,
)
