"""
EaseMail Billing - Lifecycle Policy

Decides which billing state an account is in at a point in time:

    Trial -> Active -> Grace -> Suspended, plus terminal Cancelled

Precedence is cancelled, trial, grace/suspended, active. The policy
only reports state; blocking a suspended account belongs to the caller.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from billing_engine.schemas.enums import LifecycleState
from billing_engine.schemas.pricing import BillingSettings
from billing_engine.schemas.usage import AccountTimeline
from billing_engine.utils.error_handling import InvalidSettingError


@dataclass(frozen=True)
class LifecycleDecision:
    """Result of evaluating the lifecycle for one billing run."""
    state: LifecycleState
    trial_ends_at: Optional[datetime] = None
    grace_ends_at: Optional[datetime] = None

    @property
    def is_billable(self) -> bool:
        """Whether charges are computed at all."""
        return self.state not in (LifecycleState.TRIAL, LifecycleState.CANCELLED)

    @property
    def in_grace_period(self) -> bool:
        return self.state == LifecycleState.GRACE

    @property
    def suspended(self) -> bool:
        return self.state == LifecycleState.SUSPENDED


def _window_end(start: datetime, days: int, setting_key: str) -> datetime:
    """End of a trial or grace window; a window past datetime.max is bad configuration."""
    try:
        return start + timedelta(days=days)
    except OverflowError:
        raise InvalidSettingError(setting_key, days, "number")


def evaluate_lifecycle(
    settings: BillingSettings,
    account: Optional[AccountTimeline],
    as_of: datetime,
) -> LifecycleDecision:
    """Evaluate the lifecycle state at `as_of`. No account timeline means active."""
    if account is None:
        return LifecycleDecision(state=LifecycleState.ACTIVE)

    if account.cancelled_at is not None and account.cancelled_at <= as_of:
        return LifecycleDecision(state=LifecycleState.CANCELLED)

    trial_ends_at = _window_end(account.created_at, settings.trial_period_days, "trial_period_days")
    if as_of < trial_ends_at:
        return LifecycleDecision(state=LifecycleState.TRIAL, trial_ends_at=trial_ends_at)

    if account.last_payment_failed_at is not None and account.last_payment_failed_at <= as_of:
        grace_ends_at = _window_end(
            account.last_payment_failed_at, settings.grace_period_days, "grace_period_days"
        )
        if as_of < grace_ends_at:
            return LifecycleDecision(
                state=LifecycleState.GRACE,
                trial_ends_at=trial_ends_at,
                grace_ends_at=grace_ends_at,
            )
        if settings.auto_suspend_on_failure:
            return LifecycleDecision(
                state=LifecycleState.SUSPENDED,
                trial_ends_at=trial_ends_at,
                grace_ends_at=grace_ends_at,
            )

    return LifecycleDecision(state=LifecycleState.ACTIVE, trial_ends_at=trial_ends_at)
