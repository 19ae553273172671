"""
EaseMail Billing - Billing Settings Loader

The admin console keeps global billing knobs in a flat key/value table
(setting_key, setting_value, data_type). This module parses those rows
once into the typed, immutable BillingSettings struct so no rating code
looks a setting up by string key.
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

from pydantic import ValidationError

from billing_engine.schemas.enums import SettingDataType
from billing_engine.schemas.pricing import BillingSettings
from billing_engine.utils.error_handling import InvalidSettingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BillingSettingRecord:
    """One row of the billing_settings store."""
    setting_key: str
    setting_value: str
    data_type: str = SettingDataType.STRING.value
    description: Optional[str] = None


# setting_key -> (BillingSettings field, expected data type)
SETTING_FIELDS: Dict[str, tuple] = {
    "trial_period_days": ("trial_period_days", SettingDataType.NUMBER),
    "grace_period_days": ("grace_period_days", SettingDataType.NUMBER),
    "annual_discount_percent": ("annual_discount_percent", SettingDataType.NUMBER),
    "auto_suspend_on_failure": ("auto_suspend_on_failure", SettingDataType.BOOLEAN),
    "allow_overage_charges": ("allow_overage_charges", SettingDataType.BOOLEAN),
    "minimum_charge": ("minimum_charge", SettingDataType.NUMBER),
    "default_sms_rate": ("default_sms_rate", SettingDataType.NUMBER),
    "ai_overage_rate": ("ai_overage_rate", SettingDataType.NUMBER),
    "ai_free_requests_monthly": ("ai_free_requests_monthly", SettingDataType.NUMBER),
    "storage_overage_rate": ("storage_overage_rate", SettingDataType.NUMBER),
    "storage_included_gb": ("storage_included_gb", SettingDataType.NUMBER),
}

# Whole-day settings must not carry a fractional part
INTEGER_FIELDS = frozenset({"trial_period_days", "grace_period_days"})

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})


def parse_setting_value(key: str, value: Any, data_type: str) -> Any:
    """
    Parse a raw setting value according to its declared data type.

    Numbers become Decimal (never float).

    Raises:
        InvalidSettingError: unknown data type or unparseable value
    """
    try:
        kind = SettingDataType(str(data_type).lower())
    except ValueError:
        raise InvalidSettingError(key, value, str(data_type))

    raw = "" if value is None else str(value).strip()

    if kind == SettingDataType.STRING:
        return raw

    if kind == SettingDataType.NUMBER:
        try:
            number = Decimal(raw)
        except InvalidOperation:
            raise InvalidSettingError(key, value, kind.value)
        if not number.is_finite():
            raise InvalidSettingError(key, value, kind.value)
        return number

    if kind == SettingDataType.BOOLEAN:
        lowered = raw.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise InvalidSettingError(key, value, kind.value)

    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        raise InvalidSettingError(key, value, kind.value)


def load_billing_settings(records: Iterable[Any]) -> BillingSettings:
    """
    Build BillingSettings from setting rows.

    Accepts BillingSettingRecord values or ORM rows with the same
    attribute names. Missing keys keep their defaults; unknown keys are
    ignored.

    Raises:
        InvalidSettingError: a known key has a value of the wrong type
    """
    values: Dict[str, Any] = {}

    for record in records:
        key = record.setting_key
        if key not in SETTING_FIELDS:
            logger.debug(f"Ignoring billing setting '{key}'")
            continue

        parsed = parse_setting_value(key, record.setting_value, record.data_type)

        field_name, expected = SETTING_FIELDS[key]
        if SettingDataType(str(record.data_type).lower()) != expected:
            raise InvalidSettingError(key, record.setting_value, str(record.data_type))

        if field_name in INTEGER_FIELDS:
            if parsed != parsed.to_integral_value():
                raise InvalidSettingError(key, record.setting_value, expected.value)
            parsed = int(parsed)

        values[field_name] = parsed

    try:
        return BillingSettings(**values)
    except ValidationError as e:
        # Range checks: negative days, discount above 100, ...
        errors = e.errors()
        key = str(errors[0]["loc"][0]) if errors and errors[0].get("loc") else "billing_settings"
        raise InvalidSettingError(key, values.get(key), "number")
