"""
EaseMail Billing - Settings Loader Tests

Parsing the flat billing_settings store into typed BillingSettings.
"""

import pytest
from decimal import Decimal

from pydantic import ValidationError

from billing_engine.schemas import BillingSettings
from billing_engine.services.settings_loader import (
    BillingSettingRecord,
    load_billing_settings,
    parse_setting_value,
)
from billing_engine.utils.error_handling import ErrorCode, InvalidSettingError


def record(key: str, value: str, data_type: str = "number") -> BillingSettingRecord:
    return BillingSettingRecord(setting_key=key, setting_value=value, data_type=data_type)


class TestParseSettingValue:
    """Raw values are parsed according to their declared type."""

    def test_number_is_decimal(self):
        value = parse_setting_value("default_sms_rate", "0.0075", "number")

        assert value == Decimal("0.0075")
        assert isinstance(value, Decimal)

    @pytest.mark.parametrize("raw", ["true", "TRUE", "1", "yes", "on"])
    def test_truthy_booleans(self, raw):
        assert parse_setting_value("allow_overage_charges", raw, "boolean") is True

    @pytest.mark.parametrize("raw", ["false", "0", "no", "Off"])
    def test_falsy_booleans(self, raw):
        assert parse_setting_value("allow_overage_charges", raw, "boolean") is False

    def test_json(self):
        assert parse_setting_value("notify", '{"email": true}', "json") == {"email": True}

    def test_string_is_stripped(self):
        assert parse_setting_value("invoice_footer", "  Thanks  ", "string") == "Thanks"

    @pytest.mark.parametrize(
        "value,data_type",
        [
            ("abc", "number"),
            ("NaN", "number"),
            ("maybe", "boolean"),
            ("{not json", "json"),
            ("1", "float"),
        ],
    )
    def test_invalid_values(self, value, data_type):
        with pytest.raises(InvalidSettingError) as exc_info:
            parse_setting_value("some_key", value, data_type)

        assert exc_info.value.code == ErrorCode.INVALID_SETTING
        assert exc_info.value.field == "some_key"


class TestLoadBillingSettings:
    """Rows become one immutable settings value."""

    def test_defaults_when_store_is_empty(self):
        settings = load_billing_settings([])

        assert settings == BillingSettings()
        assert settings.trial_period_days == 30
        assert settings.grace_period_days == 7
        assert settings.annual_discount_percent == Decimal("20")
        assert settings.auto_suspend_on_failure is True
        assert settings.allow_overage_charges is True
        assert settings.minimum_charge == Decimal("0.50")

    def test_rows_override_defaults(self):
        settings = load_billing_settings([
            record("trial_period_days", "14"),
            record("annual_discount_percent", "15.5"),
            record("auto_suspend_on_failure", "false", "boolean"),
            record("default_sms_rate", "0.0075"),
            record("storage_included_gb", "5"),
        ])

        assert settings.trial_period_days == 14
        assert settings.annual_discount_percent == Decimal("15.5")
        assert settings.auto_suspend_on_failure is False
        assert settings.default_sms_rate == Decimal("0.0075")
        assert settings.storage_included_gb == Decimal("5")

    def test_unknown_keys_are_ignored(self):
        settings = load_billing_settings([
            record("support_email", "billing@example.com", "string"),
            record("legacy_flag", "???", "boolean"),
        ])
        assert settings == BillingSettings()

    def test_wrong_declared_type_for_known_key(self):
        with pytest.raises(InvalidSettingError):
            load_billing_settings([record("trial_period_days", "14", "string")])

    def test_fractional_days_rejected(self):
        with pytest.raises(InvalidSettingError):
            load_billing_settings([record("grace_period_days", "7.5")])

    def test_whole_decimal_days_accepted(self):
        assert load_billing_settings([record("grace_period_days", "7.0")]).grace_period_days == 7

    def test_out_of_range_discount(self):
        with pytest.raises(InvalidSettingError) as exc_info:
            load_billing_settings([record("annual_discount_percent", "120")])

        assert exc_info.value.field == "annual_discount_percent"

    def test_negative_days(self):
        with pytest.raises(InvalidSettingError):
            load_billing_settings([record("trial_period_days", "-1")])

    def test_days_beyond_ten_years(self):
        with pytest.raises(InvalidSettingError) as exc_info:
            load_billing_settings([record("trial_period_days", "3651")])

        assert exc_info.value.field == "trial_period_days"

    def test_ten_year_grace_accepted(self):
        assert load_billing_settings([record("grace_period_days", "3650")]).grace_period_days == 3650

    def test_minimum_charge(self):
        settings = load_billing_settings([record("minimum_charge", "1.25")])

        assert settings.minimum_charge == Decimal("1.25")
        assert isinstance(settings.minimum_charge, Decimal)

    def test_negative_minimum_charge(self):
        with pytest.raises(InvalidSettingError):
            load_billing_settings([record("minimum_charge", "-1")])

    def test_settings_are_immutable(self):
        settings = load_billing_settings([])
        with pytest.raises(ValidationError):
            settings.trial_period_days = 1
