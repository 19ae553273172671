"""
Error Handling Module for EaseMail Billing

This module provides the engine's exception hierarchy:
- Standardized error codes
- A base application exception with a serializable payload
- Non-retryable configuration errors raised by the rating engine
- Validation helpers for monetary inputs
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    """Standardized error codes for the billing engine"""

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_AMOUNT = "INVALID_AMOUNT"

    # Resource Errors
    PLAN_NOT_FOUND = "PLAN_NOT_FOUND"

    # Configuration Errors (non-retryable)
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    MISSING_RATE = "MISSING_RATE"
    INVALID_TIER_LADDER = "INVALID_TIER_LADDER"
    UNBOUNDED_QUANTITY = "UNBOUNDED_QUANTITY"
    SEAT_COUNT_OUT_OF_RANGE = "SEAT_COUNT_OUT_OF_RANGE"
    INVALID_SETTING = "INVALID_SETTING"
    OVERRIDE_MISMATCH = "OVERRIDE_MISMATCH"


class AppException(Exception):
    """Base exception for all application exceptions"""

    retryable: bool = False

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self.field = field
        self.original_error = original_error
        self.timestamp = datetime.utcnow()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging and job reports"""
        result = {
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "timestamp": self.timestamp.isoformat() + "Z",
        }
        if self.field:
            result["field"] = self.field
        if self.details:
            result["details"] = self.details
        return result


# ============================================================================
# Validation Exceptions
# ============================================================================

class ValidationException(AppException):
    """Base validation exception"""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.VALIDATION_ERROR,
    ):
        super().__init__(
            code=code,
            message=message,
            details=details,
            field=field,
        )


class InvalidAmountException(ValidationException):
    """Invalid monetary amount"""

    def __init__(self, amount: Any, field: str = "amount", message: Optional[str] = None):
        super().__init__(
            message=message or f"Invalid amount: {amount}. Amount must be a non-negative decimal.",
            field=field,
            code=ErrorCode.INVALID_AMOUNT,
            details={"provided_amount": str(amount)},
        )


# ============================================================================
# Configuration Exceptions
# ============================================================================

class ConfigurationError(AppException):
    """
    Bad pricing configuration data.

    Never retryable: the billing job must surface these to an operator
    instead of retrying the organization.
    """

    retryable = False

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.CONFIGURATION_ERROR,
        details: Optional[Dict[str, Any]] = None,
        field: Optional[str] = None,
    ):
        super().__init__(
            code=code,
            message=message,
            details=details,
            field=field,
        )


class MissingRateError(ConfigurationError):
    """Neither an override nor a configured base rate exists for a category"""

    def __init__(self, category: Any):
        self.category = getattr(category, "value", category)
        super().__init__(
            message=f"No rate configured for category '{self.category}'",
            code=ErrorCode.MISSING_RATE,
            details={"category": self.category},
        )


class InvalidTierLadderError(ConfigurationError):
    """Tier ladder does not partition [0, infinity) or the quantity is invalid"""

    def __init__(self, service_type: Any, reason: str):
        self.service_type = getattr(service_type, "value", service_type)
        self.reason = reason
        super().__init__(
            message=f"Invalid tier ladder for '{self.service_type}': {reason}",
            code=ErrorCode.INVALID_TIER_LADDER,
            details={"service_type": self.service_type, "reason": reason},
        )


class UnboundedQuantityError(ConfigurationError):
    """Quantity exceeds every finite tier and no tier is open-ended"""

    def __init__(self, service_type: Any, quantity: Optional[Decimal] = None):
        self.service_type = getattr(service_type, "value", service_type)
        details = {"service_type": self.service_type}
        if quantity is not None:
            details["quantity"] = str(quantity)
        super().__init__(
            message=f"Quantity exceeds the last tier for '{self.service_type}' and no tier is open-ended",
            code=ErrorCode.UNBOUNDED_QUANTITY,
            details=details,
        )


class SeatCountOutOfRangeError(ConfigurationError):
    """Seat count falls outside the plan's allowed seat range"""

    def __init__(self, actual: int, minimum: int, maximum: Optional[int]):
        self.actual = actual
        self.minimum = minimum
        self.maximum = maximum
        upper = maximum if maximum is not None else "unlimited"
        super().__init__(
            message=f"Seat count {actual} outside plan range [{minimum}, {upper}]",
            code=ErrorCode.SEAT_COUNT_OUT_OF_RANGE,
            details={"actual": actual, "min": minimum, "max": maximum},
        )


class InvalidSettingError(ConfigurationError):
    """A billing setting value does not parse as its declared data type"""

    def __init__(self, key: str, value: Any, data_type: str):
        super().__init__(
            message=f"Billing setting '{key}' has invalid {data_type} value: {value!r}",
            code=ErrorCode.INVALID_SETTING,
            details={"setting_key": key, "setting_value": str(value), "data_type": data_type},
            field=key,
        )


class OverrideMismatchError(ConfigurationError):
    """Snapshot carries a pricing override that belongs to another organization"""

    def __init__(self, organization_id: Any, override_organization_id: Any):
        super().__init__(
            message=(
                f"Pricing override for org {override_organization_id} "
                f"cannot be applied to org {organization_id}"
            ),
            code=ErrorCode.OVERRIDE_MISMATCH,
            details={
                "organization_id": str(organization_id),
                "override_organization_id": str(override_organization_id),
            },
        )


class PlanNotFoundError(ConfigurationError):
    """Pricing plan referenced by an organization does not exist"""

    def __init__(self, plan: Any):
        super().__init__(
            message=f"Pricing plan '{plan}' not found",
            code=ErrorCode.PLAN_NOT_FOUND,
            details={"plan": str(plan)},
        )


# ============================================================================
# Validation Helpers
# ============================================================================

def validate_amount(amount: Any, field: str = "amount", allow_zero: bool = True) -> Decimal:
    """Validate and coerce a monetary amount to Decimal (never float)"""
    if isinstance(amount, float):
        # Go through str so 0.1 stays 0.1
        amount = str(amount)
    try:
        value = Decimal(amount)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmountException(amount, field)

    if not value.is_finite():
        raise InvalidAmountException(amount, field)
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidAmountException(amount, field)
    return value
