"""Commission schedule entry validators."""

from decimal import Decimal, InvalidOperation

from app.config.business_constants import (
    MAX_COMMISSION_PERCENT,
    MAX_REFERRAL_LEVEL,
    MIN_COMMISSION_PERCENT,
    MIN_REFERRAL_LEVEL,
)
from app.models.enums import CommissionType


def validate_commission_entry(
    level: object,
    commission_type: object,
    commission_value: object,
) -> tuple[bool, str | None]:
    """
    Validate one commission schedule entry.

    Args:
        level: Referral level (1-10)
        commission_type: PERCENTAGE or FLAT_RATE
        commission_value: Percent (0-100) or non-negative flat amount

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        >>> validate_commission_entry(1, "PERCENTAGE", Decimal("10"))
        (True, None)
        >>> validate_commission_entry(11, "PERCENTAGE", Decimal("10"))
        (False, 'Level must be between 1 and 10')
    """
    if isinstance(level, bool) or not isinstance(level, int):
        return False, "Level must be an integer"

    if not MIN_REFERRAL_LEVEL <= level <= MAX_REFERRAL_LEVEL:
        return (
            False,
            f"Level must be between {MIN_REFERRAL_LEVEL} and {MAX_REFERRAL_LEVEL}",
        )

    try:
        kind = CommissionType(commission_type)
    except ValueError:
        return False, f"Unknown commission type: {commission_type}"

    try:
        value = Decimal(str(commission_value))
    except InvalidOperation:
        return False, "Commission value is not a number"

    if not value.is_finite():
        return False, "Commission value must be a finite number"

    if value < 0:
        return False, "Commission value must be >= 0"

    if kind == CommissionType.PERCENTAGE and not (
        MIN_COMMISSION_PERCENT <= value <= MAX_COMMISSION_PERCENT
    ):
        return False, "Commission rate must be between 0 and 100"

    return True, None
