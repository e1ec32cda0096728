"""
Money rounding helpers.

Commissions are rounded half-down to the ledger's minimum unit so that
rounding never manufactures value.
"""

from decimal import ROUND_HALF_DOWN, Decimal

from app.models.enums import LedgerKind


def cash_quantum(decimal_places: int) -> Decimal:
    """Smallest cash unit, e.g. Decimal("0.01") for 2 places."""
    return Decimal(1).scaleb(-decimal_places)


def round_to_ledger_unit(
    amount: Decimal, ledger_kind: LedgerKind, cash_decimal_places: int
) -> Decimal:
    """
    Round an amount to the minimum unit of a ledger.

    Args:
        amount: Raw amount
        ledger_kind: POINTS rounds to integers, CASH to cash_decimal_places
        cash_decimal_places: Cash precision

    Returns:
        Rounded amount (ROUND_HALF_DOWN)
    """
    if ledger_kind == LedgerKind.POINTS:
        return amount.quantize(Decimal("1"), rounding=ROUND_HALF_DOWN)
    return amount.quantize(
        cash_quantum(cash_decimal_places), rounding=ROUND_HALF_DOWN
    )


def to_decimal(value: int | float | str | Decimal) -> Decimal:
    """Convert a number to Decimal without binary float artifacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
