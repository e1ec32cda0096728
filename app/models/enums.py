"""
Model enumerations.

String-valued enums stored as plain VARCHAR columns so that the same schema
works on PostgreSQL and SQLite.
"""

import enum


class LedgerKind(str, enum.Enum):
    """Which balance a ledger operation touches."""

    POINTS = "points"
    CASH = "cash"


class TransactionType(str, enum.Enum):
    """Kind of balance change recorded in the transaction log."""

    EARNING = "EARNING"
    REFERRAL = "REFERRAL"
    BONUS = "BONUS"
    PENALTY = "PENALTY"
    WITHDRAWAL = "WITHDRAWAL"
    REFUND = "REFUND"


class TransactionStatus(str, enum.Enum):
    """Transaction lifecycle status."""

    COMPLETED = "COMPLETED"
    PENDING = "PENDING"
    FAILED = "FAILED"


class CommissionType(str, enum.Enum):
    """How a schedule entry derives the commission amount."""

    PERCENTAGE = "PERCENTAGE"
    FLAT_RATE = "FLAT_RATE"


class EarningSourceType(str, enum.Enum):
    """Originating action of a referral commission."""

    TASK = "TASK"
    QUIZ = "QUIZ"
    CHECK_IN = "CHECK_IN"
    REFUND = "REFUND"
    ADJUSTMENT = "ADJUSTMENT"
    OTHER = "OTHER"


# Credits of these types count towards Account.total_earnings
EARNING_TRANSACTION_TYPES = frozenset(
    {TransactionType.EARNING, TransactionType.REFERRAL}
)
