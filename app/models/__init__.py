"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from app.models.account import Account
from app.models.base import Base

# Commission schedule
from app.models.commission_schedule import (
    CommissionScheduleEntry,
    CommissionScheduleVersion,
)
from app.models.enums import (
    CommissionType,
    EarningSourceType,
    LedgerKind,
    TransactionStatus,
    TransactionType,
)
from app.models.processed_event import ProcessedEvent
from app.models.referral_earning import ReferralEarning
from app.models.transaction import Transaction

__all__ = [
    # Base
    "Base",
    # Enums
    "CommissionType",
    "EarningSourceType",
    "LedgerKind",
    "TransactionStatus",
    "TransactionType",
    # Core Models
    "Account",
    "Transaction",
    "ReferralEarning",
    "ProcessedEvent",
    # Commission schedule
    "CommissionScheduleVersion",
    "CommissionScheduleEntry",
]
