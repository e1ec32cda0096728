"""
Account model.

Represents a user's balance-holding entity (points + cash).
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.types import MoneyType

if TYPE_CHECKING:
    from app.models.transaction import Transaction


class Account(Base):
    """
    Account entity.

    Balances are written only by AccountLedger, always through
    single-statement conditional increments.

    Attributes:
        id: Primary key
        username: Display name (optional)
        referral_code: Public invite code
        points_balance: Non-negative integer points balance
        cash_balance: Non-negative cash balance
        total_earnings: Lifetime earnings in USD (informational, never decreases)
        referred_by_id: Direct referrer (weak reference, SET NULL on delete)
        is_active: Whether the account is active
        created_at: Creation timestamp
        updated_at: Last update timestamp
    """

    __tablename__ = "accounts"
    __table_args__ = (
        CheckConstraint(
            "points_balance >= 0", name="check_account_points_non_negative"
        ),
        CheckConstraint(
            "cash_balance >= 0", name="check_account_cash_non_negative"
        ),
        CheckConstraint(
            "total_earnings >= 0",
            name="check_account_total_earnings_non_negative",
        ),
        CheckConstraint(
            "referred_by_id IS NULL OR referred_by_id != id",
            name="check_account_not_self_referred",
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Identity
    username: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )
    referral_code: Mapped[str | None] = mapped_column(
        String(20), nullable=True, unique=True, index=True
    )

    # Balances
    points_balance: Mapped[int] = mapped_column(
        BigInteger, default=0, nullable=False
    )
    cash_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Referral
    referred_by_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Status
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction",
        back_populates="account",
        lazy="raise",
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Account(id={self.id}, points={self.points_balance}, "
            f"cash={self.cash_balance}, referred_by={self.referred_by_id})>"
        )
