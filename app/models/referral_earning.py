"""
ReferralEarning model.

Audit record of one commission paid to one ancestor for one event.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.types import MoneyType

if TYPE_CHECKING:
    from app.models.transaction import Transaction


class ReferralEarning(Base):
    """
    ReferralEarning entity.

    Produced only by CommissionDistributor. The (event_id, level) pair
    is unique: it is the idempotency key of a fan-out.

    Attributes:
        id: Primary key
        event_id: Originating earning event id
        source_account_id: Account whose earning triggered the commission
        beneficiary_account_id: Ancestor credited
        level: Referral depth (1-10)
        source_type: EarningSourceType value
        base_amount: Amount the commission was derived from
        commission_amount: Amount credited
        transaction_id: Ledger transaction that paid the commission
        created_at: Creation timestamp
    """

    __tablename__ = "referral_earnings"
    __table_args__ = (
        UniqueConstraint(
            "event_id", "level", name="uq_referral_earnings_event_level"
        ),
        Index(
            "idx_referral_earnings_beneficiary_level",
            "beneficiary_account_id",
            "level",
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    event_id: Mapped[str] = mapped_column(
        String(255), nullable=False, index=True
    )

    source_account_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    beneficiary_account_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("accounts.id", ondelete="SET NULL"),
        nullable=True,
    )

    level: Mapped[int] = mapped_column(Integer, nullable=False)
    source_type: Mapped[str] = mapped_column(String(20), nullable=False)

    base_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    commission_amount: Mapped[Decimal] = mapped_column(
        MoneyType, nullable=False
    )

    transaction_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("transactions.id", ondelete="RESTRICT"),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    transaction: Mapped["Transaction"] = relationship(
        "Transaction", lazy="raise"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"ReferralEarning(id={self.id}, "
            f"event_id={self.event_id}, "
            f"level={self.level}, "
            f"beneficiary={self.beneficiary_account_id}, "
            f"amount={self.commission_amount})"
        )
