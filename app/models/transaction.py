"""
Transaction model.

Immutable ledger entry, one per credit or debit.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.enums import TransactionStatus
from app.models.types import MoneyType

if TYPE_CHECKING:
    from app.models.account import Account


class Transaction(Base):
    """
    Transaction entity.

    Attributes:
        id: Primary key
        account_id: Account whose balance changed
        type: TransactionType value
        status: TransactionStatus value
        points: Signed points delta
        cash_amount: Signed cash delta
        description: Human readable description
        reference: Idempotency correlation key (not unique)
        meta: Free-form metadata (column "metadata")
        created_at: Creation timestamp
    """

    __tablename__ = "transactions"
    __table_args__ = (
        Index("idx_transactions_account_created", "account_id", "created_at"),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=TransactionStatus.COMPLETED.value,
        nullable=False,
    )

    # Signed deltas
    points: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    cash_amount: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference: Mapped[str | None] = mapped_column(
        String(255), nullable=True, index=True
    )
    meta: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    account: Mapped["Account"] = relationship(
        "Account", back_populates="transactions"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Transaction(id={self.id}, account_id={self.account_id}, "
            f"type={self.type}, points={self.points}, "
            f"cash={self.cash_amount}, reference={self.reference})>"
        )
