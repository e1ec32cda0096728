"""
ProcessedEvent model.

Claims an at-most-once event id (an originating earning, an admin
adjustment, a reversal) in the same unit of work as its ledger posting.
"""

from datetime import UTC, datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class ProcessedEvent(Base):
    """
    ProcessedEvent entity.

    Attributes:
        id: Primary key
        event_id: Unique event id
        account_id: Account the event posted to
        transaction_id: Ledger transaction written for the event
        created_at: Creation timestamp
    """

    __tablename__ = "processed_events"

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    event_id: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )

    account_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
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

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<ProcessedEvent(id={self.id}, event_id={self.event_id}, "
            f"transaction_id={self.transaction_id})>"
        )
