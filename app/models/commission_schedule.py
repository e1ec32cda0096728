"""
Commission schedule models.

A schedule is never edited in place: every admin save appends a new
version with a complete set of entries. The highest version id is the
current schedule.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base
from app.models.types import CommissionValueType


class CommissionScheduleVersion(Base):
    """One saved revision of the commission schedule."""

    __tablename__ = "commission_schedule_versions"

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    entries: Mapped[list["CommissionScheduleEntry"]] = relationship(
        "CommissionScheduleEntry",
        back_populates="version",
        lazy="raise",
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<CommissionScheduleVersion(id={self.id}, created_by={self.created_by})>"


class CommissionScheduleEntry(Base):
    """
    Commission rule for one referral depth within a schedule version.

    Attributes:
        id: Primary key
        version_id: Owning schedule version
        level: Referral depth (1-10)
        commission_type: CommissionType value
        commission_value: Percent (0-100) or flat amount in ledger units
        description: Optional admin note
        is_active: Inactive levels are skipped, deeper levels still pay
    """

    __tablename__ = "commission_schedule_entries"
    __table_args__ = (
        UniqueConstraint(
            "version_id", "level", name="uq_commission_schedule_version_level"
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    version_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("commission_schedule_versions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    commission_type: Mapped[str] = mapped_column(String(20), nullable=False)
    commission_value: Mapped[Decimal] = mapped_column(
        CommissionValueType, nullable=False
    )
    description: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    version: Mapped["CommissionScheduleVersion"] = relationship(
        "CommissionScheduleVersion", back_populates="entries"
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CommissionScheduleEntry(version={self.version_id}, "
            f"level={self.level}, type={self.commission_type}, "
            f"value={self.commission_value}, active={self.is_active})>"
        )
