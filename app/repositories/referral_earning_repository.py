"""
Referral earning repository.

Data access layer for ReferralEarning model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.referral_earning import ReferralEarning
from app.repositories.base import BaseRepository


class ReferralEarningRepository(BaseRepository[ReferralEarning]):
    """Referral earning repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral earning repository."""
        super().__init__(ReferralEarning, session)

    async def exists_for_level(self, event_id: str, level: int) -> bool:
        """
        Check whether a level of an event was already paid.

        Args:
            event_id: Originating event id
            level: Referral level

        Returns:
            True if an earning row exists for (event_id, level)
        """
        return await self.exists(event_id=event_id, level=level)

    async def get_by_event(self, event_id: str) -> list[ReferralEarning]:
        """
        Get all earnings of one event ordered by level.

        Args:
            event_id: Originating event id

        Returns:
            List of earnings
        """
        stmt = (
            select(ReferralEarning)
            .where(ReferralEarning.event_id == event_id)
            .order_by(ReferralEarning.level)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_beneficiary_stats(
        self, beneficiary_account_id: int
    ) -> dict[int, dict[str, int | Decimal]]:
        """
        Get earnings received by an account grouped by level in a single query.

        Args:
            beneficiary_account_id: Referrer account ID

        Returns:
            Dict mapping level to stats {
                1: {"count": 5, "total_amount": Decimal("50")},
                ...
            } (only levels with earnings are present)
        """
        stmt = (
            select(
                ReferralEarning.level,
                func.count(ReferralEarning.id).label("count"),
                func.coalesce(
                    func.sum(ReferralEarning.commission_amount),
                    Decimal("0"),
                ).label("total_amount"),
            )
            .where(
                ReferralEarning.beneficiary_account_id == beneficiary_account_id
            )
            .group_by(ReferralEarning.level)
            .order_by(ReferralEarning.level)
        )

        result = await self.session.execute(stmt)

        return {
            row.level: {
                "count": row.count,
                "total_amount": Decimal(str(row.total_amount)),
            }
            for row in result.all()
        }
