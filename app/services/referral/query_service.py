"""
Referral query service.

Read-only views for the referral dashboard: earnings received per level
and the size of each level of an account's downline.
"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from app.repositories.referral_earning_repository import (
    ReferralEarningRepository,
)
from app.services.referral.config import REFERRAL_MAX_DEPTH
from app.services.referral.referral_graph import ReferralGraph


class ReferralQueryService:
    """Manages referral query operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize query service."""
        self.session = session
        self.earning_repo = ReferralEarningRepository(session)
        self.graph = ReferralGraph(session)

    async def get_earnings_summary(
        self, account_id: int, max_depth: int = REFERRAL_MAX_DEPTH
    ) -> dict:
        """
        Get referral earnings and downline size per level.

        Args:
            account_id: Referrer account ID
            max_depth: Deepest level to report

        Returns:
            Dict with levels, total_earned, total_referrals, e.g. {
                "levels": {
                    1: {"referrals": 3, "earnings_count": 5,
                        "total_earned": Decimal("50")},
                    ...
                },
                "total_earned": Decimal("50"),
                "total_referrals": 3,
            }
        """
        stats = await self.earning_repo.get_beneficiary_stats(account_id)
        counts = await self.graph.level_counts(account_id, max_depth)

        levels = {}
        for level in range(1, max_depth + 1):
            level_stats = stats.get(level, {})
            levels[level] = {
                "referrals": counts.get(level, 0),
                "earnings_count": level_stats.get("count", 0),
                "total_earned": level_stats.get("total_amount", Decimal("0")),
            }

        return {
            "levels": levels,
            "total_earned": sum(
                (data["total_earned"] for data in levels.values()),
                Decimal("0"),
            ),
            "total_referrals": sum(data["referrals"] for data in levels.values()),
        }
