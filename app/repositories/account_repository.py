"""
Account repository.

Data access layer for Account model, including the single-statement
balance increments the ledger relies on.
"""

from decimal import Decimal

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.account import Account
from app.repositories.base import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Account repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize account repository."""
        super().__init__(Account, session)

    async def get_by_referral_code(self, referral_code: str) -> Account | None:
        """
        Get account by referral code.

        Args:
            referral_code: Referral code

        Returns:
            Account or None
        """
        return await self.get_by(referral_code=referral_code)

    async def increment_points(
        self, account_id: int, points: int, earnings: Decimal
    ) -> bool:
        """
        Atomically add points (and lifetime earnings).

        Args:
            account_id: Account ID
            points: Points to add (positive)
            earnings: USD value to add to total_earnings (may be 0)

        Returns:
            True if an active account row was updated
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.is_active.is_(True))
            .values(
                points_balance=Account.points_balance + points,
                total_earnings=Account.total_earnings + earnings,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def decrement_points(self, account_id: int, points: int) -> bool:
        """
        Atomically subtract points if the balance covers them.

        Args:
            account_id: Account ID
            points: Points to subtract (positive)

        Returns:
            True if the account row was updated, False if missing or short
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.points_balance >= points)
            .values(
                points_balance=Account.points_balance - points,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def increment_cash(
        self, account_id: int, amount: Decimal, earnings: Decimal
    ) -> bool:
        """
        Atomically add cash (and lifetime earnings).

        Args:
            account_id: Account ID
            amount: Cash to add (positive)
            earnings: USD value to add to total_earnings (may be 0)

        Returns:
            True if an active account row was updated
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.is_active.is_(True))
            .values(
                cash_balance=Account.cash_balance + amount,
                total_earnings=Account.total_earnings + earnings,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def decrement_cash(self, account_id: int, amount: Decimal) -> bool:
        """
        Atomically subtract cash if the balance covers it.

        Args:
            account_id: Account ID
            amount: Cash to subtract (positive)

        Returns:
            True if the account row was updated, False if missing or short
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id, Account.cash_balance >= amount)
            .values(
                cash_balance=Account.cash_balance - amount,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount > 0

    async def get_direct_referrals(self, account_id: int) -> list[Account]:
        """
        Get accounts directly referred by an account.

        Args:
            account_id: Referrer account ID

        Returns:
            List of level 1 referrals
        """
        return await self.find_by(referred_by_id=account_id)
