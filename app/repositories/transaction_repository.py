"""
Transaction repository.

Data access layer for the append-only Transaction log.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.transaction import Transaction
from app.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Transaction repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize transaction repository."""
        super().__init__(Transaction, session)

    async def has_reference(self, reference: str) -> bool:
        """
        Check whether any transaction carries a reference.

        Args:
            reference: Idempotency reference

        Returns:
            True if at least one transaction uses it
        """
        return await self.exists(reference=reference)

    async def get_by_reference(self, reference: str) -> list[Transaction]:
        """
        Get all transactions with a reference.

        Args:
            reference: Idempotency reference

        Returns:
            List of transactions ordered by id
        """
        return await self.find_by(reference=reference)

    async def get_account_history(
        self, account_id: int, page: int = 1, per_page: int = 20
    ) -> tuple[list[Transaction], int]:
        """
        Get paginated transaction history of an account (newest first).

        Args:
            account_id: Account ID
            page: Page number
            per_page: Items per page

        Returns:
            Tuple of (transactions, total_count)
        """
        return await self.find_paginated(
            page=page, per_page=per_page, account_id=account_id
        )
