"""
Processed event repository.

Data access layer for ProcessedEvent model.
"""

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.processed_event import ProcessedEvent
from app.repositories.base import BaseRepository


class ProcessedEventRepository(BaseRepository[ProcessedEvent]):
    """Processed event repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize processed event repository."""
        super().__init__(ProcessedEvent, session)

    async def is_processed(self, event_id: str) -> bool:
        """
        Check whether an event id was already claimed.

        Args:
            event_id: Event id

        Returns:
            True if a committed (or pending) claim exists
        """
        return await self.exists(event_id=event_id)

    async def claim(
        self, event_id: str, account_id: int, transaction_id: int
    ) -> ProcessedEvent:
        """
        Claim an event id for a ledger transaction.

        Flushes immediately, so a concurrent claim of the same id raises
        IntegrityError here or on commit.

        Args:
            event_id: Event id
            account_id: Account the event posted to
            transaction_id: Ledger transaction of the event

        Returns:
            Created ProcessedEvent
        """
        return await self.create(
            event_id=event_id,
            account_id=account_id,
            transaction_id=transaction_id,
        )
