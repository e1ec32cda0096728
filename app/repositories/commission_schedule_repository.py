"""
Commission schedule repository.

Data access layer for versioned commission schedules.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.commission_schedule import (
    CommissionScheduleEntry,
    CommissionScheduleVersion,
)
from app.repositories.base import BaseRepository


class CommissionScheduleRepository(BaseRepository[CommissionScheduleVersion]):
    """Commission schedule repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission schedule repository."""
        super().__init__(CommissionScheduleVersion, session)

    async def get_current_entries(
        self,
    ) -> tuple[int | None, list[CommissionScheduleEntry]]:
        """
        Get entries of the newest schedule version in one statement.

        A single SELECT keeps the snapshot consistent even while an admin
        is saving a new version concurrently.

        Returns:
            Tuple of (version_id or None, entries ordered by level)
        """
        latest = select(func.max(CommissionScheduleVersion.id)).scalar_subquery()
        stmt = (
            select(CommissionScheduleEntry)
            .where(CommissionScheduleEntry.version_id == latest)
            .order_by(CommissionScheduleEntry.level, CommissionScheduleEntry.id)
        )
        result = await self.session.execute(stmt)
        entries = list(result.scalars().all())

        if entries:
            return entries[0].version_id, entries

        # Latest version may legitimately be empty (schedule cleared)
        version_id = (await self.session.execute(select(latest))).scalar()
        return version_id, []

    async def create_version(
        self,
        entries: list[dict],
        created_by: int | None = None,
        note: str | None = None,
    ) -> CommissionScheduleVersion:
        """
        Append a new schedule version with its entries.

        Args:
            entries: Entry data dicts (level, commission_type, ...)
            created_by: Admin who saved the schedule
            note: Optional change note

        Returns:
            Created version (flushed)
        """
        version = await self.create(created_by=created_by, note=note)

        for data in entries:
            self.session.add(
                CommissionScheduleEntry(version_id=version.id, **data)
            )
        await self.session.flush()

        return version
