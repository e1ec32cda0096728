"""
Commission schedule module.

The schedule is read as an immutable, versioned snapshot so that a fan-out
in progress always sees exactly one version, even while an admin saves a
new one. Saving never edits rows in place: it appends a new version.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import MAX_COMMISSION_PERCENT
from app.models.commission_schedule import CommissionScheduleEntry
from app.models.enums import CommissionType
from app.repositories.commission_schedule_repository import (
    CommissionScheduleRepository,
)
from app.services.base_service import BaseService, log_operation, transaction
from app.utils.exceptions import ScheduleEntryInvalidError
from app.validators.commission import validate_commission_entry


@dataclass(frozen=True)
class CommissionRule:
    """Commission rule for one referral level."""

    level: int
    commission_type: CommissionType
    value: Decimal
    is_active: bool = True
    description: str | None = None

    def raw_commission(self, base_amount: Decimal) -> Decimal:
        """
        Commission before rounding.

        PERCENTAGE scales linearly with the base amount, FLAT_RATE ignores it.
        """
        if self.commission_type == CommissionType.PERCENTAGE:
            return base_amount * self.value / Decimal("100")
        return self.value

    def label(self) -> str:
        """Short human readable form, e.g. "10%" or "5 flat"."""
        if self.commission_type == CommissionType.PERCENTAGE:
            return f"{self.value.normalize():f}%"
        return f"{self.value.normalize():f} flat"


@dataclass(frozen=True)
class CommissionSchedule:
    """
    Immutable snapshot of one schedule version.

    Attributes:
        version: Schedule version id (None when nothing was ever saved)
        rules: Level -> rule, only well-formed entries
        warnings: Schedule-integrity warnings for skipped entries
    """

    version: int | None
    rules: Mapping[int, CommissionRule] = field(
        default_factory=lambda: MappingProxyType({})
    )
    warnings: tuple[str, ...] = ()

    def rule_at(self, level: int) -> CommissionRule | None:
        """Rule configured for a level, or None."""
        return self.rules.get(level)

    @property
    def is_empty(self) -> bool:
        """True when no level is configured."""
        return not self.rules

    def active_percentage_total(self) -> Decimal:
        """Sum of active PERCENTAGE values across all levels."""
        return sum(
            (
                rule.value
                for rule in self.rules.values()
                if rule.is_active
                and rule.commission_type == CommissionType.PERCENTAGE
            ),
            Decimal("0"),
        )

    @classmethod
    def from_entries(
        cls,
        version: int | None,
        entries: Iterable[CommissionScheduleEntry],
    ) -> "CommissionSchedule":
        """
        Build a snapshot, skipping malformed entries.

        A malformed entry (bad level, type or value, or a second entry for
        the same level) is dropped with a warning instead of failing the
        whole snapshot.
        """
        rules: dict[int, CommissionRule] = {}
        warnings: list[str] = []

        for entry in entries:
            is_valid, error = validate_commission_entry(
                entry.level, entry.commission_type, entry.commission_value
            )
            if not is_valid:
                warnings.append(str(ScheduleEntryInvalidError(entry.level, error)))
                continue

            if entry.level in rules:
                warnings.append(
                    str(ScheduleEntryInvalidError(entry.level, "duplicate level"))
                )
                continue

            rules[entry.level] = CommissionRule(
                level=entry.level,
                commission_type=CommissionType(entry.commission_type),
                value=Decimal(str(entry.commission_value)),
                is_active=bool(entry.is_active),
                description=entry.description,
            )

        return cls(
            version=version,
            rules=MappingProxyType(dict(sorted(rules.items()))),
            warnings=tuple(warnings),
        )


class CommissionScheduleService(BaseService):
    """Reads schedule snapshots and saves new schedule versions."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission schedule service."""
        super().__init__(session)
        self.schedule_repo = CommissionScheduleRepository(session)

    async def load_snapshot(self) -> CommissionSchedule:
        """
        Load the current schedule as an immutable snapshot.

        Returns:
            Snapshot of the newest version (empty if none saved yet)
        """
        version, entries = await self.schedule_repo.get_current_entries()
        schedule = CommissionSchedule.from_entries(version, entries)

        for warning in schedule.warnings:
            self.logger.warning(
                "Commission schedule integrity warning",
                extra={"version": version, "warning": warning},
            )

        return schedule

    @log_operation
    @transaction
    async def replace_schedule(
        self,
        entries: list[dict[str, Any]],
        created_by: int | None = None,
        note: str | None = None,
    ) -> CommissionSchedule:
        """
        Replace the schedule wholesale by saving a new version.

        Args:
            entries: Dicts with level, commission_type, commission_value
                and optional description, is_active
            created_by: Admin saving the schedule
            note: Optional change note

        Returns:
            Snapshot of the saved version

        Raises:
            ScheduleEntryInvalidError: an entry is invalid or a level repeats
        """
        rows: list[dict[str, Any]] = []
        seen_levels: set[int] = set()

        for data in entries:
            level = data.get("level")
            commission_type = data.get("commission_type")
            commission_value = data.get("commission_value")

            is_valid, error = validate_commission_entry(
                level, commission_type, commission_value
            )
            if not is_valid:
                raise ScheduleEntryInvalidError(level, error)
            if level in seen_levels:
                raise ScheduleEntryInvalidError(level, "duplicate level")
            seen_levels.add(level)

            rows.append(
                {
                    "level": level,
                    "commission_type": CommissionType(commission_type).value,
                    "commission_value": Decimal(str(commission_value)),
                    "description": data.get("description"),
                    "is_active": bool(data.get("is_active", True)),
                }
            )

        version = await self.schedule_repo.create_version(
            rows, created_by=created_by, note=note
        )

        schedule = CommissionSchedule.from_entries(
            version.id,
            [CommissionScheduleEntry(version_id=version.id, **row) for row in rows],
        )

        total_percent = schedule.active_percentage_total()
        if total_percent > MAX_COMMISSION_PERCENT:
            self.logger.warning(
                "Active referral percentages exceed 100% in total",
                extra={
                    "version": version.id,
                    "total_percent": str(total_percent),
                    "created_by": created_by,
                },
            )

        self.logger.info(
            "Commission schedule saved",
            extra={
                "version": version.id,
                "levels": sorted(seen_levels),
                "created_by": created_by,
            },
        )

        return schedule
