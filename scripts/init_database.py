#!/usr/bin/env python3
"""Initialize ledger tables and optionally seed a commission schedule."""

import argparse
import asyncio
from decimal import Decimal

from loguru import logger

from app.config.database import async_session_maker, engine
from app.config.logging import setup_logging
from app.models import Base, CommissionType
from app.services.referral.commission_schedule import CommissionScheduleService

# Single direct-referrer level, as the platform shipped before any admin edit
DEFAULT_SCHEDULE = [
    {
        "level": 1,
        "commission_type": CommissionType.PERCENTAGE.value,
        "commission_value": Decimal("10"),
        "description": "Direct referral commission",
        "is_active": True,
    },
]


async def init_database(seed_schedule: bool = False) -> None:
    """Create all database tables."""
    async with engine.begin() as conn:
        logger.info("Creating tables (checkfirst=True)...")
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    if seed_schedule:
        async with async_session_maker() as session:
            service = CommissionScheduleService(session)
            current = await service.load_snapshot()
            if current.version is None:
                schedule = await service.replace_schedule(
                    DEFAULT_SCHEDULE, note="initial schedule"
                )
                logger.info(f"Seeded commission schedule v{schedule.version}")
            else:
                logger.info(
                    f"Commission schedule v{current.version} exists, not seeding"
                )

    await engine.dispose()
    logger.success("Database tables created successfully!")


def main() -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--seed-schedule",
        action="store_true",
        help="save a default level 1 commission schedule if none exists",
    )
    args = parser.parse_args()

    setup_logging("init_database")
    asyncio.run(init_database(seed_schedule=args.seed_schedule))


if __name__ == "__main__":
    main()
