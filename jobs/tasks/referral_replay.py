"""
Referral replay task.

Re-runs a referral fan-out that failed after the originating credit was
committed. Distribution is idempotent per (event, level), so a replay only
pays the levels that are still missing.
"""

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from decimal import Decimal

import dramatiq
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import EarningSourceType, LedgerKind
from app.services.referral.commission_distributor import (
    CommissionDistributor,
    DistributionReport,
)
from jobs.async_runner import create_local_session, run_async
from jobs.broker import REPLAY_MAX_RETRIES, broker

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dramatiq.actor(
    broker=broker,
    max_retries=REPLAY_MAX_RETRIES,
    time_limit=120_000,  # 2 min timeout
)
def replay_referral_distribution(
    source_account_id: int,
    base_amount: str,
    event_id: str,
    ledger_kind: str = LedgerKind.POINTS.value,
    source_type: str = EarningSourceType.OTHER.value,
) -> None:
    """
    Replay the referral fan-out of one earning event.

    Args:
        source_account_id: Account that earned
        base_amount: Earned amount as a decimal string
        event_id: Originating event id
        ledger_kind: LedgerKind value
        source_type: EarningSourceType value
    """
    logger.info(f"Replaying referral distribution for event {event_id}")

    report = run_async(
        replay_distribution(
            source_account_id,
            Decimal(base_amount),
            event_id,
            LedgerKind(ledger_kind),
            EarningSourceType(source_type),
        )
    )

    logger.info(
        f"Referral replay for event {event_id} complete: "
        f"{len(report.earnings)} level(s) paid, "
        f"{len(report.failures)} failed"
    )


async def replay_distribution(
    source_account_id: int,
    base_amount: Decimal,
    event_id: str,
    ledger_kind: LedgerKind,
    source_type: EarningSourceType,
    session_factory: SessionFactory = create_local_session,
) -> DistributionReport:
    """
    Async implementation of the referral replay.

    Args:
        source_account_id: Account that earned
        base_amount: Earned amount
        event_id: Originating event id
        ledger_kind: Ledger the commissions are paid in
        source_type: Kind of earning event
        session_factory: Callable returning an async session context

    Returns:
        DistributionReport of the replay
    """
    async with session_factory() as session:
        distributor = CommissionDistributor(session)
        return await distributor.process(
            source_account_id,
            base_amount,
            event_id,
            ledger_kind=ledger_kind,
            source_type=source_type,
        )
