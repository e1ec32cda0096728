"""
Earning service.

Every earning trigger follows the same contract: credit the originating
account and commit, then fan commissions out to the referral chain. A
failed fan-out never undoes the originating credit; it is logged and
handed to the replay job.

Each posting claims its event id in processed_events within the same unit
of work, so concurrent deliveries of one event credit at most once.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from functools import partial
from typing import Any, Literal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.business_constants import daily_reward_points
from app.config.settings import settings
from app.models.enums import EarningSourceType, LedgerKind, TransactionType
from app.models.referral_earning import ReferralEarning
from app.models.transaction import Transaction
from app.repositories.processed_event_repository import (
    ProcessedEventRepository,
)
from app.services.base_service import BaseService
from app.services.ledger.account_ledger import AccountLedger
from app.services.referral.commission_distributor import CommissionDistributor
from app.utils.exceptions import DuplicateReferenceError, aborts_event
from app.utils.money import to_decimal


AdjustmentAction = Literal["add", "deduct"]


@dataclass
class EarningResult:
    """Outcome of one earning trigger."""

    event_id: str
    transaction: Transaction | None
    referral_earnings: list[ReferralEarning] = field(default_factory=list)
    already_recorded: bool = False
    fan_out_error: str | None = None


class EarningService(BaseService):
    """Earning-event triggers built on the ledger and the distributor."""

    def __init__(
        self,
        session: AsyncSession,
        ledger: AccountLedger | None = None,
        distributor: CommissionDistributor | None = None,
        event_repo: ProcessedEventRepository | None = None,
    ) -> None:
        """
        Initialize earning service.

        Args:
            session: Async database session
            ledger: Account ledger (created on the session if omitted)
            distributor: Commission distributor (created if omitted)
            event_repo: Event id claims (created on the session if omitted)
        """
        super().__init__(session)
        self.ledger = ledger or AccountLedger(session)
        self.distributor = distributor or CommissionDistributor(
            session, ledger=self.ledger
        )
        self.event_repo = event_repo or ProcessedEventRepository(session)

    async def record_earning(
        self,
        account_id: int,
        amount: int | Decimal,
        event_id: str,
        *,
        ledger_kind: LedgerKind = LedgerKind.POINTS,
        source_type: EarningSourceType = EarningSourceType.OTHER,
        transaction_type: TransactionType = TransactionType.EARNING,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
        reject_duplicate: bool = False,
    ) -> EarningResult:
        """
        Credit an earning and pay referral commissions on it.

        Pending changes on the session (e.g. a submission marked approved)
        are committed together with the credit. A repeated event id does
        not credit again but re-runs the fan-out, which completes any
        level a previous run missed.

        Args:
            account_id: Account that earned
            amount: Amount earned
            event_id: Globally unique id of the earning event
            ledger_kind: POINTS or CASH
            source_type: Kind of earning event
            transaction_type: Ledger transaction type
            description: Transaction description
            metadata: Extra transaction metadata
            reject_duplicate: Raise instead of replaying a repeated event id

        Returns:
            EarningResult

        Raises:
            UnknownAccountError: account does not exist or is deactivated
            InvalidAmountError: amount is not a positive ledger unit
            DuplicateReferenceError: repeated event id with reject_duplicate
        """
        transaction = await self._post_once(
            event_id,
            account_id,
            partial(
                self.ledger.credit,
                account_id,
                ledger_kind,
                amount,
                event_id,
                description,
                dict(metadata or {}, source_type=source_type.value),
                transaction_type=transaction_type,
            ),
        )

        if transaction is None:
            if reject_duplicate:
                raise DuplicateReferenceError(event_id)
            self.logger.info(
                "Earning already recorded, replaying referral fan-out",
                extra={"event_id": event_id, "account_id": account_id},
            )
            result = EarningResult(
                event_id=event_id, transaction=None, already_recorded=True
            )
        else:
            result = EarningResult(event_id=event_id, transaction=transaction)

        await self._fan_out(
            result, account_id, amount, ledger_kind, source_type
        )
        return result

    async def approve_task_submission(
        self,
        submission_id: int,
        account_id: int,
        points: int,
        task_title: str | None = None,
    ) -> EarningResult:
        """Reward an approved task submission."""
        return await self.record_earning(
            account_id,
            points,
            f"task-submission:{submission_id}",
            source_type=EarningSourceType.TASK,
            description=f"Task completed: {task_title or submission_id}",
            metadata={"submission_id": submission_id},
        )

    async def grade_quiz(
        self, attempt_id: int, account_id: int, points: int
    ) -> EarningResult:
        """Reward a passed quiz attempt."""
        return await self.record_earning(
            account_id,
            points,
            f"quiz-attempt:{attempt_id}",
            source_type=EarningSourceType.QUIZ,
            description="Quiz passed",
            metadata={"attempt_id": attempt_id},
        )

    async def daily_check_in(
        self, account_id: int, on_date: date, streak_day: int
    ) -> EarningResult:
        """
        Reward a daily check-in.

        Args:
            account_id: Account checking in
            on_date: Calendar day of the check-in
            streak_day: Consecutive day number (1-based)

        Returns:
            EarningResult

        Raises:
            DuplicateReferenceError: already claimed for this day
        """
        event_id = f"check-in:{account_id}:{on_date.isoformat()}"
        points = daily_reward_points(streak_day)
        return await self.record_earning(
            account_id,
            points,
            event_id,
            source_type=EarningSourceType.CHECK_IN,
            transaction_type=TransactionType.BONUS,
            description=f"Daily reward - Day {streak_day}",
            metadata={"streak_day": streak_day, "date": on_date.isoformat()},
            reject_duplicate=True,
        )

    async def refund_dispute(
        self, dispute_id: int, account_id: int, amount_usd: int | Decimal
    ) -> EarningResult:
        """Refund a resolved dispute in points."""
        points = int(to_decimal(amount_usd) * settings.points_per_usd)
        return await self.record_earning(
            account_id,
            points,
            f"dispute-refund:{dispute_id}",
            source_type=EarningSourceType.REFUND,
            transaction_type=TransactionType.REFUND,
            description=f"Dispute refund: ${amount_usd}",
            metadata={"dispute_id": dispute_id, "amount_usd": str(amount_usd)},
        )

    async def adjust_balance(
        self,
        adjustment_id: str,
        account_id: int,
        ledger_kind: LedgerKind,
        amount: int | Decimal,
        action: AdjustmentAction,
        admin_id: int | None = None,
        reason: str | None = None,
    ) -> EarningResult:
        """
        Manual balance adjustment by an admin.

        "add" is a BONUS credit and pays commissions like any earning.
        "deduct" is a PENALTY debit and pays nothing.

        Raises:
            InsufficientBalanceError: deduction larger than the balance
            ValueError: unknown action
        """
        event_id = f"adjustment:{adjustment_id}"
        description = f"Admin adjustment: {reason or action}"
        metadata = {"admin_id": admin_id, "action": action}

        if action == "add":
            return await self.record_earning(
                account_id,
                amount,
                event_id,
                ledger_kind=ledger_kind,
                source_type=EarningSourceType.ADJUSTMENT,
                transaction_type=TransactionType.BONUS,
                description=description,
                metadata=metadata,
            )
        if action != "deduct":
            raise ValueError(f"Unknown adjustment action: {action}")

        transaction = await self._post_once(
            event_id,
            account_id,
            partial(
                self.ledger.debit,
                account_id,
                ledger_kind,
                amount,
                event_id,
                description,
                metadata,
                transaction_type=TransactionType.PENALTY,
            ),
        )
        if transaction is None:
            return EarningResult(
                event_id=event_id, transaction=None, already_recorded=True
            )

        self.logger.info(
            "Balance deducted by admin",
            extra={
                "account_id": account_id,
                "admin_id": admin_id,
                "amount": str(amount),
                "ledger_kind": ledger_kind.value,
            },
        )
        return EarningResult(event_id=event_id, transaction=transaction)

    async def reverse_task_submission(
        self, submission_id: int, account_id: int, points: int
    ) -> EarningResult:
        """
        Reverse a previously approved submission.

        Modelled as a compensating event: a PENALTY debit of the source
        account and a clawback of the commissions it generated. The
        original transactions are never touched.

        Raises:
            InsufficientBalanceError: source balance no longer covers it
        """
        original_event_id = f"task-submission:{submission_id}"
        event_id = f"task-submission-reversal:{submission_id}"

        transaction = await self._post_once(
            event_id,
            account_id,
            partial(
                self.ledger.debit,
                account_id,
                LedgerKind.POINTS,
                points,
                event_id,
                "Task submission reversed",
                {"submission_id": submission_id},
                transaction_type=TransactionType.PENALTY,
            ),
        )
        result = EarningResult(
            event_id=event_id,
            transaction=transaction,
            already_recorded=transaction is None,
        )

        try:
            await self.distributor.reverse(original_event_id, event_id)
        except Exception as e:
            self.logger.error(
                "Referral commission reversal failed",
                extra={
                    "event_id": event_id,
                    "original_event_id": original_event_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            result.fan_out_error = str(e)

        return result

    async def _post_once(
        self,
        event_id: str,
        account_id: int,
        post: Callable[[], Awaitable[Transaction]],
    ) -> Transaction | None:
        """
        Run a ledger posting and claim its event id in one unit of work.

        Args:
            event_id: Event id to claim
            account_id: Account the posting targets
            post: Ledger credit or debit to run

        Returns:
            Committed transaction, or None if the event id was already claimed
        """
        if await self.event_repo.is_processed(event_id):
            return None

        try:
            transaction = await post()
            await self.event_repo.claim(event_id, account_id, transaction.id)
            await self.commit()
        except IntegrityError:
            # A concurrent delivery claimed the event first
            await self.rollback()
            self.logger.info(
                "Event already claimed by a concurrent run",
                extra={"event_id": event_id, "account_id": account_id},
            )
            return None
        except Exception as e:
            await self.rollback()
            if aborts_event(e):
                self.logger.warning(
                    "Ledger posting rejected",
                    extra={
                        "event_id": event_id,
                        "account_id": account_id,
                        "error": str(e),
                        "error_type": type(e).__name__,
                    },
                )
            raise

        # Later fan-out rollbacks must not expire the returned row
        self.session.expunge(transaction)
        return transaction

    async def _fan_out(
        self,
        result: EarningResult,
        account_id: int,
        amount: int | Decimal,
        ledger_kind: LedgerKind,
        source_type: EarningSourceType,
    ) -> None:
        """Distribute commissions; failures are logged, never raised."""
        try:
            result.referral_earnings = await self.distributor.distribute(
                account_id,
                amount,
                result.event_id,
                ledger_kind=ledger_kind,
                source_type=source_type,
            )
        except Exception as e:
            self.logger.error(
                "Referral fan-out failed, originating credit kept",
                extra={
                    "event_id": result.event_id,
                    "account_id": account_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            result.fan_out_error = str(e)
            self._schedule_replay(
                account_id, amount, result.event_id, ledger_kind, source_type
            )

    def _schedule_replay(
        self,
        account_id: int,
        amount: int | Decimal,
        event_id: str,
        ledger_kind: LedgerKind,
        source_type: EarningSourceType,
    ) -> None:
        """Queue a background replay of an idempotent fan-out."""
        if not settings.referral_replay_enabled:
            return

        from jobs.tasks.referral_replay import replay_referral_distribution

        try:
            replay_referral_distribution.send(
                account_id,
                str(amount),
                event_id,
                ledger_kind.value,
                source_type.value,
            )
        except Exception as e:
            self.logger.error(
                "Failed to queue referral replay, manual reconciliation needed",
                extra={"event_id": event_id, "error": str(e)},
            )
