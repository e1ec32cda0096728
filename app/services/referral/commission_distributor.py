"""
Commission distributor.

Fans one earning event out to up to ten ancestor referrers. Every level is
its own unit of work: the ledger credit and the ReferralEarning row are
committed together, and the unique (event_id, level) constraint makes a
replay of the same event a no-op for the levels already paid.

The distributor commits and rolls back the session it is given, so it must
be called after the originating credit was committed.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.enums import EarningSourceType, LedgerKind, TransactionType
from app.models.referral_earning import ReferralEarning
from app.models.transaction import Transaction
from app.repositories.processed_event_repository import (
    ProcessedEventRepository,
)
from app.repositories.referral_earning_repository import (
    ReferralEarningRepository,
)
from app.repositories.transaction_repository import TransactionRepository
from app.services.base_service import BaseService
from app.services.ledger.account_ledger import AccountLedger
from app.services.referral.commission_schedule import (
    CommissionSchedule,
    CommissionScheduleService,
)
from app.services.referral.config import (
    REFERRAL_MAX_DEPTH,
    referral_reference,
    reversal_reference,
)
from app.services.referral.referral_graph import ReferralAncestor, ReferralGraph
from app.utils.exceptions import (
    ChainCorruptedError,
    InvalidAmountError,
    is_absorbed_per_level,
    is_skipped_on_reversal,
)
from app.utils.money import round_to_ledger_unit, to_decimal


@dataclass
class SkippedLevel:
    """Level that was walked but not paid."""

    level: int
    account_id: int
    reason: str


@dataclass
class LevelFailure:
    """Level whose credit failed; a replay may complete it."""

    level: int
    account_id: int
    error: str


@dataclass
class DistributionReport:
    """Result of one fan-out."""

    event_id: str
    earnings: list[ReferralEarning] = field(default_factory=list)
    skipped: list[SkippedLevel] = field(default_factory=list)
    failures: list[LevelFailure] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def total_commission(self) -> Decimal:
        """Sum of commissions paid by this run."""
        return sum(
            (earning.commission_amount for earning in self.earnings),
            Decimal("0"),
        )

    @property
    def is_complete(self) -> bool:
        """True when no level failed."""
        return not self.failures


class CommissionDistributor(BaseService):
    """Pays multi-level referral commissions for earning events."""

    def __init__(
        self,
        session: AsyncSession,
        ledger: AccountLedger | None = None,
        graph: ReferralGraph | None = None,
        schedule_service: CommissionScheduleService | None = None,
    ) -> None:
        """
        Initialize commission distributor.

        Args:
            session: Async database session
            ledger: Account ledger (created on the session if omitted)
            graph: Referral graph (created on the session if omitted)
            schedule_service: Schedule reader (created if omitted)
        """
        super().__init__(session)
        self.ledger = ledger or AccountLedger(session)
        self.graph = graph or ReferralGraph(session)
        self.schedule_service = schedule_service or CommissionScheduleService(
            session
        )
        self.earning_repo = ReferralEarningRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.event_repo = ProcessedEventRepository(session)

    async def distribute(
        self,
        source_account_id: int,
        base_amount: int | Decimal,
        event_id: str,
        *,
        ledger_kind: LedgerKind = LedgerKind.POINTS,
        source_type: EarningSourceType = EarningSourceType.TASK,
    ) -> list[ReferralEarning]:
        """
        Pay commissions for an earning event.

        Args:
            source_account_id: Account that earned
            base_amount: Amount the source account earned
            event_id: Globally unique id of the earning event
            ledger_kind: Ledger the commissions are paid in
            source_type: Kind of earning event

        Returns:
            Referral earnings created by this call (empty on replay)
        """
        report = await self.process(
            source_account_id,
            base_amount,
            event_id,
            ledger_kind=ledger_kind,
            source_type=source_type,
        )
        return report.earnings

    async def process(
        self,
        source_account_id: int,
        base_amount: int | Decimal,
        event_id: str,
        *,
        ledger_kind: LedgerKind = LedgerKind.POINTS,
        source_type: EarningSourceType = EarningSourceType.TASK,
    ) -> DistributionReport:
        """
        Pay commissions for an earning event and report every level.

        Args:
            source_account_id: Account that earned
            base_amount: Amount the source account earned
            event_id: Globally unique id of the earning event
            ledger_kind: Ledger the commissions are paid in
            source_type: Kind of earning event

        Returns:
            DistributionReport with earnings, skipped levels and failures

        Raises:
            InvalidAmountError: base amount is not a positive number
        """
        base = self._validate_base(base_amount)
        report = DistributionReport(event_id=event_id)

        ancestors = await self._load_chain(source_account_id, report)
        if not ancestors:
            self.logger.debug(
                "No referrers found for account",
                extra={"account_id": source_account_id, "event_id": event_id},
            )
            return report

        schedule = await self.schedule_service.load_snapshot()
        report.warnings.extend(schedule.warnings)

        for ancestor in ancestors:
            await self._pay_level(
                ancestor=ancestor,
                schedule=schedule,
                source_account_id=source_account_id,
                base=base,
                event_id=event_id,
                ledger_kind=ledger_kind,
                source_type=source_type,
                report=report,
            )

        self.logger.info(
            "Referral commissions distributed",
            extra={
                "event_id": event_id,
                "source_account_id": source_account_id,
                "schedule_version": schedule.version,
                "paid_levels": [e.level for e in report.earnings],
                "skipped_levels": [s.level for s in report.skipped],
                "failed_levels": [f.level for f in report.failures],
                "total_commission": str(report.total_commission),
            },
        )

        return report

    async def reverse(
        self, original_event_id: str, reversal_event_id: str
    ) -> list[Transaction]:
        """
        Claw back the commissions paid for an event.

        Each beneficiary is debited with a PENALTY of the commission it
        received. The reversal reference is claimed together with the debit,
        so a repeated or concurrent call debits each level at most once.

        Args:
            original_event_id: Event whose commissions are reversed
            reversal_event_id: Id of the compensating event

        Returns:
            Debit transactions created by this call
        """
        earnings = await self.earning_repo.get_by_event(original_event_id)
        # Detached so per-level rollbacks leave them readable
        for earning in earnings:
            self.session.expunge(earning)
        reversals: list[Transaction] = []

        for earning in earnings:
            if earning.beneficiary_account_id is None:
                continue

            reference = reversal_reference(reversal_event_id, earning.level)
            if await self.event_repo.is_processed(reference):
                continue

            original_tx = await self.transaction_repo.get_by_id(
                earning.transaction_id
            )
            ledger_kind = (
                LedgerKind.CASH
                if original_tx is not None and original_tx.cash_amount
                else LedgerKind.POINTS
            )

            try:
                transaction = await self.ledger.debit(
                    earning.beneficiary_account_id,
                    ledger_kind,
                    earning.commission_amount,
                    reference,
                    f"Level {earning.level} referral commission reversed",
                    {
                        "event_id": original_event_id,
                        "reversal_event_id": reversal_event_id,
                        "level": earning.level,
                        "referral_earning_id": earning.id,
                    },
                    transaction_type=TransactionType.PENALTY,
                )
                await self.event_repo.claim(
                    reference, earning.beneficiary_account_id, transaction.id
                )
                await self.commit()
            except IntegrityError:
                # Concurrent reversal claimed this level first
                await self.rollback()
                self.logger.info(
                    "Referral level already reversed by a concurrent run",
                    extra={
                        "reversal_event_id": reversal_event_id,
                        "level": earning.level,
                    },
                )
                continue
            except Exception as e:
                await self.rollback()
                if not is_skipped_on_reversal(e):
                    raise
                self.logger.warning(
                    "Referral commission reversal skipped",
                    extra={
                        "event_id": original_event_id,
                        "reversal_event_id": reversal_event_id,
                        "level": earning.level,
                        "account_id": earning.beneficiary_account_id,
                        "error": str(e),
                    },
                )
                continue

            self.session.expunge(transaction)
            reversals.append(transaction)

        self.logger.info(
            "Referral commissions reversed",
            extra={
                "event_id": original_event_id,
                "reversal_event_id": reversal_event_id,
                "reversed_levels": len(reversals),
            },
        )

        return reversals

    async def _load_chain(
        self, source_account_id: int, report: DistributionReport
    ) -> list[ReferralAncestor]:
        """Ancestor chain, falling back to the valid prefix of a corrupted one."""
        try:
            return await self.graph.ancestors_of(
                source_account_id, REFERRAL_MAX_DEPTH
            )
        except ChainCorruptedError as e:
            report.warnings.append(str(e))
            return list(e.chain)

    async def _pay_level(
        self,
        ancestor: ReferralAncestor,
        schedule: CommissionSchedule,
        source_account_id: int,
        base: Decimal,
        event_id: str,
        ledger_kind: LedgerKind,
        source_type: EarningSourceType,
        report: DistributionReport,
    ) -> None:
        """Pay one level in its own unit of work."""
        level = ancestor.depth

        if await self.earning_repo.exists_for_level(event_id, level):
            report.skipped.append(
                SkippedLevel(level, ancestor.account_id, "already paid")
            )
            return

        rule = schedule.rule_at(level)
        if rule is None or not rule.is_active:
            report.skipped.append(
                SkippedLevel(
                    level,
                    ancestor.account_id,
                    "no rule" if rule is None else "inactive",
                )
            )
            return

        commission = round_to_ledger_unit(
            rule.raw_commission(base), ledger_kind, settings.cash_decimal_places
        )
        if commission <= 0:
            report.skipped.append(
                SkippedLevel(level, ancestor.account_id, "zero commission")
            )
            return

        try:
            transaction = await self.ledger.credit(
                ancestor.account_id,
                ledger_kind,
                commission,
                referral_reference(event_id, level),
                f"Level {level} referral commission",
                {
                    "event_id": event_id,
                    "source_account_id": source_account_id,
                    "level": level,
                    "commission_type": rule.commission_type.value,
                    "commission_value": str(rule.value),
                    "base_amount": str(base),
                },
                transaction_type=TransactionType.REFERRAL,
            )
            earning = await self.earning_repo.create(
                event_id=event_id,
                source_account_id=source_account_id,
                beneficiary_account_id=ancestor.account_id,
                level=level,
                source_type=source_type.value,
                base_amount=base,
                commission_amount=commission,
                transaction_id=transaction.id,
            )
            await self.commit()
        except IntegrityError:
            # Concurrent replay paid this level first
            await self.rollback()
            self.logger.info(
                "Referral level already paid by a concurrent run",
                extra={"event_id": event_id, "level": level},
            )
            report.skipped.append(
                SkippedLevel(level, ancestor.account_id, "already paid")
            )
            return
        except Exception as e:
            await self.rollback()
            if not is_absorbed_per_level(e):
                raise
            self.logger.warning(
                "Referral level not paid",
                extra={
                    "event_id": event_id,
                    "level": level,
                    "account_id": ancestor.account_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )
            report.failures.append(
                LevelFailure(level, ancestor.account_id, str(e))
            )
            return

        await self.session.refresh(earning)
        self.session.expunge(earning)
        report.earnings.append(earning)

    def _validate_base(self, base_amount: int | Decimal) -> Decimal:
        """Base amount as a positive, finite Decimal."""
        try:
            base = to_decimal(base_amount)
        except (ArithmeticError, ValueError, TypeError) as e:
            raise InvalidAmountError(base_amount, "not a number") from e

        if not base.is_finite():
            raise InvalidAmountError(base_amount, "not a finite number")
        if base <= 0:
            raise InvalidAmountError(base_amount)
        return base
