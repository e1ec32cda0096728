"""Integration tests for earning triggers and account opening."""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from app.config.business_constants import daily_reward_points
from app.models.account import Account
from app.models.enums import LedgerKind
from app.repositories.processed_event_repository import (
    ProcessedEventRepository,
)
from app.repositories.referral_earning_repository import (
    ReferralEarningRepository,
)
from app.repositories.transaction_repository import TransactionRepository
from app.services.account_service import AccountService
from app.services.earning_service import EarningService
from app.services.ledger import AccountLedger
from app.utils.exceptions import (
    DuplicateReferenceError,
    InsufficientBalanceError,
    UnknownAccountError,
)


class TestEarningTriggers:
    """Test triggers credit the source and fan out to the chain."""

    @pytest.mark.asyncio
    async def test_task_approval_pays_chain(
        self, db_session, chain_factory, schedule_factory
    ):
        """Test the source and both ancestors are credited."""
        u1, u2, u3 = await chain_factory(3)
        await schedule_factory((1, "PERCENTAGE", 10), (2, "FLAT_RATE", 5))
        ledger = AccountLedger(db_session)

        result = await EarningService(db_session).approve_task_submission(
            7, u1, 100, "Survey"
        )

        assert result.transaction.points == 100
        assert len(result.referral_earnings) == 2
        assert (await ledger.get_balance(u1)).points == 100
        assert (await ledger.get_balance(u2)).points == 10
        assert (await ledger.get_balance(u3)).points == 5

    @pytest.mark.asyncio
    async def test_second_approval_credits_nothing(
        self, db_session, chain_factory, schedule_factory
    ):
        """Test approving the same submission twice is a no-op."""
        u1, u2, _ = await chain_factory(3)
        await schedule_factory((1, "PERCENTAGE", 10))
        service = EarningService(db_session)

        await service.approve_task_submission(7, u1, 100)
        again = await service.approve_task_submission(7, u1, 100)

        ledger = AccountLedger(db_session)
        assert again.already_recorded is True
        assert again.referral_earnings == []
        assert (await ledger.get_balance(u1)).points == 100
        assert (await ledger.get_balance(u2)).points == 10
        assert await ReferralEarningRepository(db_session).count() == 1

    @pytest.mark.asyncio
    async def test_unknown_source_pays_no_commission(
        self, db_session, schedule_factory
    ):
        """Test a failed originating credit aborts the fan-out."""
        await schedule_factory((1, "PERCENTAGE", 10))

        with pytest.raises(UnknownAccountError):
            await EarningService(db_session).grade_quiz(1, 999, 20)

        assert await ReferralEarningRepository(db_session).count() == 0

    @pytest.mark.asyncio
    async def test_deactivated_source_not_credited(
        self, db_session, account_factory
    ):
        """Test a deactivated account cannot earn."""
        account_id = await account_factory(is_active=False)

        with pytest.raises(UnknownAccountError):
            await EarningService(db_session).grade_quiz(2, account_id, 20)

        assert await ProcessedEventRepository(db_session).count() == 0

    @pytest.mark.asyncio
    async def test_daily_check_in_once_per_day(
        self, db_session, chain_factory, schedule_factory
    ):
        """Test a second check-in on the same day is rejected."""
        u1, u2 = await chain_factory(2)
        await schedule_factory((1, "PERCENTAGE", 10))
        service = EarningService(db_session)

        result = await service.daily_check_in(u1, date(2026, 3, 1), 7)
        with pytest.raises(DuplicateReferenceError):
            await service.daily_check_in(u1, date(2026, 3, 1), 8)
        await service.daily_check_in(u1, date(2026, 3, 2), 8)

        ledger = AccountLedger(db_session)
        assert result.event_id == f"check-in:{u1}:2026-03-01"
        assert (await ledger.get_balance(u1)).points == 350
        assert (await ledger.get_balance(u2)).points == 35

    @pytest.mark.asyncio
    async def test_dispute_refund(self, db_session, account_factory):
        """Test a USD refund is credited in points."""
        account_id = await account_factory()

        await EarningService(db_session).refund_dispute(3, account_id, 2)

        balance = await AccountLedger(db_session).get_balance(account_id)
        assert balance.points == 2000

    @pytest.mark.asyncio
    async def test_admin_add_and_deduct(
        self, db_session, chain_factory, schedule_factory
    ):
        """Test additions pay commissions and deductions do not."""
        u1, u2 = await chain_factory(2)
        await schedule_factory((1, "PERCENTAGE", 10))
        service = EarningService(db_session)
        ledger = AccountLedger(db_session)

        await service.adjust_balance(
            "a1", u1, LedgerKind.POINTS, 200, "add", admin_id=1, reason="promo"
        )
        await service.adjust_balance(
            "a2", u1, LedgerKind.POINTS, 50, "deduct", admin_id=1
        )
        with pytest.raises(InsufficientBalanceError):
            await service.adjust_balance(
                "a3", u1, LedgerKind.POINTS, 1000, "deduct", admin_id=1
            )

        assert (await ledger.get_balance(u1)).points == 150
        assert (await ledger.get_balance(u2)).points == 20

    @pytest.mark.asyncio
    async def test_reverse_task_submission(
        self, db_session, chain_factory, schedule_factory
    ):
        """Test a reversal penalizes the source and claws back commissions."""
        u1, u2, u3 = await chain_factory(3)
        await schedule_factory((1, "PERCENTAGE", 10), (2, "FLAT_RATE", 5))
        service = EarningService(db_session)
        await service.approve_task_submission(7, u1, 100)

        result = await service.reverse_task_submission(7, u1, 100)

        ledger = AccountLedger(db_session)
        assert result.transaction.points == -100
        assert result.fan_out_error is None
        assert (await ledger.get_balance(u1)).points == 0
        assert (await ledger.get_balance(u2)).points == 0
        assert (await ledger.get_balance(u3)).points == 0
        # Lifetime earnings are informational and never decrease
        assert (await ledger.get_balance(u1)).total_earnings == Decimal("0.1")


class TestConcurrentDelivery:
    """Test two sessions racing on the same event id."""

    @staticmethod
    async def open_account(session_maker) -> int:
        """Committed account on the shared database."""
        async with session_maker() as session:
            account = Account(username="racer")
            session.add(account)
            await session.commit()
            return account.id

    @pytest.mark.asyncio
    async def test_concurrent_check_ins_credit_once(self, file_session_maker):
        """Test one of two simultaneous same-day check-ins is rejected."""
        account_id = await self.open_account(file_session_maker)

        async def check_in():
            async with file_session_maker() as session:
                return await EarningService(session).daily_check_in(
                    account_id, date(2026, 3, 1), 1
                )

        results = await asyncio.gather(
            check_in(), check_in(), return_exceptions=True
        )

        assert sorted(type(r).__name__ for r in results) == [
            "DuplicateReferenceError",
            "EarningResult",
        ]
        async with file_session_maker() as session:
            balance = await AccountLedger(session).get_balance(account_id)
            transactions = await TransactionRepository(session).count(
                account_id=account_id
            )
            claims = await ProcessedEventRepository(session).count()
        assert balance.points == daily_reward_points(1)
        assert transactions == 1
        assert claims == 1

    @pytest.mark.asyncio
    async def test_concurrent_approvals_credit_once(self, file_session_maker):
        """Test two deliveries of one approval credit the source once."""
        account_id = await self.open_account(file_session_maker)

        async def approve():
            async with file_session_maker() as session:
                return await EarningService(session).approve_task_submission(
                    11, account_id, 100
                )

        results = await asyncio.gather(approve(), approve())

        assert sorted(r.already_recorded for r in results) == [False, True]
        async with file_session_maker() as session:
            balance = await AccountLedger(session).get_balance(account_id)
        assert balance.points == 100


class TestAccountService:
    """Test AccountService.open_account."""

    @pytest.mark.asyncio
    async def test_open_with_referral_code(self, db_session):
        """Test a referral code links the new account to its referrer."""
        service = AccountService(db_session)
        referrer = await service.open_account(username="alice")

        account = await service.open_account(
            username="bob", referral_code=referrer.referral_code
        )

        assert account.referred_by_id == referrer.id
        assert account.referral_code != referrer.referral_code
        assert account.points_balance == 0

    @pytest.mark.asyncio
    async def test_unknown_referral_code(self, db_session):
        """Test an unknown code is rejected."""
        with pytest.raises(UnknownAccountError):
            await AccountService(db_session).open_account(referral_code="nope")

    @pytest.mark.asyncio
    async def test_inactive_referrer_rejected(self, db_session, account_factory):
        """Test an inactive referrer cannot be linked."""
        inactive_id = await account_factory(is_active=False)

        with pytest.raises(UnknownAccountError):
            await AccountService(db_session).open_account(
                referred_by_id=inactive_id
            )
