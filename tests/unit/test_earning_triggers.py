"""
Tests for the earning trigger contract with mocked collaborators.

Covers:
- Originating credit is committed before the fan-out
- Failed originating credit aborts without any fan-out
- Fan-out failures are logged and queued, never raised
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, call, patch

import pytest
from sqlalchemy.exc import IntegrityError

from app.models.enums import EarningSourceType, LedgerKind, TransactionType
from app.services.earning_service import EarningService
from app.utils.exceptions import (
    DuplicateReferenceError,
    InsufficientBalanceError,
    UnknownAccountError,
)


@pytest.fixture
def service(mock_session, mock_ledger, mock_distributor, mock_event_repo):
    """EarningService wired to mocks."""
    return EarningService(
        mock_session,
        ledger=mock_ledger,
        distributor=mock_distributor,
        event_repo=mock_event_repo,
    )


class TestRecordEarning:
    """Test the shared trigger flow."""

    @pytest.mark.asyncio
    async def test_credit_committed_then_distributed(
        self, service, mock_session, mock_ledger, mock_distributor
    ):
        """Test credit, commit and fan-out happen in that order."""
        order = MagicMock()
        mock_ledger.credit.side_effect = lambda *a, **k: order.credit() or MagicMock(id=1)
        mock_session.commit.side_effect = lambda: order.commit()
        mock_distributor.distribute.side_effect = lambda *a, **k: order.distribute() or []

        result = await service.record_earning(
            5, 100, "evt-1", source_type=EarningSourceType.TASK
        )

        assert order.mock_calls == [call.credit(), call.commit(), call.distribute()]
        assert result.already_recorded is False
        assert result.fan_out_error is None
        mock_distributor.distribute.assert_awaited_once_with(
            5,
            100,
            "evt-1",
            ledger_kind=LedgerKind.POINTS,
            source_type=EarningSourceType.TASK,
        )

    @pytest.mark.asyncio
    async def test_failed_credit_aborts_fan_out(
        self, service, mock_session, mock_ledger, mock_distributor
    ):
        """Test no commission is paid when the originating credit fails."""
        mock_ledger.credit.side_effect = UnknownAccountError(5)

        with pytest.raises(UnknownAccountError):
            await service.record_earning(5, 100, "evt-1")

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()
        mock_distributor.distribute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fan_out_failure_is_not_raised(
        self, service, mock_distributor
    ):
        """Test a failing fan-out keeps the credit and queues a replay."""
        mock_distributor.distribute.side_effect = RuntimeError("db went away")

        with patch.object(EarningService, "_schedule_replay") as schedule:
            result = await service.record_earning(5, 100, "evt-1")

        assert result.transaction is not None
        assert result.fan_out_error == "db went away"
        schedule.assert_called_once_with(
            5, 100, "evt-1", LedgerKind.POINTS, EarningSourceType.OTHER
        )

    @pytest.mark.asyncio
    async def test_recorded_event_only_replays_fan_out(
        self, service, mock_ledger, mock_distributor, mock_event_repo
    ):
        """Test a repeated event id does not credit twice."""
        mock_event_repo.is_processed.return_value = True

        result = await service.record_earning(5, 100, "evt-1")

        assert result.already_recorded is True
        assert result.transaction is None
        mock_ledger.credit.assert_not_awaited()
        mock_distributor.distribute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_event_claimed_before_commit(
        self, service, mock_session, mock_event_repo
    ):
        """Test the event id is claimed in the credit's unit of work."""
        mock_session.commit.side_effect = lambda: (
            mock_event_repo.claim.assert_awaited_once_with("evt-1", 5, 1)
        )

        await service.record_earning(5, 100, "evt-1")

        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrent_claim_rolls_back(
        self, service, mock_session, mock_event_repo, mock_distributor
    ):
        """Test losing the claim race undoes the credit and replays only."""
        mock_event_repo.claim.side_effect = IntegrityError(
            "INSERT", {}, Exception("UNIQUE constraint failed")
        )

        result = await service.record_earning(5, 100, "evt-1")

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()
        assert result.already_recorded is True
        assert result.transaction is None
        mock_distributor.distribute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_concurrent_check_in_rejected(
        self, service, mock_session, mock_event_repo, mock_distributor
    ):
        """Test losing the claim race on a check-in is a duplicate."""
        mock_event_repo.claim.side_effect = IntegrityError(
            "INSERT", {}, Exception("UNIQUE constraint failed")
        )

        with pytest.raises(DuplicateReferenceError):
            await service.daily_check_in(5, date(2026, 1, 2), 1)

        mock_session.rollback.assert_awaited_once()
        mock_distributor.distribute.assert_not_awaited()


class TestTriggers:
    """Test the concrete triggers map onto the shared flow."""

    @pytest.mark.asyncio
    async def test_task_submission_event_id(self, service, mock_ledger):
        """Test task approval uses the submission id as event id."""
        result = await service.approve_task_submission(42, 5, 100, "Survey")

        assert result.event_id == "task-submission:42"
        args = mock_ledger.credit.await_args.args
        assert args[:4] == (5, LedgerKind.POINTS, 100, "task-submission:42")
        assert args[4] == "Task completed: Survey"

    @pytest.mark.asyncio
    async def test_check_in_claimed_twice(
        self, service, mock_ledger, mock_event_repo
    ):
        """Test the same day cannot be claimed twice."""
        mock_event_repo.is_processed.return_value = True

        with pytest.raises(DuplicateReferenceError):
            await service.daily_check_in(5, date(2026, 1, 2), 1)

        mock_ledger.credit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_check_in_reward_by_streak(self, service, mock_ledger):
        """Test the check-in pays the streak day's reward as a BONUS."""
        await service.daily_check_in(5, date(2026, 1, 2), 3)

        kwargs = mock_ledger.credit.await_args.kwargs
        args = mock_ledger.credit.await_args.args
        assert args[2] == 100
        assert args[3] == "check-in:5:2026-01-02"
        assert kwargs["transaction_type"] == TransactionType.BONUS

    @pytest.mark.asyncio
    async def test_dispute_refund_converted_to_points(self, service, mock_ledger):
        """Test USD refunds are paid in points."""
        await service.refund_dispute(9, 5, Decimal("2.5"))

        args = mock_ledger.credit.await_args.args
        assert args[2] == 2500
        assert args[3] == "dispute-refund:9"

    @pytest.mark.asyncio
    async def test_deduction_has_no_fan_out(
        self, service, mock_ledger, mock_distributor
    ):
        """Test admin deductions debit without paying commissions."""
        result = await service.adjust_balance(
            "adj-1", 5, LedgerKind.POINTS, 40, "deduct", admin_id=1
        )

        assert result.event_id == "adjustment:adj-1"
        mock_ledger.debit.assert_awaited_once()
        assert (
            mock_ledger.debit.await_args.kwargs["transaction_type"]
            == TransactionType.PENALTY
        )
        mock_distributor.distribute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_deduction_insufficient_balance(
        self, service, mock_session, mock_ledger
    ):
        """Test a failing deduction is rolled back and raised."""
        mock_ledger.debit.side_effect = InsufficientBalanceError(5, "points", 40)

        with pytest.raises(InsufficientBalanceError):
            await service.adjust_balance(
                "adj-1", 5, LedgerKind.POINTS, 40, "deduct"
            )

        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_adjustment_action(self, service):
        """Test only add and deduct are accepted."""
        with pytest.raises(ValueError):
            await service.adjust_balance(
                "adj-1", 5, LedgerKind.POINTS, 40, "multiply"
            )

    @pytest.mark.asyncio
    async def test_reversal_failure_not_raised(
        self, service, mock_ledger, mock_distributor
    ):
        """Test a failing clawback keeps the source penalty."""
        mock_distributor.reverse.side_effect = RuntimeError("boom")

        result = await service.reverse_task_submission(42, 5, 100)

        mock_ledger.debit.assert_awaited_once()
        mock_distributor.reverse.assert_awaited_once_with(
            "task-submission:42", "task-submission-reversal:42"
        )
        assert result.fan_out_error == "boom"
