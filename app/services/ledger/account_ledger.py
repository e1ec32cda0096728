"""
Account ledger.

The only writer of account balances. Every credit or debit is one
conditional UPDATE plus one Transaction insert in the caller's unit of
work, so concurrent operations on the same account compose without locks.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config.settings import settings
from app.models.account import Account
from app.models.enums import (
    EARNING_TRANSACTION_TYPES,
    LedgerKind,
    TransactionStatus,
    TransactionType,
)
from app.models.transaction import Transaction
from app.repositories.account_repository import AccountRepository
from app.repositories.transaction_repository import TransactionRepository
from app.services.base_service import BaseService
from app.utils.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    UnknownAccountError,
)
from app.utils.money import to_decimal


@dataclass(frozen=True)
class Balance:
    """Point-in-time balance snapshot of an account."""

    account_id: int
    points: int
    cash: Decimal
    total_earnings: Decimal


class AccountLedger(BaseService):
    """
    Atomic balance mutation and the immutable transaction log.

    The ledger never commits and never deduplicates by reference: callers
    own the unit of work and decide, via has_reference(), whether an
    event was already posted.
    """

    def __init__(
        self, session: AsyncSession, points_per_usd: int | None = None
    ) -> None:
        """
        Initialize account ledger.

        Args:
            session: Async database session
            points_per_usd: Points per USD for total_earnings
                (defaults to settings.points_per_usd)
        """
        super().__init__(session)
        self.account_repo = AccountRepository(session)
        self.transaction_repo = TransactionRepository(session)
        self.points_per_usd = points_per_usd or settings.points_per_usd

    async def credit(
        self,
        account_id: int,
        ledger_kind: LedgerKind,
        amount: int | Decimal,
        reference: str,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
        *,
        transaction_type: TransactionType = TransactionType.EARNING,
    ) -> Transaction:
        """
        Increment a balance and record the transaction.

        Args:
            account_id: Account to credit
            ledger_kind: POINTS or CASH
            amount: Positive amount (integral for points)
            reference: Idempotency correlation reference
            description: Human readable description
            metadata: Free-form metadata stored with the transaction
            transaction_type: Transaction type (EARNING by default)

        Returns:
            Created transaction

        Raises:
            InvalidAmountError: amount is not a positive ledger unit
            UnknownAccountError: account does not exist or is deactivated
        """
        value = self._validate_amount(ledger_kind, amount)
        earnings = self._earnings_delta(ledger_kind, value, transaction_type)

        if ledger_kind == LedgerKind.POINTS:
            updated = await self.account_repo.increment_points(
                account_id, int(value), earnings
            )
        else:
            updated = await self.account_repo.increment_cash(
                account_id, value, earnings
            )

        if not updated:
            raise UnknownAccountError(account_id)

        transaction = await self._record(
            account_id=account_id,
            ledger_kind=ledger_kind,
            signed_amount=value,
            reference=reference,
            description=description,
            metadata=metadata,
            transaction_type=transaction_type,
        )

        self.logger.info(
            "Ledger credit",
            extra={
                "account_id": account_id,
                "ledger_kind": ledger_kind.value,
                "amount": str(value),
                "type": transaction_type.value,
                "reference": reference,
                "transaction_id": transaction.id,
            },
        )

        return transaction

    async def debit(
        self,
        account_id: int,
        ledger_kind: LedgerKind,
        amount: int | Decimal,
        reference: str,
        description: str | None = None,
        metadata: dict[str, Any] | None = None,
        *,
        transaction_type: TransactionType = TransactionType.PENALTY,
    ) -> Transaction:
        """
        Decrement a balance if it covers the amount and record the transaction.

        Args:
            account_id: Account to debit
            ledger_kind: POINTS or CASH
            amount: Positive amount (integral for points)
            reference: Idempotency correlation reference
            description: Human readable description
            metadata: Free-form metadata stored with the transaction
            transaction_type: Transaction type (PENALTY by default)

        Returns:
            Created transaction (with negative deltas)

        Raises:
            InvalidAmountError: amount is not a positive ledger unit
            UnknownAccountError: account does not exist
            InsufficientBalanceError: balance lower than amount
        """
        value = self._validate_amount(ledger_kind, amount)

        if ledger_kind == LedgerKind.POINTS:
            updated = await self.account_repo.decrement_points(
                account_id, int(value)
            )
        else:
            updated = await self.account_repo.decrement_cash(account_id, value)

        if not updated:
            if not await self.account_repo.exists(id=account_id):
                raise UnknownAccountError(account_id)
            self.logger.warning(
                "Ledger debit rejected: insufficient balance",
                extra={
                    "account_id": account_id,
                    "ledger_kind": ledger_kind.value,
                    "amount": str(value),
                    "reference": reference,
                },
            )
            raise InsufficientBalanceError(account_id, ledger_kind.value, value)

        transaction = await self._record(
            account_id=account_id,
            ledger_kind=ledger_kind,
            signed_amount=-value,
            reference=reference,
            description=description,
            metadata=metadata,
            transaction_type=transaction_type,
        )

        self.logger.info(
            "Ledger debit",
            extra={
                "account_id": account_id,
                "ledger_kind": ledger_kind.value,
                "amount": str(value),
                "type": transaction_type.value,
                "reference": reference,
                "transaction_id": transaction.id,
            },
        )

        return transaction

    async def has_reference(self, reference: str) -> bool:
        """
        Check whether a reference was already posted.

        Args:
            reference: Idempotency reference

        Returns:
            True if a transaction with this reference exists
        """
        return await self.transaction_repo.has_reference(reference)

    async def get_balance(self, account_id: int) -> Balance:
        """
        Read the current balances straight from the database.

        Args:
            account_id: Account ID

        Returns:
            Balance snapshot

        Raises:
            UnknownAccountError: account does not exist
        """
        stmt = select(
            Account.points_balance,
            Account.cash_balance,
            Account.total_earnings,
        ).where(Account.id == account_id)
        row = (await self.session.execute(stmt)).first()

        if row is None:
            raise UnknownAccountError(account_id)

        return Balance(
            account_id=account_id,
            points=int(row.points_balance),
            cash=Decimal(str(row.cash_balance)),
            total_earnings=Decimal(str(row.total_earnings)),
        )

    async def get_history(
        self, account_id: int, page: int = 1, per_page: int = 20
    ) -> dict:
        """
        Get paginated transaction history.

        Args:
            account_id: Account ID
            page: Page number
            per_page: Items per page

        Returns:
            Dict with transactions, total, page, pages
        """
        transactions, total = await self.transaction_repo.get_account_history(
            account_id, page=page, per_page=per_page
        )
        pages = (total + per_page - 1) // per_page if total > 0 else 0

        return {
            "transactions": transactions,
            "total": total,
            "page": page,
            "pages": pages,
        }

    def _validate_amount(
        self, ledger_kind: LedgerKind, amount: int | Decimal
    ) -> Decimal:
        """Normalize amount to Decimal and enforce ledger unit rules."""
        try:
            value = to_decimal(amount)
        except (ArithmeticError, ValueError, TypeError) as e:
            raise InvalidAmountError(amount, "not a number") from e

        if not value.is_finite():
            raise InvalidAmountError(amount, "not a finite number")
        if value <= 0:
            raise InvalidAmountError(amount)
        if ledger_kind == LedgerKind.POINTS and value != value.to_integral_value():
            raise InvalidAmountError(amount, "points must be whole numbers")

        return value

    def _earnings_delta(
        self,
        ledger_kind: LedgerKind,
        value: Decimal,
        transaction_type: TransactionType,
    ) -> Decimal:
        """USD value a credit adds to total_earnings."""
        if transaction_type not in EARNING_TRANSACTION_TYPES:
            return Decimal("0")
        if ledger_kind == LedgerKind.POINTS:
            return value / Decimal(self.points_per_usd)
        return value

    async def _record(
        self,
        account_id: int,
        ledger_kind: LedgerKind,
        signed_amount: Decimal,
        reference: str,
        description: str | None,
        metadata: dict[str, Any] | None,
        transaction_type: TransactionType,
    ) -> Transaction:
        """Insert the transaction row for a balance change."""
        is_points = ledger_kind == LedgerKind.POINTS

        return await self.transaction_repo.create(
            account_id=account_id,
            type=transaction_type.value,
            status=TransactionStatus.COMPLETED.value,
            points=int(signed_amount) if is_points else 0,
            cash_amount=Decimal("0") if is_points else signed_amount,
            description=description,
            reference=reference,
            meta=dict(metadata or {}, ledger_kind=ledger_kind.value),
        )
