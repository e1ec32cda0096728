"""
Exception handling utilities.

Defines the ledger error taxonomy and categorized exception groups for
proper error handling in the commission fan-out.
"""


class LedgerError(Exception):
    """Base class for ledger and referral engine errors."""


class UnknownAccountError(LedgerError):
    """Raised when an operation targets an account that does not exist."""

    def __init__(self, account_id: int) -> None:
        self.account_id = account_id
        super().__init__(f"Account {account_id} not found")


class InvalidAmountError(LedgerError):
    """Raised when a credit or debit amount is not a positive ledger unit."""

    def __init__(self, amount: object, reason: str = "amount must be positive") -> None:
        self.amount = amount
        super().__init__(f"Invalid amount {amount!r}: {reason}")


class InsufficientBalanceError(LedgerError):
    """Raised when a debit would take a balance below zero."""

    def __init__(self, account_id: int, ledger_kind: str, amount: object) -> None:
        self.account_id = account_id
        self.ledger_kind = ledger_kind
        self.amount = amount
        super().__init__(
            f"Insufficient {ledger_kind} balance on account {account_id} "
            f"for debit of {amount}"
        )


class ChainCorruptedError(LedgerError):
    """
    Raised when the referral chain contains a cycle.

    Attributes:
        account_id: Account whose chain was walked
        repeated_account_id: First account seen twice
        chain: Valid prefix of the chain before the repetition
    """

    def __init__(
        self,
        account_id: int,
        repeated_account_id: int,
        chain: list | None = None,
    ) -> None:
        self.account_id = account_id
        self.repeated_account_id = repeated_account_id
        self.chain = chain or []
        super().__init__(
            f"Referral chain of account {account_id} loops back to "
            f"account {repeated_account_id}"
        )


class ScheduleEntryInvalidError(LedgerError):
    """Raised (or recorded) for a malformed commission schedule entry."""

    def __init__(self, level: object, reason: str) -> None:
        self.level = level
        self.reason = reason
        super().__init__(f"Commission schedule entry for level {level}: {reason}")


class DuplicateReferenceError(LedgerError):
    """Raised when an idempotency reference was already processed."""

    def __init__(self, reference: str) -> None:
        self.reference = reference
        super().__init__(f"Reference {reference} already processed")


# Exception categories based on handling strategy

# Absorbed by the distributor for a single level - fan-out continues
ABSORBED_PER_LEVEL = (
    UnknownAccountError,
    ScheduleEntryInvalidError,
    DuplicateReferenceError,
)

# Abort the triggering action - no commission is paid
ABORTS_EVENT = (
    UnknownAccountError,
    InvalidAmountError,
    InsufficientBalanceError,
)

# Skipped for one beneficiary when clawing back commissions
SKIPPED_ON_REVERSAL = (
    UnknownAccountError,
    InsufficientBalanceError,
)


def is_absorbed_per_level(exc: Exception) -> bool:
    """
    Check if exception only affects one fan-out level.

    Args:
        exc: Exception to check

    Returns:
        True if the distributor should log it and continue
    """
    return isinstance(exc, ABSORBED_PER_LEVEL)


def aborts_event(exc: Exception) -> bool:
    """
    Check if exception aborts the originating earning event.

    Args:
        exc: Exception to check

    Returns:
        True if the trigger must report failure
    """
    return isinstance(exc, ABORTS_EVENT)


def is_skipped_on_reversal(exc: Exception) -> bool:
    """
    Check if a commission clawback should skip this beneficiary.

    Args:
        exc: Exception to check

    Returns:
        True if the reversal should log it and move to the next level
    """
    return isinstance(exc, SKIPPED_ON_REVERSAL)
