"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- Schedule entry rows shaped like CommissionScheduleEntry
- Mocked ledger and distributor collaborators
"""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest


@pytest.fixture
def make_entry():
    """
    Build a row with the attributes of CommissionScheduleEntry.

    Returns:
        Callable producing SimpleNamespace rows
    """

    def _make(
        level,
        commission_type="PERCENTAGE",
        commission_value=Decimal("10"),
        is_active=True,
        description=None,
    ):
        return SimpleNamespace(
            level=level,
            commission_type=commission_type,
            commission_value=commission_value,
            is_active=is_active,
            description=description,
        )

    return _make


@pytest.fixture
def mock_ledger():
    """
    Mock AccountLedger.

    has_reference() answers False and credit/debit return a transaction
    stub with id 1.
    """
    ledger = AsyncMock()
    ledger.has_reference = AsyncMock(return_value=False)
    ledger.credit = AsyncMock(return_value=MagicMock(id=1))
    ledger.debit = AsyncMock(return_value=MagicMock(id=2))
    return ledger


@pytest.fixture
def mock_distributor():
    """Mock CommissionDistributor returning no earnings."""
    distributor = AsyncMock()
    distributor.distribute = AsyncMock(return_value=[])
    distributor.reverse = AsyncMock(return_value=[])
    return distributor


@pytest.fixture
def mock_event_repo():
    """Mock ProcessedEventRepository with no claimed events."""
    event_repo = AsyncMock()
    event_repo.is_processed = AsyncMock(return_value=False)
    event_repo.claim = AsyncMock()
    return event_repo
