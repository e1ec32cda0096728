"""
Services.

Business logic layer.
"""

# Base Service Infrastructure
from app.services.account_service import AccountService
from app.services.base_service import (
    BaseService,
    log_operation,
    transaction,
)

# Earning triggers
from app.services.earning_service import EarningResult, EarningService

# Ledger
from app.services.ledger import AccountLedger, Balance

# Referral Services
from app.services.referral import (
    CommissionDistributor,
    CommissionScheduleService,
    DistributionReport,
    ReferralGraph,
    ReferralQueryService,
)


__all__ = [
    # Base
    "BaseService",
    "log_operation",
    "transaction",
    # Core
    "AccountLedger",
    "AccountService",
    "Balance",
    "EarningResult",
    "EarningService",
    # Referral
    "CommissionDistributor",
    "CommissionScheduleService",
    "DistributionReport",
    "ReferralGraph",
    "ReferralQueryService",
]
