"""
Referral services package.

Contains modular services for referral processing:
- config: Fan-out depth and ledger reference formats
- referral_graph: Ancestor chain walks and downline counts
- commission_schedule: Versioned commission schedule snapshots
- commission_distributor: Multi-level commission fan-out and reversal
- query_service: Referral dashboard queries
"""

from app.services.referral.commission_distributor import (
    CommissionDistributor,
    DistributionReport,
    LevelFailure,
    SkippedLevel,
)
from app.services.referral.commission_schedule import (
    CommissionRule,
    CommissionSchedule,
    CommissionScheduleService,
)
from app.services.referral.config import (
    REFERRAL_MAX_DEPTH,
    referral_reference,
    reversal_reference,
)
from app.services.referral.query_service import ReferralQueryService
from app.services.referral.referral_graph import ReferralAncestor, ReferralGraph


__all__ = [
    # Configuration
    "REFERRAL_MAX_DEPTH",
    "referral_reference",
    "reversal_reference",
    # Graph
    "ReferralAncestor",
    "ReferralGraph",
    # Schedule
    "CommissionRule",
    "CommissionSchedule",
    "CommissionScheduleService",
    # Fan-out
    "CommissionDistributor",
    "DistributionReport",
    "LevelFailure",
    "SkippedLevel",
    # Queries
    "ReferralQueryService",
]
