"""
Referral system configuration.

Contains constants and reference formats for the referral system.
"""

from app.config.business_constants import MAX_REFERRAL_LEVEL
from app.config.settings import settings

# Commission fan-out depth (never deeper than MAX_REFERRAL_LEVEL)
REFERRAL_MAX_DEPTH = min(settings.referral_max_depth, MAX_REFERRAL_LEVEL)


def referral_reference(event_id: str, level: int) -> str:
    """Ledger reference of the commission paid for (event, level)."""
    return f"referral:{event_id}:L{level}"


def reversal_reference(reversal_event_id: str, level: int) -> str:
    """Ledger reference of the clawback of one commission level."""
    return f"referral-reversal:{reversal_event_id}:L{level}"
