"""
Business logic constants.

Central location for business rules shared by the ledger, the referral
engine and the earning triggers.
"""

from decimal import Decimal

# Referral levels are numbered 1 (direct referrer) .. MAX_REFERRAL_LEVEL
MIN_REFERRAL_LEVEL = 1
MAX_REFERRAL_LEVEL = 10

# Commission value bounds for PERCENTAGE entries
MIN_COMMISSION_PERCENT = Decimal("0")
MAX_COMMISSION_PERCENT = Decimal("100")

# Daily check-in rewards: streak day -> points (cycles after day 7)
DAILY_REWARDS = {
    1: 50,
    2: 75,
    3: 100,
    4: 125,
    5: 150,
    6: 200,
    7: 300,
}
DAILY_REWARD_CYCLE = len(DAILY_REWARDS)


def daily_reward_points(streak_day: int) -> int:
    """
    Get check-in reward for a streak day.

    Args:
        streak_day: 1-based consecutive check-in day (any positive number)

    Returns:
        Points for that day of the seven-day cycle
    """
    if streak_day < 1:
        raise ValueError("streak_day must be positive")
    return DAILY_REWARDS[(streak_day - 1) % DAILY_REWARD_CYCLE + 1]
