"""
Standard type definitions for database models.

Provides consistent types for monetary and percentage fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for cash balances, commissions, base amounts
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Commission value: percentage (0-100) or flat amount
# Precision: 18 digits total, 4 after decimal point
CommissionValueType = DECIMAL(18, 4)
