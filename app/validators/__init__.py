"""
Validators package.

Provides validation functions for admin-supplied configuration.
"""

from app.validators.commission import validate_commission_entry


__all__ = [
    "validate_commission_entry",
]
