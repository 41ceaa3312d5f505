"""
Core math modules для vault

Целочисленные примитивы конверсии assets <-> shares и расчёта fee.
"""

from src.core.math.share_math import (
    # Constants
    FEE_RATE_BPS,
    FEE_RATE_DENOMINATOR,
    RAY,
    # Conversion
    assets_for_shares,
    price_per_share_ray,
    shares_for_deposit,
    # Fee
    performance_fee,
    # Validation
    validate_amount,
    validate_positive_amount,
)

__all__ = [
    # Share Math: Constants
    "FEE_RATE_BPS",
    "FEE_RATE_DENOMINATOR",
    "RAY",
    # Share Math: Conversion
    "assets_for_shares",
    "price_per_share_ray",
    "shares_for_deposit",
    # Share Math: Fee
    "performance_fee",
    # Share Math: Validation
    "validate_amount",
    "validate_positive_amount",
]
