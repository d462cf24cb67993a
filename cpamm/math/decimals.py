"""Decimal normalization between assets of different precision.

Functions for rescaling integer token amounts to a common number of decimals
before cross-asset comparison or pricing, and back to an asset's native
decimals afterwards.
"""

from cpamm.constants import MAX_DECIMALS
from cpamm.errors import InvalidArguments, InvalidDecimals
from cpamm.safe_int import S


def _check_exponent(decimals: int, max_decimals: int) -> None:
    if not 0 <= decimals <= max_decimals:
        raise InvalidDecimals(f"Decimal exponent must be in [0, {max_decimals}], got {decimals}")


def _check_amount(amount: int) -> None:
    if amount < 0:
        raise InvalidArguments(f"Amount must be non-negative, got {amount}")


def scale_up(amount: int, extra_decimals: int, max_decimals: int = MAX_DECIMALS) -> int:
    """Add decimals to an amount.

    Args:
        amount: Amount in its current precision
        extra_decimals: Number of decimals to add
        max_decimals: Largest exponent accepted

    Returns:
        amount * 10**extra_decimals

    Raises:
        InvalidDecimals: If extra_decimals is outside [0, max_decimals]
        InvalidArguments: If amount is negative
    """
    _check_exponent(extra_decimals, max_decimals)
    _check_amount(amount)
    return (S(amount) * S(10) ** extra_decimals).value


def scale_down(amount: int, removed_decimals: int, max_decimals: int = MAX_DECIMALS) -> int:
    """Remove decimals from an amount, truncating the remainder.

    scale_down(scale_up(v, d), d) == v, but scale_up(scale_down(v, d), d)
    may be smaller than v.

    Args:
        amount: Amount in its current precision
        removed_decimals: Number of decimals to drop
        max_decimals: Largest exponent accepted

    Returns:
        amount // 10**removed_decimals

    Raises:
        InvalidDecimals: If removed_decimals is outside [0, max_decimals]
        InvalidArguments: If amount is negative
    """
    _check_exponent(removed_decimals, max_decimals)
    _check_amount(amount)
    return (S(amount) // S(10) ** removed_decimals).value


def common_decimals(decimals_a: int, decimals_b: int) -> int:
    """Precision both assets are aligned to for cross-asset math."""
    return max(decimals_a, decimals_b)


def normalize(amount: int, decimals: int, target_decimals: int, max_decimals: int = MAX_DECIMALS) -> int:
    """Rescale an amount from its native decimals up to target_decimals."""
    if target_decimals < decimals:
        raise InvalidDecimals(f"Cannot normalize {decimals} decimals down to {target_decimals}")
    return scale_up(amount, target_decimals - decimals, max_decimals)


def denormalize(amount: int, decimals: int, target_decimals: int, max_decimals: int = MAX_DECIMALS) -> int:
    """Rescale an amount from target_decimals back to native decimals (truncating)."""
    if target_decimals < decimals:
        raise InvalidDecimals(f"Cannot denormalize {target_decimals} decimals up to {decimals}")
    return scale_down(amount, target_decimals - decimals, max_decimals)
