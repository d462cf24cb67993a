"""Checked integer wrapper for token amounts.

SafeInt wraps a Python int so that the arithmetic used for reserve and share
bookkeeping fails loudly instead of producing values a u128 ledger could
never hold:
- Subtraction below zero raises Underflow
- Division by zero raises DivisionByZero
- Values above 2**128 - 1 are rejected by to_u128()

Usage pattern:
    from cpamm.safe_int import S

    def price(reserve_in: int, reserve_out: int, amount_in: int) -> int:
        k = S(reserve_in) * S(reserve_out)
        remaining = k // (S(reserve_in) + S(amount_in))  # Raises on zero
        return (S(reserve_out) - remaining).value        # Raises on underflow
"""

from __future__ import annotations

from cpamm.constants import U128_MAX


class SafeIntError(ArithmeticError):
    """Base class for SafeInt arithmetic errors."""

    pass


class DivisionByZero(SafeIntError):
    """Division or modulo by zero."""

    pass


class Underflow(SafeIntError):
    """Subtraction would produce a negative result."""

    pass


class U128Overflow(SafeIntError):
    """Value is negative or exceeds the u128 maximum."""

    pass


class SafeInt:
    """Non-negative integer with checked arithmetic.

    Addition and multiplication never fail (Python ints are unbounded);
    the u128 bound is applied explicitly with to_u128() when a value is
    about to be stored in a ledger.

    Attributes:
        value: The underlying integer value (read-only)
    """

    __slots__ = ("_value",)
    _value: int

    def __init__(self, value: int | SafeInt) -> None:
        if isinstance(value, SafeInt):
            self._value = value._value
        elif isinstance(value, int) and not isinstance(value, bool):
            self._value = value
        else:
            raise TypeError(f"SafeInt requires int, got {type(value).__name__}")

    @property
    def value(self) -> int:
        """The underlying integer value."""
        return self._value

    def __repr__(self) -> str:
        return f"SafeInt({self._value})"

    def __str__(self) -> str:
        return str(self._value)

    def __hash__(self) -> int:
        return hash(self._value)

    # --- Arithmetic operations ---

    def __add__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value + _extract_value(other))

    def __sub__(self, other: SafeInt | int) -> SafeInt:
        """Subtract other from self.

        Raises:
            Underflow: If result would be negative
        """
        other_val = _extract_value(other)
        result = self._value - other_val
        if result < 0:
            raise Underflow(f"Underflow: {self._value} - {other_val} = {result}")
        return SafeInt(result)

    def __mul__(self, other: SafeInt | int) -> SafeInt:
        return SafeInt(self._value * _extract_value(other))

    def __floordiv__(self, other: SafeInt | int) -> SafeInt:
        """Floor division.

        Raises:
            DivisionByZero: If other is zero
        """
        other_val = _extract_value(other)
        if other_val == 0:
            raise DivisionByZero(f"Division by zero: {self._value} // 0")
        return SafeInt(self._value // other_val)

    def __pow__(self, exponent: int) -> SafeInt:
        return SafeInt(self._value**exponent)

    # --- Comparison operations ---

    def __eq__(self, other: object) -> bool:
        if isinstance(other, SafeInt):
            return self._value == other._value
        if isinstance(other, int):
            return self._value == other
        return NotImplemented

    def __lt__(self, other: SafeInt | int) -> bool:
        return self._value < _extract_value(other)

    def __le__(self, other: SafeInt | int) -> bool:
        return self._value <= _extract_value(other)

    def __gt__(self, other: SafeInt | int) -> bool:
        return self._value > _extract_value(other)

    def __ge__(self, other: SafeInt | int) -> bool:
        return self._value >= _extract_value(other)

    # --- Conversion ---

    def __int__(self) -> int:
        return self._value

    def __bool__(self) -> bool:
        return self._value != 0

    def to_u128(self) -> int:
        """Convert to int, validating u128 bounds.

        Raises:
            U128Overflow: If value is negative or exceeds 2**128 - 1
        """
        if self._value < 0:
            raise U128Overflow(f"Negative value cannot be u128: {self._value}")
        if self._value > U128_MAX:
            raise U128Overflow(f"Value exceeds u128 max: {self._value}")
        return self._value


def _extract_value(x: SafeInt | int) -> int:
    """Extract integer value from SafeInt or int."""
    if isinstance(x, SafeInt):
        return x._value
    return x


# Convenience alias for concise code
S = SafeInt
