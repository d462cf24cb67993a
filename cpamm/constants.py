"""Numeric bounds shared across the pool.

Balances, reserves and share supplies are unsigned 128-bit quantities.
"""

# Largest value a ledger balance or total supply may hold
U128_MAX = 2**128 - 1

# Largest power-of-ten exponent representable in u128 (10**38 < 2**128 < 10**39)
MAX_DECIMALS = 38
