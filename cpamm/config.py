"""Pool configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from cpamm.constants import MAX_DECIMALS

_TRUTHY = ("true", "1", "yes")


@dataclass(frozen=True)
class PoolConfig:
    """Behavior flags for a pool instance.

    Attributes:
        max_decimals: Largest asset precision accepted at initialization and
            largest exponent the decimal normalizer will apply (default: 38).
        auto_register_accounts: If True, crediting an account that has no
            ledger entry registers it first. If False, such a credit raises
            UnregisteredAccount.
        enforce_u128: If True, ledger balances and supplies above 2**128 - 1
            are rejected with AmountOverflow.
    """

    max_decimals: int = MAX_DECIMALS
    auto_register_accounts: bool = True
    enforce_u128: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.max_decimals <= MAX_DECIMALS:
            raise ValueError(f"max_decimals must be in [0, {MAX_DECIMALS}], got {self.max_decimals}")

    @classmethod
    def from_env(cls) -> PoolConfig:
        """Build a configuration from CPAMM_* environment variables.

        - CPAMM_MAX_DECIMALS: integer (default: 38)
        - CPAMM_AUTO_REGISTER: true/false (default: true)
        - CPAMM_ENFORCE_U128: true/false (default: true)
        """
        return cls(
            max_decimals=int(os.environ.get("CPAMM_MAX_DECIMALS", str(MAX_DECIMALS))),
            auto_register_accounts=os.environ.get("CPAMM_AUTO_REGISTER", "true").lower() in _TRUTHY,
            enforce_u128=os.environ.get("CPAMM_ENFORCE_U128", "true").lower() in _TRUTHY,
        )


# Default configuration instance
DEFAULT_POOL_CONFIG = PoolConfig()
