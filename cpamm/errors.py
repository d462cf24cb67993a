"""Pool error classes.

Every failure a pool operation can report derives from PoolError. Each class
carries a stable ``code`` used by the dispatch layer when serializing the
error, and all of them abort the operation before any ledger change becomes
visible.
"""


class PoolError(Exception):
    """Base error for pool operations."""

    code = "pool_error"


class InvalidArguments(PoolError):
    """Identical assets where distinct ones are required, or a malformed amount."""

    code = "invalid_arguments"


class UnknownAsset(PoolError):
    """The asset is not registered with the pool."""

    code = "unknown_asset"


class ProportionMismatch(PoolError):
    """Liquidity amounts do not match the current reserve ratio exactly."""

    code = "proportion_mismatch"


class InsufficientBalance(PoolError):
    """A debit exceeds the account's ledger balance."""

    code = "insufficient_balance"


class ZeroShareBalance(PoolError):
    """Redemption attempted by an account holding no shares."""

    code = "zero_share_balance"


class ExternalTransferFailed(PoolError):
    """The external transfer capability reported failure."""

    code = "external_transfer_failed"


class NoLiquidity(PoolError):
    """Swap priced against an empty reserve."""

    code = "no_liquidity"


class InvalidDecimals(PoolError):
    """Decimal exponent outside the range representable in u128."""

    code = "invalid_decimals"


class AmountOverflow(PoolError):
    """A balance or total supply would exceed u128."""

    code = "amount_overflow"


class UnregisteredAccount(PoolError):
    """Credit to an account that was never registered with the ledger."""

    code = "unregistered_account"


class AlreadyInitialized(PoolError):
    """initialize() called on a pool that already holds state."""

    code = "already_initialized"


class NotInitialized(PoolError):
    """Operation attempted before initialize()."""

    code = "not_initialized"


class UnknownWithdrawal(PoolError):
    """Confirmation signal for a correlation id that was never issued."""

    code = "unknown_withdrawal"


class InvalidWithdrawalState(PoolError):
    """Confirmation signal for a withdrawal that is no longer pending."""

    code = "invalid_withdrawal_state"


class Unauthorized(PoolError):
    """The calling account may not deliver this signal."""

    code = "unauthorized"
