"""Fungible balance ledger.

A FungibleLedger maps account ids to unsigned balances and tracks the total
supply. The pool keeps one ledger per reserve asset and one for its shares;
the pool's own account holds the tradable reserve.

Invariants:
- sum(balances) == total_supply
- no balance is ever negative (debits beyond the balance raise
  InsufficientBalance before anything changes)
- with u128 enforcement on, no balance or supply exceeds 2**128 - 1
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from cpamm.config import DEFAULT_POOL_CONFIG, PoolConfig
from cpamm.errors import AmountOverflow, InsufficientBalance, InvalidArguments, UnregisteredAccount
from cpamm.safe_int import S, U128Overflow, Underflow

logger = structlog.get_logger()


@dataclass(frozen=True)
class LedgerSnapshot:
    """Point-in-time copy of a ledger used to roll back a failed operation."""

    accounts: dict[str, int] = field(default_factory=dict)
    total_supply: int = 0


class FungibleLedger:
    """Balance map for one fungible asset.

    Args:
        name: Identifier used in log events and error messages
        config: Pool configuration (registration and u128 behavior)
    """

    def __init__(self, name: str, config: PoolConfig | None = None) -> None:
        self.name = name
        self.config = config or DEFAULT_POOL_CONFIG
        self._accounts: dict[str, int] = {}
        self._total_supply = 0

    def __repr__(self) -> str:
        return f"FungibleLedger(name={self.name!r}, accounts={len(self._accounts)}, total_supply={self._total_supply})"

    @property
    def total_supply(self) -> int:
        return self._total_supply

    def accounts(self) -> dict[str, int]:
        """Copy of all registered balances."""
        return dict(self._accounts)

    # --- Registration ---

    def is_registered(self, account_id: str) -> bool:
        return account_id in self._accounts

    def register_account(self, account_id: str) -> bool:
        """Register an account with a zero balance.

        Returns:
            True if the account was newly registered, False if it already was
        """
        if account_id in self._accounts:
            return False
        self._accounts[account_id] = 0
        return True

    def unregister_account(self, account_id: str, force: bool = False) -> int | None:
        """Remove an account from the ledger.

        Args:
            account_id: Account to remove
            force: Burn a non-zero balance instead of refusing

        Returns:
            The balance burned (0 for an empty account), or None if the
            account was not registered

        Raises:
            InvalidArguments: If the balance is non-zero and force is False
        """
        if account_id not in self._accounts:
            return None
        balance = self._accounts[account_id]
        if balance > 0 and not force:
            raise InvalidArguments(
                f"Cannot unregister {account_id} from {self.name} with positive balance {balance}"
            )
        del self._accounts[account_id]
        self._total_supply = (S(self._total_supply) - S(balance)).value
        if balance > 0:
            logger.info("ledger_balance_burned", ledger=self.name, account=account_id, amount=balance)
        return balance

    # --- Balances ---

    def balance_of(self, account_id: str) -> int:
        """Balance of an account, 0 if it is not registered."""
        return self._accounts.get(account_id, 0)

    def unwrap_balance_of(self, account_id: str) -> int:
        """Balance of a registered account.

        Raises:
            UnregisteredAccount: If the account has no ledger entry
        """
        try:
            return self._accounts[account_id]
        except KeyError:
            raise UnregisteredAccount(f"Account {account_id} is not registered with {self.name}") from None

    def deposit(self, account_id: str, amount: int) -> None:
        """Credit an account and grow total supply.

        Raises:
            InvalidArguments: If amount is negative
            UnregisteredAccount: If the account is unknown and auto-registration is off
            AmountOverflow: If the balance or total supply would exceed u128
        """
        _check_amount(amount)
        if account_id not in self._accounts and not self.config.auto_register_accounts:
            raise UnregisteredAccount(f"Account {account_id} is not registered with {self.name}")

        new_balance = self._checked(S(self._accounts.get(account_id, 0)) + S(amount), account_id)
        new_supply = self._checked(S(self._total_supply) + S(amount), "total_supply")
        self._accounts[account_id] = new_balance
        self._total_supply = new_supply

    def withdraw(self, account_id: str, amount: int) -> None:
        """Debit an account and shrink total supply.

        Raises:
            InvalidArguments: If amount is negative
            InsufficientBalance: If the account holds less than amount
        """
        _check_amount(amount)
        balance = self._accounts.get(account_id, 0)
        try:
            new_balance = (S(balance) - S(amount)).value
        except Underflow:
            raise InsufficientBalance(
                f"{account_id} holds {balance} of {self.name}, cannot debit {amount}"
            ) from None
        if account_id in self._accounts:
            self._accounts[account_id] = new_balance
        self._total_supply = (S(self._total_supply) - S(amount)).value

    def transfer(self, sender_id: str, receiver_id: str, amount: int) -> None:
        """Move amount from sender to receiver; total supply is unchanged.

        Both new balances are computed before either is written, so a
        rejected transfer leaves the ledger as it was.

        Raises:
            InvalidArguments: If sender and receiver are the same account
            UnregisteredAccount: If the receiver is unknown and auto-registration is off
            InsufficientBalance: If the sender holds less than amount
            AmountOverflow: If the receiver's balance would exceed u128
        """
        if sender_id == receiver_id:
            raise InvalidArguments(f"Sender and receiver must differ, got {sender_id} for both")
        _check_amount(amount)
        if receiver_id not in self._accounts and not self.config.auto_register_accounts:
            raise UnregisteredAccount(f"Account {receiver_id} is not registered with {self.name}")

        sender_balance = self._accounts.get(sender_id, 0)
        try:
            new_sender_balance = (S(sender_balance) - S(amount)).value
        except Underflow:
            raise InsufficientBalance(
                f"{sender_id} holds {sender_balance} of {self.name}, cannot debit {amount}"
            ) from None
        new_receiver_balance = self._checked(S(self._accounts.get(receiver_id, 0)) + S(amount), receiver_id)

        if sender_id in self._accounts:
            self._accounts[sender_id] = new_sender_balance
        self._accounts[receiver_id] = new_receiver_balance

    # --- Rollback support ---

    def snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(accounts=dict(self._accounts), total_supply=self._total_supply)

    def restore(self, snapshot: LedgerSnapshot) -> None:
        self._accounts = dict(snapshot.accounts)
        self._total_supply = snapshot.total_supply

    def _checked(self, value: S, what: str) -> int:
        if not self.config.enforce_u128:
            return value.value
        try:
            return value.to_u128()
        except U128Overflow:
            raise AmountOverflow(f"{self.name} {what} would exceed u128: {value.value}") from None


def _check_amount(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
        raise InvalidArguments(f"Amount must be a non-negative integer, got {amount!r}")
