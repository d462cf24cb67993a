"""Two-asset constant-product pool.

The Pool is the aggregate root: it owns the two reserve ledgers, the share
ledger and the withdrawal coordinator, and every operation goes through it.
Operations run to completion one at a time; each mutating operation runs
inside a transaction that restores all ledgers if it raises, so a failed
operation leaves no partial change behind.

The pool's own account id plays two roles: it is the account holding the
tradable reserves in both reserve ledgers, and it is the asset id that
addresses the share ledger.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import structlog

from cpamm.amm.constant_product import constant_product
from cpamm.config import DEFAULT_POOL_CONFIG, PoolConfig
from cpamm.errors import (
    AlreadyInitialized,
    InvalidArguments,
    InvalidDecimals,
    NotInitialized,
    ProportionMismatch,
    UnknownAsset,
    ZeroShareBalance,
)
from cpamm.ledger import FungibleLedger
from cpamm.math.decimals import common_decimals, normalize
from cpamm.models.types import AssetMetadata
from cpamm.safe_int import S
from cpamm.withdrawal import (
    PendingWithdrawal,
    QueuedTransferCapability,
    TransferCapability,
    WithdrawalCoordinator,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class ReserveAsset:
    """One of the two pooled assets, by position."""

    index: int


@dataclass(frozen=True)
class ShareAsset:
    """The pool's share token."""


AssetRef = ReserveAsset | ShareAsset


@dataclass(frozen=True)
class PooledAsset:
    """A registered asset with its metadata and ledger."""

    asset_id: str
    metadata: AssetMetadata
    ledger: FungibleLedger

    @property
    def decimals(self) -> int:
        return self.metadata.decimals


class Pool:
    """Constant-product liquidity pool over two assets.

    Args:
        account_id: The pool's own account (reserve holder and share asset id)
        capability: External transfer mechanism for withdrawals. Defaults to
            a QueuedTransferCapability awaiting explicit confirmations.
        config: Pool configuration
    """

    def __init__(
        self,
        account_id: str,
        capability: TransferCapability | None = None,
        config: PoolConfig | None = None,
    ) -> None:
        self.account_id = account_id
        self.config = config or DEFAULT_POOL_CONFIG
        self.shares = FungibleLedger(account_id, self.config)
        self.withdrawals = WithdrawalCoordinator(self, capability or QueuedTransferCapability())
        self._assets: tuple[PooledAsset, PooledAsset] | None = None

    def __repr__(self) -> str:
        if self._assets is None:
            return f"Pool(account_id={self.account_id!r}, uninitialized)"
        a, b = self._assets
        return f"Pool(account_id={self.account_id!r}, assets=({a.asset_id!r}, {b.asset_id!r}))"

    # --- Lifecycle ---

    @property
    def is_initialized(self) -> bool:
        return self._assets is not None

    def initialize(
        self,
        asset_a: str,
        asset_b: str,
        metadata_a: AssetMetadata,
        metadata_b: AssetMetadata,
    ) -> None:
        """Register the two pooled assets. Allowed exactly once.

        Raises:
            AlreadyInitialized: If the pool already has assets
            InvalidArguments: If the assets are equal or collide with the pool account
            InvalidDecimals: If either asset's decimals exceed config.max_decimals
        """
        if self._assets is not None:
            raise AlreadyInitialized(f"Pool {self.account_id} is already initialized")
        if asset_a == asset_b:
            raise InvalidArguments(f"Pool assets must differ, got {asset_a} twice")
        if self.account_id in (asset_a, asset_b):
            raise InvalidArguments(f"Pool account {self.account_id} cannot be a pooled asset")
        for asset, metadata in ((asset_a, metadata_a), (asset_b, metadata_b)):
            if metadata.decimals > self.config.max_decimals:
                raise InvalidDecimals(
                    f"{asset} has {metadata.decimals} decimals, maximum is {self.config.max_decimals}"
                )

        pooled = []
        for asset, metadata in ((asset_a, metadata_a), (asset_b, metadata_b)):
            ledger = FungibleLedger(asset, self.config)
            ledger.register_account(self.account_id)
            pooled.append(PooledAsset(asset_id=asset, metadata=metadata, ledger=ledger))
        self.shares.register_account(self.account_id)
        self._assets = (pooled[0], pooled[1])

        logger.info(
            "pool_initialized",
            pool=self.account_id,
            asset_a=asset_a,
            asset_b=asset_b,
            decimals_a=metadata_a.decimals,
            decimals_b=metadata_b.decimals,
        )

    # --- Asset resolution ---

    @property
    def assets(self) -> tuple[PooledAsset, PooledAsset]:
        if self._assets is None:
            raise NotInitialized(f"Pool {self.account_id} is not initialized")
        return self._assets

    def resolve(self, asset: str) -> AssetRef:
        """Map an asset id to the ledger it addresses.

        Raises:
            UnknownAsset: If the id is neither a pooled asset nor the pool account
        """
        if asset == self.account_id:
            return ShareAsset()
        for index, pooled in enumerate(self.assets):
            if pooled.asset_id == asset:
                return ReserveAsset(index)
        raise UnknownAsset(f"Asset {asset} is not supported by pool {self.account_id}")

    def reserve_asset(self, asset: str) -> PooledAsset:
        """Look up a pooled asset, rejecting the share asset."""
        ref = self.resolve(asset)
        if isinstance(ref, ShareAsset):
            raise UnknownAsset(f"Share asset {asset} is not a reserve asset")
        return self.assets[ref.index]

    def reserve_ledger(self, asset: str) -> FungibleLedger:
        return self.reserve_asset(asset).ledger

    def ledger(self, asset: str) -> FungibleLedger:
        """Ledger addressed by an asset id (reserve or share)."""
        ref = self.resolve(asset)
        if isinstance(ref, ShareAsset):
            return self.shares
        return self.assets[ref.index].ledger

    def _pair(self, asset_a: str, asset_b: str) -> tuple[PooledAsset, PooledAsset]:
        if asset_a == asset_b:
            raise InvalidArguments(f"Assets must differ, got {asset_a} twice")
        return self.reserve_asset(asset_a), self.reserve_asset(asset_b)

    @property
    def pool_decimals(self) -> int:
        """Common precision of the two assets."""
        a, b = self.assets
        return common_decimals(a.decimals, b.decimals)

    def _normalize(self, amount: int, pooled: PooledAsset) -> int:
        return normalize(amount, pooled.decimals, self.pool_decimals, self.config.max_decimals)

    # --- Queries ---

    def balance_of(self, asset: str, account_id: str) -> int:
        """Internal balance of an account; the pool account id addresses shares."""
        return self.ledger(asset).balance_of(account_id)

    def total_supply(self, asset: str) -> int:
        return self.ledger(asset).total_supply

    def reserves(self) -> dict[str, int]:
        """Pool-owned balance of each pooled asset."""
        return {pooled.asset_id: pooled.ledger.balance_of(self.account_id) for pooled in self.assets}

    def metadata(self, asset: str) -> AssetMetadata:
        return self.reserve_asset(asset).metadata

    # --- Atomicity ---

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Restore every ledger if the enclosed block raises."""
        ledgers = [pooled.ledger for pooled in self.assets] + [self.shares]
        snapshots = [ledger.snapshot() for ledger in ledgers]
        try:
            yield
        except Exception:
            for ledger, snapshot in zip(ledgers, snapshots, strict=True):
                ledger.restore(snapshot)
            raise

    # --- Swap ---

    def swap(self, caller: str, buy_asset: str, sell_asset: str, sell_amount: int) -> int:
        """Sell sell_amount of sell_asset to the pool for buy_asset.

        Pricing uses the reserves as they were before the sold amount
        arrives; the formula accounts for the incoming amount itself.

        Args:
            caller: Account selling
            buy_asset: Asset the caller receives
            sell_asset: Asset the caller pays with
            sell_amount: Amount paid, in sell_asset's native decimals

        Returns:
            Amount of buy_asset received, in its native decimals

        Raises:
            InvalidArguments: If buy_asset == sell_asset
            UnknownAsset: If either asset is not a pooled asset
            NoLiquidity: If either reserve is empty
            InsufficientBalance: If the caller holds less than sell_amount
        """
        if buy_asset == sell_asset:
            raise InvalidArguments(f"Buy and sell assets must differ, got {buy_asset} twice")
        buy, sell = self._pair(buy_asset, sell_asset)

        reserve_in = sell.ledger.balance_of(self.account_id)
        reserve_out = buy.ledger.balance_of(self.account_id)

        with self.transaction():
            sell.ledger.transfer(caller, self.account_id, sell_amount)
            quote = constant_product.quote(
                sell_amount,
                reserve_in,
                sell.decimals,
                reserve_out,
                buy.decimals,
                self.config.max_decimals,
            )
            buy.ledger.transfer(self.account_id, caller, quote.amount_out)

        logger.info(
            "swap_executed",
            pool=self.account_id,
            caller=caller,
            sell_asset=sell_asset,
            sell_amount=sell_amount,
            buy_asset=buy_asset,
            buy_amount=quote.amount_out,
        )
        return quote.amount_out

    # --- Liquidity ---

    def add_liquidity(self, caller: str, asset_a: str, amount_a: int, asset_b: str, amount_b: int) -> int:
        """Deposit both assets in the current reserve ratio and mint shares.

        The amounts must satisfy reserve_a * amount_b == reserve_b * amount_a
        exactly (compared at the pool's common precision). An empty pool
        accepts any pair, which sets the ratio.

        Shares minted are the sum of both amounts at the common precision.

        Returns:
            Shares minted to the caller

        Raises:
            InvalidArguments: If the assets are equal or an amount is negative
            UnknownAsset: If either asset is not a pooled asset
            ProportionMismatch: If the amounts deviate from the reserve ratio
            InsufficientBalance: If the caller cannot cover either amount
        """
        a, b = self._pair(asset_a, asset_b)
        if amount_a < 0 or amount_b < 0:
            raise InvalidArguments(f"Liquidity amounts must be non-negative, got {amount_a} and {amount_b}")

        norm_reserve_a = S(self._normalize(a.ledger.balance_of(self.account_id), a))
        norm_reserve_b = S(self._normalize(b.ledger.balance_of(self.account_id), b))
        norm_amount_a = S(self._normalize(amount_a, a))
        norm_amount_b = S(self._normalize(amount_b, b))

        if norm_reserve_a * norm_amount_b != norm_reserve_b * norm_amount_a:
            raise ProportionMismatch(
                f"Incorrect proportion for pool reserves {a.asset_id}={norm_reserve_a} "
                f"{b.asset_id}={norm_reserve_b}: got {amount_a} and {amount_b}"
            )

        share = (norm_amount_a + norm_amount_b).value
        with self.transaction():
            a.ledger.transfer(caller, self.account_id, amount_a)
            b.ledger.transfer(caller, self.account_id, amount_b)
            self.shares.deposit(caller, share)

        logger.info(
            "liquidity_added",
            pool=self.account_id,
            caller=caller,
            amount_a=amount_a,
            amount_b=amount_b,
            share=share,
        )
        return share

    def remove_liquidity(self, caller: str, asset_a: str, asset_b: str) -> tuple[int, int]:
        """Redeem the caller's whole share position.

        Returns:
            Amounts of asset_a and asset_b paid out, in that order
        """
        a, b = self._pair(asset_a, asset_b)
        redeemed = self.remove_all_liquidity(caller)
        return redeemed[a.asset_id], redeemed[b.asset_id]

    def remove_all_liquidity(self, caller: str) -> dict[str, int]:
        """Burn all of the caller's shares and pay out their claim on both reserves.

        Each asset pays caller_shares * pool_reserve // total_shares.

        Returns:
            Amount paid out per asset id

        Raises:
            ZeroShareBalance: If the caller holds no shares
        """
        caller_shares = S(self.shares.balance_of(caller))
        if caller_shares == 0:
            raise ZeroShareBalance(f"{caller} holds no shares of pool {self.account_id}")
        total_shares = S(self.shares.total_supply)

        payouts = {
            pooled.asset_id: (caller_shares * S(pooled.ledger.balance_of(self.account_id)) // total_shares).value
            for pooled in self.assets
        }

        with self.transaction():
            self.shares.withdraw(caller, caller_shares.value)
            for pooled in self.assets:
                pooled.ledger.transfer(self.account_id, caller, payouts[pooled.asset_id])

        logger.info(
            "liquidity_removed",
            pool=self.account_id,
            caller=caller,
            share=caller_shares.value,
            payouts=payouts,
        )
        return payouts

    # --- External balances ---

    def deposit(self, asset: str, sender: str, amount: int) -> int:
        """Credit an incoming external transfer to the sender's internal balance.

        Returns:
            The unused amount to refund to the sender (always 0)

        Raises:
            UnknownAsset: If asset is not a pooled asset
        """
        ledger = self.reserve_ledger(asset)
        with self.transaction():
            ledger.deposit(sender, amount)
        logger.info("deposit_received", pool=self.account_id, asset=asset, sender=sender, amount=amount)
        return 0

    def request_withdrawal(self, caller: str, asset: str, amount: int) -> PendingWithdrawal:
        """Start moving amount of asset to the caller's external account.

        The internal debit happens only on confirmation; see
        cpamm.withdrawal for the state machine.
        """
        return self.withdrawals.request(caller, asset, amount)

    def confirm_withdrawal(self, correlation_id: str, success: bool, reason: str | None = None) -> PendingWithdrawal:
        """Deliver the external system's confirmation signal."""
        return self.withdrawals.resolve(correlation_id, success, reason)

    # --- Account registration ---

    def register_account(self, asset: str, account_id: str) -> bool:
        """Register an account with a reserve or share ledger.

        Returns:
            True if the account was newly registered
        """
        registered = self.ledger(asset).register_account(account_id)
        if registered:
            logger.info("account_registered", pool=self.account_id, asset=asset, account=account_id)
        return registered

    def unregister_account(self, asset: str, account_id: str, force: bool = False) -> bool:
        """Remove an account from a reserve or share ledger.

        Args:
            asset: Asset whose ledger to update
            account_id: Account to remove
            force: Burn a remaining balance instead of refusing

        Returns:
            True if an account was removed

        Raises:
            InvalidArguments: If the account is the pool itself, or holds a
                balance and force is False
        """
        if account_id == self.account_id:
            raise InvalidArguments(f"Pool account {self.account_id} cannot be unregistered")
        burned = self.ledger(asset).unregister_account(account_id, force=force)
        if burned is None:
            return False
        logger.info("account_unregistered", pool=self.account_id, asset=asset, account=account_id, burned=burned)
        return True
