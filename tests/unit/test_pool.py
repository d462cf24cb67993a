"""Tests for the Pool aggregate: lifecycle, swaps, liquidity and accounts."""

import pytest

from cpamm.config import PoolConfig
from cpamm.errors import (
    AlreadyInitialized,
    InsufficientBalance,
    InvalidArguments,
    InvalidDecimals,
    NoLiquidity,
    NotInitialized,
    ProportionMismatch,
    UnknownAsset,
    UnregisteredAccount,
    ZeroShareBalance,
)
from cpamm.pool import Pool, ReserveAsset, ShareAsset
from tests.helpers import ALICE, BOB, POOL, TOKEN_A, TOKEN_B, make_metadata, make_pool


def ledger_state(pool: Pool) -> list[tuple[dict[str, int], int]]:
    """All balances and supplies, for comparing before/after a failed call."""
    return [(pool.ledger(asset).accounts(), pool.total_supply(asset)) for asset in (TOKEN_A, TOKEN_B, POOL)]


class TestInitialization:
    """Tests for pool creation."""

    def test_initialize(self):
        """Both assets are registered and the pool holds empty reserves."""
        pool = make_pool(decimals_a=6, decimals_b=18)
        assert pool.is_initialized
        assert pool.reserves() == {TOKEN_A: 0, TOKEN_B: 0}
        assert pool.metadata(TOKEN_A).decimals == 6
        assert pool.pool_decimals == 18

    def test_initialize_twice_raises(self, pool):
        """A pool can only be initialized once."""
        with pytest.raises(AlreadyInitialized):
            pool.initialize(TOKEN_A, TOKEN_B, make_metadata(), make_metadata())

    def test_identical_assets_rejected(self):
        """The two assets must differ."""
        pool = make_pool(initialize=False)
        with pytest.raises(InvalidArguments):
            pool.initialize(TOKEN_A, TOKEN_A, make_metadata(), make_metadata())
        assert not pool.is_initialized

    def test_pool_account_cannot_be_asset(self):
        """The pool account id is reserved for the share asset."""
        pool = make_pool(initialize=False)
        with pytest.raises(InvalidArguments):
            pool.initialize(POOL, TOKEN_B, make_metadata(), make_metadata())

    def test_decimals_above_config_rejected(self):
        """Asset precision is bounded by the pool configuration."""
        pool = Pool(POOL, config=PoolConfig(max_decimals=18))
        with pytest.raises(InvalidDecimals):
            pool.initialize(TOKEN_A, TOKEN_B, make_metadata(6), make_metadata(24))

    def test_operations_before_initialize_raise(self):
        """Every operation requires an initialized pool."""
        pool = make_pool(initialize=False)
        with pytest.raises(NotInitialized):
            pool.swap(ALICE, TOKEN_B, TOKEN_A, 1)
        with pytest.raises(NotInitialized):
            pool.balance_of(TOKEN_A, ALICE)

    def test_independent_pools(self):
        """Pools do not share state."""
        first, second = make_pool(), make_pool()
        first.deposit(TOKEN_A, ALICE, 10)
        assert first.balance_of(TOKEN_A, ALICE) == 10
        assert second.balance_of(TOKEN_A, ALICE) == 0


class TestAssetResolution:
    """Tests for mapping asset ids to ledgers."""

    def test_resolve(self, pool):
        """Asset ids resolve to reserve positions, the pool id to shares."""
        assert pool.resolve(TOKEN_A) == ReserveAsset(0)
        assert pool.resolve(TOKEN_B) == ReserveAsset(1)
        assert pool.resolve(POOL) == ShareAsset()

    def test_unknown_asset(self, pool):
        """Unregistered ids are rejected."""
        with pytest.raises(UnknownAsset):
            pool.resolve("token-c.near")

    def test_share_asset_is_not_a_reserve(self, pool):
        """Reserve-only lookups reject the share asset."""
        with pytest.raises(UnknownAsset):
            pool.reserve_ledger(POOL)

    def test_balance_of_share_asset(self, liquid_pool):
        """The pool account id addresses the share ledger."""
        assert liquid_pool.balance_of(POOL, ALICE) == 30
        assert liquid_pool.total_supply(POOL) == 30


class TestSwap:
    """Tests for swaps."""

    def test_reference_scenario(self, liquid_pool):
        """Reserves 10 A / 20 B: selling 5 A buys 7 B."""
        buy_amount = liquid_pool.swap(ALICE, TOKEN_B, TOKEN_A, 5)

        assert buy_amount == 7
        assert liquid_pool.balance_of(TOKEN_A, ALICE) == 35
        assert liquid_pool.balance_of(TOKEN_B, ALICE) == 37
        assert liquid_pool.reserves() == {TOKEN_A: 15, TOKEN_B: 13}

    def test_swap_back(self, liquid_pool):
        """Swapping back prices against the updated reserves."""
        liquid_pool.swap(ALICE, TOKEN_B, TOKEN_A, 5)
        # reserves 15 A / 13 B: 15 - floor(195 / 20) = 6
        buy_amount = liquid_pool.swap(ALICE, TOKEN_A, TOKEN_B, 7)

        assert buy_amount == 6
        assert liquid_pool.reserves() == {TOKEN_A: 9, TOKEN_B: 20}

    def test_swap_by_other_account(self, liquid_pool):
        """Any funded account can trade against the reserves."""
        assert liquid_pool.swap(BOB, TOKEN_B, TOKEN_A, 5) == 7
        assert liquid_pool.balance_of(TOKEN_B, BOB) == 57

    def test_supplies_are_conserved(self, liquid_pool):
        """Swaps move balances without changing asset supplies."""
        liquid_pool.swap(BOB, TOKEN_B, TOKEN_A, 5)
        assert liquid_pool.total_supply(TOKEN_A) == 100
        assert liquid_pool.total_supply(TOKEN_B) == 100

    def test_zero_sell_amount(self, liquid_pool):
        """Selling nothing buys nothing."""
        assert liquid_pool.swap(ALICE, TOKEN_B, TOKEN_A, 0) == 0
        assert liquid_pool.reserves() == {TOKEN_A: 10, TOKEN_B: 20}

    def test_same_asset_rejected(self, liquid_pool):
        """Buy and sell assets must differ."""
        with pytest.raises(InvalidArguments):
            liquid_pool.swap(ALICE, TOKEN_A, TOKEN_A, 5)

    def test_unknown_asset_rejected(self, liquid_pool):
        """Both assets must be pooled."""
        with pytest.raises(UnknownAsset):
            liquid_pool.swap(ALICE, "token-c.near", TOKEN_A, 5)

    def test_share_asset_cannot_be_swapped(self, liquid_pool):
        """Shares are not tradable against reserves."""
        with pytest.raises(UnknownAsset):
            liquid_pool.swap(ALICE, POOL, TOKEN_A, 5)

    def test_insufficient_balance(self, liquid_pool):
        """Selling more than held fails without changing anything."""
        before = ledger_state(liquid_pool)
        with pytest.raises(InsufficientBalance):
            liquid_pool.swap(ALICE, TOKEN_B, TOKEN_A, 41)
        assert ledger_state(liquid_pool) == before

    def test_empty_pool_rejected(self, funded_pool):
        """A pool without reserves cannot price a swap."""
        with pytest.raises(NoLiquidity):
            funded_pool.swap(ALICE, TOKEN_B, TOKEN_A, 5)

    def test_failed_pricing_rolls_back_debit(self, funded_pool):
        """A swap failing after the sell-side debit restores the seller."""
        funded_pool.add_liquidity(ALICE, TOKEN_A, 10, TOKEN_B, 0)
        before = ledger_state(funded_pool)

        with pytest.raises(NoLiquidity):
            funded_pool.swap(BOB, TOKEN_B, TOKEN_A, 5)

        assert ledger_state(funded_pool) == before
        assert funded_pool.balance_of(TOKEN_A, BOB) == 50

    def test_decimals_normalized(self):
        """Reserves with different precision are priced at a common scale."""
        pool = make_pool(decimals_a=6, decimals_b=8)
        pool.deposit(TOKEN_A, ALICE, 2_000_000)
        pool.deposit(TOKEN_B, ALICE, 200_000_000)
        pool.add_liquidity(ALICE, TOKEN_A, 1_000_000, TOKEN_B, 200_000_000)

        # 1 A into 1 A / 2 B buys 1 B
        assert pool.swap(ALICE, TOKEN_B, TOKEN_A, 1_000_000) == 100_000_000
        assert pool.reserves() == {TOKEN_A: 2_000_000, TOKEN_B: 100_000_000}

    def test_dust_output_truncated(self):
        """Output finer than the buy asset's precision is lost to the pool."""
        pool = make_pool(decimals_a=6, decimals_b=8)
        pool.deposit(TOKEN_A, ALICE, 1_000_000)
        pool.deposit(TOKEN_B, ALICE, 200_000_003)
        pool.add_liquidity(ALICE, TOKEN_A, 1_000_000, TOKEN_B, 200_000_000)

        assert pool.swap(ALICE, TOKEN_A, TOKEN_B, 3) == 0
        assert pool.reserves() == {TOKEN_A: 1_000_000, TOKEN_B: 200_000_003}

    def test_receiver_must_be_registered_without_auto_registration(self):
        """With auto-registration off, the buyer needs a ledger entry for the bought asset."""
        pool = make_pool(config=PoolConfig(auto_register_accounts=False))
        for account in (ALICE, BOB):
            pool.register_account(TOKEN_A, account)
        pool.register_account(TOKEN_B, ALICE)
        pool.register_account(POOL, ALICE)
        pool.deposit(TOKEN_A, ALICE, 10)
        pool.deposit(TOKEN_B, ALICE, 20)
        pool.add_liquidity(ALICE, TOKEN_A, 10, TOKEN_B, 20)
        pool.deposit(TOKEN_A, BOB, 5)

        with pytest.raises(UnregisteredAccount):
            pool.swap(BOB, TOKEN_B, TOKEN_A, 5)
        assert pool.balance_of(TOKEN_A, BOB) == 5

        pool.register_account(TOKEN_B, BOB)
        assert pool.swap(BOB, TOKEN_B, TOKEN_A, 5) == 7


class TestAddLiquidity:
    """Tests for proportional deposits."""

    def test_first_deposit_sets_ratio(self, funded_pool):
        """An empty pool accepts any pair and mints the normalized sum."""
        share = funded_pool.add_liquidity(ALICE, TOKEN_A, 1, TOKEN_B, 2)

        assert share == 3
        assert funded_pool.reserves() == {TOKEN_A: 1, TOKEN_B: 2}
        assert funded_pool.balance_of(TOKEN_A, ALICE) == 49
        assert funded_pool.balance_of(TOKEN_B, ALICE) == 48
        assert funded_pool.balance_of(POOL, ALICE) == 3

    def test_ratio_is_reserve_relative(self, funded_pool):
        """(1, 2) then (2, 4) succeed; (1, 1) against reserves (3, 6) fails."""
        funded_pool.add_liquidity(ALICE, TOKEN_A, 1, TOKEN_B, 2)
        funded_pool.add_liquidity(ALICE, TOKEN_A, 2, TOKEN_B, 4)
        assert funded_pool.reserves() == {TOKEN_A: 3, TOKEN_B: 6}

        with pytest.raises(ProportionMismatch):
            funded_pool.add_liquidity(ALICE, TOKEN_A, 1, TOKEN_B, 1)

    def test_ratio_follows_swaps(self, liquid_pool):
        """After a swap the accepted ratio is the new reserve ratio."""
        liquid_pool.swap(BOB, TOKEN_B, TOKEN_A, 5)  # reserves 15 / 13

        with pytest.raises(ProportionMismatch):
            liquid_pool.add_liquidity(BOB, TOKEN_A, 10, TOKEN_B, 20)
        assert liquid_pool.add_liquidity(BOB, TOKEN_A, 15, TOKEN_B, 13) == 28

    def test_mismatch_changes_nothing(self, liquid_pool):
        """A rejected deposit moves no balances."""
        before = ledger_state(liquid_pool)
        with pytest.raises(ProportionMismatch):
            liquid_pool.add_liquidity(BOB, TOKEN_A, 1, TOKEN_B, 1)
        assert ledger_state(liquid_pool) == before

    def test_argument_order_is_free(self, liquid_pool):
        """Amounts pair with the named assets regardless of pool order."""
        share = liquid_pool.add_liquidity(BOB, TOKEN_B, 4, TOKEN_A, 2)
        assert share == 6
        assert liquid_pool.reserves() == {TOKEN_A: 12, TOKEN_B: 24}

    def test_same_asset_rejected(self, funded_pool):
        """The two assets must differ."""
        with pytest.raises(InvalidArguments):
            funded_pool.add_liquidity(ALICE, TOKEN_A, 1, TOKEN_A, 1)

    def test_negative_amount_rejected(self, funded_pool):
        """Amounts are unsigned."""
        with pytest.raises(InvalidArguments):
            funded_pool.add_liquidity(ALICE, TOKEN_A, -1, TOKEN_B, 1)

    def test_partial_failure_rolls_back(self, funded_pool):
        """If the second leg cannot be paid, the first leg is restored."""
        before = ledger_state(funded_pool)
        with pytest.raises(InsufficientBalance):
            funded_pool.add_liquidity(ALICE, TOKEN_A, 10, TOKEN_B, 51)
        assert ledger_state(funded_pool) == before
        assert funded_pool.balance_of(TOKEN_A, ALICE) == 50

    def test_share_is_sum_of_normalized_amounts(self):
        """Shares are minted as the sum at the common precision."""
        pool = make_pool(decimals_a=6, decimals_b=8)
        pool.deposit(TOKEN_A, ALICE, 2_000_000)
        pool.deposit(TOKEN_B, ALICE, 400_000_000)

        assert pool.add_liquidity(ALICE, TOKEN_A, 1_000_000, TOKEN_B, 200_000_000) == 300_000_000
        assert pool.add_liquidity(ALICE, TOKEN_A, 500_000, TOKEN_B, 100_000_000) == 150_000_000
        assert pool.total_supply(POOL) == 450_000_000

    def test_proportion_compared_at_common_precision(self):
        """Amounts in different native precision are compared after normalization."""
        pool = make_pool(decimals_a=6, decimals_b=8)
        pool.deposit(TOKEN_A, ALICE, 2_000_000)
        pool.deposit(TOKEN_B, ALICE, 400_000_000)
        pool.add_liquidity(ALICE, TOKEN_A, 1_000_000, TOKEN_B, 200_000_000)

        with pytest.raises(ProportionMismatch):
            pool.add_liquidity(ALICE, TOKEN_A, 500_000, TOKEN_B, 100_000_001)


class TestRemoveLiquidity:
    """Tests for whole-position redemption."""

    def test_full_redemption_closes_position(self, funded_pool):
        """Removing returns every deposited unit and zeroes the shares."""
        funded_pool.add_liquidity(ALICE, TOKEN_A, 10, TOKEN_B, 10)
        funded_pool.add_liquidity(ALICE, TOKEN_A, 5, TOKEN_B, 5)
        assert funded_pool.balance_of(POOL, ALICE) == 30

        amounts = funded_pool.remove_liquidity(ALICE, TOKEN_A, TOKEN_B)

        assert amounts == (15, 15)
        assert funded_pool.balance_of(POOL, ALICE) == 0
        assert funded_pool.total_supply(POOL) == 0
        assert funded_pool.balance_of(TOKEN_A, ALICE) == 50
        assert funded_pool.balance_of(TOKEN_B, ALICE) == 50
        assert funded_pool.reserves() == {TOKEN_A: 0, TOKEN_B: 0}

    def test_amounts_follow_argument_order(self, liquid_pool):
        """Returned amounts pair with the named assets."""
        assert liquid_pool.remove_liquidity(ALICE, TOKEN_B, TOKEN_A) == (20, 10)

    def test_two_providers(self, liquid_pool):
        """Each provider redeems their share of the reserves."""
        liquid_pool.add_liquidity(BOB, TOKEN_A, 5, TOKEN_B, 10)  # +15 shares of 45

        assert liquid_pool.remove_all_liquidity(ALICE) == {TOKEN_A: 10, TOKEN_B: 20}
        assert liquid_pool.remove_all_liquidity(BOB) == {TOKEN_A: 5, TOKEN_B: 10}
        assert liquid_pool.reserves() == {TOKEN_A: 0, TOKEN_B: 0}

    def test_redemption_after_swaps(self, liquid_pool):
        """A sole provider redeems the reserves as they stand."""
        liquid_pool.swap(BOB, TOKEN_B, TOKEN_A, 5)
        assert liquid_pool.remove_all_liquidity(ALICE) == {TOKEN_A: 15, TOKEN_B: 13}

    def test_zero_shares_rejected(self, liquid_pool):
        """An account without shares cannot redeem."""
        before = ledger_state(liquid_pool)
        with pytest.raises(ZeroShareBalance):
            liquid_pool.remove_liquidity(BOB, TOKEN_A, TOKEN_B)
        assert ledger_state(liquid_pool) == before

    def test_second_redemption_rejected(self, liquid_pool):
        """A closed position cannot be redeemed again."""
        liquid_pool.remove_liquidity(ALICE, TOKEN_A, TOKEN_B)
        with pytest.raises(ZeroShareBalance):
            liquid_pool.remove_liquidity(ALICE, TOKEN_A, TOKEN_B)

    def test_same_asset_rejected(self, liquid_pool):
        """The two assets must differ."""
        with pytest.raises(InvalidArguments):
            liquid_pool.remove_liquidity(ALICE, TOKEN_A, TOKEN_A)


class TestDepositsAndRegistration:
    """Tests for external deposits and ledger registration."""

    def test_deposit_credits_sender(self, pool):
        """An incoming transfer credits the sender and refunds nothing."""
        assert pool.deposit(TOKEN_A, ALICE, 25) == 0
        assert pool.balance_of(TOKEN_A, ALICE) == 25

    def test_deposit_of_shares_rejected(self, pool):
        """Only reserve assets can arrive from outside."""
        with pytest.raises(UnknownAsset):
            pool.deposit(POOL, ALICE, 25)

    def test_deposit_requires_registration_when_configured(self):
        """Without auto-registration the sender must register first."""
        pool = make_pool(config=PoolConfig(auto_register_accounts=False))
        with pytest.raises(UnregisteredAccount):
            pool.deposit(TOKEN_A, ALICE, 25)
        assert pool.register_account(TOKEN_A, ALICE) is True
        pool.deposit(TOKEN_A, ALICE, 25)
        assert pool.balance_of(TOKEN_A, ALICE) == 25

    def test_register_is_idempotent(self, pool):
        """Registering twice is a no-op."""
        assert pool.register_account(POOL, ALICE) is True
        assert pool.register_account(POOL, ALICE) is False

    def test_unregister(self, funded_pool):
        """Non-empty accounts need force, which burns the balance."""
        with pytest.raises(InvalidArguments):
            funded_pool.unregister_account(TOKEN_A, ALICE)
        assert funded_pool.unregister_account(TOKEN_A, ALICE, force=True) is True
        assert funded_pool.total_supply(TOKEN_A) == 50
        assert funded_pool.unregister_account(TOKEN_A, ALICE) is False

    def test_pool_account_cannot_unregister(self, pool):
        """The reserve-holding account is permanent."""
        with pytest.raises(InvalidArguments):
            pool.unregister_account(TOKEN_A, POOL)
