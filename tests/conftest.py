"""Pytest configuration and fixtures."""

import pytest

from cpamm.pool import Pool
from tests.helpers import ALICE, BOB, TOKEN_A, TOKEN_B, RecordingTransferCapability, make_pool


@pytest.fixture
def capability() -> RecordingTransferCapability:
    """A transfer capability that records every issued transfer."""
    return RecordingTransferCapability()


@pytest.fixture
def pool(capability: RecordingTransferCapability) -> Pool:
    """An initialized pool with two 0-decimal assets and no balances."""
    return make_pool(capability=capability)


@pytest.fixture
def funded_pool(pool: Pool) -> Pool:
    """Pool where ALICE and BOB each deposited 50 of both assets."""
    for account in (ALICE, BOB):
        pool.deposit(TOKEN_A, account, 50)
        pool.deposit(TOKEN_B, account, 50)
    return pool


@pytest.fixture
def liquid_pool(funded_pool: Pool) -> Pool:
    """Funded pool where ALICE provided reserves of 10 A and 20 B."""
    funded_pool.add_liquidity(ALICE, TOKEN_A, 10, TOKEN_B, 20)
    return funded_pool
