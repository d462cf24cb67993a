"""Test helpers package.

Provides factory functions and constants for creating test objects.
"""

from tests.helpers.constants import ALICE, BOB, POOL, TOKEN_A, TOKEN_B
from tests.helpers.factories import (
    FailingTransferCapability,
    RecordingTransferCapability,
    make_metadata,
    make_pool,
)

__all__ = [
    "ALICE",
    "BOB",
    "POOL",
    "TOKEN_A",
    "TOKEN_B",
    "FailingTransferCapability",
    "RecordingTransferCapability",
    "make_metadata",
    "make_pool",
]
