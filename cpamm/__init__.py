"""Two-asset constant-product liquidity pool."""

from cpamm.config import PoolConfig
from cpamm.models.types import AssetMetadata
from cpamm.pool import AssetRef, Pool, ReserveAsset, ShareAsset
from cpamm.withdrawal import (
    PendingWithdrawal,
    QueuedTransferCapability,
    TransferCapability,
    WithdrawalState,
)

__version__ = "0.1.0"
__all__ = [
    "Pool",
    "PoolConfig",
    "AssetMetadata",
    "AssetRef",
    "ReserveAsset",
    "ShareAsset",
    "PendingWithdrawal",
    "QueuedTransferCapability",
    "TransferCapability",
    "WithdrawalState",
    "__version__",
]
