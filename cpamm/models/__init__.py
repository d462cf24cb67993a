"""Pydantic models shared by the pool and its dispatch layer."""

from cpamm.models.types import U128, AccountId, AssetMetadata, validate_u128

__all__ = ["U128", "AccountId", "AssetMetadata", "validate_u128"]
