"""Shared type definitions for pool models.

These types are used by asset metadata and the dispatch layer's request and
response schemas.
"""

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from cpamm.constants import MAX_DECIMALS, U128_MAX


def validate_u128(value: Any) -> str:
    """Validate that a value is a valid u128 decimal string.

    Args:
        value: Value to validate (string or int)

    Returns:
        Valid u128 as decimal string

    Raises:
        ValueError: If value is not a non-negative integer within u128 range
    """
    if isinstance(value, bool):
        raise ValueError("U128 must be string or int, got bool")

    if isinstance(value, int):
        int_value = value
    elif isinstance(value, str):
        try:
            int_value = int(value)
        except ValueError as err:
            raise ValueError(f"U128 must be a decimal integer string: '{value}'") from err
    else:
        raise ValueError(f"U128 must be string or int, got {type(value).__name__}")

    if int_value < 0:
        raise ValueError(f"U128 cannot be negative: {value}")
    if int_value > U128_MAX:
        raise ValueError(f"U128 overflow: {value} > 2^128-1")
    return str(int_value)


# 128-bit unsigned integer as decimal string (validated)
U128 = Annotated[
    str,
    BeforeValidator(validate_u128),
    Field(description="128-bit unsigned integer as decimal string"),
]

# Account or token contract identity: lowercase alphanumerics separated by . _ or -
AccountId = Annotated[
    str,
    Field(min_length=2, max_length=64, pattern=r"^(([a-z\d]+[\-_])*[a-z\d]+\.)*([a-z\d]+[\-_])*[a-z\d]+$"),
]


class AssetMetadata(BaseModel):
    """Immutable metadata of a pooled asset, registered at initialization."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    decimals: int = Field(ge=0, le=MAX_DECIMALS)
    display_name: str = Field(alias="name", min_length=1)
    symbol: str | None = None
