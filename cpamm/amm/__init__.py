"""AMM pricing implementations."""

from cpamm.amm.constant_product import (
    ConstantProduct,
    SwapQuote,
    constant_product,
    price_swap,
    quote_swap,
)

__all__ = [
    "ConstantProduct",
    "SwapQuote",
    "constant_product",
    "price_swap",
    "quote_swap",
]
