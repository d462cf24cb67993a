"""Constant-product pricing.

The pool prices swaps with the constant product formula: x * y = k.
No fee is taken; the output is whatever keeps k from growing, computed with
floor division.
"""

from __future__ import annotations

from dataclasses import dataclass

from cpamm.constants import MAX_DECIMALS
from cpamm.errors import InvalidArguments, NoLiquidity
from cpamm.math.decimals import common_decimals, denormalize, normalize
from cpamm.safe_int import S


@dataclass(frozen=True)
class SwapQuote:
    """Result of pricing a swap across two assets."""

    amount_in: int
    amount_out: int
    # Precision the reserves were aligned to while pricing
    common_decimals: int
    # Output before rescaling back to the output asset's decimals
    normalized_amount_out: int


class ConstantProduct:
    """Constant product pricing engine.

    Formula: amount_out = reserve_out - (reserve_in * reserve_out) // (reserve_in + amount_in)
    """

    def get_amount_out(self, amount_in: int, reserve_in: int, reserve_out: int) -> int:
        """Calculate output amount for a given input.

        Args:
            amount_in: Input amount, same precision as reserve_in
            reserve_in: Pool reserve of the input asset (before the trade)
            reserve_out: Pool reserve of the output asset (before the trade)

        Returns:
            Output amount, same precision as reserve_out

        Raises:
            NoLiquidity: If either reserve is zero
            InvalidArguments: If any value is negative
        """
        if amount_in < 0 or reserve_in < 0 or reserve_out < 0:
            raise InvalidArguments(
                f"Negative pricing input: amount_in={amount_in} reserve_in={reserve_in} reserve_out={reserve_out}"
            )
        if reserve_in == 0 or reserve_out == 0:
            raise NoLiquidity(f"Pool has no liquidity: reserve_in={reserve_in} reserve_out={reserve_out}")
        if amount_in == 0:
            return 0

        k = S(reserve_in) * S(reserve_out)
        remaining_out = k // (S(reserve_in) + S(amount_in))
        return (S(reserve_out) - remaining_out).value

    def quote(
        self,
        amount_in: int,
        reserve_in: int,
        decimals_in: int,
        reserve_out: int,
        decimals_out: int,
        max_decimals: int = MAX_DECIMALS,
    ) -> SwapQuote:
        """Price a swap between assets of different precision.

        Reserves and the input amount are aligned to the larger of the two
        precisions before pricing, and the result is truncated back to the
        output asset's decimals.

        Args:
            amount_in: Input amount in the input asset's native decimals
            reserve_in: Pool reserve of the input asset, native decimals
            decimals_in: Decimals of the input asset
            reserve_out: Pool reserve of the output asset, native decimals
            decimals_out: Decimals of the output asset
            max_decimals: Largest exponent the normalizer accepts

        Returns:
            SwapQuote with the output in the output asset's native decimals
        """
        target = common_decimals(decimals_in, decimals_out)
        norm_reserve_in = normalize(reserve_in, decimals_in, target, max_decimals)
        norm_reserve_out = normalize(reserve_out, decimals_out, target, max_decimals)
        norm_amount_in = normalize(amount_in, decimals_in, target, max_decimals)

        norm_out = self.get_amount_out(norm_amount_in, norm_reserve_in, norm_reserve_out)
        return SwapQuote(
            amount_in=amount_in,
            amount_out=denormalize(norm_out, decimals_out, target, max_decimals),
            common_decimals=target,
            normalized_amount_out=norm_out,
        )


# Default instance
constant_product = ConstantProduct()


def price_swap(reserve_in: int, reserve_out: int, amount_in: int) -> int:
    """Constant-product output for reserves already at a common precision."""
    return constant_product.get_amount_out(amount_in, reserve_in, reserve_out)


def quote_swap(
    reserve_in: int,
    decimals_in: int,
    reserve_out: int,
    decimals_out: int,
    amount_in: int,
    max_decimals: int = MAX_DECIMALS,
) -> int:
    """Constant-product output in the output asset's native decimals."""
    return constant_product.quote(
        amount_in, reserve_in, decimals_in, reserve_out, decimals_out, max_decimals
    ).amount_out


__all__ = [
    "ConstantProduct",
    "SwapQuote",
    "constant_product",
    "price_swap",
    "quote_swap",
]
