"""Mathematical utilities for the pool.

This package provides the decimal normalizer used before any
cross-asset comparison or pricing.
"""

from cpamm.math.decimals import common_decimals, denormalize, normalize, scale_down, scale_up

__all__ = ["scale_up", "scale_down", "common_decimals", "normalize", "denormalize"]
