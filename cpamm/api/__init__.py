"""HTTP dispatch layer for the pool."""
