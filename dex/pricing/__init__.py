"""
dex/pricing/ - Pure integer pricing models.

Models:
- constant_product: x * y = k
- concentrated: sqrtPriceX96 / tick liquidity
- stable_swap: amplified StableSwap invariant
- weighted: constant-mean weighted pools
"""

from dex.pricing import concentrated, constant_product, stable_swap, weighted

__all__ = [
    "concentrated",
    "constant_product",
    "stable_swap",
    "weighted",
]
