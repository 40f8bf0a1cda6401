"""
Shared scoring utilities.

Small, reusable helpers used across feature scorers and arbitration:
- `clamp` / `clamp01`: keep values within a range for stable output
- `round_half_up`: half-up rounding for displayed integer scores
- `weighted_sum`: combine named sub-scores with named weights
"""

from __future__ import annotations

import math
from typing import Mapping


def clamp(x: float, lo: float, hi: float) -> float:
    """Clamp a number into the [lo, hi] range."""
    return max(lo, min(hi, float(x)))


def clamp01(x: float) -> float:
    """Clamp a number into the [0.0, 1.0] range."""
    return clamp(x, 0.0, 1.0)


def round_half_up(x: float, ndigits: int = 0) -> float:
    """Round halves away from -inf (2.5 -> 3, -2.5 -> -2) instead of to the even neighbour."""
    factor = 10**ndigits
    return math.floor(float(x) * factor + 0.5) / factor


def weighted_sum(scores: Mapping[str, float], weights: Mapping[str, float]) -> float:
    """Sum of `scores[k] * weights[k]` over the weight keys (missing scores count as 0)."""
    return sum(float(scores.get(k, 0.0)) * float(w) for k, w in weights.items())
