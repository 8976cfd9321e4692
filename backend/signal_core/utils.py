"""Small numeric helpers shared by the scoring stages."""

import math


def round_half_up(value: float) -> int:
    """Round halves toward +inf (55.5 -> 56, 54.5 -> 55), never to even."""
    return int(math.floor(value + 0.5))


def clamp(value: float, lo: float = 0, hi: float = 100) -> float:
    """Clamp *value* into [lo, hi]."""
    return max(lo, min(hi, value))
