# core/utils/stats.py
from __future__ import annotations
import math
from typing import Sequence
import numpy as np

def mean(values: Sequence[float]) -> float:
    if len(values) == 0:
        return 0.0
    return float(np.asarray(values, dtype=float).mean())

def pstdev(values: Sequence[float]) -> float:
    """Population standard deviation (divide by N); 0.0 for an empty sequence."""
    if len(values) == 0:
        return 0.0
    return float(np.asarray(values, dtype=float).std(ddof=0))

def safe_div(num: float, den: float) -> float:
    """num / den, or 0.0 when the result would not be finite."""
    if den == 0:
        return 0.0
    out = num / den
    return out if math.isfinite(out) else 0.0

def cv_percent(std: float, avg: float) -> float:
    """Coefficient of variation as a percentage; 0.0 for a zero mean."""
    return safe_div(std, avg) * 100.0

def round_half_up(x: float, ndigits: int = 0) -> float:
    # Math.round semantics: .5 always goes up, unlike round()
    scale = 10 ** ndigits
    return math.floor(x * scale + 0.5) / scale

def round_int(x: float) -> int:
    return int(round_half_up(x))

def shannon_entropy(counts: Sequence[int]) -> float:
    """Shannon entropy in bits of a frequency distribution."""
    arr = np.asarray([c for c in counts if c > 0], dtype=float)
    if arr.size == 0:
        return 0.0
    p = arr / arr.sum()
    return float(-(p * np.log2(p)).sum())
