# app/analytics/comparator.py
from __future__ import annotations
from dataclasses import dataclass
from itertools import combinations
from typing import List, Sequence
import numpy as np
import structlog

from app.analytics.metrics import MetricsSummary, metric_vector
from app.profiles.models import Profile

log = structlog.get_logger()

def similarity(a: MetricsSummary, b: MetricsSummary) -> float:
    """
    Cosine similarity of [mean dwell, mean flight, mean DD].
    A zero-magnitude vector on either side yields 0.0 instead of NaN.
    """
    va = np.asarray(metric_vector(a), dtype=float)
    vb = np.asarray(metric_vector(b), dtype=float)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0 or not np.isfinite(denom):
        return 0.0
    return float(np.clip(np.dot(va, vb) / denom, -1.0, 1.0))

@dataclass(frozen=True)
class PairSimilarity:
    first: str
    second: str
    similarity: float

def compare_profiles(profiles: Sequence[Profile]) -> List[PairSimilarity]:
    """Every unordered pair, in (i, j) order with i < j."""
    out = [
        PairSimilarity(p.name, q.name, similarity(p.metrics, q.metrics))
        for p, q in combinations(profiles, 2)
    ]
    log.debug("compare.done", profiles=len(profiles), pairs=len(out))
    return out

def format_comparison(pairs: Sequence[PairSimilarity]) -> str:
    lines = ["Profile Comparison", ""]
    lines.extend(f"{p.first} vs {p.second}: {p.similarity * 100:.1f}% similar" for p in pairs)
    return "\n".join(lines)
