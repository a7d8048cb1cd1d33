# app/analytics/digraphs.py
from __future__ import annotations
import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

from core.input.events import KeyEvent
from core.utils.stats import mean
from app.analytics.metrics import normalize_stream

class DigraphKey(NamedTuple):
    """Ordered pair of logical key identifiers; case-sensitive, order-sensitive."""
    first: str
    second: str

    @property
    def label(self) -> str:
        return self.first + self.second

    def __str__(self) -> str:
        return self.label

    def to_record(self) -> str:
        return self.label

    @classmethod
    def from_record(cls, rec: Any) -> "DigraphKey":
        # "th" splits into its two keys; longer labels ("ShiftT") cannot be split
        # unambiguously and are kept whole so they serialize back unchanged
        if isinstance(rec, str) and rec:
            if len(rec) == 2:
                return cls(rec[0], rec[1])
            return cls(rec, "")
        if isinstance(rec, (list, tuple)) and len(rec) == 2 and all(isinstance(k, str) and k for k in rec):
            return cls(rec[0], rec[1])
        raise ValueError(f"bad digraph key: {rec!r}")

@dataclass
class DigraphStats:
    """Per-digraph timing samples. Only DD and UD are filled; DU/UU stay empty."""
    DD: List[float] = field(default_factory=list)
    UD: List[float] = field(default_factory=list)
    DU: List[float] = field(default_factory=list)
    UU: List[float] = field(default_factory=list)

    def to_record(self) -> Dict[str, List[float]]:
        return {"DD": list(self.DD), "UD": list(self.UD), "DU": list(self.DU), "UU": list(self.UU)}

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "DigraphStats":
        out = {}
        for name in ("DD", "UD", "DU", "UU"):
            vals = rec.get(name, [])
            if not isinstance(vals, list) or any(isinstance(v, bool) or not isinstance(v, (int, float)) for v in vals):
                raise ValueError(f"bad {name} samples: {vals!r}")
            out[name] = [float(v) for v in vals]
        return cls(**out)

DigraphMap = Dict[DigraphKey, DigraphStats]

def _slot(digraphs: DigraphMap, key: DigraphKey) -> DigraphStats:
    stats = digraphs.get(key)
    if stats is None:
        stats = digraphs[key] = DigraphStats()
    return stats

def accumulate_digraphs(events: Iterable[KeyEvent], digraphs: Optional[DigraphMap] = None) -> DigraphMap:
    """
    Append DD samples for each pair of consecutive presses and UD samples for each
    release followed by a later press. Samples keep stream order; nothing is deduplicated.
    Pass an existing map to keep accumulating into it.
    """
    out: DigraphMap = {} if digraphs is None else digraphs
    stream = normalize_stream(events)

    prev_press: Optional[KeyEvent] = None
    pending: List[KeyEvent] = []        # releases still waiting for their next press
    for ev in stream:
        if ev.is_press:
            if prev_press is not None:
                _slot(out, DigraphKey(prev_press.key, ev.key)).DD.append(ev.t_ms - prev_press.t_ms)
            for rel in pending:
                _slot(out, DigraphKey(rel.key, ev.key)).UD.append(ev.t_ms - rel.t_ms)
            pending = []
            prev_press = ev
        else:
            pending.append(ev)
    return out

def copy_digraphs(digraphs: DigraphMap) -> DigraphMap:
    return {key: copy.deepcopy(stats) for key, stats in digraphs.items()}

def top_digraph(digraphs: DigraphMap) -> Tuple[Optional[DigraphKey], int]:
    """Digraph with the most DD samples; the first one seen wins ties."""
    best: Optional[DigraphKey] = None
    best_n = 0
    for key, stats in digraphs.items():
        if len(stats.DD) > best_n:
            best, best_n = key, len(stats.DD)
    return best, best_n

class DigraphRow(NamedTuple):
    digraph: str
    dd_mean: float
    ud_mean: float
    samples: int

def digraph_table(digraphs: DigraphMap, limit: int = 10) -> List[DigraphRow]:
    """Most frequent digraphs by DD sample count (ties keep insertion order)."""
    rows = [
        DigraphRow(key.label, mean(stats.DD), mean(stats.UD), len(stats.DD))
        for key, stats in digraphs.items()
        if stats.DD
    ]
    rows.sort(key=lambda r: r.samples, reverse=True)
    return rows[:limit]
