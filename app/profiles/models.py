# app/profiles/models.py
from __future__ import annotations
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from app.analytics.metrics import MetricsSummary
from app.analytics.digraphs import DigraphKey, DigraphStats, DigraphMap, copy_digraphs

MAX_NAME_LEN = 100

class ProfileFormatError(ValueError):
    """A persisted profile record is missing fields or has the wrong shape."""

def utc_ts_ms() -> int:
    return int(time.time() * 1000)

@dataclass(frozen=True)
class Profile:
    """Named snapshot of one capture session's derived state."""
    name: str
    captured_at_ms: int
    metrics: MetricsSummary
    digraphs: DigraphMap = field(default_factory=dict)
    source_text: str = ""

    @classmethod
    def snapshot(cls, name: str, metrics: MetricsSummary, digraphs: DigraphMap,
                 source_text: str = "", captured_at_ms: Optional[int] = None) -> "Profile":
        # deep copy: the live accumulator must not leak into a saved profile
        return cls(
            name=name,
            captured_at_ms=utc_ts_ms() if captured_at_ms is None else captured_at_ms,
            metrics=metrics,
            digraphs=copy_digraphs(digraphs),
            source_text=source_text,
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "timestamp": self.captured_at_ms,
            "metrics": self.metrics.to_record(),
            # list of pairs rather than a mapping, for portable serialization
            "digraphs": [[key.to_record(), stats.to_record()] for key, stats in self.digraphs.items()],
            "sourceText": self.source_text,
        }

    @classmethod
    def from_record(cls, rec: Any) -> "Profile":
        if not isinstance(rec, Mapping):
            raise ProfileFormatError(f"record is not an object: {type(rec).__name__}")
        try:
            name = rec["name"]
            ts = rec["timestamp"]
            metrics_rec = rec["metrics"]
        except KeyError as e:
            raise ProfileFormatError(f"missing field {e.args[0]!r}") from e

        if not isinstance(name, str) or len(name) > MAX_NAME_LEN:
            raise ProfileFormatError("name must be a string of at most 100 characters")
        if isinstance(ts, bool) or not isinstance(ts, int):
            raise ProfileFormatError(f"timestamp must be integer epoch ms, got {ts!r}")
        if not isinstance(metrics_rec, Mapping):
            raise ProfileFormatError("metrics must be an object")
        source_text = rec.get("sourceText", "")
        if not isinstance(source_text, str):
            raise ProfileFormatError("sourceText must be a string")

        try:
            metrics = MetricsSummary.from_record(metrics_rec)
            digraphs = _digraphs_from_record(rec.get("digraphs", []))
        except (KeyError, TypeError, ValueError) as e:
            raise ProfileFormatError(str(e)) from e

        return cls(name=name, captured_at_ms=ts, metrics=metrics, digraphs=digraphs, source_text=source_text)

def _digraphs_from_record(pairs: Any) -> DigraphMap:
    if not isinstance(pairs, list):
        raise ValueError("digraphs must be a list of [key, stats] pairs")
    out: DigraphMap = {}
    for pair in pairs:
        if not isinstance(pair, (list, tuple)) or len(pair) != 2 or not isinstance(pair[1], Mapping):
            raise ValueError(f"bad digraph entry: {pair!r}")
        out[DigraphKey.from_record(pair[0])] = DigraphStats.from_record(pair[1])
    return out

def profiles_to_records(profiles: List[Profile]) -> List[Dict[str, Any]]:
    return [p.to_record() for p in profiles]
