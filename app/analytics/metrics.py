# app/analytics/metrics.py
from __future__ import annotations
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple
import structlog

from core.input.events import KeyEvent
from core.utils.stats import mean, pstdev, round_int

log = structlog.get_logger()

@dataclass(frozen=True)
class TimingStats:
    mean: float = 0.0
    stddev: float = 0.0
    samples: int = 0

    @classmethod
    def of(cls, values: List[float]) -> "TimingStats":
        # empty -> all zeros, never NaN
        return cls(mean=mean(values), stddev=pstdev(values), samples=len(values))

    def to_record(self) -> Dict[str, Any]:
        return {"mean": self.mean, "stddev": self.stddev, "samples": self.samples}

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "TimingStats":
        samples = rec["samples"]
        if isinstance(samples, bool) or not isinstance(samples, int) or samples < 0:
            raise ValueError(f"bad sample count: {samples!r}")
        return cls(mean=_finite(rec["mean"]), stddev=_finite(rec["stddev"]), samples=samples)

@dataclass(frozen=True)
class MetricsSummary:
    total_key_presses: int = 0
    duration_ms: float = 0.0
    dwell: TimingStats = field(default_factory=TimingStats)
    flight: TimingStats = field(default_factory=TimingStats)
    down_down: TimingStats = field(default_factory=TimingStats)
    up_down: TimingStats = field(default_factory=TimingStats)
    wpm: int = 0

    def to_record(self) -> Dict[str, Any]:
        return {
            "totalKeyPresses": self.total_key_presses,
            "durationMs": self.duration_ms,
            "dwell": self.dwell.to_record(),
            "flight": self.flight.to_record(),
            "downDown": self.down_down.to_record(),
            "upDown": self.up_down.to_record(),
            "wpm": self.wpm,
        }

    @classmethod
    def from_record(cls, rec: Mapping[str, Any]) -> "MetricsSummary":
        total = rec["totalKeyPresses"]
        wpm = rec["wpm"]
        for name, val in (("totalKeyPresses", total), ("wpm", wpm)):
            if isinstance(val, bool) or not isinstance(val, int):
                raise ValueError(f"{name} must be an integer, got {val!r}")
        return cls(
            total_key_presses=total,
            duration_ms=_finite(rec["durationMs"]),
            dwell=TimingStats.from_record(rec["dwell"]),
            flight=TimingStats.from_record(rec["flight"]),
            down_down=TimingStats.from_record(rec["downDown"]),
            up_down=TimingStats.from_record(rec["upDown"]),
            wpm=wpm,
        )

@dataclass
class TimingSamples:
    """Raw interval lists behind a MetricsSummary (ms, in stream order)."""
    dwell: List[float] = field(default_factory=list)
    flight: List[float] = field(default_factory=list)
    down_down: List[float] = field(default_factory=list)
    up_down: List[float] = field(default_factory=list)

def _finite(val: Any) -> float:
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        raise ValueError(f"expected a number, got {val!r}")
    out = float(val)
    if not math.isfinite(out):
        raise ValueError(f"non-finite value: {val!r}")
    return out

# ---- pairing ----

def normalize_stream(events: Iterable[KeyEvent]) -> List[KeyEvent]:
    """
    Drop key-repeat presses (code already down) and releases with no open press.
    Same filter the capture session applies, so hand-built streams obey it too.
    """
    down: Set[str] = set()
    out: List[KeyEvent] = []
    for ev in events:
        if ev.is_press:
            if ev.code in down:
                continue
            down.add(ev.code)
        else:
            if ev.code not in down:
                continue
            down.discard(ev.code)
        out.append(ev)
    return out

def collect_samples(stream: List[KeyEvent]) -> TimingSamples:
    """Interval lists for an already-normalized stream."""
    s = TimingSamples()
    open_at: Dict[str, float] = {}
    press_idx: List[int] = []
    released: Set[int] = set()          # stream indices of presses that got a release
    open_idx: Dict[str, int] = {}

    for i, ev in enumerate(stream):
        if ev.is_press:
            open_at[ev.code] = ev.t_ms
            open_idx[ev.code] = i
            press_idx.append(i)
        else:
            s.dwell.append(ev.t_ms - open_at.pop(ev.code))
            released.add(open_idx.pop(ev.code))

    # DD: consecutive presses, regardless of intervening releases
    for a, b in zip(press_idx, press_idx[1:]):
        s.down_down.append(stream[b].t_ms - stream[a].t_ms)

    # flight: first release between press i and press i+1, only when press i was released
    for a, b in zip(press_idx, press_idx[1:]):
        if a not in released:
            continue
        for j in range(a + 1, b):
            if stream[j].is_release:
                s.flight.append(stream[b].t_ms - stream[j].t_ms)
                break

    # UD: every release to the next press anywhere later in the stream
    nxt: Optional[KeyEvent] = None
    ud_rev: List[float] = []
    for ev in reversed(stream):
        if ev.is_press:
            nxt = ev
        elif nxt is not None:
            ud_rev.append(nxt.t_ms - ev.t_ms)
    s.up_down = ud_rev[::-1]
    return s

# ---- aggregates ----

def word_count(text: str) -> int:
    return len(text.split())

def calculate_wpm(text: str, duration_ms: float) -> int:
    if duration_ms <= 0:
        return 0
    return round_int(word_count(text) / (duration_ms / 60000.0))

def extract_metrics(events: Iterable[KeyEvent], typed_text: str = "") -> MetricsSummary:
    """Pair presses with releases and summarize dwell / flight / DD / UD timing."""
    stream = normalize_stream(events)
    if not stream:
        return MetricsSummary()

    s = collect_samples(stream)
    duration = stream[-1].t_ms
    summary = MetricsSummary(
        total_key_presses=sum(1 for ev in stream if ev.is_press),
        duration_ms=duration,
        dwell=TimingStats.of(s.dwell),
        flight=TimingStats.of(s.flight),
        down_down=TimingStats.of(s.down_down),
        up_down=TimingStats.of(s.up_down),
        wpm=calculate_wpm(typed_text, duration),
    )
    log.debug("metrics.extract", presses=summary.total_key_presses, duration_ms=duration, wpm=summary.wpm)
    return summary

def metric_vector(m: MetricsSummary) -> Tuple[float, float, float]:
    """Feature vector used for profile comparison."""
    return (m.dwell.mean, m.flight.mean, m.down_down.mean)
