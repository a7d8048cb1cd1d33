# app/analytics/scoring.py
from __future__ import annotations
import math
from dataclasses import dataclass, replace
from typing import Callable, Dict, Any, List, Optional, Sequence, Tuple
import structlog

from core.utils.stats import mean, pstdev, cv_percent, safe_div, round_int, round_half_up, shannon_entropy
from app.analytics.config import Benchmarks, BENCHMARKS
from app.analytics.digraphs import DigraphMap, top_digraph
from app.profiles.models import Profile
from app.analytics.narrative import render_narrative

log = structlog.get_logger()

CHECK = "✓"
FAIR = "○"
WEAK = "△"

# ---- rule tables ----

@dataclass(frozen=True)
class BucketRule:
    predicate: Callable[[float], bool]
    points: int
    mark: str
    label: str          # formatted with value=

@dataclass(frozen=True)
class BucketResult:
    bucket: str
    value: float
    points: int
    mark: str
    message: str

def stability_rules(b: Benchmarks) -> Tuple[BucketRule, ...]:
    st = b.stability
    return (
        BucketRule(lambda v: st.stable <= v <= st.very_stable, 3, CHECK,
                   "Stability in the ideal range ({value:.0f}%) - well suited to identifying an individual"),
        BucketRule(lambda v: v > st.very_stable, 1, WEAK,
                   "Stability too high ({value:.0f}%) - a monotonous pattern is easier to imitate"),
        BucketRule(lambda v: v < st.unstable, 1, WEAK,
                   "Stability low ({value:.0f}%) - the genuine user risks false rejections"),
        BucketRule(lambda v: True, 2, FAIR,
                   "Stability moderate ({value:.0f}%) - identifiable, with room to improve"),
    )

def uniqueness_rules(b: Benchmarks) -> Tuple[BucketRule, ...]:
    return (
        BucketRule(lambda v: v >= 60, 3, CHECK,
                   "High pattern variety ({value:.0f}%) - hard to impersonate"),
        BucketRule(lambda v: v >= 40, 2, FAIR,
                   "Moderate pattern variety ({value:.0f}%) - some resistance to imitation"),
        BucketRule(lambda v: True, 1, WEAK,
                   "Monotonous patterns ({value:.0f}%) - could be imitated by observation"),
    )

def timing_rules(b: Benchmarks) -> Tuple[BucketRule, ...]:
    # value is max(dwell deviation, flight deviation)
    return (
        BucketRule(lambda v: v > b.distinct_strong, 2, CHECK,
                   "Distinctive timing - strongly individual pattern"),
        BucketRule(lambda v: v > b.distinct_mild, 1, FAIR,
                   "Somewhat distinctive timing - enough for identification"),
        BucketRule(lambda v: True, 0, WEAK,
                   "Average timing - an additional authentication factor is recommended"),
    )

def evaluate_bucket(name: str, rules: Sequence[BucketRule], value: float) -> BucketResult:
    for rule in rules:
        if rule.predicate(value):
            return BucketResult(name, value, rule.points, rule.mark, rule.label.format(value=value))
    raise LookupError(f"no rule matched bucket {name!r}")   # tables end with a catch-all

TIERS: Tuple[Tuple[int, str], ...] = ((7, "high"), (5, "medium"), (0, "low"))

def tier_for(points: int) -> str:
    for floor, tier in TIERS:
        if points >= floor:
            return tier
    return "low"

# ---- result shapes ----

@dataclass(frozen=True)
class DigraphPatterns:
    fast: Tuple[str, ...] = ()
    slow: Tuple[str, ...] = ()
    consistent: Tuple[str, ...] = ()
    variable: Tuple[str, ...] = ()

    def any(self) -> bool:
        return bool(self.fast or self.slow or self.consistent or self.variable)

@dataclass(frozen=True)
class SubScores:
    stability: float = 0.0
    rhythm_consistency: float = 0.0
    uniqueness: int = 0
    complexity: float = 0.0
    entropy: float = 0.0
    coefficient_of_variation: float = 0.0
    dwell_deviation: float = 0.0
    flight_deviation: float = 0.0

@dataclass(frozen=True)
class SecurityAssessment:
    wpm: int
    efficiency: int
    avg_dwell: float
    avg_flight: float
    sub_scores: SubScores
    top_digraph: str
    typing_style: str
    style_details: Tuple[str, ...]
    patterns: DigraphPatterns
    checks: Tuple[BucketResult, ...]
    identifiability_points: int      # 0..8, drives the tier
    tier: str                        # high | medium | low
    identifiability_score: float     # 0..100 weighted composite, separate from the points
    security_level: str              # strong | moderate | weak
    narrative: str = ""

    @property
    def stability_percent(self) -> float:
        return self.sub_scores.stability

    def to_display(self) -> Dict[str, Any]:
        s = self.sub_scores
        return {
            "wpm": self.wpm,
            "efficiency": self.efficiency,
            "stability": round_half_up(s.stability, 1),
            "avgDwell": round_half_up(self.avg_dwell, 1),
            "avgFlight": round_half_up(self.avg_flight, 1),
            "rhythmConsistency": round_half_up(s.rhythm_consistency, 1),
            "uniqueness": s.uniqueness,
            "topDigraph": self.top_digraph,
            "typingStyle": self.typing_style,
            "identifiabilityPoints": self.identifiability_points,
            "tier": self.tier,
            "identifiabilityScore": round_half_up(self.identifiability_score, 1),
            "securityLevel": self.security_level,
            "patterns": {
                "fast": list(self.patterns.fast),
                "slow": list(self.patterns.slow),
                "consistent": list(self.patterns.consistent),
                "variable": list(self.patterns.variable),
            },
            "summaryText": self.narrative,
        }

# ---- scoring steps ----

def classify_digraphs(digraphs: DigraphMap, b: Benchmarks = BENCHMARKS) -> DigraphPatterns:
    """Independent thresholds: one digraph may land in several lists."""
    fast: List[str] = []
    slow: List[str] = []
    consistent: List[str] = []
    variable: List[str] = []
    for key, stats in digraphs.items():
        if len(stats.DD) < b.digraph_min_samples:
            continue
        avg = mean(stats.DD)
        cv = cv_percent(pstdev(stats.DD), avg)
        if avg < b.digraph_fast_ms:
            fast.append(key.label)
        if avg > b.digraph_slow_ms:
            slow.append(key.label)
        if cv < b.digraph_consistent_cv:
            consistent.append(key.label)
        if cv > b.digraph_variable_cv:
            variable.append(key.label)
    return DigraphPatterns(tuple(fast), tuple(slow), tuple(consistent), tuple(variable))

def uniqueness_percent(digraphs: DigraphMap, total_key_presses: int) -> int:
    # distinct DD pairs; UD-only keys from rollover do not add variety
    distinct = sum(1 for stats in digraphs.values() if stats.DD)
    return round_int(distinct / max(1, total_key_presses - 1) * 100)

def timing_deviation(avg: float, benchmark_avg: float) -> float:
    # no samples (mean 0) counts as no deviation
    if avg == 0:
        return 0.0
    return safe_div(abs(avg - benchmark_avg), benchmark_avg)

def complexity_score(digraphs: DigraphMap, b: Benchmarks = BENCHMARKS) -> float:
    keys = set()
    for key, stats in digraphs.items():
        if stats.DD:
            keys.update(k for k in key if k)
    return min(100.0, safe_div(len(keys), b.complexity_key_target) * 100.0)

def entropy_score(digraphs: DigraphMap) -> float:
    counts = [len(stats.DD) for stats in digraphs.values() if stats.DD]
    if len(counts) < 2:
        return 0.0
    return min(100.0, shannon_entropy(counts) / math.log2(len(counts)) * 100.0)

def typing_style(avg_dwell: float, avg_flight: float, cv: float, b: Benchmarks = BENCHMARKS) -> Tuple[str, Tuple[str, ...]]:
    details: List[str] = []
    if avg_dwell < b.dwell.fast:
        style = "light-touch"
        details.append("tends to touch keys lightly")
    elif avg_dwell > b.dwell.slow:
        style = "firm-press"
        details.append("tends to press keys firmly")
    else:
        style = "balanced"
        details.append("standard key press strength")

    if avg_flight < b.flight.fast:
        details.append("quick finger movement")
    elif avg_flight > b.flight.slow:
        details.append("deliberate choice of the next key")

    if cv > b.style_unstable_cv:
        style += " (unstable)"
        details.append("large rhythm variation")
    elif cv < b.style_stable_cv:
        style += " (highly stable)"
        details.append("very steady rhythm")
    return style, tuple(details)

def typing_efficiency(typed_text: str, reference_text: Optional[str] = None) -> int:
    actual = len(typed_text)
    expected = len(reference_text or "") or actual
    if expected <= 0:
        return 100
    return round_int(actual / expected * 100)

def weighted_identifiability(sub: SubScores, b: Benchmarks = BENCHMARKS) -> float:
    score = (
        sub.stability * b.weight_stability
        + sub.complexity * b.weight_complexity
        + sub.entropy * b.weight_entropy
        + min(100.0, float(sub.uniqueness)) * b.weight_uniqueness
    )
    return max(0.0, min(100.0, score))

def security_level(score: float, b: Benchmarks = BENCHMARKS) -> str:
    if score >= b.level_strong:
        return "strong"
    if score >= b.level_moderate:
        return "moderate"
    return "weak"

def assess(profile: Profile, benchmarks: Benchmarks = BENCHMARKS, reference_text: Optional[str] = None) -> SecurityAssessment:
    """Score one profile: 8-point identifiability, weighted composite, style and narrative."""
    b = benchmarks
    m = profile.metrics
    digraphs = profile.digraphs

    cv = cv_percent(m.down_down.stddev, m.down_down.mean)
    stability = max(0.0, 100.0 - cv)
    if m.flight.mean == 0:
        rhythm = 100.0
    else:
        rhythm = max(0.0, 100.0 - cv_percent(m.flight.stddev, m.flight.mean))

    patterns = classify_digraphs(digraphs, b)
    uniqueness = uniqueness_percent(digraphs, m.total_key_presses)
    dwell_dev = timing_deviation(m.dwell.mean, b.dwell.average)
    flight_dev = timing_deviation(m.flight.mean, b.flight.average)

    sub = SubScores(
        stability=stability,
        rhythm_consistency=rhythm,
        uniqueness=uniqueness,
        complexity=complexity_score(digraphs, b),
        entropy=entropy_score(digraphs),
        coefficient_of_variation=cv,
        dwell_deviation=dwell_dev,
        flight_deviation=flight_dev,
    )

    checks = (
        evaluate_bucket("stability", stability_rules(b), stability),
        evaluate_bucket("uniqueness", uniqueness_rules(b), uniqueness),
        evaluate_bucket("timing", timing_rules(b), max(dwell_dev, flight_dev)),
    )
    points = sum(c.points for c in checks)

    top, top_n = top_digraph(digraphs)
    if top is None:
        top_label = "-"
    else:
        top_label = top.label + (f" (x{top_n})" if top_n > 1 else "")

    style, details = typing_style(m.dwell.mean, m.flight.mean, cv, b)
    composite = weighted_identifiability(sub, b)

    result = SecurityAssessment(
        wpm=m.wpm,
        efficiency=typing_efficiency(profile.source_text, reference_text),
        avg_dwell=m.dwell.mean,
        avg_flight=m.flight.mean,
        sub_scores=sub,
        top_digraph=top_label,
        typing_style=style,
        style_details=details,
        patterns=patterns,
        checks=checks,
        identifiability_points=points,
        tier=tier_for(points),
        identifiability_score=composite,
        security_level=security_level(composite, b),
    )
    result = replace(result, narrative=render_narrative(result, b))
    log.info("assess.done", profile=profile.name, points=points, tier=result.tier,
             score=round_half_up(composite, 1))
    return result
