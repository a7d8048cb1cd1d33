from __future__ import annotations
from dataclasses import dataclass, field

@dataclass(frozen=True)
class WpmTiers:
    beginner: float = 20
    average: float = 35
    expert: float = 60

@dataclass(frozen=True)
class TimingTiers:
    fast: float
    average: float
    slow: float

@dataclass(frozen=True)
class StabilityTiers:
    unstable: float = 50
    stable: float = 70
    very_stable: float = 85

@dataclass(frozen=True)
class Benchmarks:
    # reference tiers (ms / WPM / %), illustrative heuristics only
    wpm: WpmTiers = field(default_factory=WpmTiers)
    dwell: TimingTiers = field(default_factory=lambda: TimingTiers(fast=80, average=120, slow=180))
    flight: TimingTiers = field(default_factory=lambda: TimingTiers(fast=120, average=180, slow=250))
    stability: StabilityTiers = field(default_factory=StabilityTiers)

    # digraph classification
    digraph_min_samples: int = 2
    digraph_fast_ms: float = 200.0
    digraph_slow_ms: float = 400.0
    digraph_consistent_cv: float = 20.0
    digraph_variable_cv: float = 40.0

    # typing-style suffix (CV of DD intervals, %)
    style_unstable_cv: float = 30.0
    style_stable_cv: float = 15.0

    # timing distinctiveness (relative deviation from the benchmark average)
    distinct_strong: float = 0.30
    distinct_mild: float = 0.15

    # weighted identifiability composite
    weight_stability: float = 0.20
    weight_complexity: float = 0.25
    weight_entropy: float = 0.20
    weight_uniqueness: float = 0.35
    complexity_key_target: int = 30   # letters + space + common punctuation
    level_strong: float = 70.0
    level_moderate: float = 40.0

BENCHMARKS = Benchmarks()
