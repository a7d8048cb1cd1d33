# tests/test_scoring.py
# How to run:
#   From repo root: pytest -q
#
# What this covers:
#   - Bucket tables (first matching rule wins) and tier boundaries
#   - Digraph classification with overlapping lists
#   - Typing style, efficiency, uniqueness, deviation edge cases
#   - Full assessments: empty profile, 8/6/5/4 point profiles
#   - Weighted composite kept separate from the 8-point score
#   - Narrative section order

import math
import pytest

from core.input.events import press, release
from app.analytics.config import BENCHMARKS
from app.analytics.metrics import MetricsSummary, TimingStats, extract_metrics
from app.analytics.digraphs import DigraphKey, DigraphStats, accumulate_digraphs
from app.analytics.scoring import (
    assess, evaluate_bucket, stability_rules, uniqueness_rules, timing_rules, tier_for,
    classify_digraphs, uniqueness_percent, timing_deviation, typing_style, typing_efficiency,
    complexity_score, entropy_score,
)
from app.profiles.models import Profile

def _digraphs():
    return {
        DigraphKey("a", "b"): DigraphStats(DD=[100.0, 100.0]),
        DigraphKey("b", "c"): DigraphStats(DD=[200.0, 200.0]),
        DigraphKey("c", "d"): DigraphStats(DD=[300.0, 300.0]),
    }

def _profile(dwell=60.0, dd_std=50.0, presses=4, digraphs=None, text="abcd"):
    metrics = MetricsSummary(
        total_key_presses=presses,
        duration_ms=1000.0,
        dwell=TimingStats(dwell, 5.0, presses),
        flight=TimingStats(180.0, 18.0, presses - 1),
        down_down=TimingStats(200.0, dd_std, presses - 1),
        up_down=TimingStats(150.0, 10.0, presses - 1),
        wpm=40,
    )
    return Profile("p", 1700000000000, metrics, _digraphs() if digraphs is None else digraphs, text)

# ---- buckets ----

@pytest.mark.parametrize("value,points", [
    (70, 3), (85, 3), (77.5, 3), (85.1, 1), (100, 1), (49.9, 1), (0, 1), (50, 2), (69.9, 2),
])
def test_stability_bucket(value, points):
    assert evaluate_bucket("stability", stability_rules(BENCHMARKS), value).points == points

@pytest.mark.parametrize("value,points", [(60, 3), (100, 3), (59, 2), (40, 2), (39, 1), (0, 1)])
def test_uniqueness_bucket(value, points):
    assert evaluate_bucket("uniqueness", uniqueness_rules(BENCHMARKS), value).points == points

@pytest.mark.parametrize("value,points", [(0.31, 2), (0.3, 1), (0.16, 1), (0.15, 0), (0.0, 0)])
def test_timing_bucket(value, points):
    assert evaluate_bucket("timing", timing_rules(BENCHMARKS), value).points == points

def test_bucket_marks_and_messages():
    r = evaluate_bucket("stability", stability_rules(BENCHMARKS), 75.0)
    assert r.mark == "✓"
    assert "75%" in r.message

@pytest.mark.parametrize("points,tier", [(8, "high"), (7, "high"), (6, "medium"), (5, "medium"), (4, "low"), (0, "low")])
def test_tier_boundaries(points, tier):
    assert tier_for(points) == tier

# ---- components ----

def test_classify_digraphs_independent_thresholds():
    d = {
        DigraphKey("t", "h"): DigraphStats(DD=[100.0, 100.0]),   # fast + consistent
        DigraphKey("x", "q"): DigraphStats(DD=[300.0, 700.0]),   # slow, cv exactly 40
        DigraphKey("a", "b"): DigraphStats(DD=[100.0, 300.0]),   # mean 200, cv 50
        DigraphKey("z", "z"): DigraphStats(DD=[50.0]),           # too few samples
        DigraphKey("u", "d"): DigraphStats(UD=[10.0, 20.0]),     # no DD samples
    }
    p = classify_digraphs(d)
    assert p.fast == ("th",)
    assert p.slow == ("xq",)
    assert p.consistent == ("th",)
    assert p.variable == ("ab",)
    assert p.any()

def test_classify_zero_mean_digraph_is_finite():
    p = classify_digraphs({DigraphKey("a", "b"): DigraphStats(DD=[0.0, 0.0])})
    assert p.fast == ("ab",) and p.consistent == ("ab",)

def test_uniqueness_percent():
    assert uniqueness_percent(_digraphs(), 5) == 75
    assert uniqueness_percent({}, 0) == 0
    assert uniqueness_percent(_digraphs(), 4) == 100

def test_uniqueness_ignores_ud_only_keys():
    events = [press("a", 0), press("s", 100), release("a", 120), release("s", 210), press("d", 300)]
    d = accumulate_digraphs(events)
    assert len(d) == 3                                      # as, sd, plus UD-only ad
    assert uniqueness_percent(d, 3) == 100
    a = assess(Profile("rollover", 0, extract_metrics(events), d))
    assert a.sub_scores.uniqueness == 100

def test_timing_deviation_zero_mean_is_zero():
    assert timing_deviation(0.0, 120.0) == 0.0
    assert timing_deviation(60.0, 120.0) == pytest.approx(0.5)
    assert timing_deviation(150.0, 120.0) == pytest.approx(0.25)

def test_typing_style_labels():
    style, details = typing_style(70, 100, 10)
    assert style == "light-touch (highly stable)"
    assert "quick finger movement" in details
    style, details = typing_style(200, 300, 35)
    assert style == "firm-press (unstable)"
    assert "deliberate choice of the next key" in details
    style, _ = typing_style(100, 150, 20)
    assert style == "balanced"

def test_typing_efficiency():
    assert typing_efficiency("abc", "abcd") == 75
    assert typing_efficiency("abc") == 100
    assert typing_efficiency("", "") == 100
    assert typing_efficiency("", "abcd") == 0

def test_complexity_and_entropy():
    assert complexity_score(_digraphs()) == pytest.approx(4 / 30 * 100)
    assert entropy_score(_digraphs()) == pytest.approx(100.0)
    assert entropy_score({DigraphKey("a", "b"): DigraphStats(DD=[1.0])}) == 0.0
    skewed = {DigraphKey("a", "b"): DigraphStats(DD=[1.0] * 3), DigraphKey("b", "a"): DigraphStats(DD=[1.0])}
    assert 0 < entropy_score(skewed) < 100

# ---- full assessments ----

def test_empty_profile_scores_two_low():
    a = assess(Profile("empty", 0, MetricsSummary()))
    assert a.sub_scores.coefficient_of_variation == 0
    assert a.stability_percent == 100
    assert a.sub_scores.rhythm_consistency == 100
    assert a.sub_scores.uniqueness == 0
    assert [c.points for c in a.checks] == [1, 1, 0]
    assert a.identifiability_points == 2
    assert a.tier == "low"
    assert a.wpm == 0
    assert a.efficiency == 100
    assert a.top_digraph == "-"
    assert not a.patterns.any()
    assert "Digraph pattern analysis" not in a.narrative
    assert math.isfinite(a.identifiability_score)

def test_eight_point_profile():
    a = assess(_profile())
    s = a.sub_scores
    assert s.coefficient_of_variation == pytest.approx(25.0)
    assert s.stability == pytest.approx(75.0)
    assert s.rhythm_consistency == pytest.approx(90.0)
    assert s.uniqueness == 100
    assert s.dwell_deviation == pytest.approx(0.5)
    assert s.flight_deviation == pytest.approx(0.0)
    assert [c.points for c in a.checks] == [3, 3, 2]
    assert [c.mark for c in a.checks] == ["✓", "✓", "✓"]
    assert a.identifiability_points == 8
    assert a.tier == "high"
    assert a.top_digraph == "ab (x2)"
    assert a.typing_style == "light-touch"

def test_weighted_score_is_separate():
    a = assess(_profile())
    expected = 75.0 * 0.2 + (4 / 30 * 100) * 0.25 + 100.0 * 0.2 + 100.0 * 0.35
    assert a.identifiability_score == pytest.approx(expected)
    assert a.security_level == "strong"
    assert a.identifiability_points != a.identifiability_score

@pytest.mark.parametrize("dwell,dd_std,points,tier", [
    (60.0, 20.0, 6, "medium"),     # stability 90 (+1), uniqueness (+3), dwell dev 0.5 (+2)
    (100.0, 20.0, 5, "medium"),    # dwell dev 0.167 (+1)
    (120.0, 20.0, 4, "low"),       # no timing deviation (+0)
])
def test_tier_examples(dwell, dd_std, points, tier):
    a = assess(_profile(dwell=dwell, dd_std=dd_std))
    assert a.identifiability_points == points
    assert a.tier == tier

def test_points_always_within_range():
    for dwell in (0.0, 50.0, 120.0, 400.0):
        for dd_std in (0.0, 30.0, 120.0, 500.0):
            a = assess(_profile(dwell=dwell, dd_std=dd_std))
            assert isinstance(a.identifiability_points, int)
            assert 0 <= a.identifiability_points <= 8
            assert 0 <= a.identifiability_score <= 100

def test_efficiency_uses_reference_text():
    a = assess(_profile(text="the quick"), reference_text="the quick brown")
    assert a.efficiency == 60

def test_display_rounding():
    a = assess(_profile(dwell=61.25))
    disp = a.to_display()
    assert disp["stability"] == 75.0
    assert disp["avgDwell"] == 61.3
    assert disp["avgFlight"] == 180.0
    assert disp["rhythmConsistency"] == 90.0
    assert disp["uniqueness"] == 100
    assert disp["wpm"] == 40
    assert isinstance(disp["efficiency"], int)

def test_narrative_section_order():
    a = assess(_profile())
    text = a.narrative
    headings = [
        "Typing speed analysis",
        "Timing characteristics analysis",
        "Stability and consistency analysis",
        "Digraph pattern analysis",
        "Personal characteristics summary",
        "Overall security evaluation",
        "Recommended security measures",
    ]
    positions = [text.index(h) for h in headings]
    assert positions == sorted(positions)
    assert "8/8 points" in text
    assert "Fast pairs: ab" in text
    assert text.count("✓") == 3

def test_narrative_is_deterministic():
    assert assess(_profile()).narrative == assess(_profile()).narrative
