# tests/test_metrics.py
# How to run:
#   From repo root: pytest -q
#
# What this covers:
#   - Dwell / flight / DD / UD extraction on overlapping (rollover) typing
#   - Population standard deviation, empty-input zeros (never NaN)
#   - Key-repeat and orphan-release filtering
#   - WPM word counting and half-up rounding

import math
import pytest

from core.input.events import press, release
from app.analytics.metrics import (
    MetricsSummary, TimingStats, extract_metrics, collect_samples,
    normalize_stream, calculate_wpm, word_count,
)

def _scenario():
    # a and s overlap: s goes down before a comes up
    return [
        press("a", 0), press("s", 100), release("a", 120), release("s", 210), press("d", 300),
    ]

def _typed(text, dwell=80.0, gap=200.0):
    evs = []
    for i, ch in enumerate(text):
        t = i * gap
        evs.append(press(ch, t, code=f"Key{ch}"))
        evs.append(release(ch, t + dwell, code=f"Key{ch}"))
    return evs

def _all_finite(m: MetricsSummary) -> bool:
    nums = [m.duration_ms]
    for st in (m.dwell, m.flight, m.down_down, m.up_down):
        nums += [st.mean, st.stddev]
    return all(math.isfinite(x) for x in nums)

def test_overlapping_scenario_samples():
    s = collect_samples(normalize_stream(_scenario()))
    assert s.dwell == [120, 110]
    assert s.down_down == [100, 200]
    assert s.up_down == [180, 90]
    # a->s has no release in between; s->d measures from the first release after s (release a @120)
    assert s.flight == [180]

def test_overlapping_scenario_summary():
    m = extract_metrics(_scenario(), "asd")
    assert m.total_key_presses == 3
    assert m.duration_ms == 300
    assert m.dwell == TimingStats(mean=115.0, stddev=5.0, samples=2)
    assert m.down_down == TimingStats(mean=150.0, stddev=50.0, samples=2)
    assert m.up_down == TimingStats(mean=135.0, stddev=45.0, samples=2)
    assert m.flight == TimingStats(mean=180.0, stddev=0.0, samples=1)
    assert m.wpm == 200      # 1 word in 0.005 minutes

def test_empty_stream_is_all_zero():
    m = extract_metrics([], "")
    assert m == MetricsSummary()
    assert m.total_key_presses == 0 and m.wpm == 0
    assert m.dwell.samples == 0 and m.dwell.mean == 0 and m.dwell.stddev == 0
    assert _all_finite(m)

def test_single_press_without_release():
    m = extract_metrics([press("a", 40)], "a")
    assert m.total_key_presses == 1
    assert m.dwell.samples == 0
    assert m.down_down.samples == 0
    assert m.up_down.samples == 0
    assert _all_finite(m)

def test_repeat_press_ignored_entirely():
    events = [press("a", 0), press("a", 50), press("a", 80), release("a", 100)]
    m = extract_metrics(events)
    assert m.total_key_presses == 1
    assert m.dwell == TimingStats(100.0, 0.0, 1)
    assert m.down_down.samples == 0

def test_orphan_release_ignored():
    events = [release("z", 5), press("a", 10), release("a", 60)]
    assert len(normalize_stream(events)) == 2
    m = extract_metrics(events)
    assert m.dwell.mean == 50
    assert m.up_down.samples == 0

def test_unmatched_trailing_press_still_sequences_dd():
    m = extract_metrics([press("a", 0), release("a", 50), press("b", 100)])
    assert m.total_key_presses == 2
    assert m.dwell.samples == 1
    assert m.down_down.mean == 100
    assert m.flight.mean == 50
    assert m.up_down.mean == 50

def test_flight_skips_gap_without_release():
    events = [press("a", 0), press("b", 50), release("a", 80), release("b", 120), press("c", 200)]
    s = collect_samples(normalize_stream(events))
    assert s.flight == [120]

def test_sequential_typing():
    m = extract_metrics(_typed("hello world"), "hello world")
    assert m.total_key_presses == 11
    assert m.dwell.mean == pytest.approx(80.0)
    assert m.dwell.stddev == pytest.approx(0.0)
    assert m.flight.mean == pytest.approx(120.0)
    assert m.flight.samples == 10
    assert m.down_down.mean == pytest.approx(200.0)
    assert m.up_down.samples == 10
    assert m.duration_ms == 2080
    assert _all_finite(m)

def test_population_stddev():
    m = extract_metrics([press("a", 0), press("b", 100), press("c", 300), press("d", 400)])
    # DD = 100, 200, 100 -> mean 133.33, population sd 47.14
    assert m.down_down.mean == pytest.approx(400 / 3)
    assert m.down_down.stddev == pytest.approx(math.sqrt(20000 / 9))

def test_word_count_and_wpm():
    assert word_count("  hello   world \n") == 2
    assert word_count("   ") == 0
    assert calculate_wpm("", 60000) == 0
    assert calculate_wpm("one two", 0) == 0
    assert calculate_wpm("one two", -5) == 0
    assert calculate_wpm("hello world", 60000) == 2
    # 5 words in 2 minutes = 2.5 -> 3, not banker's 2
    assert calculate_wpm("a b c d e", 120000) == 3

def test_summary_record_roundtrip():
    m = extract_metrics(_scenario(), "asd")
    rec = m.to_record()
    assert set(rec) == {"totalKeyPresses", "durationMs", "dwell", "flight", "downDown", "upDown", "wpm"}
    assert rec["dwell"] == {"mean": 115.0, "stddev": 5.0, "samples": 2}
    assert MetricsSummary.from_record(rec) == m

def test_summary_from_record_rejects_bad_numbers():
    rec = extract_metrics(_scenario()).to_record()
    rec["dwell"]["mean"] = float("nan")
    with pytest.raises(ValueError):
        MetricsSummary.from_record(rec)
