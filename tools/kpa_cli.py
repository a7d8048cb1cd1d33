from __future__ import annotations
import argparse, json, sys
from typing import List, Optional
import structlog

from core.input.events import KeyEvent
from app.logging_config import configure_logging
from app.analytics.digraphs import digraph_table
from app.analytics.comparator import format_comparison
from app.controller.runner import AnalysisRunner
from app.profiles.store import ProfileStore

log = structlog.get_logger()

def load_events(path: str) -> List[KeyEvent]:
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)
    if not isinstance(payload, list):
        raise ValueError("event file must contain a JSON list")
    return [KeyEvent.from_record(rec) for rec in payload]

def _runner_for(args) -> AnalysisRunner:
    runner = AnalysisRunner()
    runner.reference_text = getattr(args, "reference", "") or ""
    runner.load_events(load_events(args.events), typed_text=args.text or "")
    return runner

def cmd_analyze(args) -> int:
    runner = _runner_for(args)
    result = runner.assess()
    if result is None:
        print("No data to analyze.")
        return 1
    if args.json:
        print(json.dumps(result.to_display(), ensure_ascii=False, indent=2))
        return 0
    m = runner.metrics
    print(f"Keystrokes          : {m.total_key_presses}")
    print(f"Duration            : {m.duration_ms / 1000:.2f}s")
    print(f"Avg Dwell / DD      : {m.dwell.mean:.0f}ms / {m.down_down.mean:.0f}ms")
    print(f"Typing style        : {result.typing_style}")
    print(f"Top digraph         : {result.top_digraph}")
    print(f"Identifiability     : {result.identifiability_points}/8 ({result.tier})")
    print(f"Weighted score      : {result.identifiability_score:.1f} ({result.security_level})")
    print()
    print(result.narrative)
    return 0

def cmd_digraphs(args) -> int:
    runner = _runner_for(args)
    rows = digraph_table(runner.digraphs, limit=args.limit)
    if not rows:
        print("No digraph data")
        return 0
    print(f"{'Digraph':<10}{'DD mean':>10}{'UD mean':>10}{'Samples':>9}")
    for r in rows:
        print(f"{r.digraph:<10}{r.dd_mean:>8.0f}ms{r.ud_mean:>8.0f}ms{r.samples:>9}")
    return 0

def cmd_save(args) -> int:
    store = ProfileStore()
    try:
        store.load_json(args.store)
    except FileNotFoundError:
        pass
    runner = AnalysisRunner(store=store)
    runner.load_events(load_events(args.events), typed_text=args.text or "")
    profile = runner.save_profile(args.name)
    if profile is None:
        print("No data to save.")
        return 1
    store.export_json(args.store)
    print(f'Profile "{profile.name}" saved ({len(store)} total).')
    return 0

def cmd_compare(args) -> int:
    store = ProfileStore()
    store.load_json(args.store)
    if len(store) < 2:
        print("Need at least two profiles to compare.")
        return 1
    runner = AnalysisRunner(store=store)
    print(format_comparison(runner.compare()))
    return 0

def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="kpa", description="KeyPress Pattern Analyzer CLI")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    ap.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    sub = ap.add_subparsers(dest="cmd", required=True)

    p_an = sub.add_parser("analyze", help="Metrics + identifiability assessment for an event file")
    p_an.add_argument("events")
    p_an.add_argument("--text", default="", help="Text that was typed (for WPM / efficiency)")
    p_an.add_argument("--reference", default="", help="Intended phrase (for efficiency)")
    p_an.add_argument("--json", action="store_true", help="Print the rounded display record as JSON")

    p_dg = sub.add_parser("digraphs", help="Most frequent digraphs with DD/UD means")
    p_dg.add_argument("events")
    p_dg.add_argument("--text", default="")
    p_dg.add_argument("--limit", type=int, default=10)

    p_sv = sub.add_parser("save", help="Append a profile built from an event file to a profile store")
    p_sv.add_argument("events")
    p_sv.add_argument("--name", required=True)
    p_sv.add_argument("--store", default="keystroke_profiles.json")
    p_sv.add_argument("--text", default="")

    p_cmp = sub.add_parser("compare", help="Pairwise similarity of every stored profile")
    p_cmp.add_argument("store", nargs="?", default="keystroke_profiles.json")

    args = ap.parse_args(argv)
    configure_logging(debug=args.verbose, json_logs=args.json_logs)

    handlers = {"analyze": cmd_analyze, "digraphs": cmd_digraphs, "save": cmd_save, "compare": cmd_compare}
    try:
        return handlers[args.cmd](args)
    except (OSError, ValueError, KeyError) as e:
        # ProfileFormatError is a ValueError
        log.error("cli.error", cmd=args.cmd, err=str(e))
        print(f"error: {e}", file=sys.stderr)
        return 2

if __name__ == "__main__":
    sys.exit(main())
