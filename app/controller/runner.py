from __future__ import annotations
import time
from typing import Callable, List, Optional, Tuple
import structlog

from core.input.events import KeyEvent
from core.input.session import CaptureSession
from app.analytics.config import Benchmarks, BENCHMARKS
from app.analytics.metrics import MetricsSummary, extract_metrics
from app.analytics.digraphs import DigraphMap, accumulate_digraphs
from app.analytics.scoring import SecurityAssessment, assess
from app.analytics.comparator import PairSimilarity, compare_profiles
from app.profiles.models import Profile
from app.profiles.store import ProfileStore

log = structlog.get_logger()

class AnalysisRunner:
    """Owns the capture session and profile store; runs the analysis once capture stops."""
    def __init__(
        self,
        store: Optional[ProfileStore] = None,
        benchmarks: Benchmarks = BENCHMARKS,
        clock: Callable[[], float] = time.perf_counter,
        on_result: Optional[Callable[[MetricsSummary, DigraphMap], None]] = None,
    ):
        self.session = CaptureSession(clock=clock)
        self.store = store if store is not None else ProfileStore()
        self.benchmarks = benchmarks
        self.reference_text: str = ""
        self.typed_text: str = ""
        self.metrics: MetricsSummary = MetricsSummary()
        self.digraphs: DigraphMap = {}
        self._events: Tuple[KeyEvent, ...] = ()
        self._on_result = on_result

    @property
    def running(self) -> bool:
        return self.session.running

    def start(self) -> None:
        if self.running:
            return
        self.typed_text = ""
        self.metrics = MetricsSummary()
        self.digraphs = {}
        self.session.start()

    def stop(self, typed_text: Optional[str] = None) -> MetricsSummary:
        if not self.running:
            return self.metrics
        if typed_text is not None:
            self.typed_text = typed_text
        self._events = self.session.stop()
        self.metrics = extract_metrics(self._events, self.typed_text)
        self.digraphs = accumulate_digraphs(self._events)
        log.info("runner.analyzed", presses=self.metrics.total_key_presses,
                 digraphs=len(self.digraphs), wpm=self.metrics.wpm)
        if self._on_result:
            try:
                self._on_result(self.metrics, self.digraphs)
            except Exception as e:
                log.warning("runner.on_result.error", err=str(e))
        return self.metrics

    def load_events(self, events: List[KeyEvent], typed_text: str = "") -> MetricsSummary:
        """Analyze a stream captured elsewhere, bypassing the live session."""
        self.session.clear()
        self.session.start()
        for ev in events:
            if ev.is_press:
                self.session.press(ev.key, ev.code, ev.t_ms)
            else:
                self.session.release(ev.key, ev.code, ev.t_ms)
        return self.stop(typed_text)

    def clear(self) -> None:
        self.session.clear()
        self._events = ()
        self.typed_text = ""
        self.metrics = MetricsSummary()
        self.digraphs = {}

    @property
    def events(self) -> Tuple[KeyEvent, ...]:
        return self._events

    def current_profile(self, name: str = "current") -> Profile:
        return Profile.snapshot(name, self.metrics, self.digraphs, self.typed_text)

    def assess(self) -> Optional[SecurityAssessment]:
        """None when nothing was captured ("no data to analyze")."""
        if not self.metrics.total_key_presses:
            log.info("runner.assess.no_data")
            return None
        return assess(self.current_profile(), self.benchmarks, self.reference_text or None)

    def save_profile(self, name: str) -> Optional[Profile]:
        if not self.metrics.total_key_presses:
            return None
        return self.store.save(name, self.metrics, self.digraphs, self.typed_text)

    def compare(self) -> List[PairSimilarity]:
        return compare_profiles(self.store.profiles)
