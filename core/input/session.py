from __future__ import annotations
import threading
import time
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple
import structlog

from .events import KeyEvent, KeyAction

log = structlog.get_logger()

MAX_EVENTS = 10000

class CaptureState(Enum):
    IDLE = "idle"
    RUNNING = "running"

class CaptureSession:
    """
    Collects press/release observations between start() and stop().
    - Repeat presses (code already down) are dropped
    - Releases without an open press are dropped
    - Buffer is capped at MAX_EVENTS; presses past the cap are dropped with their releases
    stop() freezes the stream into an immutable tuple handed to the analytics layer.
    """
    def __init__(self, clock: Callable[[], float] = time.perf_counter, max_events: int = MAX_EVENTS):
        self.clock = clock
        self.max_events = max_events
        self._state = CaptureState.IDLE
        self._started_at: float = 0.0
        self._events: List[KeyEvent] = []
        self._down: Dict[str, float] = {}
        self._frozen: Tuple[KeyEvent, ...] = ()
        self._lock = threading.RLock()

    @property
    def state(self) -> CaptureState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is CaptureState.RUNNING

    @property
    def events(self) -> Tuple[KeyEvent, ...]:
        """Live copy while running, frozen stream once stopped."""
        with self._lock:
            if self.running:
                return tuple(self._events)
            return self._frozen

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._events = []
            self._down.clear()
            self._frozen = ()
            self._started_at = self.clock()
            self._state = CaptureState.RUNNING
        log.info("capture.start")

    def stop(self) -> Tuple[KeyEvent, ...]:
        with self._lock:
            if not self.running:
                return self._frozen
            self._frozen = tuple(self._events)
            self._events = []
            self._down.clear()
            self._state = CaptureState.IDLE
        log.info("capture.stop", events=len(self._frozen))
        return self._frozen

    def clear(self) -> None:
        with self._lock:
            self._state = CaptureState.IDLE
            self._events = []
            self._down.clear()
            self._frozen = ()
        log.info("capture.clear")

    def press(self, key: str, code: str, t_ms: Optional[float] = None) -> bool:
        """Record a key press. Returns False when the press was not recorded."""
        with self._lock:
            if not self.running or code in self._down:
                return False
            if len(self._events) >= self.max_events:
                log.debug("capture.full", max_events=self.max_events)
                return False
            t = self._now_ms() if t_ms is None else t_ms
            self._events.append(KeyEvent(key=key, code=code, action=KeyAction.DOWN, t_ms=t))
            self._down[code] = t
            return True

    def release(self, key: str, code: str, t_ms: Optional[float] = None) -> bool:
        with self._lock:
            if not self.running or code not in self._down:
                return False
            t = self._now_ms() if t_ms is None else t_ms
            self._events.append(KeyEvent(key=key, code=code, action=KeyAction.UP, t_ms=t))
            del self._down[code]
            return True

    def _now_ms(self) -> float:
        return (self.clock() - self._started_at) * 1000.0
