# services/orchestrator_master.py
# Single owner of ReactiveState: producers post, the UI-rate tick applies and publishes.
from __future__ import annotations
import logging
import queue
import threading
import time
from typing import Callable, List, Optional, Sequence, Tuple

from core.audio_pipeline import AnalysisFrame, AudioPipeline
from core.category import AudioCategory
from core.classification import Observation, SoundClassification
from core.mapping import HapticPattern, pattern_for_classification, pattern_for_sculpture
from core.mood import SculptureMood
from core.state.audio_state import ReactiveSnapshot, ReactiveState
from services.scheduler import PeriodicTask

_LOG = logging.getLogger(__name__)

CategoryListener = Callable[[AudioCategory], None]
ClassificationListener = Callable[[SoundClassification], None]
PatternListener = Callable[[HapticPattern, float], None]
SnapshotListener = Callable[[ReactiveSnapshot], None]

_CLASSIFICATION = "classification"
_MOOD = "mood"


class OrchestratorMaster:
    """
    Glues capture, classifier and mood producers to one ReactiveState.

    Thread model:
      - post_analysis() runs on the audio thread, post_classification() and
        post_mood() on whatever thread the collaborator calls back on. They
        only put_nowait() into bounded inboxes and never block.
      - tick() runs on the PeriodicTask thread (or the caller, when
        autotick=False) and is the only code that touches ReactiveState.
      - Every posted item carries the session id; items from an older
        session are dropped, so nothing is applied after stop() returns.
      - Posting while stopped is a no-op that returns False.
    """

    def __init__(
        self,
        audio: Optional[AudioPipeline] = None,
        fps: float = 30.0,
        inbox_size: int = 64,
        autotick: bool = True,
        log_every: float = 0.0,
    ):
        if inbox_size < 1:
            raise ValueError("inbox_size must be >= 1")

        self.audio = audio
        self.state = ReactiveState()
        self._inbox_size = int(inbox_size)

        self._frames: queue.Queue[Tuple[int, AnalysisFrame]] = queue.Queue(maxsize=self._inbox_size)
        self._events: queue.Queue[Tuple[int, str, object]] = queue.Queue(maxsize=self._inbox_size)

        self._lock = threading.RLock()
        self._session = 0
        self._active = False
        self._snapshot = self.state.snapshot()

        self._category_listeners: List[CategoryListener] = []
        self._classification_listeners: List[ClassificationListener] = []
        self._pattern_listeners: List[PatternListener] = []
        self._snapshot_listeners: List[SnapshotListener] = []
        self.state.trend.subscribe(self._on_category)
        self._pending_category: Optional[AudioCategory] = None
        self._pending_classification: Optional[SoundClassification] = None
        self._pending_pattern: Optional[HapticPattern] = None

        self._ticker = PeriodicTask(self.tick, fps=fps, name="ReactiveTick") if autotick else None

        self._last_log = 0.0
        self._log_every = float(log_every)

        if self.audio is not None:
            self.audio.subscribe(self.post_analysis)

    # ---------- Session ----------

    @property
    def active(self) -> bool:
        return self._active

    def start(self) -> None:
        with self._lock:
            if self._active:
                return
            self._clear_inboxes()
            self.state.reset()
            self._session += 1
            self._active = True
            self._snapshot = self.state.snapshot()
        _LOG.info("Reactive session %d started", self._session)

        if self.audio is not None:
            try:
                self.audio.start()
            except RuntimeError:
                self.stop()
                raise
        if self._ticker is not None:
            self._ticker.start()

    def stop(self) -> None:
        """Idempotent; on return no producer update can reach the state any more."""
        if self.audio is not None:
            self.audio.stop()
        if self._ticker is not None:
            self._ticker.stop()

        with self._lock:
            was_active = self._active
            self._active = False
            self._session += 1
            self._clear_inboxes()
            self.state.reset()
            self._pending_category = None
            self._pending_classification = None
            self._pending_pattern = None
            self._snapshot = self.state.snapshot()
        if was_active:
            _LOG.info("Reactive session stopped")

    def run(self) -> None:
        try:
            self.start()
            while True:
                time.sleep(0.2)
        except KeyboardInterrupt:
            pass
        finally:
            self.stop()

    # ---------- Listeners ----------

    def on_category_change(self, fn: CategoryListener) -> None:
        self._category_listeners.append(fn)

    def on_classification_change(self, fn: ClassificationListener) -> None:
        self._classification_listeners.append(fn)

    def on_pattern_change(self, fn: PatternListener) -> None:
        self._pattern_listeners.append(fn)

    def on_snapshot(self, fn: SnapshotListener) -> None:
        self._snapshot_listeners.append(fn)

    # ---------- Producers (any thread, non-blocking) ----------

    def post_analysis(self, frame: AnalysisFrame) -> bool:
        return self._post(self._frames, (self._session, frame), "analysis frame")

    def post_classification(self, batch: Sequence[Observation]) -> bool:
        # Copy: the caller may reuse its list
        return self._post(self._events, (self._session, _CLASSIFICATION, tuple(batch)), "classification")

    def post_mood(self, mood: SculptureMood) -> bool:
        return self._post(self._events, (self._session, _MOOD, mood), "mood")

    def _post(self, q: queue.Queue, item: tuple, what: str) -> bool:
        if not self._active:
            _LOG.debug("Dropping %s: no active session", what)
            return False
        try:
            q.put_nowait(item)
            return True
        except queue.Full:
            _LOG.debug("Inbox full, dropping %s", what)
            return False

    # ---------- Consumer ----------

    def snapshot(self) -> ReactiveSnapshot:
        return self._snapshot

    def tick(self) -> Optional[ReactiveSnapshot]:
        """One UI-rate step. Returns the new snapshot, or None when stopped."""
        with self._lock:
            if not self._active:
                return None
            session = self._session

            for _ in range(self._inbox_size):
                try:
                    item_session, frame = self._frames.get_nowait()
                except queue.Empty:
                    break
                if item_session == session:
                    self.state.apply_analysis(frame.loudness, frame.bands)

            for _ in range(self._inbox_size):
                try:
                    item_session, kind, payload = self._events.get_nowait()
                except queue.Empty:
                    break
                if item_session != session:
                    continue
                if kind == _CLASSIFICATION:
                    self._apply_classification(payload)
                elif kind == _MOOD:
                    self._set_pattern(pattern_for_sculpture(payload))

            self.state.advance()
            snap = self.state.snapshot()
            self._snapshot = snap

            self._dispatch(snap)
            self._maybe_log(snap)
            return snap

    # ---------- Internal ----------

    def _apply_classification(self, batch: Sequence[Observation]) -> None:
        before = self.state.classifier.current
        if self.state.apply_classification(batch) and self.state.classifier.current != before:
            current = self.state.classifier.current
            self._pending_classification = current
            self._set_pattern(pattern_for_classification(current))

    def _set_pattern(self, pattern: HapticPattern) -> None:
        if pattern != self.state.pattern:
            self.state.pattern = pattern
            self._pending_pattern = pattern

    def _on_category(self, category: AudioCategory) -> None:
        # Called from state.advance(); delivered after the snapshot is built
        self._pending_category = category

    def _dispatch(self, snap: ReactiveSnapshot) -> None:
        category, self._pending_category = self._pending_category, None
        classification, self._pending_classification = self._pending_classification, None
        pattern, self._pending_pattern = self._pending_pattern, None

        if category is not None:
            for fn in self._category_listeners:
                self._call(fn, category)
        if classification is not None:
            for fn in self._classification_listeners:
                self._call(fn, classification)
        if pattern is not None:
            for fn in self._pattern_listeners:
                self._call(fn, pattern, snap.loudness)
        for fn in self._snapshot_listeners:
            self._call(fn, snap)

    def _call(self, fn, *args) -> None:
        try:
            fn(*args)
        except Exception:
            _LOG.warning("Listener %r failed", fn, exc_info=True)

    def _clear_inboxes(self) -> None:
        for q in (self._frames, self._events):
            while True:
                try:
                    q.get_nowait()
                except queue.Empty:
                    break

    def _maybe_log(self, snap: ReactiveSnapshot) -> None:
        if self._log_every <= 0:
            return
        now = time.monotonic()
        if now - self._last_log >= self._log_every:
            self._last_log = now
            b = snap.bands
            _LOG.info(
                "[AUDIO] level=%.3f bands=%.2f/%.2f/%.2f/%.2f class=%s category=%s haptic=%s",
                snap.loudness, b.low, b.mid, b.high, b.very_high,
                snap.classification.value, snap.category.value, snap.pattern.value,
            )
