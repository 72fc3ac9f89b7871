# services/scheduler.py
import logging
import threading
import time
from typing import Callable, Optional

_LOG = logging.getLogger(__name__)


class PeriodicTask:
    """Runs one callable at a fixed tick rate on its own thread (UI refresh loop)."""

    def __init__(self, fn: Callable[[], None], fps: float = 30.0, name: str = "PeriodicTask"):
        if fps <= 0:
            raise ValueError("fps must be > 0")
        self.fn = fn
        self.fps = float(fps)
        self.name = name
        self._tick = 1.0 / self.fps
        self._stop = threading.Event()
        self._stop.set()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return bool(self._thread and self._thread.is_alive() and not self._stop.is_set())

    def start(self):
        if self._thread and self._thread.is_alive() and not self._stop.is_set():
            return
        # Each loop owns its stop flag: a loop that outlived stop()'s join
        # still sees its own flag set and exits after the current tick.
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._loop, args=(self._stop,), name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: float = 1.0):
        """Stop and join; safe to call repeatedly."""
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            if thread.is_alive():
                _LOG.warning("[%s] still busy after %.1fs; it exits after its current tick", self.name, timeout)

    def _loop(self, stop: threading.Event):
        while not stop.is_set():
            t0 = time.monotonic()
            try:
                self.fn()
            except Exception:
                _LOG.warning("[%s] tick failed", self.name, exc_info=True)
            # pace; Event.wait so stop() does not sit out a whole tick
            dt = time.monotonic() - t0
            stop.wait(max(0.0, self._tick - dt))
