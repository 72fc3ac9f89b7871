# core/audio_pipeline.py
# Headless microphone capture + per-buffer analysis (loudness, FFT bands)
from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, List, Optional
import logging
import time
import threading
import numpy as np

from core.loudness import instantaneous_loudness
from core.spectrum import DEFAULT_FFT_SIZE, FrequencyBands, SpectralBandAnalyzer

try:
    import sounddevice as sd
    from sounddevice import PortAudioError
except Exception:
    sd = None
    PortAudioError = Exception

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisFrame:
    ts: float                   # monotonic timestamp
    samplerate: float
    loudness: Optional[float]   # 0..1, None for an empty buffer
    bands: FrequencyBands       # unsmoothed, 0..1 each


Subscriber = Callable[[AnalysisFrame], None]


class AudioPipeline:
    """
    Headless, callback-driven mono audio input.
    - Runs analysis on the PortAudio thread (fixed-size work per buffer).
    - Emits an immutable AnalysisFrame per buffer; never keeps the samples.
    - Stereo devices are downmixed to mono.
    """

    def __init__(
        self,
        samplerate: int = 44100,
        blocksize: int = DEFAULT_FFT_SIZE,
        channels: int = 1,
        device: Optional[int | str] = None,
        fft_size: int = DEFAULT_FFT_SIZE,
    ):
        if channels not in (1, 2):
            raise ValueError("AudioPipeline supports 1 or 2 channels only.")
        if blocksize < fft_size:
            _LOG.warning("blocksize %d < fft_size %d: bands will stay at zero", blocksize, fft_size)

        self.samplerate = samplerate
        self.blocksize = blocksize
        self.channels = channels
        self.device = device

        self.analyzer = SpectralBandAnalyzer(fft_size)
        # Build the band tables now so the first callback does no setup.
        self.analyzer.band_bins(samplerate)

        self._subs: List[Subscriber] = []

        self._run_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last_err: Optional[str] = None

    # ---------- Public API ----------

    def start(self) -> None:
        if sd is None:
            raise RuntimeError("sounddevice is not available in this environment.")
        if self._thread and self._thread.is_alive():
            return
        self._last_err = None
        # Fresh flag per capture thread: a thread that outlived stop()'s join
        # keeps its own cleared flag and closes its stream instead of resuming.
        self._run_event = threading.Event()
        self._run_event.set()
        self._thread = threading.Thread(
            target=self._run, args=(self._run_event,), name="AudioPipeline", daemon=True
        )
        self._thread.start()

    def stop(self, join: bool = True, timeout: float = 2.0) -> None:
        self._run_event.clear()
        if join and self._thread:
            self._thread.join(timeout=timeout)
            if self._thread.is_alive():
                _LOG.warning("Audio thread still closing its stream after %.1fs", timeout)
        self._thread = None

    def is_running(self) -> bool:
        return bool(self._thread and self._thread.is_alive())

    def subscribe(self, fn: Subscriber) -> None:
        self._subs.append(fn)

    def last_error(self) -> Optional[str]:
        return self._last_err

    def analyze_block(self, samples: np.ndarray, samplerate: Optional[float] = None) -> AnalysisFrame:
        """Analyze one mono buffer (also used for file replay and tests)."""
        sr = float(samplerate or self.samplerate)
        return AnalysisFrame(
            ts=time.monotonic(),
            samplerate=sr,
            loudness=instantaneous_loudness(samples),
            bands=self.analyzer.analyze(samples, sr),
        )

    def feed(self, samples: np.ndarray, samplerate: Optional[float] = None) -> AnalysisFrame:
        """Analyze a buffer and fan it out as if it came from the device."""
        frame = self.analyze_block(samples, samplerate)
        self._publish(frame)
        return frame

    # ---------- Internal ----------

    def _run(self, run: threading.Event) -> None:
        try:
            with sd.InputStream(
                device=self.device,
                channels=self.channels,
                samplerate=self.samplerate,
                blocksize=self.blocksize,
                dtype="float32",
                callback=self._make_callback(run),
            ):
                _LOG.info("Audio capture started (%d Hz, block %d)", self.samplerate, self.blocksize)
                while run.is_set():
                    time.sleep(0.01)
        except PortAudioError as e:
            self._last_err = f"Audio device error: {e}"
            _LOG.error(self._last_err)
            run.clear()
        except Exception as e:
            self._last_err = f"Audio thread failed: {e}"
            _LOG.exception("Audio thread failed")
            run.clear()
        else:
            _LOG.info("Audio capture stopped")

    def _make_callback(self, run: threading.Event):
        def callback(indata, frames, time_info, status):
            if status:
                _LOG.debug("Audio status: %s", status)
            if not run.is_set():
                return

            # Shape: (blocksize, channels)
            if self.channels == 1:
                mono = indata[:, 0]
            else:
                mono = indata.mean(axis=1)

            self._publish(self.analyze_block(mono))

        return callback

    def _publish(self, frame: AnalysisFrame) -> None:
        # Fan-out to subscribers (they must only enqueue)
        for fn in self._subs:
            try:
                fn(frame)
            except Exception:
                # Keep audio flowing
                _LOG.debug("Audio subscriber %r failed", fn, exc_info=True)
