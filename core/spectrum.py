# core/spectrum.py
# Windowed FFT -> four display bands (low / mid / high / very high), stateless per frame.
from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, List, Tuple
import threading
import numpy as np

# ---- Band layout (Hz, [lo, hi)) ----
BAND_EDGES: Tuple[Tuple[str, float, float], ...] = (
    ("low", 20.0, 250.0),
    ("mid", 250.0, 2000.0),
    ("high", 2000.0, 8000.0),
    ("very_high", 8000.0, 20000.0),
)

# Empirical display gain; calibrated together with MIN_DB in core.loudness.
BAND_GAIN = 10.0

# Consumer-side EMA: new = old * 0.8 + target * 0.2
BAND_SMOOTHING = 0.2

DEFAULT_FFT_SIZE = 1024


def _clamp01(v: float) -> float:
    return 0.0 if v < 0.0 else 1.0 if v > 1.0 else float(v)


@dataclass(frozen=True)
class FrequencyBands:
    """Per-band levels, each clamped to 0..1."""
    low: float = 0.0
    mid: float = 0.0
    high: float = 0.0
    very_high: float = 0.0

    def __post_init__(self) -> None:
        for name in ("low", "mid", "high", "very_high"):
            object.__setattr__(self, name, _clamp01(getattr(self, name)))

    @property
    def max_band(self) -> float:
        return max(self.low, self.mid, self.high, self.very_high)

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return self.low, self.mid, self.high, self.very_high

    def smoothed_toward(self, target: "FrequencyBands", alpha: float = BAND_SMOOTHING) -> "FrequencyBands":
        """Return a new snapshot moved `alpha` of the way toward `target` (per band)."""
        keep = 1.0 - alpha
        return FrequencyBands(
            low=self.low * keep + target.low * alpha,
            mid=self.mid * keep + target.mid * alpha,
            high=self.high * keep + target.high * alpha,
            very_high=self.very_high * keep + target.very_high * alpha,
        )


def hann_window(size: int) -> np.ndarray:
    """Symmetric Hann window: 0.5 - 0.5*cos(2*pi*i/(size-1)), i in [0, size)."""
    return np.hanning(size)


class SpectralBandAnalyzer:
    """
    Stateless band analyzer.

    - Hann window is built once per instance.
    - Bin -> band index tables are built once per sample rate and cached,
      so analyze() only does the FFT and four reductions.
    - Only the first fft_size/2 bins are used (real-input symmetry).
    - Bins at or above 20 kHz (and below 20 Hz) are ignored.
    """

    def __init__(self, fft_size: int = DEFAULT_FFT_SIZE):
        if fft_size < 2 or fft_size % 2:
            raise ValueError("fft_size must be an even number >= 2")
        self.fft_size = int(fft_size)
        self._window = hann_window(self.fft_size)
        self._band_bins: Dict[float, List[np.ndarray]] = {}
        self._lock = threading.Lock()

    def band_bins(self, samplerate: float) -> List[np.ndarray]:
        """Bin indices contributing to each band (cached per sample rate)."""
        key = float(samplerate)
        bins = self._band_bins.get(key)
        if bins is not None:
            return bins
        with self._lock:
            bins = self._band_bins.get(key)
            if bins is None:
                half = self.fft_size // 2
                freqs = np.arange(half, dtype=np.float64) * (key / self.fft_size)
                bins = [np.flatnonzero((freqs >= lo) & (freqs < hi)) for _, lo, hi in BAND_EDGES]
                self._band_bins[key] = bins
        return bins

    def magnitudes(self, samples: np.ndarray) -> np.ndarray:
        """|FFT| of the windowed first fft_size samples, first fft_size/2 bins."""
        x = np.asarray(samples[: self.fft_size], dtype=np.float64)
        spectrum = np.fft.rfft(x * self._window)
        return np.abs(spectrum[: self.fft_size // 2])

    def analyze(self, samples: np.ndarray, samplerate: float) -> FrequencyBands:
        if len(samples) < self.fft_size or samplerate <= 0:
            return FrequencyBands()

        mags = self.magnitudes(samples)
        if not np.all(np.isfinite(mags)):
            return FrequencyBands()

        values = []
        for idx in self.band_bins(samplerate):
            if idx.size == 0:
                # Degenerate sample rate / band edge: nothing to average
                values.append(0.0)
                continue
            mean = float(mags[idx].sum()) / idx.size
            values.append(min(mean * BAND_GAIN, 1.0))

        return FrequencyBands(*values)
