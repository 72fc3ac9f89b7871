# core/loudness.py
# Frame loudness: RMS -> dB -> 0..1, plus the UI-rate smoothing accumulator.
from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import numpy as np

# ---- Calibration constants ----
# Tuned against the reference microphone gain; re-tune per capture setup.
MIN_DB = -60.0
MAX_DB = 0.0
RMS_EPSILON = 1e-7

# EMA factor applied once per UI tick (not per audio buffer).
LOUDNESS_SMOOTHING = 0.3


def _clamp01(v: float) -> float:
    return 0.0 if v < 0.0 else 1.0 if v > 1.0 else float(v)


def frame_rms(samples: np.ndarray) -> float:
    """Root-mean-square of one frame (0.0 for an empty frame)."""
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(x * x)))


def instantaneous_loudness(samples: np.ndarray) -> Optional[float]:
    """
    Normalized loudness of one frame.

    - RMS over the whole frame
    - 20*log10(max(rms, 1e-7)), clamped to [-60, 0] dB
    - mapped linearly so -60 dB -> 0.0 and 0 dB -> 1.0

    Returns None for a zero-length frame so callers can keep their prior state.
    """
    if len(samples) == 0:
        return None
    rms = frame_rms(samples)
    if not np.isfinite(rms):
        # NaN/inf samples from a broken driver read as silence
        return 0.0
    db = 20.0 * np.log10(max(rms, RMS_EPSILON))
    clamped = max(MIN_DB, min(db, MAX_DB))
    return _clamp01((clamped - MIN_DB) / (MAX_DB - MIN_DB))


@dataclass
class LoudnessState:
    """Latest per-frame loudness and its smoothed counterpart (both 0..1)."""
    instantaneous: float = 0.0
    smoothed: float = 0.0

    def update(self, value: Optional[float]) -> None:
        # Empty frames produce None and must not touch the state.
        if value is None:
            return
        self.instantaneous = _clamp01(value)

    def smooth(self, alpha: float = LOUDNESS_SMOOTHING) -> float:
        self.smoothed = _clamp01(self.smoothed * (1.0 - alpha) + self.instantaneous * alpha)
        return self.smoothed

    def reset(self) -> None:
        self.instantaneous = 0.0
        self.smoothed = 0.0
