# core/category.py
# Coarse audio category from the recent smoothed-loudness history (edge-triggered).
from __future__ import annotations
from collections import deque
from enum import Enum
from typing import Callable, Deque, List, Optional
import logging

from core.classification import SoundClassification

_LOG = logging.getLogger(__name__)

HISTORY_SIZE = 30
MIN_SAMPLES = 10


class AudioCategory(Enum):
    """Value is the phrase handed to the mood collaborator."""
    SILENT = "silent"
    CALM = "calm whisper"
    AMBIENT = "ambient sound"
    SPEECH = "human speech"
    MUSIC = "musical tones"
    ENERGETIC = "energetic loud"
    INTENSE = "intense peak"

    @property
    def description(self) -> str:
        return self.value

    @classmethod
    def from_classification(cls, classification: SoundClassification) -> "AudioCategory":
        return _FROM_CLASSIFICATION[classification]


_FROM_CLASSIFICATION = {
    SoundClassification.SILENCE: AudioCategory.SILENT,
    SoundClassification.UNKNOWN: AudioCategory.SILENT,
    SoundClassification.RAIN: AudioCategory.CALM,
    SoundClassification.NATURE: AudioCategory.CALM,
    SoundClassification.AMBIENT: AudioCategory.AMBIENT,
    SoundClassification.TRAFFIC: AudioCategory.AMBIENT,
    SoundClassification.FOOTSTEPS: AudioCategory.AMBIENT,
    SoundClassification.SPEECH: AudioCategory.SPEECH,
    SoundClassification.LAUGHTER: AudioCategory.SPEECH,
    SoundClassification.BABY_CRY: AudioCategory.SPEECH,
    SoundClassification.MUSIC: AudioCategory.MUSIC,
    SoundClassification.APPLAUSE: AudioCategory.ENERGETIC,
    SoundClassification.DOORBELL: AudioCategory.ENERGETIC,
    SoundClassification.DOG_BARK: AudioCategory.ENERGETIC,
    SoundClassification.SIREN: AudioCategory.INTENSE,
}


def categorize(max_power: float, variance: float) -> AudioCategory:
    """Ordered rule table; first match wins."""
    if max_power < 0.05:
        return AudioCategory.SILENT
    if max_power < 0.2 and variance < 0.01:
        return AudioCategory.CALM
    if max_power < 0.4 and variance < 0.02:
        return AudioCategory.AMBIENT
    if max_power < 0.5 and variance > 0.03:
        return AudioCategory.SPEECH
    if max_power < 0.6 and variance > 0.02:
        return AudioCategory.MUSIC
    if max_power < 0.8:
        return AudioCategory.ENERGETIC
    return AudioCategory.INTENSE


CategoryListener = Callable[[AudioCategory], None]


class CategoryTrendDetector:
    """
    Samples smoothed loudness once per UI tick into a ring buffer.

    - No category is computed until MIN_SAMPLES are buffered.
    - The category is recomputed on every sample, but listeners only hear
      about it when it differs from the last emitted one.
    - The first emitted baseline is SILENT, so a quiet room stays silent.
    """

    def __init__(self, history_size: int = HISTORY_SIZE, min_samples: int = MIN_SAMPLES):
        if min_samples < 1 or min_samples > history_size:
            raise ValueError("min_samples must be within 1..history_size")
        self.min_samples = int(min_samples)
        self._history: Deque[float] = deque(maxlen=int(history_size))
        self._last = AudioCategory.SILENT
        self._listeners: List[CategoryListener] = []

    @property
    def current(self) -> AudioCategory:
        return self._last

    def __len__(self) -> int:
        return len(self._history)

    def subscribe(self, fn: CategoryListener) -> None:
        self._listeners.append(fn)

    def compute(self) -> Optional[AudioCategory]:
        """Category for the current window, or None while still warming up."""
        n = len(self._history)
        if n < self.min_samples:
            return None
        mean = sum(self._history) / n
        peak = max(self._history)
        variance = sum((v - mean) ** 2 for v in self._history) / n
        return categorize(peak, variance)

    def sample(self, value: float) -> Optional[AudioCategory]:
        """Append one smoothed-loudness value; returns the new category on a transition."""
        self._history.append(float(value))
        category = self.compute()
        if category is None or category == self._last:
            return None
        self._last = category
        for fn in self._listeners:
            try:
                fn(category)
            except Exception:
                _LOG.warning("Category listener %r failed", fn, exc_info=True)
        return category

    def reset(self) -> None:
        self._history.clear()
        self._last = AudioCategory.SILENT
