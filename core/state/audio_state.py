# core/state/audio_state.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Sequence, Tuple

from core.category import AudioCategory, CategoryTrendDetector
from core.classification import ClassificationAggregator, ClassifierResult, Observation, SoundClassification
from core.loudness import LoudnessState
from core.mapping import HapticPattern
from core.spectrum import FrequencyBands


@dataclass(frozen=True)
class ReactiveSnapshot:
    """Read-only view handed to renderer / haptic consumers."""
    loudness: float = 0.0
    bands: FrequencyBands = field(default_factory=FrequencyBands)
    classification: SoundClassification = SoundClassification.UNKNOWN
    results: Tuple[ClassifierResult, ...] = ()
    category: AudioCategory = AudioCategory.SILENT
    pattern: HapticPattern = HapticPattern.IDLE


class ReactiveState:
    """
    Aggregate pipeline state; not a bus.

    Single owner by contract: only the orchestrator's tick thread calls into
    it. Producers never touch it directly, they post to the orchestrator.
    """

    def __init__(self) -> None:
        self.loudness = LoudnessState()
        self.raw_bands = FrequencyBands()
        self.bands = FrequencyBands()
        self.classifier = ClassificationAggregator()
        self.trend = CategoryTrendDetector()
        self.pattern = HapticPattern.IDLE

    # ---------- Producers (applied on the owner thread) ----------

    def apply_analysis(self, loudness: Optional[float], bands: FrequencyBands) -> None:
        self.loudness.update(loudness)
        if loudness is not None:
            self.raw_bands = bands

    def apply_classification(self, batch: Sequence[Observation]) -> bool:
        return self.classifier.observe(batch)

    # ---------- UI tick ----------

    def advance(self) -> Optional[AudioCategory]:
        """One UI-rate step: smooth loudness and bands, feed the trend detector."""
        smoothed = self.loudness.smooth()
        self.bands = self.bands.smoothed_toward(self.raw_bands)
        return self.trend.sample(smoothed)

    def snapshot(self) -> ReactiveSnapshot:
        return ReactiveSnapshot(
            loudness=self.loudness.smoothed,
            bands=self.bands,
            classification=self.classifier.current,
            results=self.classifier.results,
            category=self.trend.current,
            pattern=self.pattern,
        )

    def reset(self) -> None:
        self.loudness.reset()
        self.raw_bands = FrequencyBands()
        self.bands = FrequencyBands()
        self.classifier.reset()
        self.trend.reset()
        self.pattern = HapticPattern.IDLE
