# core/classification.py
# Maps external classifier labels onto the fixed sound set and gates low-confidence batches.
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Sequence, Tuple

# Top confidence must exceed this for a batch to replace the current label.
CONFIDENCE_GATE = 0.3
MAX_RESULTS = 3


class SoundClassification(Enum):
    UNKNOWN = "unknown"
    SILENCE = "silence"
    SPEECH = "speech"
    LAUGHTER = "laughter"
    MUSIC = "music"
    SIREN = "siren"
    RAIN = "rain"
    TRAFFIC = "traffic"
    APPLAUSE = "applause"
    BABY_CRY = "baby crying"
    DOG_BARK = "dog bark"
    DOORBELL = "doorbell"
    FOOTSTEPS = "footsteps"
    NATURE = "nature sounds"
    AMBIENT = "ambient"

    @property
    def display_name(self) -> str:
        return self.value.title()

    @property
    def accessibility_description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    SoundClassification.UNKNOWN: "Unknown sound",
    SoundClassification.SILENCE: "Quiet environment",
    SoundClassification.SPEECH: "Someone speaking",
    SoundClassification.LAUGHTER: "Laughter detected",
    SoundClassification.MUSIC: "Music playing",
    SoundClassification.SIREN: "Siren or alarm",
    SoundClassification.RAIN: "Rain sounds",
    SoundClassification.TRAFFIC: "Traffic noise",
    SoundClassification.APPLAUSE: "Applause",
    SoundClassification.BABY_CRY: "Baby crying",
    SoundClassification.DOG_BARK: "Dog barking",
    SoundClassification.DOORBELL: "Doorbell ringing",
    SoundClassification.FOOTSTEPS: "Footsteps",
    SoundClassification.NATURE: "Nature sounds",
    SoundClassification.AMBIENT: "Ambient sounds",
}

# Checked in order; first keyword hit wins. Unmatched labels fall back to AMBIENT.
_LABEL_KEYWORDS: Tuple[Tuple[Tuple[str, ...], SoundClassification], ...] = (
    (("speech",), SoundClassification.SPEECH),
    (("laughter",), SoundClassification.LAUGHTER),
    (("music",), SoundClassification.MUSIC),
    (("siren", "alarm"), SoundClassification.SIREN),
    (("rain",), SoundClassification.RAIN),
    (("traffic", "vehicle"), SoundClassification.TRAFFIC),
    (("applause", "clapping"), SoundClassification.APPLAUSE),
    (("baby", "cry"), SoundClassification.BABY_CRY),
    (("dog", "bark"), SoundClassification.DOG_BARK),
    (("doorbell", "door"), SoundClassification.DOORBELL),
    (("footstep", "walk"), SoundClassification.FOOTSTEPS),
    (("nature", "bird", "wind"), SoundClassification.NATURE),
    (("silence", "quiet"), SoundClassification.SILENCE),
)


def classify_label(label: str) -> SoundClassification:
    """
    Map a raw classifier identifier (e.g. "speech", "dog_bark") to a SoundClassification.

    Total over all strings: anything unmatched is AMBIENT. UNKNOWN is reserved
    for "no classification received yet" and is never returned here.
    """
    ident = (label or "").lower()
    for keywords, classification in _LABEL_KEYWORDS:
        if any(k in ident for k in keywords):
            return classification
    return SoundClassification.AMBIENT


@dataclass(frozen=True)
class ClassifierResult:
    classification: SoundClassification
    confidence: float


Observation = Tuple[str, float]


def _clamp01(v: float) -> float:
    v = float(v)
    if v != v:  # NaN
        return 0.0
    return 0.0 if v < 0.0 else 1.0 if v > 1.0 else v


class ClassificationAggregator:
    """
    Holds the latest gated classification and its ranked result list.

    - observe() takes one classifier batch of (label, confidence).
    - The batch is ranked by confidence (stable: first-seen wins ties).
    - Only if the top confidence exceeds CONFIDENCE_GATE are `current` and
      `results` replaced, together, from that same batch.
    - Not thread-safe; owned by ReactiveState.
    """

    def __init__(self, gate: float = CONFIDENCE_GATE, max_results: int = MAX_RESULTS):
        self.gate = float(gate)
        self.max_results = int(max_results)
        self._current = SoundClassification.UNKNOWN
        self._results: Tuple[ClassifierResult, ...] = ()

    @property
    def current(self) -> SoundClassification:
        return self._current

    @property
    def results(self) -> Tuple[ClassifierResult, ...]:
        return self._results

    @staticmethod
    def rank(batch: Iterable[Observation]) -> List[ClassifierResult]:
        mapped = [ClassifierResult(classify_label(label), _clamp01(conf)) for label, conf in batch]
        # sorted() is stable, so equal confidences keep delivery order
        return sorted(mapped, key=lambda r: r.confidence, reverse=True)

    def observe(self, batch: Sequence[Observation]) -> bool:
        """Apply one batch; returns True when it passed the gate and replaced state."""
        ranked = self.rank(batch)
        if not ranked:
            return False
        top = ranked[0]
        if top.confidence <= self.gate:
            return False
        self._current, self._results = top.classification, tuple(ranked[: self.max_results])
        return True

    def top(self) -> Optional[ClassifierResult]:
        return self._results[0] if self._results else None

    def reset(self) -> None:
        self._current = SoundClassification.UNKNOWN
        self._results = ()
