# core/mapping.py
# Lookup tables: sound classification / sculpture mood -> haptic pattern.
from __future__ import annotations
from enum import Enum
from typing import Dict, Mapping, Type

from core.classification import SoundClassification
from core.mood import SculptureMood, ShapeType


class HapticPattern(Enum):
    """Pattern identity only; turning it into timed pulses is the player's job."""
    IDLE = "idle"
    CALM = "calm"
    RHYTHMIC = "rhythmic"
    INTENSE = "intense"
    HEARTBEAT = "heartbeat"
    PULSE = "pulse"
    CONTINUOUS = "continuous"

    @property
    def description(self) -> str:
        return _PATTERN_DESCRIPTIONS[self]


_PATTERN_DESCRIPTIONS = {
    HapticPattern.IDLE: "No haptic feedback",
    HapticPattern.CALM: "Gentle, subtle vibrations",
    HapticPattern.RHYTHMIC: "Patterned rhythmic feedback",
    HapticPattern.INTENSE: "Strong, sharp vibrations",
    HapticPattern.HEARTBEAT: "Heartbeat-like pulsing",
    HapticPattern.PULSE: "Regular pulsing pattern",
    HapticPattern.CONTINUOUS: "Continuous vibration",
}

CLASSIFICATION_PATTERNS: Dict[SoundClassification, HapticPattern] = {
    SoundClassification.SILENCE: HapticPattern.IDLE,
    SoundClassification.UNKNOWN: HapticPattern.IDLE,
    SoundClassification.RAIN: HapticPattern.CALM,
    SoundClassification.NATURE: HapticPattern.CALM,
    SoundClassification.AMBIENT: HapticPattern.CALM,
    SoundClassification.SPEECH: HapticPattern.RHYTHMIC,
    SoundClassification.MUSIC: HapticPattern.RHYTHMIC,
    SoundClassification.APPLAUSE: HapticPattern.RHYTHMIC,
    SoundClassification.LAUGHTER: HapticPattern.HEARTBEAT,
    SoundClassification.SIREN: HapticPattern.INTENSE,
    SoundClassification.DOG_BARK: HapticPattern.INTENSE,
    SoundClassification.DOORBELL: HapticPattern.INTENSE,
    SoundClassification.TRAFFIC: HapticPattern.PULSE,
    SoundClassification.BABY_CRY: HapticPattern.PULSE,
    SoundClassification.FOOTSTEPS: HapticPattern.PULSE,
}

# Sphere depends on roughness; see pattern_for_mood().
SMOOTH_SPHERE_ROUGHNESS = 0.3

SHAPE_PATTERNS: Dict[ShapeType, HapticPattern] = {
    ShapeType.SPHERE: HapticPattern.HEARTBEAT,
    ShapeType.BOX: HapticPattern.INTENSE,
    ShapeType.PYRAMID: HapticPattern.INTENSE,
    ShapeType.TORUS: HapticPattern.PULSE,
    ShapeType.CYLINDER: HapticPattern.RHYTHMIC,
}


def _check_total(table: Mapping, domain: Type[Enum]) -> None:
    missing = [m.name for m in domain if m not in table]
    if missing:
        raise RuntimeError(f"{domain.__name__} mapping is missing: {', '.join(missing)}")


_check_total(CLASSIFICATION_PATTERNS, SoundClassification)
_check_total(SHAPE_PATTERNS, ShapeType)
_check_total(_PATTERN_DESCRIPTIONS, HapticPattern)


def pattern_for_classification(classification: SoundClassification) -> HapticPattern:
    return CLASSIFICATION_PATTERNS[classification]


def pattern_for_mood(shape: ShapeType, roughness: float) -> HapticPattern:
    if shape is ShapeType.SPHERE and roughness < SMOOTH_SPHERE_ROUGHNESS:
        return HapticPattern.CALM
    return SHAPE_PATTERNS[shape]


def pattern_for_sculpture(mood: SculptureMood) -> HapticPattern:
    return pattern_for_mood(mood.shape, mood.roughness)
