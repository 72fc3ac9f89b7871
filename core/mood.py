# core/mood.py
# Sculpture mood descriptors: presets, keyword fallback, and the "A|B|C|D|E" answer format.
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class ShapeType(Enum):
    SPHERE = "sphere"
    BOX = "box"
    TORUS = "torus"
    PYRAMID = "pyramid"
    CYLINDER = "cylinder"


# Named colors the renderer understands (sRGB 0..255).
COLORS: Dict[str, Tuple[int, int, int]] = {
    "cyan": (50, 173, 230),
    "orange": (255, 149, 0),
    "indigo": (88, 86, 214),
    "yellow": (255, 204, 0),
    "red": (255, 59, 48),
    "purple": (175, 82, 222),
    "green": (52, 199, 89),
    "pink": (255, 45, 85),
    "blue": (0, 122, 255),
    "mint": (0, 199, 190),
    "teal": (48, 176, 199),
}
DEFAULT_COLOR = "cyan"


def _clamp01(v: float) -> float:
    return 0.0 if v < 0.0 else 1.0 if v > 1.0 else float(v)


@dataclass(frozen=True)
class SculptureMood:
    color: str
    roughness: float
    refraction: float
    shape: ShapeType
    metallic: float


CALM = SculptureMood("cyan", 0.1, 0.9, ShapeType.SPHERE, 0.3)
ENERGETIC = SculptureMood("orange", 0.4, 0.3, ShapeType.BOX, 0.9)
MELANCHOLIC = SculptureMood("indigo", 0.7, 0.5, ShapeType.TORUS, 0.2)
JOYFUL = SculptureMood("yellow", 0.2, 0.7, ShapeType.SPHERE, 0.5)
INTENSE = SculptureMood("red", 0.6, 0.2, ShapeType.PYRAMID, 0.95)

# Checked in order; first keyword hit wins.
_FALLBACK_RULES: Tuple[Tuple[Tuple[str, ...], SculptureMood], ...] = (
    (("calm", "quiet", "soft", "rain"), CALM),
    (("energy", "fast", "loud", "siren"), ENERGETIC),
    (("sad", "slow", "melancholy"), MELANCHOLIC),
    (("happy", "joy", "bright", "laughter"), JOYFUL),
    (("intense", "heavy", "aggressive"), INTENSE),
)


def fallback_mood(description: str) -> SculptureMood:
    """Rule-based mood for when no language model answer is available."""
    text = (description or "").lower()
    for keywords, mood in _FALLBACK_RULES:
        if any(k in text for k in keywords):
            return mood
    return CALM


def _parse_unit(text: str, default: float = 0.5) -> float:
    try:
        v = float(text)
    except ValueError:
        return default
    if v != v:
        return default
    return _clamp01(v)


def parse_mood_response(text: str) -> SculptureMood:
    """
    Parse "COLOR|ROUGHNESS|REFRACTION|METALLIC|SHAPE".

    Fewer than five fields falls back to fallback_mood(text); individual bad
    fields get neutral defaults (0.5, sphere, cyan).
    """
    parts = [p.strip() for p in (text or "").strip().split("|")]
    if len(parts) < 5:
        return fallback_mood(text)

    color = parts[0].lower()
    if color not in COLORS:
        color = DEFAULT_COLOR
    try:
        shape = ShapeType(parts[4].lower())
    except ValueError:
        shape = ShapeType.SPHERE

    return SculptureMood(
        color=color,
        roughness=_parse_unit(parts[1]),
        refraction=_parse_unit(parts[2]),
        shape=shape,
        metallic=_parse_unit(parts[3]),
    )
