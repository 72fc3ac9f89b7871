"""Mood presets, keyword fallback and the pipe-separated answer format."""

import pytest

from core import mood
from core.mood import ShapeType, fallback_mood, parse_mood_response


@pytest.mark.parametrize(
    "text, expected",
    [
        ("calm whisper", mood.CALM),
        ("rain", mood.CALM),
        ("energetic loud", mood.ENERGETIC),
        ("siren", mood.ENERGETIC),
        ("slow and sad", mood.MELANCHOLIC),
        ("laughter", mood.JOYFUL),
        ("intense peak", mood.INTENSE),
        ("human speech", mood.CALM),
        ("", mood.CALM),
    ],
)
def test_fallback(text, expected):
    assert fallback_mood(text) == expected


def test_parse_full_answer():
    assert parse_mood_response(" red|0.6|0.2|0.95|pyramid \n") == mood.INTENSE


def test_parse_is_case_insensitive():
    m = parse_mood_response("Indigo | 0.7 | 0.5 | 0.2 | TORUS")
    assert m == mood.MELANCHOLIC


def test_parse_bad_fields_get_neutral_defaults():
    m = parse_mood_response("magenta|abc|2|-1|blob")
    assert m.color == "cyan"
    assert m.roughness == 0.5
    assert m.refraction == 1.0
    assert m.metallic == 0.0
    assert m.shape is ShapeType.SPHERE


def test_parse_short_answer_uses_fallback():
    assert parse_mood_response("something heavy") == mood.INTENSE
    assert parse_mood_response("orange|0.4") == mood.CALM

