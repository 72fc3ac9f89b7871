"""Category trend detector: ordered thresholds, warm-up, ring buffer, edge-triggered events."""

import pytest

from core.category import AudioCategory as AC, CategoryTrendDetector, categorize
from core.classification import SoundClassification


@pytest.mark.parametrize(
    "max_power, variance, expected",
    [
        (0.04, 0.5, AC.SILENT),
        (0.15, 0.005, AC.CALM),
        (0.15, 0.015, AC.AMBIENT),
        (0.3, 0.005, AC.AMBIENT),
        (0.45, 0.04, AC.SPEECH),
        (0.45, 0.025, AC.MUSIC),
        (0.3, 0.025, AC.MUSIC),
        (0.55, 0.025, AC.MUSIC),
        (0.55, 0.01, AC.ENERGETIC),
        (0.7, 0.0, AC.ENERGETIC),
        (0.8, 0.0, AC.INTENSE),
        (1.0, 0.2, AC.INTENSE),
    ],
)
def test_rule_order(max_power, variance, expected):
    assert categorize(max_power, variance) is expected


def test_no_category_before_ten_samples():
    det = CategoryTrendDetector()
    for _ in range(9):
        assert det.sample(0.9) is None
    assert det.compute() is None
    assert det.current is AC.SILENT


def test_history_is_capped_at_thirty():
    det = CategoryTrendDetector()
    for _ in range(45):
        det.sample(0.1)
    assert len(det) == 30


def test_quiet_room_emits_nothing():
    det = CategoryTrendDetector()
    events = []
    det.subscribe(events.append)
    for _ in range(20):
        det.sample(0.02)
    assert det.compute() is AC.SILENT
    assert events == []


def test_single_event_per_transition():
    det = CategoryTrendDetector()
    events = []
    det.subscribe(events.append)

    for _ in range(10):
        det.sample(0.1)
    assert events == [AC.CALM]

    for _ in range(15):
        det.sample(0.9)
    assert events == [AC.CALM, AC.INTENSE]
    assert det.current is AC.INTENSE


def test_oldest_sample_is_evicted_first():
    det = CategoryTrendDetector()
    for _ in range(30):
        det.sample(0.9)
    assert det.current is AC.INTENSE

    # The window keeps at least one 0.9 until the 30th quiet sample lands
    for _ in range(29):
        assert det.sample(0.1) is None
    assert det.sample(0.1) is AC.CALM


def test_failing_listener_does_not_block_others():
    det = CategoryTrendDetector()
    seen = []

    def boom(_):
        raise RuntimeError("listener broke")

    det.subscribe(boom)
    det.subscribe(seen.append)
    for _ in range(10):
        det.sample(0.9)
    assert seen == [AC.INTENSE]


def test_reset_clears_history_and_baseline():
    det = CategoryTrendDetector()
    for _ in range(12):
        det.sample(0.9)
    det.reset()
    assert len(det) == 0
    assert det.current is AC.SILENT


def test_from_classification_is_total():
    for c in SoundClassification:
        assert isinstance(AC.from_classification(c), AC)
    assert AC.from_classification(SoundClassification.SIREN) is AC.INTENSE
    assert AC.from_classification(SoundClassification.UNKNOWN) is AC.SILENT


def test_descriptions():
    assert AC.CALM.description == "calm whisper"
    assert AC.INTENSE.description == "intense peak"
