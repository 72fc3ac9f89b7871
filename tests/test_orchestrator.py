"""OrchestratorMaster: posting, session handling, tick, listeners."""

import threading

import pytest

from core.audio_pipeline import AnalysisFrame
from core.category import AudioCategory
from core.classification import SoundClassification
from core.mapping import HapticPattern
from core import mood
from core.spectrum import FrequencyBands
from core.state.audio_state import ReactiveSnapshot
from services.orchestrator_master import OrchestratorMaster


def frame(loudness=1.0, level=1.0):
    return AnalysisFrame(ts=0.0, samplerate=44100.0, loudness=loudness,
                         bands=FrequencyBands(level, level, level, level))


@pytest.fixture
def orch():
    o = OrchestratorMaster(autotick=False)
    o.start()
    yield o
    o.stop()


def test_posting_without_session_is_a_noop():
    o = OrchestratorMaster(autotick=False)
    assert not o.post_analysis(frame())
    assert not o.post_classification([("speech", 0.9)])
    assert o.tick() is None
    assert o.snapshot() == ReactiveSnapshot()


def test_tick_applies_and_smooths(orch):
    assert orch.post_analysis(frame())
    snap = orch.tick()
    assert snap is orch.snapshot()
    assert snap.loudness == pytest.approx(0.3)
    assert snap.bands.mid == pytest.approx(0.2)


def test_tick_without_frames_keeps_approaching_last_value(orch):
    orch.post_analysis(frame())
    orch.tick()
    snap = orch.tick()
    assert snap.loudness == pytest.approx(0.51)


def test_classification_change_selects_pattern(orch):
    patterns = []
    orch.on_pattern_change(lambda p, level: patterns.append(p))

    orch.post_classification([("speech", 0.9)])
    orch.tick()
    assert orch.snapshot().classification is SoundClassification.SPEECH
    assert orch.snapshot().pattern is HapticPattern.RHYTHMIC

    # Below the gate: nothing changes
    orch.post_classification([("siren", 0.2)])
    orch.tick()
    # Same pattern family: no duplicate event
    orch.post_classification([("music", 0.7)])
    orch.tick()
    assert patterns == [HapticPattern.RHYTHMIC]


def test_gated_classification_change_notifies_once(orch):
    changes = []
    orch.on_classification_change(changes.append)

    orch.post_classification([("siren", 0.2)])   # below the gate
    orch.tick()
    assert changes == []

    orch.post_classification([("speech", 0.9), ("music", 0.4)])
    orch.tick()
    orch.post_classification([("speech", 0.8)])  # same label again
    orch.tick()
    orch.tick()
    assert changes == [SoundClassification.SPEECH]


def test_mood_selects_pattern(orch):
    patterns = []
    orch.on_pattern_change(lambda p, level: patterns.append(p))
    orch.post_mood(mood.MELANCHOLIC)
    orch.tick()
    assert patterns == [HapticPattern.PULSE]


def test_category_event_fires_once(orch):
    events = []
    orch.on_category_change(events.append)
    for _ in range(40):
        orch.post_analysis(frame())
        orch.tick()
    assert events == [AudioCategory.INTENSE]


def test_listener_errors_are_contained(orch):
    seen = []

    def boom(_):
        raise ValueError("bad listener")

    orch.on_snapshot(boom)
    orch.on_snapshot(seen.append)
    orch.tick()
    assert len(seen) == 1


def test_full_inbox_drops():
    small = OrchestratorMaster(autotick=False, inbox_size=2)
    small.start()
    try:
        assert small.post_analysis(frame())
        assert small.post_analysis(frame())
        assert not small.post_analysis(frame())
    finally:
        small.stop()


def test_stop_resets_everything_and_is_idempotent(orch):
    orch.post_classification([("siren", 0.9)])
    for _ in range(15):
        orch.post_analysis(frame())
        orch.tick()
    assert orch.snapshot().loudness > 0.5

    orch.stop()
    first = orch.snapshot()
    orch.stop()
    assert orch.snapshot() == first == ReactiveSnapshot()
    assert orch.state.classifier.current is SoundClassification.UNKNOWN
    assert len(orch.state.trend) == 0
    assert not orch.active


def test_nothing_from_an_old_session_is_applied():
    o = OrchestratorMaster(autotick=False)
    o.start()
    old_session = o._session
    o.stop()
    o.start()
    try:
        # A producer that read the session id just before stop()
        o._frames.put_nowait((old_session, frame()))
        o._events.put_nowait((old_session, "classification", (("siren", 0.9),)))
        snap = o.tick()
        assert snap.loudness == 0.0
        assert snap.classification is SoundClassification.UNKNOWN
    finally:
        o.stop()


def test_restart_begins_from_clean_baseline(orch):
    for _ in range(12):
        orch.post_analysis(frame())
        orch.tick()
    orch.stop()
    orch.start()
    snap = orch.tick()
    assert snap.loudness == 0.0
    assert snap.category is AudioCategory.SILENT


def test_concurrent_producers_do_not_block(orch):
    stop = threading.Event()

    def produce():
        while not stop.is_set():
            orch.post_analysis(frame(0.5, 0.5))
            orch.post_classification([("rain", 0.6)])

    workers = [threading.Thread(target=produce) for _ in range(3)]
    for w in workers:
        w.start()
    try:
        for _ in range(50):
            orch.tick()
    finally:
        stop.set()
        for w in workers:
            w.join(timeout=2.0)

    snap = orch.snapshot()
    assert 0.0 < snap.loudness <= 0.5
    assert snap.classification is SoundClassification.RAIN
