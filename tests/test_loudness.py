"""Loudness estimator: RMS -> dB -> 0..1 and the UI-rate smoothing accumulator."""

import numpy as np
import pytest

from core.loudness import LoudnessState, frame_rms, instantaneous_loudness


def sine(amplitude=1.0, n=1024, cycles=8):
    return amplitude * np.sin(2 * np.pi * cycles * np.arange(n) / n)


def test_silence_is_zero():
    assert instantaneous_loudness(np.zeros(1024)) == 0.0


def test_full_scale_sine_near_top():
    x = sine(1.0)
    assert frame_rms(x) == pytest.approx(np.sqrt(0.5), rel=1e-3)
    value = instantaneous_loudness(x)
    # -3 dB on a 60 dB range
    assert value == pytest.approx(1.0 - 3.0103 / 60.0, abs=1e-3)
    assert 0.9 < value <= 1.0


def test_clipped_input_stays_in_range():
    assert instantaneous_loudness(sine(25.0)) == 1.0


def test_quiet_input_maps_linearly_in_db():
    # rms 1e-3 -> -60 dB floor, rms 1e-2 -> -40 dB
    assert instantaneous_loudness(np.full(256, 1e-3)) == pytest.approx(0.0, abs=1e-9)
    assert instantaneous_loudness(np.full(256, 1e-2)) == pytest.approx(20.0 / 60.0)


def test_random_frames_always_normalized():
    rng = np.random.default_rng(7)
    for scale in (0.0, 1e-6, 0.01, 0.5, 1.0, 40.0):
        v = instantaneous_loudness(rng.standard_normal(512) * scale)
        assert 0.0 <= v <= 1.0


def test_empty_frame_returns_none_and_keeps_state():
    assert instantaneous_loudness(np.array([])) is None

    state = LoudnessState()
    state.update(0.8)
    state.update(instantaneous_loudness(np.array([])))
    assert state.instantaneous == 0.8


def test_smoothing_is_first_order_lowpass():
    state = LoudnessState()
    state.update(1.0)
    assert state.smooth() == pytest.approx(0.3)
    assert state.smooth() == pytest.approx(0.51)
    for _ in range(50):
        state.smooth()
    assert state.smoothed == pytest.approx(1.0, abs=1e-6)
    assert state.smoothed <= 1.0


def test_reset_zeroes_both_fields():
    state = LoudnessState()
    state.update(0.6)
    state.smooth()
    state.reset()
    assert (state.instantaneous, state.smoothed) == (0.0, 0.0)
