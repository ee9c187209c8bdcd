import math

import pytest

from fiveparks.dsp import (
    Envelope,
    FilterBlock,
    FilterType,
    ShapedLfo,
    StateVariableFilter,
    WavetableOscillator,
    lfo_shape_value,
)


GRID = [i / 64 for i in range(64)]


def test_lfo_shape_pure_sine_at_zero():
    assert lfo_shape_value(0.25, 0.0) == pytest.approx(1.0)
    assert lfo_shape_value(0.75, 0.0) == pytest.approx(-1.0)


def test_lfo_shape_step_at_one():
    assert lfo_shape_value(0.25, 1.0) == pytest.approx(-1.0)
    assert lfo_shape_value(0.75, 1.0) == pytest.approx(1.0)


@pytest.mark.parametrize("shape", [0.0, 0.2, 0.33, 0.5, 0.66, 0.9, 1.0])
def test_lfo_shape_bounded(shape):
    assert all(-1.0 <= lfo_shape_value(p, shape) <= 1.0 for p in GRID)


def test_oscillator_position_is_clamped():
    osc = WavetableOscillator()
    osc.set_position(2.0)
    assert osc.wave_pos == 1.0
    osc.set_position(-1.0)
    assert osc.wave_pos == 0.0


def test_oscillator_frequency_never_negative():
    osc = WavetableOscillator()
    osc.set_frequency(-50.0)
    assert osc.frequency == 0.0


def test_oscillator_set_phase_wraps():
    osc = WavetableOscillator()
    osc.set_phase(1.25)
    assert osc.phase == pytest.approx(0.25)


def test_oscillator_frame_zero_position_is_sine():
    osc = WavetableOscillator()
    for p in GRID:
        assert osc.frame(p, 0.0) == pytest.approx(math.sin(2 * math.pi * p))


def test_oscillator_square_region():
    osc = WavetableOscillator()
    assert osc.frame(0.1, 0.6) == pytest.approx(1.0)
    assert osc.frame(0.7, 0.6) == pytest.approx(-1.0)


@pytest.mark.parametrize("pos", [0.0, 0.3, 0.5, 0.7, 0.85, 0.93, 0.98, 1.0])
def test_oscillator_frame_bounded(pos):
    osc = WavetableOscillator()
    assert all(abs(osc.frame(p, pos)) <= 1.0 + 1e-9 for p in GRID)


def test_oscillator_process_advances_phase():
    osc = WavetableOscillator()
    osc.prepare(1000.0)
    osc.set_position(0.0)
    osc.set_frequency(250.0)
    first = osc.process()
    assert first == pytest.approx(0.0)
    assert osc.phase == pytest.approx(0.25)
    assert osc.process() == pytest.approx(1.0)


def test_oscillator_is_periodic():
    osc = WavetableOscillator()
    osc.prepare(1000.0)
    osc.set_position(0.45)
    osc.set_frequency(100.0)
    first = [osc.process() for _ in range(10)]
    second = [osc.process() for _ in range(10)]
    assert first == pytest.approx(second)


def test_envelope_idle_outputs_zero():
    env = Envelope()
    assert env.next() == 0.0
    assert not env.is_active


def test_envelope_attack_decay_sustain_release():
    env = Envelope()
    env.prepare(1000.0)
    env.set(0.01, 0.01, 0.5, 0.01)
    env.note_on()
    values = [env.next() for _ in range(10)]
    assert values == sorted(values)
    assert values[-1] == pytest.approx(1.0)
    for _ in range(30):
        env.next()
    assert env.next() == pytest.approx(0.5)
    env.note_off()
    released = [env.next() for _ in range(20)]
    assert released[0] < 0.5
    assert not env.is_active


def test_envelope_zero_attack_starts_at_peak():
    env = Envelope()
    env.prepare(1000.0)
    env.set(0.0, 0.1, 0.2, 0.1)
    env.note_on()
    assert env.value == 1.0
    assert env.is_active


def test_envelope_zero_release_kills_immediately():
    env = Envelope()
    env.prepare(1000.0)
    env.set(0.001, 0.01, 0.8, 0.0)
    env.note_on()
    env.next()
    env.note_off()
    assert not env.is_active
    assert env.next() == 0.0


def test_lfo_without_smoothing_tracks_shape():
    lfo = ShapedLfo()
    lfo.prepare(100.0)
    out = lfo.process(25.0, 0.0, 0.0)
    assert lfo.phase == pytest.approx(0.25)
    assert out == pytest.approx(lfo_shape_value(0.25, 0.0))


def test_lfo_smoothing_lags_target():
    lfo = ShapedLfo()
    lfo.prepare(100.0)
    out = lfo.process(25.0, 0.0, 0.9)
    assert 0.0 < out < lfo_shape_value(0.25, 0.0)


def _settle(f, x, n=5000):
    y = 0.0
    for _ in range(n):
        y = f.process_sample(x)
    return y


def test_lowpass_passes_dc():
    f = StateVariableFilter()
    f.prepare(44100.0)
    f.set_cutoff(500.0)
    assert _settle(f, 1.0) == pytest.approx(1.0, abs=1e-6)


@pytest.mark.parametrize("kind", [FilterType.HIGHPASS, FilterType.BANDPASS])
def test_highpass_and_bandpass_block_dc(kind):
    f = StateVariableFilter()
    f.prepare(44100.0)
    f.set_type(kind)
    f.set_cutoff(500.0)
    assert _settle(f, 1.0) == pytest.approx(0.0, abs=1e-6)


def test_filter_rejects_bad_settings():
    f = StateVariableFilter()
    f.prepare(1000.0)
    with pytest.raises(ValueError):
        f.set_cutoff(600.0)
    with pytest.raises(ValueError):
        f.set_cutoff(0.0)
    with pytest.raises(ValueError):
        f.set_resonance(0.0)


def test_filter_reset_clears_state():
    f = StateVariableFilter()
    f.prepare(44100.0)
    _settle(f, 1.0, 100)
    f.reset()
    assert f.process_sample(0.0) == 0.0


@pytest.mark.parametrize(
    "mode, expected",
    [
        (0, FilterType.LOWPASS),
        (1, FilterType.BANDPASS),
        (2, FilterType.HIGHPASS),
        (3, FilterType.BANDPASS),
        (4, FilterType.HIGHPASS),
    ],
)
def test_filter_block_mode_mapping(mode, expected):
    block = FilterBlock()
    block.prepare(44100.0)
    block.update(mode, 1200.0, 0.25)
    assert block.left.filter_type is expected
    assert block.right.filter_type is expected
    assert block.left.cutoff == 1200.0


def test_filter_block_channels_are_independent():
    block = FilterBlock()
    block.prepare(44100.0)
    block.update(0, 800.0, 0.7)
    out = None
    for _ in range(5000):
        out = block.process(1.0, 0.0)
    assert out.left == pytest.approx(1.0, abs=1e-6)
    assert out.right == 0.0