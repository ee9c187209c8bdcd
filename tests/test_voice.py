import math

import pytest

from fiveparks.types import ModDestination, ModSlot, ModSource, RuntimeParams
from fiveparks.voice import Voice, midi_note_to_hz


def _voice(sample_rate=44100.0):
    v = Voice()
    v.prepare(sample_rate, 64)
    return v


def _render(voice, params, count):
    return [voice.render(params) for _ in range(count)]


def test_midi_note_to_hz():
    assert midi_note_to_hz(69) == pytest.approx(440.0)
    assert midi_note_to_hz(57) == pytest.approx(220.0)
    assert midi_note_to_hz(81) == pytest.approx(2 * midi_note_to_hz(69))


def test_fresh_voice_is_silent_and_inactive():
    v = _voice()
    assert v.is_active is False
    assert v.midi_note == -1
    out = v.render(RuntimeParams())
    assert (out.left, out.right) == (0.0, 0.0)


def test_start_sets_state():
    v = _voice()
    v.start(60, 0.8, RuntimeParams(), 5)
    assert v.is_active is True
    assert v.midi_note == 60
    assert v.velocity == 0.8
    assert v.age == 5
    assert v.current_hz == pytest.approx(midi_note_to_hz(60))


def test_render_produces_bounded_sound():
    v = _voice()
    params = RuntimeParams()
    v.start(45, 1.0, params, 1)
    samples = _render(v, params, 600)
    energy = sum(abs(s.left) + abs(s.right) for s in samples)
    assert energy > 0.0
    assert all(math.isfinite(s.left) and math.isfinite(s.right) for s in samples)
    assert all(abs(s.left) <= 1.0 and abs(s.right) <= 1.0 for s in samples)
    assert v.is_active is True


def test_rendering_is_deterministic():
    params = RuntimeParams(bass_mode=9, growl_amount=0.6, noise_level=0.3, noise_type=3)
    a, b = _voice(), _voice()
    a.start(40, 0.9, params, 1)
    b.start(40, 0.9, params, 1)
    out_a = _render(a, params, 200)
    out_b = _render(b, params, 200)
    assert [(s.left, s.right) for s in out_a] == [(s.left, s.right) for s in out_b]


@pytest.mark.parametrize("mode", range(12))
def test_every_bass_mode_renders_bounded_sound(mode):
    params = RuntimeParams(bass_mode=mode, vowel_amount=0.4, smear_amount=0.3)
    v = _voice()
    v.start(36, 1.0, params, 1)
    samples = _render(v, params, 100)
    energy = sum(abs(s.left) + abs(s.right) for s in samples)
    assert energy > 0.0
    assert all(math.isfinite(s.left) and math.isfinite(s.right) for s in samples)
    assert max(max(abs(s.left), abs(s.right)) for s in samples) <= 1.0
    assert v.is_active is True


def test_muted_sources_render_silence_but_stay_active():
    params = RuntimeParams(osc_a_level=0.0, osc_b_level=0.0, sub_level=0.0, noise_level=0.0)
    v = _voice()
    v.start(50, 1.0, params, 1)
    samples = _render(v, params, 50)
    assert all(s.left == 0.0 and s.right == 0.0 for s in samples)
    assert v.is_active is True


def test_stop_releases_voice():
    params = RuntimeParams(env1_r=0.01)
    v = _voice(8000.0)
    v.start(48, 1.0, params, 1)
    _render(v, params, 100)
    v.stop()
    for _ in range(2000):
        v.render(params)
        if not v.is_active:
            break
    assert v.is_active is False
    assert v.midi_note == -1


def test_force_kill_resets():
    v = _voice()
    v.start(60, 1.0, RuntimeParams(), 3)
    v.force_kill()
    assert v.is_active is False
    assert v.velocity == 0.0
    assert v.age == 0


def test_retarget_without_retrigger_glides():
    params = RuntimeParams(glide_ms=100.0)
    v = _voice()
    v.start(48, 1.0, params, 1)
    start_hz = v.current_hz
    v.retarget(60, 1.0, params, 2, False)
    assert v.target_hz == pytest.approx(midi_note_to_hz(60))
    assert v.current_hz == start_hz
    v.render(params)
    assert start_hz < v.current_hz < v.target_hz


def test_retarget_with_retrigger_jumps():
    params = RuntimeParams(glide_ms=100.0)
    v = _voice()
    v.start(48, 1.0, params, 1)
    v.retarget(60, 0.5, params, 2, True)
    assert v.current_hz == v.target_hz
    assert v.midi_note == 60
    assert v.velocity == 0.5


def test_zero_glide_reaches_target_in_one_sample():
    params = RuntimeParams(glide_ms=0.0)
    v = _voice()
    v.start(48, 1.0, params, 1)
    v.retarget(55, 1.0, params, 2, False)
    v.render(params)
    assert v.current_hz == pytest.approx(v.target_hz)


def test_level_modulation_changes_output():
    base = RuntimeParams()
    modded = RuntimeParams()
    modded.matrix[0] = ModSlot(ModSource.VELOCITY, ModDestination.LEVEL, -1.0)
    a, b = _voice(), _voice()
    a.start(45, 1.0, base, 1)
    b.start(45, 1.0, modded, 1)
    loud = sum(abs(s.left) for s in _render(a, base, 300))
    quiet = sum(abs(s.left) for s in _render(b, modded, 300))
    assert quiet < loud