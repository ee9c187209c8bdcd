import math

import pytest

from fiveparks.dsp import lfo_shape_value
from fiveparks.effects import (
    Reverb,
    ReverbParameters,
    ScopeRing,
    SpectrumAnalyzer,
    preview_lfo_shape,
)


def _impulse(n):
    return [1.0] + [0.0] * (n - 1)


def test_reverb_silence_in_silence_out():
    reverb = Reverb()
    left, right = reverb.process_stereo([0.0] * 500, [0.0] * 500)
    assert all(v == 0.0 for v in left + right)


def test_reverb_dry_only_scales_input():
    reverb = Reverb()
    reverb.set_parameters(ReverbParameters(wet_level=0.0, dry_level=1.0))
    left, right = reverb.process_stereo([0.25, -0.5], [0.1, 0.3])
    assert left == pytest.approx([0.5, -1.0])
    assert right == pytest.approx([0.2, 0.6])


def test_reverb_wet_tail_starts_after_comb_delay():
    reverb = Reverb()
    reverb.set_parameters(ReverbParameters(wet_level=1.0, dry_level=0.0, room_size=0.8))
    n = 3000
    left, right = reverb.process_stereo(_impulse(n), _impulse(n))
    assert all(v == 0.0 for v in left[:1000])
    assert any(abs(v) > 0.0 for v in left[1100:])
    assert any(abs(v) > 0.0 for v in right[1100:])


def test_reverb_reset_clears_tail():
    reverb = Reverb()
    reverb.set_parameters(ReverbParameters(wet_level=1.0, dry_level=0.0))
    reverb.process_stereo(_impulse(2000), _impulse(2000))
    reverb.reset()
    left, right = reverb.process_stereo([0.0] * 2000, [0.0] * 2000)
    assert max(abs(v) for v in left + right) == 0.0


def test_reverb_rejects_mismatched_channels():
    with pytest.raises(ValueError):
        Reverb().process_stereo([0.0, 0.0], [0.0])


def test_reverb_rejects_bad_sample_rate():
    with pytest.raises(ValueError):
        Reverb().set_sample_rate(0)


def test_scope_ring_wraps_and_keeps_order():
    ring = ScopeRing()
    for i in range(2050):
        ring.push(float(i))
    assert ring.snapshot(2048) == [float(i) for i in range(2, 2050)]


def test_scope_ring_recent_samples_at_end():
    ring = ScopeRing()
    for v in (0.1, 0.2, 0.3):
        ring.push(v)
    snap = ring.snapshot(2048)
    assert snap[-3:] == [0.1, 0.2, 0.3]
    assert len(ring.snapshot()) == 512


def test_analyzer_initial_bins_are_zero():
    analyzer = SpectrumAnalyzer()
    bins = analyzer.bins()
    assert len(bins) == 128
    assert all(b == 0.0 for b in bins)


def test_analyzer_silence_floors_at_minus_100():
    analyzer = SpectrumAnalyzer()
    for _ in range(1024):
        analyzer.push(0.0)
    assert analyzer.frames == 1
    assert all(b == -100.0 for b in analyzer.bins())


def test_analyzer_peak_lands_in_matching_bin():
    analyzer = SpectrumAnalyzer()
    cycles = 1 + 4 * 8
    for i in range(1024):
        analyzer.push(math.sin(2.0 * math.pi * cycles * i / 1024))
    bins = analyzer.bins()
    assert bins.index(max(bins)) == 8
    assert bins[8] > bins[20] + 20.0


def test_analyzer_rejects_bad_size():
    with pytest.raises(ValueError):
        SpectrumAnalyzer(fft_size=1000)


@pytest.mark.parametrize("shape", [0.0, 0.2, 0.5, 0.8, 1.0])
def test_preview_matches_lfo_shape(shape):
    values = preview_lfo_shape(shape)
    assert len(values) == 128
    for i in (0, 31, 64, 127):
        assert values[i] == pytest.approx(lfo_shape_value(i / 127, shape))


def test_preview_step_shape_endpoints():
    values = preview_lfo_shape(1.0, 16)
    assert values[0] == pytest.approx(-1.0)
    assert values[-1] == pytest.approx(1.0)


def test_preview_rejects_tiny_size():
    with pytest.raises(ValueError):
        preview_lfo_shape(0.5, 1)