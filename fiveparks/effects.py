"""Output-stage helpers: a stereo reverb, the scope ring and the spectrum analyser."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .dsp import lfo_shape_value

_COMB_TUNINGS = (1116, 1188, 1277, 1356, 1422, 1491, 1557, 1617)
_ALLPASS_TUNINGS = (556, 441, 341, 225)
_STEREO_SPREAD = 23
_REFERENCE_RATE = 44100.0
_WET_SCALE = 3.0
_DRY_SCALE = 2.0
_INPUT_GAIN = 0.015


@dataclass
class ReverbParameters:
    """Settings of the reverb; all values are in [0, 1]."""

    room_size: float = 0.5
    damping: float = 0.5
    wet_level: float = 0.33
    dry_level: float = 0.4
    width: float = 1.0
    freeze_mode: float = 0.0


class _Comb:
    def __init__(self, size: int) -> None:
        self._buffer = [0.0] * max(1, size)
        self._index = 0
        self._last = 0.0

    def clear(self) -> None:
        self._buffer = [0.0] * len(self._buffer)
        self._index = 0
        self._last = 0.0

    def process(self, x: float, damp: float, feedback: float) -> float:
        out = self._buffer[self._index]
        self._last = out * (1.0 - damp) + self._last * damp
        self._buffer[self._index] = x + self._last * feedback
        self._index = (self._index + 1) % len(self._buffer)
        return out


class _AllPass:
    def __init__(self, size: int) -> None:
        self._buffer = [0.0] * max(1, size)
        self._index = 0

    def clear(self) -> None:
        self._buffer = [0.0] * len(self._buffer)
        self._index = 0

    def process(self, x: float) -> float:
        buffered = self._buffer[self._index]
        self._buffer[self._index] = x + buffered * 0.5
        self._index = (self._index + 1) % len(self._buffer)
        return buffered - x


class Reverb:
    """A stereo comb/all-pass reverb with a shared mono input."""

    def __init__(self) -> None:
        self._combs: list[list[_Comb]] = [[], []]
        self._allpasses: list[list[_AllPass]] = [[], []]
        self._gain = _INPUT_GAIN
        self._damping = 0.0
        self._feedback = 0.0
        self._dry = 0.0
        self._wet1 = 0.0
        self._wet2 = 0.0
        self.params = ReverbParameters()
        self.set_parameters(self.params)
        self.set_sample_rate(_REFERENCE_RATE)

    def set_sample_rate(self, sample_rate: float) -> None:
        """Rebuild the delay lines for a sample rate, clearing any tail."""
        if sample_rate <= 0:
            raise ValueError("sample rate must be positive")
        scale = sample_rate / _REFERENCE_RATE
        self._combs = [
            [_Comb(int((t + spread) * scale)) for t in _COMB_TUNINGS]
            for spread in (0, _STEREO_SPREAD)
        ]
        self._allpasses = [
            [_AllPass(int((t + spread) * scale)) for t in _ALLPASS_TUNINGS]
            for spread in (0, _STEREO_SPREAD)
        ]

    def reset(self) -> None:
        """Clear all delay lines."""
        for channel in self._combs:
            for comb in channel:
                comb.clear()
        for channel in self._allpasses:
            for allpass in channel:
                allpass.clear()

    def set_parameters(self, params: ReverbParameters) -> None:
        self.params = params
        frozen = params.freeze_mode >= 0.5
        wet = params.wet_level * _WET_SCALE
        self._dry = params.dry_level * _DRY_SCALE
        self._wet1 = 0.5 * wet * (1.0 + params.width)
        self._wet2 = 0.5 * wet * (1.0 - params.width)
        self._gain = 0.0 if frozen else _INPUT_GAIN
        self._damping = 0.0 if frozen else params.damping * 0.4
        self._feedback = 1.0 if frozen else params.room_size * 0.28 + 0.7

    def process_stereo(self, left: Sequence[float],
                       right: Sequence[float]) -> tuple[list[float], list[float]]:
        """Return the reverberated left and right channels."""
        if len(left) != len(right):
            raise ValueError("left and right channels must have the same length")
        combs_l, combs_r = self._combs
        aps_l, aps_r = self._allpasses
        damp, feedback = self._damping, self._feedback
        out_left: list[float] = []
        out_right: list[float] = []
        for dry_l, dry_r in zip(left, right):
            x = (dry_l + dry_r) * self._gain
            wet_l = sum(c.process(x, damp, feedback) for c in combs_l)
            wet_r = sum(c.process(x, damp, feedback) for c in combs_r)
            for ap in aps_l:
                wet_l = ap.process(wet_l)
            for ap in aps_r:
                wet_r = ap.process(wet_r)
            out_left.append(wet_l * self._wet1 + wet_r * self._wet2 + dry_l * self._dry)
            out_right.append(wet_r * self._wet1 + wet_l * self._wet2 + dry_r * self._dry)
        return out_left, out_right


class ScopeRing:
    """Fixed-size ring of the most recent output samples."""

    def __init__(self, capacity: int = 2048) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._ring = [0.0] * capacity
        self._write_pos = 0

    def push(self, sample: float) -> None:
        self._ring[self._write_pos % len(self._ring)] = sample
        self._write_pos += 1

    def snapshot(self, size: int = 512) -> list[float]:
        """Read size samples starting at the oldest slot of the ring."""
        n = len(self._ring)
        start = self._write_pos
        return [self._ring[(start + i) % n] for i in range(size)]


class SpectrumAnalyzer:
    """Collects samples into Hann-windowed frames and reports bin levels in dB."""

    def __init__(self, fft_size: int = 1024, num_bins: int = 128) -> None:
        if fft_size < 4 or fft_size & (fft_size - 1):
            raise ValueError("fft_size must be a power of two of at least 4")
        self._fifo = np.zeros(fft_size)
        self._index = 0
        n = np.arange(fft_size)
        window = 0.5 - 0.5 * np.cos(2.0 * math.pi * n / (fft_size - 1))
        self._window = window * (fft_size / window.sum())
        self._bins = [0.0] * num_bins
        self.frames = 0

    def push(self, sample: float) -> None:
        self._fifo[self._index] = sample
        self._index += 1
        if self._index >= len(self._fifo):
            self._index = 0
            self._compute_frame()

    def _compute_frame(self) -> None:
        size = len(self._fifo)
        magnitudes = np.abs(np.fft.rfft(self._fifo * self._window))
        last = size // 2 - 1
        bins = []
        for i in range(len(self._bins)):
            gain = float(magnitudes[min(last, 1 + i * 4)]) / size
            bins.append(max(-100.0, 20.0 * math.log10(gain)) if gain > 0.0 else -100.0)
        self._bins = bins
        self.frames += 1

    def bins(self) -> list[float]:
        """Levels of the analysed bins from the last complete frame."""
        return list(self._bins)


def preview_lfo_shape(shape: float, size: int = 128) -> list[float]:
    """One cycle of the LFO waveform for a shape setting, sampled at size points."""
    if size < 2:
        raise ValueError("size must be at least 2")
    return [lfo_shape_value(i / (size - 1), shape) for i in range(size)]