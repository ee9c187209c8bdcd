"""Oscillator, envelope, LFO and filter building blocks."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from .types import StereoSample

TWO_PI = 2.0 * math.pi


def _jmap(t: float, a: float, b: float) -> float:
    return a + t * (b - a)


def _clamp(lo: float, hi: float, x: float) -> float:
    return max(lo, min(hi, x))


def _frac(x: float) -> float:
    return x - math.floor(x)


def lfo_shape_value(phase: float, shape: float) -> float:
    """Morph sine -> triangle -> saw -> step as shape goes from 0 to 1."""
    sine = math.sin(TWO_PI * phase)
    tri = 1.0 - 4.0 * abs(phase - 0.5)
    saw = 2.0 * phase - 1.0
    step = -1.0 if phase < 0.5 else 1.0
    if shape < 0.33:
        return _jmap(shape / 0.33, sine, tri)
    if shape < 0.66:
        return _jmap((shape - 0.33) / 0.33, tri, saw)
    return _jmap((shape - 0.66) / 0.34, saw, step)


@dataclass
class WavetableOscillator:
    """A morphing single-cycle oscillator scanned by a position in [0, 1]."""

    sample_rate: float = 44100.0
    phase: float = 0.0
    wave_pos: float = 0.25
    frequency: float = 110.0

    def prepare(self, sample_rate: float) -> None:
        self.sample_rate = sample_rate
        self.phase = 0.0

    def set_frequency(self, hz: float) -> None:
        self.frequency = max(0.0, hz)

    def set_position(self, pos: float) -> None:
        self.wave_pos = _clamp(0.0, 1.0, pos)

    def set_phase(self, phase: float) -> None:
        self.phase = _frac(phase)

    def frame(self, p: float, pos: float) -> float:
        """Value of the wavetable at phase p and table position pos."""
        s = math.sin(TWO_PI * p)
        tri = 2.0 * abs(2.0 * p - 1.0) - 1.0
        saw = 2.0 * p - 1.0
        square = 1.0 if p < 0.5 else -1.0
        vocal = math.sin(TWO_PI * p + 2.2 * math.sin(TWO_PI * p))
        formant = math.sin(TWO_PI * p * (1.0 + 1.5 * math.sin(TWO_PI * p))) * (0.6 + 0.4 * saw)
        folded = math.sin((2.0 + 6.0 * pos) * TWO_PI * p) * 0.65 + saw * 0.35
        if pos < 0.20:
            return _jmap(pos / 0.20, s, tri)
        if pos < 0.40:
            return _jmap((pos - 0.20) / 0.20, tri, saw)
        if pos < 0.60:
            return _jmap((pos - 0.40) / 0.20, saw, square)
        if pos < 0.80:
            return _jmap((pos - 0.60) / 0.20, square, vocal)
        laser = math.sin(TWO_PI * p * (8.0 + 18.0 * pos)) * 0.6 + square * 0.4
        if pos < 0.90:
            return _jmap((pos - 0.80) / 0.10, vocal, formant)
        if pos < 0.97:
            return _jmap((pos - 0.90) / 0.07, formant, folded)
        return _jmap((pos - 0.97) / 0.03, folded, laser)

    def process(self, phase_offset: float = 0.0) -> float:
        """Return the current sample and advance the phase by one sample."""
        p = _clamp(0.0, 1.0, _frac(self.phase + phase_offset))
        y = self.frame(p, self.wave_pos)
        self.phase = _frac(self.phase + self.frequency / self.sample_rate)
        return y


class _EnvState(Enum):
    IDLE = "idle"
    ATTACK = "attack"
    DECAY = "decay"
    SUSTAIN = "sustain"
    RELEASE = "release"


class Envelope:
    """Linear attack/decay/sustain/release envelope."""

    def __init__(self) -> None:
        self.sample_rate = 44100.0
        self.attack = 0.1
        self.decay = 0.1
        self.sustain = 1.0
        self.release = 0.1
        self.value = 0.0
        self._state = _EnvState.IDLE
        self._attack_rate = 0.0
        self._decay_rate = 0.0
        self._release_rate = 0.0
        self._recalculate_rates()

    @property
    def is_active(self) -> bool:
        return self._state is not _EnvState.IDLE

    def prepare(self, sample_rate: float) -> None:
        self.sample_rate = sample_rate
        self._recalculate_rates()

    def set(self, attack: float, decay: float, sustain: float, release: float) -> None:
        self.attack, self.decay, self.sustain, self.release = attack, decay, sustain, release
        self._recalculate_rates()

    def note_on(self) -> None:
        if self._attack_rate > 0.0:
            self._state = _EnvState.ATTACK
        elif self._decay_rate > 0.0:
            self.value = 1.0
            self._state = _EnvState.DECAY
        else:
            self.value = self.sustain
            self._state = _EnvState.SUSTAIN

    def note_off(self) -> None:
        if self._state is _EnvState.IDLE:
            return
        if self.release > 0.0:
            self._release_rate = self.value / (self.release * self.sample_rate)
            self._state = _EnvState.RELEASE
        else:
            self._reset()

    def next(self) -> float:
        state = self._state
        if state is _EnvState.IDLE:
            return 0.0
        if state is _EnvState.ATTACK:
            self.value += self._attack_rate
            if self.value >= 1.0:
                self.value = 1.0
                self._advance()
        elif state is _EnvState.DECAY:
            self.value -= self._decay_rate
            if self.value <= self.sustain:
                self.value = self.sustain
                self._advance()
        elif state is _EnvState.SUSTAIN:
            self.value = self.sustain
        else:
            self.value -= self._release_rate
            if self.value <= 0.0:
                self._advance()
        return self.value

    def _reset(self) -> None:
        self.value = 0.0
        self._state = _EnvState.IDLE

    def _rate(self, distance: float, seconds: float) -> float:
        return distance / (seconds * self.sample_rate) if seconds > 0.0 else -1.0

    def _recalculate_rates(self) -> None:
        self._attack_rate = self._rate(1.0, self.attack)
        self._decay_rate = self._rate(1.0 - self.sustain, self.decay)
        self._release_rate = self._rate(self.sustain, self.release)
        state = self._state
        if (
            (state is _EnvState.ATTACK and self._attack_rate <= 0.0)
            or (state is _EnvState.DECAY and (self._decay_rate <= 0.0 or self.value <= self.sustain))
            or (state is _EnvState.RELEASE and self._release_rate <= 0.0)
        ):
            self._advance()

    def _advance(self) -> None:
        if self._state is _EnvState.ATTACK:
            self._state = _EnvState.DECAY if self._decay_rate > 0.0 else _EnvState.SUSTAIN
        elif self._state is _EnvState.DECAY:
            self._state = _EnvState.SUSTAIN
        elif self._state is _EnvState.RELEASE:
            self._reset()


@dataclass
class ShapedLfo:
    """Free-running LFO with a morphable shape and one-pole smoothing."""

    sample_rate: float = 44100.0
    phase: float = 0.0
    out: float = 0.0

    def prepare(self, sample_rate: float) -> None:
        self.sample_rate = sample_rate
        self.phase = 0.0
        self.out = 0.0

    def process(self, rate: float, shape: float, smooth: float) -> float:
        self.phase = _frac(self.phase + rate / self.sample_rate)
        target = lfo_shape_value(self.phase, _clamp(0.0, 1.0, shape))
        alpha = _clamp(0.001, 1.0, 1.0 - smooth * 0.95)
        self.out += (target - self.out) * alpha
        return self.out


class FilterType(Enum):
    LOWPASS = "lowpass"
    BANDPASS = "bandpass"
    HIGHPASS = "highpass"


class StateVariableFilter:
    """Topology-preserving-transform state variable filter, one channel."""

    def __init__(self) -> None:
        self.sample_rate = 44100.0
        self.filter_type = FilterType.LOWPASS
        self.cutoff = 1000.0
        self.resonance = 1.0 / math.sqrt(2.0)
        self._s1 = 0.0
        self._s2 = 0.0
        self._update()

    def prepare(self, sample_rate: float) -> None:
        if sample_rate <= 0:
            raise ValueError("sample rate must be positive")
        self.sample_rate = sample_rate
        self._update()
        self.reset()

    def reset(self) -> None:
        self._s1 = 0.0
        self._s2 = 0.0

    def set_type(self, filter_type: FilterType) -> None:
        self.filter_type = filter_type

    def set_cutoff(self, hz: float) -> None:
        if not 0.0 < hz < self.sample_rate * 0.5:
            raise ValueError(f"cutoff {hz} Hz must lie between 0 and the Nyquist frequency")
        self.cutoff = hz
        self._update()

    def set_resonance(self, resonance: float) -> None:
        if resonance <= 0.0:
            raise ValueError("resonance must be positive")
        self.resonance = resonance
        self._update()

    def _update(self) -> None:
        self._g = math.tan(math.pi * self.cutoff / self.sample_rate)
        self._r2 = 1.0 / self.resonance
        self._h = 1.0 / (1.0 + self._r2 * self._g + self._g * self._g)

    def process_sample(self, x: float) -> float:
        g = self._g
        y_hp = self._h * (x - self._s1 * (g + self._r2) - self._s2)
        y_bp = y_hp * g + self._s1
        self._s1 = y_hp * g + y_bp
        y_lp = y_bp * g + self._s2
        self._s2 = y_bp * g + y_lp
        if self.filter_type is FilterType.LOWPASS:
            return y_lp
        if self.filter_type is FilterType.BANDPASS:
            return y_bp
        return y_hp


_MODE_TYPES = {
    1: FilterType.BANDPASS,
    2: FilterType.HIGHPASS,
    3: FilterType.BANDPASS,
    4: FilterType.HIGHPASS,
}


class FilterBlock:
    """A stereo pair of state variable filters driven by a filter-mode index."""

    def __init__(self) -> None:
        self.left = StateVariableFilter()
        self.right = StateVariableFilter()

    def prepare(self, sample_rate: float) -> None:
        self.left.prepare(sample_rate)
        self.right.prepare(sample_rate)

    def update(self, mode: int, cutoff: float, resonance: float) -> None:
        filter_type = _MODE_TYPES.get(mode, FilterType.LOWPASS)
        for f in (self.left, self.right):
            f.set_type(filter_type)
            f.set_cutoff(cutoff)
            f.set_resonance(resonance)

    def process(self, left: float, right: float) -> StereoSample:
        return StereoSample(self.left.process_sample(left), self.right.process_sample(right))