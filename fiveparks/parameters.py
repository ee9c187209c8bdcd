"""Parameter definitions and the parameter state that stores their values."""

from __future__ import annotations

import math
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Iterable, Union

STATE_TAG = "PARAMS"
PARAM_TAG = "PARAM"


def _round_half_away(x: float) -> int:
    return int(math.floor(x + 0.5)) if x >= 0.0 else -int(math.floor(-x + 0.5))


@dataclass(frozen=True)
class FloatParameter:
    """A continuous parameter with an optionally skewed range."""

    param_id: str
    name: str
    minimum: float
    maximum: float
    default: float
    skew: float = 1.0

    def clamp(self, value: float) -> float:
        return max(self.minimum, min(self.maximum, float(value)))

    def to_normalised(self, value: float) -> float:
        """Map a value in the range onto [0, 1], applying the skew."""
        proportion = (self.clamp(value) - self.minimum) / (self.maximum - self.minimum)
        if self.skew == 1.0:
            return proportion
        return proportion ** self.skew

    def from_normalised(self, norm: float) -> float:
        """Map a position in [0, 1] back onto the range."""
        proportion = max(0.0, min(1.0, float(norm)))
        if self.skew != 1.0 and proportion > 0.0:
            proportion = math.exp(math.log(proportion) / self.skew)
        return self.minimum + (self.maximum - self.minimum) * proportion


@dataclass(frozen=True)
class ChoiceParameter:
    """A parameter that selects one item of a list by index."""

    param_id: str
    name: str
    items: tuple[str, ...]
    default: int

    def clamp(self, value: float) -> float:
        return float(max(0, min(len(self.items) - 1, _round_half_away(float(value)))))


@dataclass(frozen=True)
class BoolParameter:
    """An on/off parameter."""

    param_id: str
    name: str
    default: bool

    def clamp(self, value: float) -> float:
        """Snap a value to 0.0 or 1.0; values of one half or more count as on."""
        number = float(value)
        if math.isnan(number):
            raise ValueError(f"value for {self.param_id!r} is not a number")
        return float(number >= 0.5)


Parameter = Union[FloatParameter, ChoiceParameter, BoolParameter]

_OCTAVES = tuple(str(n) for n in range(-4, 5))
_SEMIS = tuple(str(n) for n in range(-12, 13))
_UNISON = tuple(str(n) for n in range(1, 6))
_POLY = tuple(str(n) for n in range(1, 17))
_SOURCES = ("None", "ENV2", "ENV3", "LFO1", "LFO2", "LFO3", "LFO4", "Velocity")
_DESTS = ("None", "Filt Cutoff", "OSC A Pos", "OSC B Pos", "Pitch", "Level", "Pan", "Dist", "FX")
_BASS_MODES = ("Init", "Reese", "Womp", "Screech", "Warhorn", "Whoop", "Donk",
               "Tearout", "Laser", "Neuro", "Horn Stab", "Vapor")
_NOISE_TYPES = ("White", "Air", "Metal", "Crunch", "Vowel", "Laser", "Horn", "Vinyl")


def _osc_parameters(tag: str, unison_default: int, detune: float, blend: float,
                    pos: float, level: float) -> list[Parameter]:
    key = f"osc{tag}"
    label = f"OSC {tag}"
    return [
        ChoiceParameter(f"{key}_oct", f"{label} Oct", _OCTAVES, 4),
        ChoiceParameter(f"{key}_semi", f"{label} Semi", _SEMIS, 12),
        FloatParameter(f"{key}_fine", f"{label} Fine", -100.0, 100.0, 0.0),
        ChoiceParameter(f"{key}_unison", f"{label} Unison", _UNISON, unison_default),
        FloatParameter(f"{key}_detune", f"{label} Detune", 0.0, 1.0, detune),
        FloatParameter(f"{key}_blend", f"{label} Blend", 0.0, 1.0, blend),
        FloatParameter(f"{key}_phase", f"{label} Phase", 0.0, 1.0, 0.0),
        FloatParameter(f"{key}_rand", f"{label} Rand", 0.0, 1.0, 0.0),
        FloatParameter(f"{key}_pos", f"{label} WT Pos", 0.0, 1.0, pos),
        FloatParameter(f"{key}_level", f"{label} Level", 0.0, 1.0, level),
        FloatParameter(f"{key}_pan", f"{label} Pan", 0.0, 1.0, 0.5),
    ]


def create_parameters() -> list[Parameter]:
    """Build the full, ordered list of synth parameters."""
    p: list[Parameter] = [
        ChoiceParameter("play_mode", "Play Mode", ("Mono", "Legato", "Poly"), 2),
        FloatParameter("glide_ms", "Glide", 0.0, 500.0, 35.0, 0.35),
        ChoiceParameter("polyphony", "Polyphony", _POLY, 7),
        FloatParameter("master_gain", "Master Gain", 0.0, 1.0, 0.68),
    ]
    p += _osc_parameters("A", 2, 0.18, 0.76, 0.25, 0.85)
    p += _osc_parameters("B", 0, 0.08, 0.82, 0.32, 0.70)
    p += [
        ChoiceParameter("sub_wave", "Sub Wave", ("Sine", "Tri", "Saw", "Square"), 0),
        FloatParameter("sub_level", "Sub Level", 0.0, 1.0, 0.7),
        BoolParameter("sub_direct", "Sub Direct", False),
        ChoiceParameter("noise_type", "Noise Type", _NOISE_TYPES, 0),
        FloatParameter("noise_pitch", "Noise Pitch", 0.0, 1.0, 0.5),
        FloatParameter("noise_phase", "Noise Phase", 0.0, 1.0, 0.0),
        FloatParameter("noise_pan", "Noise Pan", 0.0, 1.0, 0.5),
        FloatParameter("noise_level", "Noise Level", 0.0, 1.0, 0.0),
        BoolParameter("noise_direct", "Noise Direct", False),
        ChoiceParameter("filter_mode", "Filter Mode", ("LP", "BP", "HP", "Notch", "Peak"), 0),
        FloatParameter("filter_cutoff", "Filter Cutoff", 20.0, 18000.0, 1200.0, 0.30),
        FloatParameter("filter_res", "Filter Res", 0.1, 1.15, 0.25),
        FloatParameter("filter_drive", "Filter Drive", 0.0, 1.0, 0.08),
        FloatParameter("filter_mix", "Filter Mix", 0.0, 1.0, 1.0),
        FloatParameter("filter_pan", "Filter Pan", 0.0, 1.0, 0.5),
        ChoiceParameter("bass_mode", "Bass Mode", _BASS_MODES, 0),
    ]
    macros = [
        ("reese_amt", "Reese", 0.18), ("warhorn_amt", "Warhorn", 0.08),
        ("womp_amt", "Womp", 0.12), ("subharm_amt", "Sub Harm", 0.16),
        ("combo_amt", "Combo", 0.10), ("stereo_width", "Stereo Width", 0.42),
        ("fm_amt", "FM Grit", 0.03), ("air_amt", "Air", 0.04),
        ("body_amt", "Body", 0.18), ("growl_amt", "Growl", 0.08),
        ("tone_amt", "Tone", 0.22), ("motion_amt", "Motion", 0.08),
        ("screech_amt", "Screech", 0.04), ("whoop_amt", "Whoop", 0.05),
        ("vowel_amt", "Vowel", 0.08), ("smear_amt", "Smear", 0.05),
    ]
    p += [FloatParameter(pid, name, 0.0, 1.0, default) for pid, name, default in macros]

    decay_defaults = {1: 0.25, 2: 0.30, 3: 0.40}
    for e in range(1, 4):
        p += [
            FloatParameter(f"env{e}_a", "Env A", 0.001, 5.0, 0.005 if e == 1 else 0.001, 0.35),
            FloatParameter(f"env{e}_h", "Env H", 0.0, 2.0, 0.0, 0.35),
            FloatParameter(f"env{e}_d", "Env D", 0.001, 5.0, decay_defaults[e], 0.35),
            FloatParameter(f"env{e}_s", "Env S", 0.0, 1.0, 0.75 if e == 1 else 0.0),
            FloatParameter(f"env{e}_r", "Env R", 0.001, 5.0, 0.2, 0.35),
        ]

    rate_defaults = {1: 1.2, 2: 0.35, 3: 3.0, 4: 0.12}
    for i in range(1, 5):
        p += [
            FloatParameter(f"lfo{i}_rate", "LFO Rate", 0.01, 20.0, rate_defaults[i], 0.35),
            FloatParameter(f"lfo{i}_amt", "LFO Amt", 0.0, 1.0, 0.15 if i == 1 else 0.0),
            FloatParameter(f"lfo{i}_shape", "LFO Shape", 0.0, 1.0, (i - 1) / 3.0),
            FloatParameter(f"lfo{i}_smooth", "LFO Smooth", 0.0, 1.0, 0.15),
            ChoiceParameter(f"lfo{i}_sync", "LFO Sync", ("Free", "Sync"), 0),
        ]

    for i in range(1, 7):
        p += [
            ChoiceParameter(f"mod{i}_src", "Mod Src", _SOURCES, 0),
            ChoiceParameter(f"mod{i}_dst", "Mod Dst", _DESTS, 0),
            FloatParameter(f"mod{i}_amt", "Mod Amt", -1.0, 1.0, 0.0),
        ]

    p += [
        FloatParameter("dist_drive", "Dist Drive", 0.0, 1.0, 0.06),
        FloatParameter("dist_mix", "Dist Mix", 0.0, 1.0, 0.14),
        FloatParameter("chorus_mix", "Chorus Mix", 0.0, 1.0, 0.08),
        FloatParameter("delay_mix", "Delay Mix", 0.0, 1.0, 0.05),
        FloatParameter("reverb_mix", "Reverb Mix", 0.0, 1.0, 0.03),
        FloatParameter("comp_amt", "Comp Amt", 0.0, 1.0, 0.15),
    ]
    return p


def _default_value(spec: Parameter) -> float:
    if isinstance(spec, BoolParameter):
        return 1.0 if spec.default else 0.0
    return float(spec.default)


class ParameterState:
    """Current plain values of a set of parameters, keyed by parameter id."""

    def __init__(self, specs: Iterable[Parameter] | None = None) -> None:
        self._specs: dict[str, Parameter] = {}
        for spec in create_parameters() if specs is None else specs:
            if spec.param_id in self._specs:
                raise ValueError(f"duplicate parameter id {spec.param_id!r}")
            self._specs[spec.param_id] = spec
        self._values = {pid: _default_value(spec) for pid, spec in self._specs.items()}

    def __contains__(self, param_id: object) -> bool:
        return param_id in self._specs

    def __iter__(self):
        return iter(self._specs)

    def spec(self, param_id: str) -> Parameter:
        try:
            return self._specs[param_id]
        except KeyError:
            raise KeyError(f"unknown parameter {param_id!r}") from None

    def get_float(self, param_id: str) -> float:
        self.spec(param_id)
        return self._values[param_id]

    def get_int(self, param_id: str) -> int:
        return _round_half_away(self.get_float(param_id))

    def get_bool(self, param_id: str) -> bool:
        return self.get_float(param_id) > 0.5

    def set_value(self, param_id: str, value: float) -> None:
        """Store a value, clamped or snapped to what the parameter allows."""
        self._values[param_id] = self.spec(param_id).clamp(float(value))

    def to_xml(self) -> bytes:
        """Serialise all values as an XML document."""
        root = ET.Element(STATE_TAG)
        for pid, value in self._values.items():
            ET.SubElement(root, PARAM_TAG, {"id": pid, "value": repr(float(value))})
        return ET.tostring(root, encoding="utf-8")

    def load_xml(self, data: bytes | str) -> bool:
        """Replace the state from XML; return False and keep it unchanged if unusable."""
        try:
            root = ET.fromstring(data)
        except ET.ParseError:
            return False
        if root.tag != STATE_TAG:
            return False
        loaded: dict[str, float] = {}
        for child in root.iter(PARAM_TAG):
            pid = child.get("id")
            raw = child.get("value")
            if pid not in self._specs or raw is None:
                continue
            try:
                loaded[pid] = self._specs[pid].clamp(float(raw))
            except ValueError:
                continue
        self._values = {
            pid: loaded.get(pid, _default_value(spec)) for pid, spec in self._specs.items()
        }
        return True