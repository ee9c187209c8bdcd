"""Plain data types shared by the synth engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum


@dataclass
class StereoSample:
    """A single left/right sample pair."""

    left: float = 0.0
    right: float = 0.0


class ModSource(IntEnum):
    """Modulation sources available to the matrix."""

    NONE = 0
    ENV2 = 1
    ENV3 = 2
    LFO1 = 3
    LFO2 = 4
    LFO3 = 5
    LFO4 = 6
    VELOCITY = 7


class ModDestination(IntEnum):
    """Modulation targets available to the matrix."""

    NONE = 0
    FILTER_CUTOFF = 1
    OSC_A_POS = 2
    OSC_B_POS = 3
    PITCH = 4
    LEVEL = 5
    PAN = 6
    DISTORTION = 7
    FX_MIX = 8


@dataclass
class ModSlot:
    """One routing of the modulation matrix."""

    source: ModSource = ModSource.NONE
    destination: ModDestination = ModDestination.NONE
    amount: float = 0.0


def _matrix() -> list[ModSlot]:
    return [ModSlot() for _ in range(6)]


@dataclass
class RuntimeParams:
    """Snapshot of every parameter the voices and effects read while rendering."""

    play_mode: int = 2
    glide_ms: float = 35.0

    osc_a_oct: int = 0
    osc_a_semi: int = 0
    osc_a_fine: float = 0.0
    osc_a_unison: float = 3.0
    osc_a_detune: float = 0.18
    osc_a_blend: float = 0.76
    osc_a_phase: float = 0.0
    osc_a_rand: float = 0.0
    osc_a_pos: float = 0.25
    osc_a_level: float = 0.85
    osc_a_pan: float = 0.5

    osc_b_oct: int = 0
    osc_b_semi: int = 7
    osc_b_fine: float = 0.0
    osc_b_unison: float = 2.0
    osc_b_detune: float = 0.14
    osc_b_blend: float = 0.68
    osc_b_phase: float = 0.0
    osc_b_rand: float = 0.0
    osc_b_pos: float = 0.58
    osc_b_level: float = 0.70
    osc_b_pan: float = 0.5

    sub_level: float = 0.7
    sub_wave: int = 0
    sub_direct: bool = False

    noise_type: int = 0
    noise_pitch: float = 0.5
    noise_phase: float = 0.0
    noise_pan: float = 0.5
    noise_level: float = 0.0
    noise_direct: bool = False

    filter_mode: int = 0
    cutoff: float = 1200.0
    resonance: float = 0.25
    filter_drive: float = 0.2
    filter_mix: float = 1.0
    filter_pan: float = 0.5

    bass_mode: int = 0
    reese_amount: float = 0.0
    warhorn_amount: float = 0.0
    womp_amount: float = 0.0
    sub_harmonic: float = 0.0
    combo_amount: float = 0.0
    stereo_width: float = 0.5
    fm_amount: float = 0.0
    air_amount: float = 0.0
    body_amount: float = 0.0
    growl_amount: float = 0.0
    tone_amount: float = 0.5
    motion_amount: float = 0.0
    screech_amount: float = 0.0
    whoop_amount: float = 0.0
    vowel_amount: float = 0.0
    smear_amount: float = 0.0

    env1_a: float = 0.005
    env1_h: float = 0.0
    env1_d: float = 0.25
    env1_s: float = 0.75
    env1_r: float = 0.2
    env2_a: float = 0.001
    env2_h: float = 0.0
    env2_d: float = 0.3
    env2_s: float = 0.0
    env2_r: float = 0.2
    env3_a: float = 0.001
    env3_h: float = 0.0
    env3_d: float = 0.4
    env3_s: float = 0.0
    env3_r: float = 0.2

    lfo_rate: list[float] = field(default_factory=lambda: [1.0, 0.3, 3.0, 0.11])
    lfo_amount: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0, 0.0])
    lfo_shape: list[float] = field(default_factory=lambda: [0.0, 0.3, 0.7, 1.0])
    lfo_smooth: list[float] = field(default_factory=lambda: [0.1, 0.1, 0.1, 0.1])
    lfo_sync: list[int] = field(default_factory=lambda: [0, 0, 0, 0])

    matrix: list[ModSlot] = field(default_factory=_matrix)

    dist_drive: float = 0.25
    dist_mix: float = 0.4
    chorus_mix: float = 0.15
    delay_mix: float = 0.12
    reverb_mix: float = 0.08
    comp_amt: float = 0.2

    polyphony: int = 8
    master_gain: float = 0.7