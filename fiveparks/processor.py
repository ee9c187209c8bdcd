"""The synth processor: parameter state, note handling, voices and the master effect chain."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .effects import ReverbParameters, Reverb, ScopeRing, SpectrumAnalyzer, preview_lfo_shape
from .parameters import ParameterState
from .types import ModDestination, ModSlot, ModSource, RuntimeParams
from .voice import Voice

MAX_VOICES = 16
SCOPE_SIZE = 512
PREVIEW_SIZE = 128
TAIL_LENGTH_SECONDS = 3.5
SUSTAIN_CONTROLLER = 64
ALL_SOUND_OFF_CONTROLLER = 120
ALL_NOTES_OFF_CONTROLLER = 123

_SUMMARY_SOURCES = ("-", "ENV2", "ENV3", "LFO1", "LFO2", "LFO3", "LFO4", "VEL")
_SUMMARY_DESTS = ("-", "Cutoff", "OSC A Pos", "OSC B Pos", "Pitch", "Level", "Pan", "Dist", "FX")

_FLOAT_FIELDS = {
    "glide_ms": "glide_ms", "master_gain": "master_gain",
    "osc_a_fine": "oscA_fine", "osc_a_detune": "oscA_detune", "osc_a_blend": "oscA_blend",
    "osc_a_phase": "oscA_phase", "osc_a_rand": "oscA_rand", "osc_a_pos": "oscA_pos",
    "osc_a_level": "oscA_level", "osc_a_pan": "oscA_pan",
    "osc_b_fine": "oscB_fine", "osc_b_detune": "oscB_detune", "osc_b_blend": "oscB_blend",
    "osc_b_phase": "oscB_phase", "osc_b_rand": "oscB_rand", "osc_b_pos": "oscB_pos",
    "osc_b_level": "oscB_level", "osc_b_pan": "oscB_pan",
    "sub_level": "sub_level",
    "noise_pitch": "noise_pitch", "noise_phase": "noise_phase", "noise_pan": "noise_pan",
    "noise_level": "noise_level",
    "cutoff": "filter_cutoff", "resonance": "filter_res", "filter_drive": "filter_drive",
    "filter_mix": "filter_mix", "filter_pan": "filter_pan",
    "dist_drive": "dist_drive", "dist_mix": "dist_mix", "chorus_mix": "chorus_mix",
    "delay_mix": "delay_mix", "reverb_mix": "reverb_mix", "comp_amt": "comp_amt",
    "reese_amount": "reese_amt", "warhorn_amount": "warhorn_amt", "womp_amount": "womp_amt",
    "sub_harmonic": "subharm_amt", "combo_amount": "combo_amt", "stereo_width": "stereo_width",
    "fm_amount": "fm_amt", "air_amount": "air_amt", "body_amount": "body_amt",
    "growl_amount": "growl_amt", "tone_amount": "tone_amt", "motion_amount": "motion_amt",
    "screech_amount": "screech_amt", "whoop_amount": "whoop_amt", "vowel_amount": "vowel_amt",
    "smear_amount": "smear_amt",
    **{f"env{e}_{stage}": f"env{e}_{stage}" for e in range(1, 4) for stage in "ahdsr"},
}

_INT_FIELDS = {
    "play_mode": ("play_mode", 0), "polyphony": ("polyphony", 1),
    "osc_a_oct": ("oscA_oct", -4), "osc_a_semi": ("oscA_semi", -12),
    "osc_b_oct": ("oscB_oct", -4), "osc_b_semi": ("oscB_semi", -12),
    "sub_wave": ("sub_wave", 0), "noise_type": ("noise_type", 0),
    "filter_mode": ("filter_mode", 0), "bass_mode": ("bass_mode", 0),
}

_BOOL_FIELDS = {"sub_direct": "sub_direct", "noise_direct": "noise_direct"}


def _clamp(lo: float, hi: float, x: float) -> float:
    return max(lo, min(hi, x))


def _jmap(t: float, a: float, b: float) -> float:
    return a + t * (b - a)


class MessageKind(Enum):
    """Kinds of MIDI messages the processor reacts to."""

    NOTE_ON = "note_on"
    NOTE_OFF = "note_off"
    CONTROLLER = "controller"


@dataclass(frozen=True)
class MidiMessage:
    """A channel MIDI message with 7-bit data values."""

    kind: MessageKind
    note: int = 0
    velocity: int = 0
    controller: int = 0
    value: int = 0

    def __post_init__(self) -> None:
        for name in ("note", "velocity", "controller", "value"):
            if not 0 <= getattr(self, name) <= 127:
                raise ValueError(f"{name} must lie between 0 and 127")

    @property
    def float_velocity(self) -> float:
        return self.velocity / 127.0

    @property
    def is_note_on(self) -> bool:
        return self.kind is MessageKind.NOTE_ON and self.velocity > 0

    @property
    def is_note_off(self) -> bool:
        return self.kind is MessageKind.NOTE_OFF or (
            self.kind is MessageKind.NOTE_ON and self.velocity == 0)

    def is_controller_of_type(self, number: int) -> bool:
        return self.kind is MessageKind.CONTROLLER and self.controller == number

    @property
    def is_all_notes_off(self) -> bool:
        return self.is_controller_of_type(ALL_NOTES_OFF_CONTROLLER)

    @property
    def is_all_sound_off(self) -> bool:
        return self.is_controller_of_type(ALL_SOUND_OFF_CONTROLLER)


class SynthProcessor:
    """Turns MIDI into stereo audio through up to sixteen voices and a master chain."""

    def __init__(self) -> None:
        self.state = ParameterState()
        self._voices = [Voice() for _ in range(MAX_VOICES)]
        self._voice_counter = 0
        self._meter_level = 0.0
        self._scope = ScopeRing(2048)
        self._analyzer = SpectrumAnalyzer(1024, 128)
        self._preview = [0.0] * PREVIEW_SIZE

        self._chorus_l: list[float] = []
        self._chorus_r: list[float] = []
        self._delay_l: list[float] = []
        self._delay_r: list[float] = []
        self._chorus_write = 0
        self._delay_write = 0
        self._chorus_phase = 0.0
        self._comp_env = 0.0
        self._sample_rate = 44100.0
        self._prepared = False

        self._reverb = Reverb()
        self._reverb_params = ReverbParameters()

        self._held: list[int] = []
        self._sustained: list[int] = []
        self._note_velocities = [0.0] * 128
        self._sustain_down = False

    @property
    def meter_level(self) -> float:
        return self._meter_level

    @property
    def held_notes(self) -> list[int]:
        return list(self._held)

    @property
    def sustain_pedal_down(self) -> bool:
        return self._sustain_down

    @property
    def active_notes(self) -> list[int]:
        return sorted(v.midi_note for v in self._voices if v.is_active)

    def prepare_to_play(self, sample_rate: float, samples_per_block: int) -> None:
        """Size the delay lines and prepare every voice for a sample rate."""
        if sample_rate <= 0:
            raise ValueError("sample rate must be positive")
        self._sample_rate = float(sample_rate)
        for v in self._voices:
            v.prepare(sample_rate, samples_per_block)
        chorus_len = int(sample_rate * 0.05)
        delay_len = int(sample_rate * 0.75)
        self._chorus_l = [0.0] * chorus_len
        self._chorus_r = [0.0] * chorus_len
        self._delay_l = [0.0] * delay_len
        self._delay_r = [0.0] * delay_len
        self._chorus_write = self._delay_write = 0
        self._chorus_phase = self._comp_env = 0.0

        self._reverb.reset()
        self._reverb.set_sample_rate(sample_rate)
        self._reverb_params = ReverbParameters(
            room_size=0.62, damping=0.38, width=0.9, freeze_mode=0.0,
            wet_level=0.0, dry_level=1.0)
        self._reverb.set_parameters(self._reverb_params)
        self._prepared = True

    def runtime_params(self) -> RuntimeParams:
        """Snapshot the parameter state into the form the voices read."""
        s = self.state
        p = RuntimeParams()
        for field_name, pid in _FLOAT_FIELDS.items():
            setattr(p, field_name, s.get_float(pid))
        for field_name, (pid, offset) in _INT_FIELDS.items():
            setattr(p, field_name, s.get_int(pid) + offset)
        for field_name, pid in _BOOL_FIELDS.items():
            setattr(p, field_name, s.get_bool(pid))
        p.osc_a_unison = float(s.get_int("oscA_unison") + 1)
        p.osc_b_unison = float(s.get_int("oscB_unison") + 1)
        lfo_ids = range(1, 5)
        p.lfo_rate = [s.get_float(f"lfo{i}_rate") for i in lfo_ids]
        p.lfo_amount = [s.get_float(f"lfo{i}_amt") for i in lfo_ids]
        p.lfo_shape = [s.get_float(f"lfo{i}_shape") for i in lfo_ids]
        p.lfo_smooth = [s.get_float(f"lfo{i}_smooth") for i in lfo_ids]
        p.lfo_sync = [s.get_int(f"lfo{i}_sync") for i in lfo_ids]
        p.matrix = [
            ModSlot(ModSource(s.get_int(f"mod{i}_src")),
                    ModDestination(s.get_int(f"mod{i}_dst")),
                    s.get_float(f"mod{i}_amt"))
            for i in range(1, 7)
        ]
        return p

    # ---- note handling -------------------------------------------------

    def _polyphony_limit(self) -> int:
        return min(MAX_VOICES, self.state.get_int("polyphony") + 1)

    def _first_active(self) -> int | None:
        return next((i for i, v in enumerate(self._voices) if v.is_active), None)

    def _find_voice_for_note(self, note: int) -> int | None:
        return next((i for i, v in enumerate(self._voices)
                     if v.is_active and v.midi_note == note), None)

    def _find_free_voice(self) -> int | None:
        return next((i for i, v in enumerate(self._voices[:self._polyphony_limit()])
                     if not v.is_active), None)

    def _steal_voice(self) -> int:
        candidates = self._voices[:self._polyphony_limit()]
        return min(range(len(candidates)), key=lambda i: candidates[i].age, default=0)

    def _next_age(self) -> int:
        self._voice_counter += 1
        return self._voice_counter

    def note_on(self, note: int, velocity: float) -> None:
        """Start a note according to the current play mode."""
        p = self.runtime_params()
        self._note_velocities[int(_clamp(0, 127, note))] = velocity
        if note in self._held:
            self._held.remove(note)
        self._held.append(note)

        mode = p.play_mode
        if mode != 2:
            idx = self._find_voice_for_note(note)
            if idx is None:
                idx = self._first_active() or 0
            voice = self._voices[idx]
            retrigger = mode == 0 or not voice.is_active
            if voice.is_active:
                voice.retarget(note, velocity, p, self._next_age(), retrigger)
            else:
                voice.start(note, velocity, p, self._next_age())
            return

        idx = self._find_voice_for_note(note)
        if idx is None:
            idx = self._find_free_voice()
            if idx is None:
                idx = self._steal_voice()
        self._voices[idx].start(note, velocity, p, self._next_age())

    def note_off(self, note: int) -> None:
        """Release a note, honouring the sustain pedal and mono/legato fallback."""
        if note in self._held:
            self._held.remove(note)
        self._note_velocities[int(_clamp(0, 127, note))] = 0.0
        if note in self._sustained:
            self._sustained.remove(note)

        if self._sustain_down:
            self._sustained.append(note)
            return

        mode = self.state.get_int("play_mode")
        if mode == 2:
            for v in self._voices:
                if v.is_active and v.midi_note == note:
                    v.stop()
            if not self._held and not self._sustained:
                self.all_notes_off(True)
            return

        active = self._first_active()
        if active is None:
            return

        if self._held:
            p = self.runtime_params()
            next_note = self._held[-1]
            stored = self._note_velocities[int(_clamp(0, 127, next_note))]
            vel = stored if stored > 0.0 else 1.0
            self._voices[active].retarget(next_note, vel, p, self._next_age(), mode == 0)
        else:
            for v in self._voices:
                if v.is_active:
                    v.force_kill()

    def handle_sustain_pedal(self, down: bool) -> None:
        """Press or lift the sustain pedal; lifting releases every sustained note."""
        if down == self._sustain_down:
            return
        self._sustain_down = down
        if down:
            return
        released, self._sustained = self._sustained, []
        for note in released:
            self.note_off(note)
        if not self._held:
            self.all_notes_off(True)

    def all_notes_off(self, hard_reset: bool = False) -> None:
        """Forget all notes; kill voices outright or let them release."""
        self._held.clear()
        self._sustained.clear()
        self._sustain_down = False
        self._note_velocities = [0.0] * 128
        for v in self._voices:
            if hard_reset:
                v.force_kill()
            elif v.is_active:
                v.stop()

    def _handle_message(self, msg: MidiMessage) -> None:
        if msg.is_controller_of_type(SUSTAIN_CONTROLLER):
            self.handle_sustain_pedal(msg.value >= 64)
        elif msg.is_note_off:
            self.note_off(msg.note)
        elif msg.is_note_on:
            self.note_on(msg.note, msg.float_velocity)
        elif msg.is_all_notes_off or msg.is_all_sound_off:
            self.all_notes_off(True)

    # ---- audio ----------------------------------------------------------

    def _chorus(self, l: float, r: float, p: RuntimeParams) -> tuple[float, float]:
        size = len(self._chorus_l)
        self._chorus_phase += (0.18 + p.reese_amount * 0.21) / self._sample_rate
        if self._chorus_phase >= 1.0:
            self._chorus_phase -= 1.0
        mod = 0.003 + (0.002 + p.stereo_width * 0.002) * math.sin(self._chorus_phase * 2.0 * math.pi)
        delay = int(_clamp(1.0, size - 2.0, mod * self._sample_rate))
        read = (self._chorus_write - delay + size) % size
        wet_l, wet_r = self._chorus_l[read], self._chorus_r[read]
        self._chorus_l[self._chorus_write] = l
        self._chorus_r[self._chorus_write] = r
        self._chorus_write = (self._chorus_write + 1) % size
        return (_jmap(p.chorus_mix, l, 0.65 * l + 0.35 * wet_l),
                _jmap(p.chorus_mix, r, 0.65 * r + 0.35 * wet_r))

    def _delay(self, l: float, r: float, p: RuntimeParams) -> tuple[float, float]:
        size = len(self._delay_l)
        delay = int((0.24 + 0.18 * p.womp_amount) * self._sample_rate)
        read = (self._delay_write - delay + size) % size
        d_l, d_r = self._delay_l[read], self._delay_r[read]
        feedback = 0.22 + 0.16 * p.delay_mix
        self._delay_l[self._delay_write] = l + d_l * feedback
        self._delay_r[self._delay_write] = r + d_r * feedback
        self._delay_write = (self._delay_write + 1) % size
        return l + d_l * p.delay_mix, r + d_r * p.delay_mix

    def _compress(self, l: float, r: float, p: RuntimeParams) -> tuple[float, float]:
        peak = max(abs(l), abs(r))
        self._comp_env = max(peak, self._comp_env * 0.9994)
        gain = 1.0 / (1.0 + max(0.0, self._comp_env - 0.6) * (2.5 * p.comp_amt))
        gain *= p.master_gain
        return math.tanh(l * gain), math.tanh(r * gain)

    def _push_display(self, sample: float) -> None:
        self._scope.push(sample)
        self._analyzer.push(sample)

    def process_block(self, num_samples: int,
                      midi: Iterable[MidiMessage] = ()) -> tuple[list[float], list[float]]:
        """Handle the block's MIDI, then render num_samples of stereo audio."""
        if not self._prepared:
            raise RuntimeError("prepare_to_play must be called before process_block")
        if num_samples < 0:
            raise ValueError("num_samples must not be negative")

        p = self.runtime_params()
        muted = (p.osc_a_level + p.osc_b_level + p.sub_level + p.noise_level) <= 0.0005

        for msg in midi:
            self._handle_message(msg)

        idle = not self._held and not self._sustained
        if not self._sustain_down and idle:
            for v in self._voices:
                if v.is_active:
                    v.force_kill()

        if muted and idle:
            for line in (self._chorus_l, self._chorus_r, self._delay_l, self._delay_r):
                line[:] = [0.0] * len(line)
            self._comp_env = 0.0

        rendering = self._voices[:min(MAX_VOICES, p.polyphony)]
        left: list[float] = []
        right: list[float] = []
        for _ in range(num_samples):
            l = r = 0.0
            for v in rendering:
                out = v.render(p)
                l += out.left
                r += out.right
            if muted:
                left.append(0.0)
                right.append(0.0)
                self._push_display(0.0)
                continue
            l, r = self._chorus(l, r, p)
            l, r = self._delay(l, r, p)
            l, r = self._compress(l, r, p)
            left.append(l)
            right.append(r)
            self._push_display(0.5 * (l + r))

        self._reverb_params = ReverbParameters(
            room_size=0.30 + 0.55 * p.reverb_mix + 0.10 * p.combo_amount,
            damping=0.18 + 0.50 * p.reverb_mix,
            width=_clamp(0.0, 1.0, 0.55 + 0.45 * p.stereo_width),
            freeze_mode=0.0,
            wet_level=_clamp(0.0, 1.0, p.reverb_mix * 0.34),
            dry_level=1.0,
        )
        self._reverb.set_parameters(self._reverb_params)
        wet_l, wet_r = list(left), list(right)
        if p.reverb_mix > 0.0001:
            wet_l, wet_r = self._reverb.process_stereo(wet_l, wet_r)

        wet_amt = 0.0 if muted else _clamp(0.0, 1.0, p.reverb_mix)
        left = [_jmap(wet_amt, d, w) for d, w in zip(left, wet_l)]
        right = [_jmap(wet_amt, d, w) for d, w in zip(right, wet_r)]

        for v in self._voices:
            if not v.is_active:
                continue
            still_held = v.midi_note in self._held
            sustained = self._sustain_down and v.midi_note in self._sustained
            if not still_held and not sustained and v.velocity <= 0.0001:
                v.force_kill()

        self._meter_level = max((abs(x) for x in (*left, *right)), default=0.0)

        if self._first_active() is None and self._held:
            self._held.clear()

        self._preview = preview_lfo_shape(self.state.get_float("lfo1_shape"), PREVIEW_SIZE)
        return left, right

    # ---- display and state ---------------------------------------------

    def scope_data(self) -> list[float]:
        return self._scope.snapshot(SCOPE_SIZE)

    def analyzer_data(self) -> list[float]:
        return self._analyzer.bins()

    def lfo_shape(self) -> list[float]:
        return list(self._preview)

    def matrix_summary(self) -> str:
        """One line per modulation slot: source, destination and amount."""
        s = self.state
        lines = []
        for i in range(1, 7):
            src = _SUMMARY_SOURCES[int(_clamp(0, 7, s.get_int(f"mod{i}_src")))]
            dst = _SUMMARY_DESTS[int(_clamp(0, 8, s.get_int(f"mod{i}_dst")))]
            amount = s.get_float(f"mod{i}_amt")
            lines.append(f"{i}. {src} -> {dst}  {amount:.2f}")
        return "\n".join(lines)

    def get_state(self) -> bytes:
        return self.state.to_xml()

    def set_state(self, data: bytes | str) -> bool:
        """Restore parameters from saved state; False if the data is unusable."""
        return self.state.load_xml(data)