"""A single synth voice: oscillators, envelopes, LFOs, filter and character stages."""

from __future__ import annotations

import math

from .dsp import TWO_PI, Envelope, FilterBlock, ShapedLfo, WavetableOscillator
from .types import ModDestination, ModSource, RuntimeParams, StereoSample

HALF_PI = 0.5 * math.pi

_MODE_BOOSTS = {
    1: ("reese", 0.35), 2: ("womp", 0.45), 3: ("screech", 0.55), 4: ("warhorn", 0.55),
    5: ("whoop", 0.45), 6: ("donk", 0.45), 7: ("tear", 0.65), 8: ("laser", 0.60),
    9: ("neuro", 0.55), 10: ("horn_stab", 0.60), 11: ("vapor", 0.50),
}
_NOISE_POSITIONS = {1: 0.68, 2: 0.96, 3: 0.52, 4: 0.84, 5: 0.995, 6: 0.88, 7: 0.14}
_SUB_POSITIONS = {1: 0.35, 2: 0.55, 3: 0.95}


def _clamp(lo: float, hi: float, x: float) -> float:
    return max(lo, min(hi, x))


def _jmap(t: float, a: float, b: float) -> float:
    return a + t * (b - a)


def _round_half_away(x: float) -> int:
    return int(math.floor(x + 0.5)) if x >= 0.0 else -int(math.floor(-x + 0.5))


def _note_random(note: int) -> float:
    seed = math.sin(note * 12.345) * 43758.5453
    return seed - math.floor(seed)


def midi_note_to_hz(note: int) -> float:
    """Equal-tempered frequency of a MIDI note, A4 (69) = 440 Hz."""
    return 440.0 * 2.0 ** ((note - 69) / 12.0)


class Voice:
    """One playing note of the synth."""

    def __init__(self) -> None:
        self._sample_rate = 44100.0
        self._osc_a = WavetableOscillator()
        self._osc_b = WavetableOscillator()
        self._sub = WavetableOscillator()
        self._noise = WavetableOscillator()
        self._extra_a = [WavetableOscillator() for _ in range(4)]
        self._extra_b = [WavetableOscillator() for _ in range(4)]
        self._env1 = Envelope()
        self._env2 = Envelope()
        self._env3 = Envelope()
        self._lfos = [ShapedLfo() for _ in range(4)]
        self._filter = FilterBlock()
        self.reset()

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def midi_note(self) -> int:
        return self._midi_note

    @property
    def age(self) -> int:
        return self._age

    @property
    def velocity(self) -> float:
        return self._velocity

    @property
    def current_hz(self) -> float:
        return self._current_hz

    @property
    def target_hz(self) -> float:
        return self._target_hz

    def _oscillators(self) -> list[WavetableOscillator]:
        return [self._osc_a, self._osc_b, self._sub, self._noise, *self._extra_a, *self._extra_b]

    def prepare(self, sample_rate: float, block_size: int) -> None:
        """Set the sample rate for every component and reset the voice."""
        self._sample_rate = sample_rate
        for osc in self._oscillators():
            osc.prepare(sample_rate)
        for env in (self._env1, self._env2, self._env3):
            env.prepare(sample_rate)
        for lfo in self._lfos:
            lfo.prepare(sample_rate)
        self._filter.prepare(sample_rate)
        self.reset()

    def reset(self) -> None:
        self._active = False
        self._held = False
        self._velocity = 0.0
        self._current_hz = self._target_hz = 110.0
        self._midi_note = -1
        self._age = 0
        self._base_pan = 0.5
        self._release_samples = 0
        self._post_tone = [0.0, 0.0]
        self._warm_tone = [0.0, 0.0]

    def _begin(self, note: int, velocity: float, age: int) -> None:
        self._active = True
        self._held = True
        self._midi_note = note
        self._velocity = velocity
        self._age = age
        self._release_samples = 0
        self._post_tone = [0.0, 0.0]
        self._warm_tone = [0.0, 0.0]

    def _configure_envelopes(self, p: RuntimeParams) -> None:
        self._env1.set(p.env1_a, p.env1_d, p.env1_s, p.env1_r)
        self._env2.set(p.env2_a, p.env2_d, p.env2_s, p.env2_r)
        self._env3.set(p.env3_a, p.env3_d, p.env3_s, p.env3_r)

    def _trigger(self, note: int, p: RuntimeParams) -> float:
        for env in (self._env1, self._env2, self._env3):
            env.note_on()
        rnd = _note_random(note)
        self._osc_a.set_phase(p.osc_a_phase + rnd * p.osc_a_rand)
        self._osc_b.set_phase(p.osc_b_phase + rnd * p.osc_b_rand)
        self._sub.set_phase(0.0)
        self._noise.set_phase(p.noise_phase)
        return rnd

    def start(self, note: int, velocity: float, params: RuntimeParams, age: int) -> None:
        """Start a fresh note, resetting pitch, envelopes and phases."""
        self._begin(note, velocity, age)
        self._target_hz = self._current_hz = midi_note_to_hz(note)
        self._configure_envelopes(params)
        rnd = self._trigger(note, params)
        for i, osc in enumerate(self._extra_a):
            osc.set_phase(params.osc_a_phase + 0.07 * i + rnd * params.osc_a_rand)
        for i, osc in enumerate(self._extra_b):
            osc.set_phase(params.osc_b_phase + 0.05 * i + rnd * params.osc_b_rand)
        self._base_pan = _clamp(0.0, 1.0, 0.5 + (rnd - 0.5) * 0.25)

    def retarget(self, note: int, velocity: float, params: RuntimeParams, age: int,
                 retrigger: bool) -> None:
        """Move a playing voice to a new note, gliding unless retriggered."""
        self._begin(note, velocity, age)
        self._target_hz = midi_note_to_hz(note)
        self._configure_envelopes(params)
        if retrigger:
            self._current_hz = self._target_hz
            self._trigger(note, params)

    def stop(self) -> None:
        """Release the note; the voice frees itself when its envelope ends."""
        self._held = False
        self._release_samples = 0
        for env in (self._env1, self._env2, self._env3):
            env.note_off()

    def force_kill(self) -> None:
        self.reset()

    def _render_stack(self, core: WavetableOscillator, extras: list[WavetableOscillator],
                      base_hz: float, unison: float, detune: float, blend: float,
                      pan: float) -> StereoSample:
        count = int(_clamp(1, 5, _round_half_away(unison)))
        left = right = 0.0
        for i, osc in enumerate([core, *extras][:count]):
            spread = 0.0 if count == 1 else _jmap(i / (count - 1), -1.0, 1.0) * detune * 0.05
            osc.set_frequency(base_hz * (1.0 + spread))
            s = osc.process(spread * 0.1)
            pan_pos = _clamp(0.0, 1.0, pan + spread * 1.2)
            gain = blend if i == 0 else (1.0 - blend) / max(1, count - 1)
            left += s * math.cos(HALF_PI * pan_pos) * gain
            right += s * math.sin(HALF_PI * pan_pos) * gain
        return StereoSample(left, right)

    def _advance_release(self, finished: bool) -> None:
        if not self._held:
            self._release_samples += 1
            if self._release_samples > int(self._sample_rate * 6.0) or finished:
                self.reset()
        else:
            self._release_samples = 0
        if not self._env1.is_active:
            self.reset()

    def render(self, params: RuntimeParams) -> StereoSample:
        """Render one stereo sample; silent if the voice is inactive."""
        if not self._active:
            return StereoSample()
        p = params
        sr = self._sample_rate

        glide = 1.0 if p.glide_ms <= 0.0 else 1.0 - math.exp(-1.0 / (0.001 * p.glide_ms * sr))
        self._current_hz += (self._target_hz - self._current_hz) * glide
        hz = self._current_hz

        env2v = self._env2.next()
        env3v = self._env3.next()
        lfo = [
            l.process(rate, shape, smooth) * amount
            for l, rate, shape, smooth, amount in zip(
                self._lfos, p.lfo_rate, p.lfo_shape, p.lfo_smooth, p.lfo_amount
            )
        ]

        sources = {
            ModSource.ENV2: env2v, ModSource.ENV3: env3v,
            ModSource.LFO1: lfo[0], ModSource.LFO2: lfo[1],
            ModSource.LFO3: lfo[2], ModSource.LFO4: lfo[3],
            ModSource.VELOCITY: self._velocity,
        }
        mods = dict.fromkeys(ModDestination, 0.0)
        for slot in p.matrix:
            if slot.destination in mods:
                mods[slot.destination] += sources.get(slot.source, 0.0) * slot.amount
        mod_cutoff = mods[ModDestination.FILTER_CUTOFF]
        mod_a_pos = mods[ModDestination.OSC_A_POS]
        mod_b_pos = mods[ModDestination.OSC_B_POS]
        mod_pitch = mods[ModDestination.PITCH]
        mod_level = mods[ModDestination.LEVEL]
        mod_pan = mods[ModDestination.PAN]
        mod_dist = mods[ModDestination.DISTORTION]

        boost = dict.fromkeys(
            ("reese", "womp", "screech", "warhorn", "whoop", "donk", "tear",
             "laser", "neuro", "horn_stab", "vapor"), 0.0)
        if p.bass_mode in _MODE_BOOSTS:
            name, amount = _MODE_BOOSTS[p.bass_mode]
            boost[name] = amount

        reese = _clamp(0.0, 1.0, p.reese_amount + boost["reese"])
        womp = _clamp(0.0, 1.0, p.womp_amount + boost["womp"])
        warhorn = _clamp(0.0, 1.0, p.warhorn_amount + boost["warhorn"])
        screech = _clamp(0.0, 1.0, p.screech_amount + boost["screech"] + boost["tear"] * 0.35)
        whoop = _clamp(0.0, 1.0, p.whoop_amount + boost["whoop"])
        donk = _clamp(0.0, 1.0, p.body_amount * 0.35 + boost["donk"])
        laser = _clamp(0.0, 1.0, p.air_amount * 0.25 + p.screech_amount * 0.25 + boost["laser"])
        neuro = _clamp(0.0, 1.0, p.growl_amount * 0.30 + p.motion_amount * 0.25 + boost["neuro"])
        horn_stab = _clamp(0.0, 1.0, p.warhorn_amount * 0.35 + boost["horn_stab"])
        vapor = _clamp(0.0, 1.0, p.smear_amount * 0.30 + p.air_amount * 0.20 + boost["vapor"])

        motion = _clamp(-1.0, 1.0,
                        lfo[0] * (0.45 + 0.9 * p.motion_amount + 0.55 * womp + 0.28 * neuro)
                        + lfo[1] * (0.35 * p.motion_amount + 0.18 * whoop + 0.22 * vapor)
                        + env3v * 0.2 * p.motion_amount)
        pitch_ratio = 2.0 ** (mod_pitch * 0.25 + motion * (0.03 + 0.05 * whoop))
        wobble = 1.0 + (womp * 0.55 + p.motion_amount * 0.25 + whoop * 0.15) * lfo[0]
        scream_warp = 1.0 + screech * 0.04 * (lfo[2] + env2v)
        hz_a = (hz * 2.0 ** ((12 * p.osc_a_oct + p.osc_a_semi) / 12.0)
                * 2.0 ** (p.osc_a_fine / 1200.0) * pitch_ratio * wobble * scream_warp)
        hz_b = (hz * 2.0 ** ((12 * p.osc_b_oct + p.osc_b_semi) / 12.0)
                * 2.0 ** (p.osc_b_fine / 1200.0) * pitch_ratio
                * (1.0 - reese * 0.035 * lfo[1]) * (1.0 - whoop * 0.02 * env2v))
        hz_sub = hz * (0.5 - 0.25 * p.sub_harmonic) * pitch_ratio

        self._osc_a.set_frequency(hz_a)
        self._osc_b.set_frequency(hz_b)
        self._sub.set_frequency(hz_sub)
        self._osc_a.set_position(p.osc_a_pos + mod_a_pos * 0.35
                                 + motion * (0.10 + 0.18 * p.motion_amount)
                                 + screech * 0.12 * lfo[2] + p.vowel_amount * 0.08 * env2v)
        self._osc_b.set_position(p.osc_b_pos + mod_b_pos * 0.35
                                 - motion * (0.12 + 0.20 * p.motion_amount)
                                 + whoop * 0.10 * env3v - p.vowel_amount * 0.06 * lfo[1])
        self._noise.set_frequency(100.0 + p.noise_pitch * 8000.0)
        self._noise.set_position(_NOISE_POSITIONS.get(p.noise_type, 0.72))

        out_a = self._render_stack(
            self._osc_a, self._extra_a, hz_a, p.osc_a_unison + p.combo_amount * 2.0,
            p.osc_a_detune + reese * 0.25, p.osc_a_blend,
            _clamp(0.0, 1.0, p.osc_a_pan + mod_pan * 0.2 - reese * 0.15))
        out_b = self._render_stack(
            self._osc_b, self._extra_b, hz_b, p.osc_b_unison + p.combo_amount * 2.0,
            p.osc_b_detune + reese * 0.25, p.osc_b_blend,
            _clamp(0.0, 1.0, p.osc_b_pan - mod_pan * 0.2 + reese * 0.15))
        mono_a = 0.5 * (out_a.left + out_a.right)
        mono_b = 0.5 * (out_b.left + out_b.right)
        tap_a = math.sin(TWO_PI * (self._osc_a.phase + 0.13))
        tap_b = math.sin(TWO_PI * (self._osc_b.phase - 0.11))

        self._sub.set_position(_SUB_POSITIONS.get(p.sub_wave, 0.05))
        sub_sample = self._sub.process() * p.sub_level
        if p.sub_harmonic > 0.001:
            sub2 = math.sin(self._sub.phase * TWO_PI * 0.5)
            sub_sample += sub2 * (0.55 * p.sub_level * p.sub_harmonic)

        level = p.noise_level
        noise = self._noise.process() * level
        nph = self._noise.phase
        if p.noise_type == 1:
            noise = (0.55 * noise + 0.45 * math.sin(TWO_PI * nph * 12.0)) * level
        elif p.noise_type == 2:
            noise = (0.35 * noise + 0.65 * math.sin(TWO_PI * nph * (21.0 + 7.0 * env3v))) * level
        elif p.noise_type == 3:
            noise = math.tanh((noise + math.sin(TWO_PI * nph * 5.0)) * 2.5) * level
        elif p.noise_type == 4:
            noise = (0.45 * noise + 0.55 * math.sin(
                TWO_PI * (nph + 0.08 * env2v) * (3.0 + 8.0 * p.vowel_amount))) * level
        elif p.noise_type == 5:
            noise = (0.20 * noise + 0.80 * math.sin(TWO_PI * nph * (36.0 + 22.0 * laser))) * level
        elif p.noise_type == 6:
            noise = math.tanh((noise + math.sin(TWO_PI * nph * (9.0 + 6.0 * horn_stab))) * 2.2) * level
        elif p.noise_type == 7:
            noise = (0.75 * noise + 0.25 * math.sin(TWO_PI * nph * 1.1)) * level
        noise_pan_l = math.cos(HALF_PI * p.noise_pan)
        noise_pan_r = math.sin(HALF_PI * p.noise_pan)

        l = out_a.left * p.osc_a_level + out_b.left * p.osc_b_level
        r = out_a.right * p.osc_a_level + out_b.right * p.osc_b_level
        combo_mono = 0.5 * (l + r)
        l += combo_mono * p.combo_amount * 0.35
        r += combo_mono * p.combo_amount * 0.35

        if not p.sub_direct:
            l += sub_sample
            r += sub_sample
        if not p.noise_direct:
            l += noise * noise_pan_l
            r += noise * noise_pan_r

        source_level = p.osc_a_level + p.osc_b_level + p.sub_level + p.noise_level
        presence = _clamp(0.0, 1.0, source_level * 0.45)

        if source_level <= 0.0005:
            self._env1.next()
            self._advance_release(not self._env1.is_active)
            return StereoSample()

        gentle = 1.0 - _clamp(0.0, 1.0, p.tone_amount * 0.55 + p.air_amount * 0.30)
        tone_tilt = 0.18 + p.tone_amount * (1.65 - 0.18)
        tone_sweep = (1.0 + (p.motion_amount * 0.12 + womp * 0.28 + whoop * 0.16) * lfo[2]
                      + p.growl_amount * 0.08 * env2v + p.vowel_amount * 0.14 * env3v)
        cutoff = _clamp(20.0, 18000.0,
                        p.cutoff * tone_tilt * tone_sweep * 2.0 ** (mod_cutoff * 4.0)
                        * (1.0 + (womp * 0.45 + p.motion_amount * 0.20 + whoop * 0.10) * lfo[0]))
        cutoff = min(cutoff, sr * 0.49)
        resonance = _clamp(0.1, 1.15, p.resonance + abs(mod_cutoff) * 0.2)
        self._filter.update(p.filter_mode, cutoff, resonance)

        pre_drive = 1.0 + p.filter_drive * (2.5 + p.growl_amount) + p.tone_amount * 0.45
        l = math.tanh(l * pre_drive)
        r = math.tanh(r * pre_drive)
        filtered = self._filter.process(l, r)
        l = _jmap(p.filter_mix, l, filtered.left)
        r = _jmap(p.filter_mix, r, filtered.right)

        if presence > 0.001 and (warhorn > 0.001 or horn_stab > 0.001):
            horn_mul = 4.0 + 12.0 * (warhorn + 0.5 * horn_stab)
            horn_l = math.sin(l * horn_mul + env2v * 3.0 + motion * 2.0) * 0.35
            horn_r = math.sin(r * horn_mul + env2v * 3.0 - motion * 2.0) * 0.35
            grit = p.fm_amount + screech * 0.20
            l = math.tanh(l + horn_l + grit * (tap_b * 0.08 + mono_b * 0.05))
            r = math.tanh(r + horn_r + grit * (tap_a * 0.08 + mono_a * 0.05))

        if p.growl_amount * presence > 0.001:
            mul = 5.0 + 14.0 * p.growl_amount
            ring_l = math.sin((l + env2v * 0.3) * mul + tap_a * 0.9 + mono_a * 0.5)
            ring_r = math.sin((r + env2v * 0.3) * mul + tap_b * 0.9 + mono_b * 0.5)
            l = _jmap(p.growl_amount * 0.55, l, math.tanh(l + ring_l * 0.45))
            r = _jmap(p.growl_amount * 0.55, r, math.tanh(r + ring_r * 0.45))

        if p.sub_direct:
            l += sub_sample
            r += sub_sample
        if p.noise_direct:
            l += noise * noise_pan_l
            r += noise * noise_pan_r

        dist_drive = (p.dist_drive + mod_dist * 0.18 + warhorn * 0.10 + p.fm_amount * 0.08
                      + p.growl_amount * 0.12 + p.tone_amount * 0.05 + screech * 0.08
                      + whoop * 0.06) * presence
        fold = _clamp(0.0, 1.0, (p.motion_amount * 0.18 + p.growl_amount * 0.12
                                 + warhorn * 0.08) * presence)

        def wave_shape(x: float) -> float:
            clipped = math.tanh(x * (1.0 + dist_drive * 8.0))
            folded = math.sin(x * (2.0 + 14.0 * fold))
            return _jmap(fold, clipped, 0.55 * clipped + 0.45 * folded)

        l = _jmap(p.dist_mix, l, wave_shape(l))
        r = _jmap(p.dist_mix, r, wave_shape(r))

        if laser * presence > 0.001:
            phase = TWO_PI * (self._osc_a.phase * (7.0 + 18.0 * laser) + lfo[2] * 0.2)
            laser_l = math.sin(phase + l * (1.0 + 12.0 * laser))
            laser_r = math.sin(phase * 1.03 + r * (1.0 + 12.0 * laser))
            l = _jmap(0.35 * laser, l, math.tanh(l + laser_l * 0.45))
            r = _jmap(0.35 * laser, r, math.tanh(r + laser_r * 0.45))

        if neuro * presence > 0.001:
            sweep = math.sin((self._osc_a.phase - self._osc_b.phase) * TWO_PI * (2.0 + 10.0 * neuro))
            l = _jmap(0.28 * neuro, l, math.tanh((l + sweep * 0.35) * (1.0 + 2.5 * neuro)))
            r = _jmap(0.28 * neuro, r, math.tanh((r - sweep * 0.35) * (1.0 + 2.5 * neuro)))

        if screech * presence > 0.001:
            mul = 7.0 + 18.0 * screech
            screech_l = math.sin((l + tap_a * 0.18 + mono_a * 0.12) * mul + lfo[3] * 1.6)
            screech_r = math.sin((r + tap_b * 0.18 + mono_b * 0.12) * mul - lfo[3] * 1.6)
            l = _jmap(0.26 * screech, l, math.tanh(l + screech_l * 0.42))
            r = _jmap(0.26 * screech, r, math.tanh(r + screech_r * 0.42))

        if whoop * presence > 0.001 or p.vowel_amount * presence > 0.001:
            form = 0.5 + 0.5 * math.sin(env2v * 4.0 + lfo[0] * (2.0 + 3.0 * whoop))
            whoop_l = math.sin((1.0 + 5.0 * form + 7.0 * p.vowel_amount) * l)
            whoop_r = math.sin((1.0 + 5.0 * (1.0 - form) + 7.0 * p.vowel_amount) * r)
            amount = 0.28 * (whoop + p.vowel_amount)
            l = _jmap(amount, l, l + whoop_l * 0.35)
            r = _jmap(amount, r, r + whoop_r * 0.35)

        body = math.tanh(0.5 * (l + r) * 1.8) * (0.32 * (p.body_amount + donk * 0.5))
        l += body
        r += body

        smear = (math.sin((self._osc_a.phase + self._osc_b.phase) * TWO_PI
                          * (1.0 + 4.0 * p.smear_amount + 6.0 * vapor))
                 * (p.smear_amount + 0.4 * vapor) * 0.14)
        l += smear
        r -= smear
        mid = 0.5 * (l + r)
        side = 0.5 * (l - r) * (0.4 + p.stereo_width * 1.2 + reese * 0.5 + p.smear_amount * 0.35)
        l = mid + side
        r = mid - side
        air = (p.air_amount + 0.16 * (p.tone_amount - 0.5) + 0.14 * laser + 0.10 * vapor) * 0.06 * presence
        l = math.tanh(l + (l - mid) * air)
        r = math.tanh(r + (r - mid) * air)

        smooth = _clamp(0.03, 0.62, 0.10 + p.tone_amount * 0.14 + p.air_amount * 0.08 + laser * 0.05)
        post = self._post_tone
        post[0] += smooth * (l - post[0])
        post[1] += smooth * (r - post[1])
        l = _jmap(0.72 * gentle, l, post[0])
        r = _jmap(0.72 * gentle, r, post[1])

        warmth = _clamp(0.0, 1.0, 0.85 - (p.tone_amount * 0.55 + p.air_amount * 0.35 + laser * 0.18))
        warm_coeff = 0.06 + 0.24 * warmth
        warm = self._warm_tone
        warm[0] += warm_coeff * (l - warm[0])
        warm[1] += warm_coeff * (r - warm[1])
        l = _jmap(0.12 + 0.58 * warmth, l, warm[0])
        r = _jmap(0.12 + 0.58 * warmth, r, warm[1])

        amp = self._env1.next() * self._velocity * _clamp(0.0, 2.0, 1.0 + mod_level * 0.5)
        l *= amp
        r *= amp

        self._advance_release(not self._env1.is_active and abs(l) + abs(r) < 0.00002)
        return StereoSample(l, r)