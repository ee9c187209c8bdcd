# fiveparks

A wavetable bass synthesizer engine written in plain Python. It has:

- up to sixteen voices, with Mono, Legato and Poly play modes, glide and a
  sustain pedal;
- per voice, two morphing wavetable oscillators with up to five unison layers,
  a sub oscillator and a tonal noise layer;
- a state-variable filter (low-pass, band-pass, high-pass), three envelopes,
  four shaped LFOs and a six-slot modulation matrix;
- a bass "macro" engine (reese, womp, screech, warhorn, whoop, donk, tearout,
  laser, neuro, horn stab, vapor) with body, growl, tone, motion, air, vowel and
  smear controls;
- a chorus, delay, compressor/soft clipper and reverb on the output;
- scope, spectrum and LFO preview data for drawing displays.

Audio is rendered one block at a time into Python lists of floats.

## Installation

```
pip install .
```

Running the tests:

```
pip install .[test]
pytest
```

## Usage

```python
from fiveparks.processor import MessageKind, MidiMessage, SynthProcessor

synth = SynthProcessor()
synth.prepare_to_play(44100.0, 512)

# MIDI data values are 7-bit integers (0..127).
left, right = synth.process_block(512, [MidiMessage(MessageKind.NOTE_ON, note=36, velocity=110)])

# Keep rendering while the note is held.
for _ in range(20):
    left, right = synth.process_block(512)

# Release it.
left, right = synth.process_block(512, [MidiMessage(MessageKind.NOTE_OFF, note=36)])
print(synth.meter_level)
```

`process_block(num_samples, midi)` handles the block's messages first, then
returns a `(left, right)` pair of lists. It raises `RuntimeError` if
`prepare_to_play` has not been called.

The processor reacts to these messages:

- `NOTE_ON` with a velocity above 0 starts a note (velocity is scaled to 0..1);
- `NOTE_OFF`, or `NOTE_ON` with velocity 0, releases it;
- `CONTROLLER` 64 is the sustain pedal (down at value 64 or more);
- `CONTROLLER` 120 (all sound off) and 123 (all notes off) stop every voice.

Notes can also be driven directly with `note_on(note, velocity)`,
`note_off(note)`, `handle_sustain_pedal(down)` and `all_notes_off(hard_reset)`.

### Parameters

Parameter values live in `synth.state`, a `fiveparks.parameters.ParameterState`
built from `create_parameters()`. They are addressed by identifier, for example
`"filter_cutoff"`, `"bass_mode"`, `"oscA_unison"` or `"mod1_amt"`. Choice
parameters hold the index of the chosen item. `set_value` clamps to the
parameter's range (and snaps choices and switches); unknown identifiers raise
`KeyError`.

```python
synth.state.set_value("bass_mode", 2)          # Womp
synth.state.set_value("filter_cutoff", 800.0)
synth.state.set_value("mod1_src", 3)           # LFO1
synth.state.set_value("mod1_dst", 1)           # filter cutoff
synth.state.set_value("mod1_amt", 0.5)
print(synth.matrix_summary())
```

`synth.runtime_params()` returns the `fiveparks.types.RuntimeParams` snapshot the
voices read while rendering.

The full state can be saved and restored as XML bytes:

```python
saved = synth.get_state()
ok = synth.set_state(saved)   # False, with the state unchanged, if the data is unusable
```

### Displays

- `synth.scope_data()` – 512 samples read from the output scope ring (mono).
- `synth.analyzer_data()` – 128 spectrum levels in decibels (floor at -100 dB),
  updated every 1024 output samples.
- `synth.lfo_shape()` – 128 points of LFO 1's current shape, refreshed after
  each block.

### Building blocks

The lower-level pieces can be used on their own:

- `fiveparks.types` – `StereoSample`, `ModSource`, `ModDestination`, `ModSlot`,
  `RuntimeParams`;
- `fiveparks.dsp` – `WavetableOscillator`, `Envelope`, `ShapedLfo`,
  `StateVariableFilter`, `FilterBlock`, `lfo_shape_value`;
- `fiveparks.voice` – `Voice` and `midi_note_to_hz`;
- `fiveparks.effects` – `Reverb`, `ReverbParameters`, `ScopeRing`,
  `SpectrumAnalyzer`, `preview_lfo_shape`.

## What it does not do

This is an engine only. It has no graphical editor, does not load as a plugin
in a host, does not open audio or MIDI devices and does not write audio files;
the caller feeds it `MidiMessage` objects and does what it likes with the
returned samples.