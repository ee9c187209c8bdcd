"""Wavetable bass synthesizer engine: voices, modulation, effects and display data."""

__version__ = "2.0.0"

__all__ = ["types", "dsp", "parameters", "voice", "effects", "processor"]