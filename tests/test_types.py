from fiveparks.types import (
    ModDestination,
    ModSlot,
    ModSource,
    RuntimeParams,
    StereoSample,
)


def test_stereo_sample_defaults_to_silence():
    s = StereoSample()
    assert (s.left, s.right) == (0.0, 0.0)


def test_mod_source_numbering_follows_choice_order():
    assert ModSource(0) is ModSource.NONE
    assert ModSource(3) is ModSource.LFO1
    assert ModSource.VELOCITY == 7
    assert len(ModSource) == 8


def test_mod_destination_numbering_follows_choice_order():
    assert ModDestination(1) is ModDestination.FILTER_CUTOFF
    assert ModDestination.FX_MIX == 8
    assert len(ModDestination) == 9


def test_mod_slot_defaults():
    slot = ModSlot()
    assert slot.source is ModSource.NONE
    assert slot.destination is ModDestination.NONE
    assert slot.amount == 0.0


def test_runtime_params_defaults():
    p = RuntimeParams()
    assert p.play_mode == 2
    assert p.glide_ms == 35.0
    assert p.polyphony == 8
    assert p.osc_b_semi == 7
    assert p.cutoff == 1200.0
    assert p.lfo_rate == [1.0, 0.3, 3.0, 0.11]


def test_runtime_params_matrix_has_six_independent_slots():
    a = RuntimeParams()
    b = RuntimeParams()
    assert len(a.matrix) == 6
    a.matrix[0].amount = 0.5
    a.lfo_amount[1] = 0.9
    assert b.matrix[0].amount == 0.0
    assert a.matrix[1].amount == 0.0
    assert b.lfo_amount[1] == 0.0