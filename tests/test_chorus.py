import pytest

from auxfx.chorus import Chorus
from auxfx.fxbase import AuxBuffers, AuxReason


def _frame(values):
    return AuxBuffers(list(values), list(values), list(values))


def _prepared(base_delay=5, variation=0, period=500):
    chorus = Chorus(base_delay, variation, period)
    assert chorus.prepare() is True
    return chorus


def test_initial_delay_position():
    assert _prepared(base_delay=5).delay_position == 0x140


def test_delay_position_moves_with_base_delay():
    assert _prepared(base_delay=5).delay_position - _prepared(base_delay=6).delay_position == 32


def test_pitch_offset_period_is_even_and_positive():
    for period in (5, 9, 123, 500, 10000):
        chorus = _prepared(variation=3, period=period)
        assert chorus.pitch_offset_period > 0
        assert chorus.pitch_offset_period % 2 == 0
        assert chorus.pitch_offset > 0


@pytest.mark.parametrize("args", [(4, 0, 500), (16, 0, 500), (5, -1, 500), (5, 0, 4)])
def test_invalid_settings_raise(args):
    chorus = Chorus(*args)
    with pytest.raises(ValueError):
        chorus.prepare()
    assert not chorus.prepared


def test_process_requires_prepare():
    with pytest.raises(RuntimeError):
        Chorus(5, 0, 500).process(AuxBuffers.silent())


def test_shutdown_releases_state():
    chorus = _prepared()
    assert chorus.shutdown() is True
    assert not chorus.prepared
    with pytest.raises(RuntimeError):
        chorus.process(AuxBuffers.silent())


def test_wrong_frame_length_raises():
    chorus = _prepared()
    with pytest.raises(ValueError):
        chorus.process(AuxBuffers([0] * 10, [0] * 160, [0] * 160))


def test_silence_stays_silent():
    chorus = _prepared(variation=2)
    for _ in range(5):
        buf = AuxBuffers.silent()
        chorus.process(buf)
        assert buf.left == [0] * 160
        assert buf.right == [0] * 160
        assert buf.surround == [0] * 160


def test_constant_input_settles_to_constant():
    chorus = _prepared(variation=2, period=500)
    for _ in range(8):
        buf = _frame([10000] * 160)
        chorus.process(buf)
    for samples in buf.channels:
        assert all(abs(v - 10000) <= 50 for v in samples)


def test_impulse_is_delayed_and_preserved():
    chorus = _prepared(variation=0)
    first = [0] * 160
    first[10] = 10000
    buf1 = _frame(first)
    chorus.process(buf1)
    buf2 = AuxBuffers.silent()
    chorus.process(buf2)
    out = buf1.left + buf2.left
    peak = max(range(len(out)), key=lambda i: out[i])
    assert 10 < peak < 14
    assert out[peak] > 7500
    assert 9950 <= sum(out) <= 10050


def test_identical_channels_give_identical_output():
    chorus = _prepared(variation=4, period=300)
    for n in range(4):
        buf = _frame([(i * 37 + n * 11) % 2000 - 1000 for i in range(160)])
        chorus.process(buf)
        assert buf.left == buf.right == buf.surround


def test_processing_is_deterministic():
    a = _prepared(variation=3, period=700)
    b = _prepared(variation=3, period=700)
    for n in range(5):
        data = [(i * 91 + n * 7) % 4000 - 2000 for i in range(160)]
        buf_a = _frame(data)
        buf_b = _frame(data)
        a.process(buf_a)
        b.process(buf_b)
        assert buf_a.channels == buf_b.channels


def test_pitch_offset_flips_after_half_period():
    chorus = _prepared(variation=3, period=500)
    initial = chorus.pitch_offset
    half = chorus.pitch_offset_period // 2
    for _ in range(half - 1):
        chorus.process(AuxBuffers.silent())
    assert chorus.pitch_offset == initial
    chorus.process(AuxBuffers.silent())
    assert chorus.pitch_offset == -initial


def test_unsupported_pitch_leaves_buffers_untouched():
    chorus = _prepared(variation=20, period=5)
    data = [(i * 13) % 500 for i in range(160)]
    buf = _frame(data)
    chorus.process(buf)
    assert buf.left == data
    assert buf.right == data
    assert buf.surround == data


def test_update_settings_resets_position():
    chorus = _prepared(variation=2)
    start = chorus.delay_position
    chorus.process(AuxBuffers.silent())
    assert chorus.update_settings() is True
    assert chorus.delay_position != start or chorus.pitch_offset > 0
    chorus.base_delay = 7
    chorus.update_settings()
    assert (chorus.delay_position - _prepared(base_delay=7).delay_position) % 160 == 0


def test_parameter_update_callback_leaves_buffers():
    chorus = _prepared()
    data = [5] * 160
    buf = _frame(data)
    chorus.callback(AuxReason.PARAMETER_UPDATE, buf)
    assert buf.left == data


def test_unknown_callback_reason_raises():
    chorus = _prepared()
    with pytest.raises(ValueError):
        chorus.callback(7, AuxBuffers.silent())