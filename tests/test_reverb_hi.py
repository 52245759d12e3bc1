import pytest

from auxfx.fxbase import FRAME_SAMPLES, AuxBuffers, AuxReason
from auxfx.reverb_hi import ReverbHI, cross_talk


def make(**kw):
    params = dict(coloration=0.5, time=2.0, mix=1.0, damping=0.5,
                  pre_delay=0.0, crosstalk=0.0)
    params.update(kw)
    return ReverbHI(**params)


def impulse(value=10000):
    buf = AuxBuffers.silent()
    for ch in buf.channels:
        ch[0] = value
    return buf


@pytest.mark.parametrize("kw", [
    {"coloration": -0.1}, {"coloration": 1.5}, {"time": 0.001}, {"time": 11.0},
    {"mix": 2.0}, {"damping": -1.0}, {"pre_delay": 0.2}, {"crosstalk": 1.5},
])
def test_prepare_rejects_invalid(kw):
    rv = make(**kw)
    assert rv.prepare() is False
    assert rv.prepared is False


def test_process_requires_prepare():
    with pytest.raises(RuntimeError):
        make().process(AuxBuffers.silent())


def test_silence_stays_silent():
    rv = make()
    assert rv.prepare() is True
    buf = AuxBuffers.silent()
    rv.process(buf)
    assert buf.left == [0] * FRAME_SAMPLES
    assert buf.surround == [0] * FRAME_SAMPLES


def test_dry_signal_with_zero_mix():
    rv = make(mix=0.0)
    rv.prepare()
    buf = impulse(1000)
    rv.process(buf)
    assert buf.left[0] == 600
    assert buf.right[0] == buf.left[0]
    assert all(x == 0 for x in buf.left[1:])


def test_wet_tail_arrives_after_comb_delay():
    rv = make(mix=1.0)
    rv.prepare()
    first = impulse()
    rv.process(first)
    assert all(x == 0 for ch in first.channels for x in ch)
    frames = []
    for _ in range(15):
        buf = AuxBuffers.silent()
        rv.process(buf)
        frames.append(buf)
    early = frames[:10]
    assert all(x == 0 for f in early for x in f.left)
    assert any(x != 0 for f in frames for x in f.left)


def test_modify_invalid_keeps_settings():
    rv = make()
    rv.prepare()
    assert rv.modify(0.5, 20.0, 0.5, 0.5, 0.0, 0.0) is False
    assert rv.time == 2.0
    assert rv.prepared is True


def test_modify_valid_sets_pre_delay():
    rv = make()
    rv.prepare()
    assert rv.modify(0.3, 1.0, 0.5, 0.2, 0.01, 0.2) is True
    assert rv.pre_delay_time == 320
    assert rv.crosstalk == 0.2


def test_update_settings_reenables_processing():
    rv = make()
    rv.prepare()
    assert rv.update_settings() is True
    assert rv.temp_disable_fx is False
    assert rv.prepared is True


def test_shutdown_releases_state():
    rv = make()
    rv.prepare()
    assert rv.shutdown() is True
    with pytest.raises(RuntimeError):
        rv.process(AuxBuffers.silent())


def test_callback_parameter_update_leaves_buffers():
    rv = make(mix=0.0)
    rv.prepare()
    buf = impulse(1000)
    rv.callback(AuxReason.PARAMETER_UPDATE, buf)
    assert buf.left[0] == 1000


def test_callback_unknown_reason():
    rv = make()
    rv.prepare()
    with pytest.raises(ValueError):
        rv.callback(99, AuxBuffers.silent())


def test_cross_talk_identity_on_left():
    left = [100, -200, 300]
    right = [50, 60, -70]
    cross_talk(left, right, 0.0, 1.0)
    assert left == [100, -200, 300]
    assert right[0] == 30


def test_cross_talk_swaps_with_full_start():
    left = [100, 200]
    right = [7, 9]
    cross_talk(left, right, 1.0, 0.0)
    assert left == [7, 9]


def test_cross_talk_length_mismatch():
    with pytest.raises(ValueError):
        cross_talk([1, 2], [1], 0.5, 0.5)


def test_crosstalk_applied_in_process_leaves_surround():
    rv = make(mix=0.0, crosstalk=1.0)
    rv.prepare()
    buf = AuxBuffers.silent()
    buf.left[0] = 1000
    buf.surround[0] = 1000
    rv.process(buf)
    assert buf.right[0] != 0
    assert buf.surround[0] == 600
    assert buf.left[0] == buf.surround[0] // 2
    assert buf.right[0] < buf.left[0]