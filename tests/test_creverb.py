import pytest

from auxfx.creverb import (
    COMB_LENGTHS,
    DelayLine,
    ReverbSTD,
    validate_reverb_params,
)
from auxfx.fxbase import FRAME_SAMPLES, AuxBuffers, AuxReason


def _impulse_response(reverb, frames, amplitude=10000):
    out = []
    for n in range(frames):
        buf = AuxBuffers.silent()
        if n == 0:
            buf.left[0] = amplitude
        reverb.process(buf)
        out.extend(buf.left)
    return out


def _first_nonzero(values):
    return next(i for i, v in enumerate(values) if v != 0)


def test_delay_line_delays_by_lag():
    line = DelayLine(5)
    line.set_delay(3)
    outputs = [line.tick(float(v)) for v in range(1, 9)]
    assert outputs[:3] == [0.0, 0.0, 0.0]
    assert outputs[3:] == [1.0, 2.0, 3.0, 4.0, 5.0]
    assert line.last_output == 5.0


def test_delay_line_set_delay_wraps():
    line = DelayLine(10)
    line.set_delay(4)
    assert line.out_point == 6


def test_delay_line_rejects_empty():
    with pytest.raises(ValueError):
        DelayLine(0)


def test_validate_accepts_range_limits():
    assert validate_reverb_params(0.0, 0.01, 0.0, 0.0, 0.0)
    assert validate_reverb_params(1.0, 10.0, 1.0, 1.0, 0.1)


@pytest.mark.parametrize("args", [
    (-0.1, 1.0, 0.5, 0.5, 0.0),
    (1.1, 1.0, 0.5, 0.5, 0.0),
    (0.5, 0.001, 0.5, 0.5, 0.0),
    (0.5, 11.0, 0.5, 0.5, 0.0),
    (0.5, 1.0, 1.5, 0.5, 0.0),
    (0.5, 1.0, 0.5, -0.5, 0.0),
    (0.5, 1.0, 0.5, 0.5, 0.2),
])
def test_validate_rejects_out_of_range(args):
    assert validate_reverb_params(*args) is False
    assert ReverbSTD(*args).prepare() is False


def test_process_requires_prepare():
    reverb = ReverbSTD(0.5, 1.0, 0.5, 0.5, 0.0)
    with pytest.raises(RuntimeError):
        reverb.process(AuxBuffers.silent())


def test_silence_stays_silent():
    reverb = ReverbSTD(0.5, 2.0, 0.7, 0.3, 0.05)
    assert reverb.prepare() is True
    buf = AuxBuffers.silent()
    reverb.process(buf)
    assert buf.left == [0] * FRAME_SAMPLES
    assert buf.right == [0] * FRAME_SAMPLES
    assert buf.surround == [0] * FRAME_SAMPLES


def test_full_mix_wet_signal_arrives_after_comb_delay():
    reverb = ReverbSTD(0.5, 1.0, 1.0, 0.5, 0.0)
    reverb.prepare()
    response = _impulse_response(reverb, 14)
    assert _first_nonzero(response) == COMB_LENGTHS[0]


def test_pre_delay_postpones_wet_signal():
    plain = ReverbSTD(0.5, 1.0, 1.0, 0.5, 0.0)
    plain.prepare()
    delayed = ReverbSTD(0.5, 1.0, 1.0, 0.5, 0.01)
    delayed.prepare()
    assert delayed.pre_delay_time > 0
    assert _first_nonzero(_impulse_response(delayed, 16)) > \
        _first_nonzero(_impulse_response(plain, 16))


def test_dry_only_output_has_no_memory():
    reverb = ReverbSTD(0.5, 1.0, 0.0, 0.5, 0.0)
    reverb.prepare()
    frame = [(i * 37) % 2000 - 1000 for i in range(FRAME_SAMPLES)]
    results = []
    for _ in range(15):
        buf = AuxBuffers(left=list(frame), right=list(frame), surround=list(frame))
        reverb.process(buf)
        results.append(buf.left)
    assert all(r == results[0] for r in results)
    assert results[0] != frame


def test_all_channels_processed_alike():
    reverb = ReverbSTD(0.3, 1.5, 0.6, 0.2, 0.0)
    reverb.prepare()
    frame = [500 * (i % 7) for i in range(FRAME_SAMPLES)]
    buf = AuxBuffers(left=list(frame), right=list(frame), surround=list(frame))
    reverb.process(buf)
    assert buf.left == buf.right == buf.surround
    assert buf.left != frame


def test_callback_parameter_update_leaves_buffers():
    reverb = ReverbSTD(0.5, 1.0, 0.5, 0.5, 0.0)
    reverb.prepare()
    frame = list(range(FRAME_SAMPLES))
    buf = AuxBuffers(left=list(frame))
    reverb.callback(AuxReason.PARAMETER_UPDATE, buf)
    assert buf.left == frame


def test_callback_rejects_unknown_reason():
    reverb = ReverbSTD(0.5, 1.0, 0.5, 0.5, 0.0)
    reverb.prepare()
    with pytest.raises(ValueError):
        reverb.callback(7, AuxBuffers.silent())


def test_callback_skipped_while_disabled():
    reverb = ReverbSTD(0.5, 1.0, 0.5, 0.5, 0.0)
    reverb.prepare()
    reverb.temp_disable_fx = True
    frame = [1000] * FRAME_SAMPLES
    buf = AuxBuffers(left=list(frame))
    reverb.callback(AuxReason.BUFFER_UPDATE, buf)
    assert buf.left == frame


def test_modify_invalid_keeps_settings():
    reverb = ReverbSTD(0.5, 1.0, 0.5, 0.5, 0.0)
    reverb.prepare()
    assert reverb.modify(0.5, 20.0, 0.5, 0.5, 0.0) is False
    assert reverb.time == 1.0
    assert reverb.prepared


def test_modify_resets_state_like_fresh_effect():
    reverb = ReverbSTD(0.5, 1.0, 1.0, 0.5, 0.0)
    reverb.prepare()
    _impulse_response(reverb, 13)
    assert reverb.modify(0.4, 2.0, 1.0, 0.3, 0.0) is True
    fresh = ReverbSTD(0.4, 2.0, 1.0, 0.3, 0.0)
    fresh.prepare()
    assert _impulse_response(reverb, 14) == _impulse_response(fresh, 14)


def test_update_settings_returns_true_and_reenables():
    reverb = ReverbSTD(0.5, 1.0, 0.5, 0.5, 0.0)
    reverb.prepare()
    reverb.time = 50.0
    assert reverb.update_settings() is True
    assert reverb.temp_disable_fx is False
    assert reverb.prepared


def test_shutdown_releases_state():
    reverb = ReverbSTD(0.5, 1.0, 0.5, 0.5, 0.0)
    reverb.prepare()
    assert reverb.shutdown() is True
    with pytest.raises(RuntimeError):
        reverb.process(AuxBuffers.silent())