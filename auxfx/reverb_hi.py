"""High-quality reverb: three comb filters and three all-pass filters per channel."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from .creverb import (
    LOWPASS_GAIN,
    MIN_DAMPING,
    OUTPUT_GAIN,
    SAMPLE_RATE,
    DelayLine,
    _make_line,
    _PreDelay,
    _to_s32,
)
from .fxbase import AuxBuffers, AuxEffect

COMB_LENGTHS = (1789, 1999, 2333)
ALL_PASS_LENGTHS = (433, 149)
FINAL_ALL_PASS_LENGTHS = (47, 73, 67)
CROSSTALK_RIGHT_GAIN = 0.6
CHANNELS = 3

_S32_MIN = -(1 << 31)
_S32_MAX = (1 << 31) - 1


def _round_s32(value: float) -> int:
    """Round to nearest (ties to even) and saturate to the signed 32-bit range."""
    if math.isnan(value):
        return _S32_MIN
    if value >= _S32_MAX:
        return _S32_MAX
    if value <= _S32_MIN:
        return _S32_MIN
    return round(value)


def cross_talk(left: list[int], right: list[int], start: float, end: float) -> None:
    """Blend the left and right channels into each other, in place.

    Left becomes ``left * end + right * start``; right becomes
    ``0.6 * (left * start + right * end)``.
    """
    if len(left) != len(right):
        raise ValueError("left and right channels must have the same length")
    new_left = [_round_s32(l * end + r * start) for l, r in zip(left, right)]
    new_right = [
        _round_s32(CROSSTALK_RIGHT_GAIN * (l * start + r * end))
        for l, r in zip(left, right)
    ]
    left[:] = new_left
    right[:] = new_right


def _validate(coloration: float, time: float, mix: float, damping: float,
              pre_delay: float, crosstalk: float) -> bool:
    return (
        0.0 <= coloration <= 1.0
        and 0.01 <= time <= 10.0
        and 0.0 <= mix <= 1.0
        and 0.0 <= crosstalk <= 1.0
        and 0.0 <= damping <= 1.0
        and 0.0 <= pre_delay <= 0.1
    )


@dataclass
class _ChannelState:
    combs: list[DelayLine]
    all_passes: list[DelayLine]
    lp_last: float = 0.0
    pre_delay: Optional[_PreDelay] = None
    comb_coefs: list[float] = field(default_factory=list)


class ReverbHI(AuxEffect):
    """High-quality reverb with optional left/right crosstalk."""

    def __init__(self, coloration: float, time: float, mix: float, damping: float,
                 pre_delay: float, crosstalk: float) -> None:
        super().__init__()
        self.coloration = coloration
        self.time = time
        self.mix = mix
        self.damping = damping
        self.pre_delay = pre_delay
        self.crosstalk = crosstalk
        self._channels: Optional[list[_ChannelState]] = None
        self._all_pass_coeff = 0.0
        self._level = 0.0
        self._damping = 0.0
        self._crosstalk = 0.0
        self.pre_delay_time = 0

    @property
    def prepared(self) -> bool:
        return self._channels is not None

    def _configure(self) -> bool:
        if not _validate(self.coloration, self.time, self.mix, self.damping,
                         self.pre_delay, self.crosstalk):
            return False
        coefs = [
            10.0 ** ((length * -3) / (SAMPLE_RATE * self.time))
            for length in COMB_LENGTHS
        ]
        pre_time = int(self.pre_delay * SAMPLE_RATE) if self.pre_delay != 0.0 else 0
        channels = []
        for k in range(CHANNELS):
            all_passes = [_make_line(n) for n in ALL_PASS_LENGTHS]
            all_passes.append(_make_line(FINAL_ALL_PASS_LENGTHS[k]))
            channels.append(_ChannelState(
                combs=[_make_line(n) for n in COMB_LENGTHS],
                all_passes=all_passes,
                pre_delay=_PreDelay(pre_time) if pre_time > 0 else None,
                comb_coefs=list(coefs),
            ))
        self._all_pass_coeff = self.coloration
        self._level = self.mix
        self._crosstalk = self.crosstalk
        damping = max(self.damping, MIN_DAMPING)
        self._damping = 1.0 - (damping * 0.8 + 0.05)
        self.pre_delay_time = pre_time
        self._channels = channels
        return True

    def _release(self) -> None:
        self._channels = None

    def prepare(self) -> bool:
        """Build the filter state from the current settings."""
        self.temp_disable_fx = False
        return self._configure()

    def shutdown(self) -> bool:
        """Drop the filter state."""
        self._release()
        return True

    def modify(self, coloration: float, time: float, mix: float, damping: float,
               pre_delay: float, crosstalk: float) -> bool:
        """Apply new settings and rebuild the state; invalid settings change nothing."""
        if not _validate(coloration, time, mix, damping, pre_delay, crosstalk):
            return False
        self.coloration = coloration
        self.time = time
        self.mix = mix
        self.damping = damping
        self.pre_delay = pre_delay
        self.crosstalk = crosstalk
        self._release()
        return self._configure()

    def update_settings(self) -> bool:
        with self._suspended():
            self.modify(self.coloration, self.time, self.mix, self.damping,
                        self.pre_delay, self.crosstalk)
        return True

    def _process_channel(self, state: _ChannelState, samples: list[int]) -> None:
        ap = self._all_pass_coeff
        damping = self._damping
        wet = self._level * OUTPUT_GAIN
        dry = OUTPUT_GAIN - wet
        comb0, comb1, comb2 = state.combs
        coef0, coef1, coef2 = state.comb_coefs
        ap0, ap1, ap2 = state.all_passes
        lp_last = state.lp_last
        pre = state.pre_delay
        out = []
        for sample in samples:
            x = float(sample)
            d = pre.exchange(x) if pre is not None else x
            s = (comb0.tick(coef0 * comb0.last_output + d)
                 + comb1.tick(coef1 * comb1.last_output + d)
                 + comb2.tick(coef2 * comb2.last_output + d))

            v = ap * ap0.last_output + s
            s = ap0.last_output - ap * v
            ap0.tick(v)

            v = ap * ap1.last_output + s
            s = ap1.last_output - ap * v
            ap1.tick(v)

            s = damping * lp_last + s * LOWPASS_GAIN
            lp_last = s

            v = ap * ap2.last_output + s
            s = ap2.last_output - ap * v
            ap2.tick(v)

            out.append(_to_s32(wet * s + dry * x))
        state.lp_last = lp_last
        samples[:] = out

    def process(self, buffers: AuxBuffers) -> None:
        if self._channels is None:
            raise RuntimeError("reverb is not prepared")
        if self._crosstalk != 0.0:
            half = self._crosstalk * 0.5
            cross_talk(buffers.left, buffers.right, half, 1.0 - half)
        for state, samples in zip(self._channels, buffers.channels):
            self._process_channel(state, samples)