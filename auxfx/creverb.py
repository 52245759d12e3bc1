"""Low-cost reverb: two comb filters and two all-pass filters per channel."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from .fxbase import AuxBuffers, AuxEffect

SAMPLE_RATE = 32000
COMB_LENGTHS = (1789, 1999)
ALL_PASS_LENGTHS = (433, 149)
MIN_DAMPING = 0.05
LOWPASS_GAIN = 0.3
OUTPUT_GAIN = 0.6
CHANNELS = 3

_S32_MIN = -(1 << 31)
_S32_MAX = (1 << 31) - 1


def _to_s32(value: float) -> int:
    """Truncate toward zero and saturate to the signed 32-bit range."""
    if math.isnan(value):
        return _S32_MIN
    if value >= _S32_MAX:
        return _S32_MAX
    if value <= _S32_MIN:
        return _S32_MIN
    return int(value)


class DelayLine:
    """A circular sample buffer with independent write and read positions."""

    def __init__(self, length: int) -> None:
        if length <= 0:
            raise ValueError("delay line length must be positive")
        self.length = length
        self.inputs = [0.0] * length
        self.in_point = 0
        self.out_point = 0
        self.last_output = 0.0

    def set_delay(self, lag: int) -> None:
        """Place the read position ``lag`` samples behind the write position."""
        out = self.in_point - lag
        while out < 0:
            out += self.length
        self.out_point = out

    def tick(self, value: float) -> float:
        """Write one sample, read the delayed one and advance both positions."""
        self.inputs[self.in_point] = value
        self.in_point += 1
        if self.in_point == self.length:
            self.in_point = 0
        out = self.inputs[self.out_point]
        self.out_point += 1
        if self.out_point == self.length:
            self.out_point = 0
        self.last_output = out
        return out


def validate_reverb_params(coloration: float, time: float, mix: float,
                           damping: float, pre_delay: float) -> bool:
    """Whether the given settings are within the accepted ranges."""
    return (
        0.0 <= coloration <= 1.0
        and 0.01 <= time <= 10.0
        and 0.0 <= mix <= 1.0
        and 0.0 <= damping <= 1.0
        and 0.0 <= pre_delay <= 0.1
    )


def _make_line(lag: int) -> DelayLine:
    line = DelayLine(lag + 2)
    line.set_delay(lag)
    return line


class _PreDelay:
    """Ring buffer delaying the input ahead of the comb filters."""

    def __init__(self, samples: int) -> None:
        self._buffer = [0.0] * samples
        self._wrap = max(samples - 1, 1)
        self._pos = 0

    def exchange(self, value: float) -> float:
        out = self._buffer[self._pos]
        self._buffer[self._pos] = value
        self._pos += 1
        if self._pos == self._wrap:
            self._pos = 0
        return out


@dataclass
class _ChannelState:
    combs: list[DelayLine]
    all_passes: list[DelayLine]
    lp_last: float = 0.0
    pre_delay: Optional[_PreDelay] = None
    comb_coefs: list[float] = field(default_factory=list)


class ReverbSTD(AuxEffect):
    """Standard reverb applied to the left, right and surround sends."""

    def __init__(self, coloration: float, time: float, mix: float,
                 damping: float, pre_delay: float) -> None:
        super().__init__()
        self.coloration = coloration
        self.time = time
        self.mix = mix
        self.damping = damping
        self.pre_delay = pre_delay
        self._channels: Optional[list[_ChannelState]] = None
        self._all_pass_coeff = 0.0
        self._level = 0.0
        self._damping = 0.0
        self.pre_delay_time = 0

    @property
    def prepared(self) -> bool:
        return self._channels is not None

    def _configure(self) -> bool:
        if not validate_reverb_params(self.coloration, self.time, self.mix,
                                      self.damping, self.pre_delay):
            return False
        coefs = [
            10.0 ** (int(length * -3) / (self.time * SAMPLE_RATE))
            for length in COMB_LENGTHS
        ]
        pre_time = int(self.pre_delay * SAMPLE_RATE) if self.pre_delay != 0.0 else 0
        channels = []
        for _ in range(CHANNELS):
            channels.append(_ChannelState(
                combs=[_make_line(n) for n in COMB_LENGTHS],
                all_passes=[_make_line(n) for n in ALL_PASS_LENGTHS],
                pre_delay=_PreDelay(pre_time) if pre_time > 0 else None,
                comb_coefs=list(coefs),
            ))
        self._all_pass_coeff = self.coloration
        self._level = self.mix
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

    def modify(self, coloration: float, time: float, mix: float,
               damping: float, pre_delay: float) -> bool:
        """Apply new settings and rebuild the state; invalid settings change nothing."""
        if not validate_reverb_params(coloration, time, mix, damping, pre_delay):
            return False
        self.coloration = coloration
        self.time = time
        self.mix = mix
        self.damping = damping
        self.pre_delay = pre_delay
        self._release()
        return self._configure()

    def update_settings(self) -> bool:
        with self._suspended():
            self.modify(self.coloration, self.time, self.mix, self.damping,
                        self.pre_delay)
        return True

    def _process_channel(self, state: _ChannelState, samples: list[int]) -> None:
        ap = self._all_pass_coeff
        damping = self._damping
        wet = self._level * OUTPUT_GAIN
        dry = OUTPUT_GAIN - wet
        comb0, comb1 = state.combs
        coef0, coef1 = state.comb_coefs
        ap0, ap1 = state.all_passes
        lp_last = state.lp_last
        pre = state.pre_delay
        out = []
        for sample in samples:
            x = float(sample)
            d = pre.exchange(x) if pre is not None else x
            s = (comb0.tick(coef0 * comb0.last_output + d)
                 + comb1.tick(coef1 * comb1.last_output + d))

            v = ap * ap0.last_output + s
            s = ap0.last_output - ap * v
            ap0.tick(v)

            s = damping * lp_last + s * LOWPASS_GAIN
            lp_last = s

            v = ap * ap1.last_output + s
            s = ap1.last_output - ap * v
            ap1.tick(v)

            out.append(_to_s32(wet * s + dry * x))
        state.lp_last = lp_last
        samples[:] = out

    def process(self, buffers: AuxBuffers) -> None:
        if self._channels is None:
            raise RuntimeError("reverb is not prepared")
        for state, samples in zip(self._channels, buffers.channels):
            self._process_channel(state, samples)