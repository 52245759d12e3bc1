"""Three-channel feedback delay effect."""

from __future__ import annotations

from typing import Optional, Sequence

from .fxbase import FRAME_SAMPLES, AuxBuffers, AuxEffect


def _s32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - (1 << 32) if value & 0x80000000 else value


def _triple(values: Sequence[int], name: str) -> list[int]:
    values = list(values)
    if len(values) != 3:
        raise ValueError(f"{name} needs one value per channel (3)")
    return values


class Delay(AuxEffect):
    """Frame-granular delay with feedback, per left, right and surround channel.

    ``delay`` is in milliseconds, ``feedback`` and ``output`` in percent.
    """

    def __init__(self, delay: Sequence[int], feedback: Sequence[int],
                 output: Sequence[int]) -> None:
        super().__init__()
        self.delay = _triple(delay, "delay")
        self.feedback = _triple(feedback, "feedback")
        self.output = _triple(output, "output")
        self._size = [0, 0, 0]
        self._pos = [0, 0, 0]
        self._cur_feedback = [0, 0, 0]
        self._cur_output = [0, 0, 0]
        self._lines: Optional[list[list[int]]] = None

    def process(self, buffers: AuxBuffers) -> None:
        if self._lines is None:
            raise RuntimeError("delay effect is not prepared")
        for ch, (samples, line) in enumerate(zip(buffers.channels, self._lines)):
            start = self._pos[ch] * FRAME_SAMPLES
            stop = start + FRAME_SAMPLES
            held = line[start:stop]
            fb = self._cur_feedback[ch]
            out = self._cur_output[ch]
            line[start:stop] = [
                _s32(x + (_s32(h * fb) >> 7)) for x, h in zip(samples, held)
            ]
            samples[:] = [_s32(h * out) >> 7 for h in held]
            self._pos[ch] = (self._pos[ch] + 1) % self._size[ch]

    def _configure(self) -> bool:
        sizes = [((d - 5) * 32 + 159) // 160 for d in self.delay]
        if any(size < 1 for size in sizes):
            raise ValueError("delay is too short to hold a single frame")
        self._size = sizes
        self._pos = [0, 0, 0]
        self._cur_feedback = [(f << 7) // 100 for f in self.feedback]
        self._cur_output = [(o << 7) // 100 for o in self.output]
        self._lines = [[0] * (size * FRAME_SAMPLES) for size in sizes]
        return True

    def _release(self) -> None:
        self._lines = None

    def prepare(self) -> bool:
        self._lines = None
        return self.update_settings()

    def update_settings(self) -> bool:
        self.shutdown()
        return self._configure()

    def shutdown(self) -> bool:
        self._release()
        return True