"""Chorus effect: a short delay whose read position drifts with a slowly swept pitch."""

from __future__ import annotations

from typing import Optional

from .creverb import _to_s32
from .fxbase import FRAME_SAMPLES, AuxBuffers, AuxEffect

HISTORY_FRAMES = 3
RING_SAMPLES = HISTORY_FRAMES * FRAME_SAMPLES
MIN_BASE_DELAY = 5
MAX_BASE_DELAY = 15
MIN_PERIOD = 5

_U32_MAX = 0xFFFFFFFF

# First half of the 4-tap interpolation table, indexed by the top 7 bits of the
# fractional read position; the second half mirrors it.
_HALF_TABLE = (
    (0.097503662109, 0.802215576172, 0.101593017578, -0.000976562500),
    (0.093505859375, 0.802032470703, 0.105804443359, -0.001037597656),
    (0.089599609375, 0.801696777344, 0.110107421875, -0.001159667969),
    (0.085784912109, 0.801177978516, 0.114471435547, -0.001281738281),
    (0.082031250000, 0.800476074219, 0.118927001953, -0.001403808594),
    (0.078369140625, 0.799621582031, 0.123474121094, -0.001525878906),
    (0.074798583984, 0.798614501953, 0.128143310547, -0.001647949219),
    (0.071350097656, 0.797424316406, 0.132873535156, -0.001770019531),
    (0.067962646484, 0.796051025391, 0.137695312500, -0.001922607422),
    (0.064697265625, 0.794525146484, 0.142608642578, -0.002044677734),
    (0.061492919922, 0.792846679688, 0.147613525391, -0.002197265625),
    (0.058349609375, 0.790985107422, 0.152709960938, -0.002319335938),
    (0.055328369141, 0.788940429688, 0.157897949219, -0.002471923828),
    (0.052368164062, 0.786743164062, 0.163177490234, -0.002655029297),
    (0.049499511719, 0.784423828125, 0.168518066406, -0.002807617188),
    (0.046722412109, 0.781890869141, 0.173980712891, -0.002990722656),
    (0.044006347656, 0.779205322266, 0.179504394531, -0.003143310547),
    (0.041412353516, 0.776367187500, 0.185119628906, -0.003326416016),
    (0.038879394531, 0.773376464844, 0.190826416016, -0.003509521484),
    (0.036407470703, 0.770233154297, 0.196594238281, -0.003692626953),
    (0.034027099609, 0.766937255859, 0.202484130859, -0.003875732422),
    (0.031738281250, 0.763488769531, 0.208435058594, -0.004058837891),
    (0.029510498047, 0.759857177734, 0.214447021484, -0.004272460938),
    (0.027374267578, 0.756103515625, 0.220550537109, -0.004455566406),
    (0.025299072266, 0.752197265625, 0.226745605469, -0.004669189453),
    (0.023315429688, 0.748168945312, 0.233001708984, -0.004852294922),
    (0.021392822266, 0.743988037109, 0.239318847656, -0.005065917969),
    (0.019561767578, 0.739654541016, 0.245727539062, -0.005310058594),
    (0.017791748047, 0.735198974609, 0.252197265625, -0.005523681641),
    (0.016052246094, 0.730590820312, 0.258728027344, -0.005706787109),
    (0.014404296875, 0.725860595703, 0.265350341797, -0.005920410156),
    (0.012817382812, 0.721008300781, 0.272033691406, -0.006164550781),
    (0.011322021484, 0.716003417969, 0.278778076172, -0.006378173828),
    (0.009887695312, 0.710906982422, 0.285583496094, -0.006561279297),
    (0.008514404297, 0.705657958984, 0.292449951172, -0.006774902344),
    (0.007202148438, 0.700317382812, 0.299346923828, -0.007019042969),
    (0.005920410156, 0.694854736328, 0.306335449219, -0.007232666016),
    (0.004699707031, 0.689270019531, 0.313385009766, -0.007415771484),
    (0.003570556641, 0.683563232422, 0.320465087891, -0.007629394531),
    (0.002471923828, 0.677734375000, 0.327606201172, -0.007873535156),
    (0.001434326172, 0.671844482422, 0.334777832031, -0.008087158203),
    (0.000457763672, 0.665832519531, 0.341979980469, -0.008270263672),
    (-0.000488281250, 0.659729003906, 0.349243164062, -0.008453369141),
    (-0.001342773438, 0.653533935547, 0.356567382812, -0.008636474609),
    (-0.002166748047, 0.647216796875, 0.363891601562, -0.008850097656),
    (-0.002960205078, 0.640838623047, 0.371276855469, -0.009033203125),
    (-0.003692626953, 0.634338378906, 0.378692626953, -0.009216308594),
    (-0.004364013672, 0.627777099609, 0.386138916016, -0.009338378906),
    (-0.004974365234, 0.621154785156, 0.393615722656, -0.009490966797),
    (-0.005584716797, 0.614440917969, 0.401092529297, -0.009643554688),
    (-0.006134033203, 0.607635498047, 0.408599853516, -0.009796142578),
    (-0.006652832031, 0.600769042969, 0.416107177734, -0.009918212891),
    (-0.007141113281, 0.593841552734, 0.423645019531, -0.010009765625),
    (-0.007568359375, 0.586853027344, 0.431213378906, -0.010131835938),
    (-0.007965087891, 0.579772949219, 0.438751220703, -0.010223388672),
    (-0.008331298828, 0.572662353516, 0.446319580078, -0.010284423828),
    (-0.008666992188, 0.565521240234, 0.453887939453, -0.010345458984),
    (-0.008972167969, 0.558319091797, 0.461456298828, -0.010406494141),
    (-0.009216308594, 0.551055908203, 0.469024658203, -0.010406494141),
    (-0.009460449219, 0.543731689453, 0.476593017578, -0.010406494141),
    (-0.009674072266, 0.536407470703, 0.484130859375, -0.010375976562),
    (-0.009857177734, 0.529022216797, 0.491668701172, -0.010375976562),
    (-0.010009765625, 0.521606445312, 0.499176025391, -0.010314941406),
    (-0.010131835938, 0.514160156250, 0.506683349609, -0.010253906250),
)

RESAMPLE_TABLE: tuple[tuple[float, float, float, float], ...] = _HALF_TABLE + tuple(
    tuple(reversed(entry)) for entry in reversed(_HALF_TABLE)
)
"""128 sets of 4 interpolation weights, from oldest to newest sample."""


def _resample(ring: list[int], dest: list[int], old: list[int], pos_hi: int,
              pos_lo: int, step_hi: int, step_lo: int) -> tuple[int, int]:
    """Read one frame from ``ring`` at a fixed-point rate into ``dest``.

    ``old`` holds the three samples preceding the read position and is updated.
    Returns the new integer and fractional read positions.
    """
    f1, f2, f3 = old
    f4 = ring[pos_hi]
    out = []
    for _ in range(len(dest)):
        t0, t1, t2, t3 = RESAMPLE_TABLE[pos_lo >> 25]
        out.append(_to_s32(f1 * t0 + f2 * t1 + f3 * t2 + f4 * t3))
        pos_lo += step_lo
        advance = step_hi
        if pos_lo > _U32_MAX:
            pos_lo &= _U32_MAX
            advance += 1
        for _ in range(advance):
            pos_hi += 1
            if pos_hi == RING_SAMPLES:
                pos_hi = 0
            f1, f2, f3, f4 = f2, f3, f4, ring[pos_hi]
    dest[:] = out
    old[:] = [f1, f2, f3]
    return pos_hi, pos_lo


class Chorus(AuxEffect):
    """Chorus on the left, right and surround sends.

    ``base_delay`` is in milliseconds (5..15), ``variation`` is the pitch sweep
    depth and ``period`` the sweep period in milliseconds.
    """

    def __init__(self, base_delay: int, variation: int, period: int) -> None:
        super().__init__()
        self.base_delay = base_delay
        self.variation = variation
        self.period = period
        self._rings: Optional[list[list[int]]] = None
        self._old = [[0, 0, 0] for _ in range(3)]
        self._current_last = 1
        self._pos_hi = 0
        self._pos_lo = 0
        self._pitch_offset = 0
        self._period_frames = 0
        self._period_count = 0

    @property
    def prepared(self) -> bool:
        return self._rings is not None

    @property
    def delay_position(self) -> int:
        """Integer read position in the three-frame history ring."""
        return self._pos_hi

    @property
    def pitch_offset(self) -> int:
        """Current pitch deviation from unity, in 1/65536 steps."""
        return self._pitch_offset

    @property
    def pitch_offset_period(self) -> int:
        """Number of frames between two sign changes of the pitch deviation, doubled."""
        return self._period_frames

    def _configure(self) -> bool:
        if not MIN_BASE_DELAY <= self.base_delay <= MAX_BASE_DELAY:
            raise ValueError(
                f"base delay must lie in {MIN_BASE_DELAY}..{MAX_BASE_DELAY} ms")
        if self.variation < 0:
            raise ValueError("variation must not be negative")
        if self.period < MIN_PERIOD:
            raise ValueError(f"period must be at least {MIN_PERIOD} ms")
        frames = (self.period // 5 + 1) & ~1
        pos = 0x140 - ((self.base_delay - 5) << 5)
        pos = ((pos + (self._current_last - 1) * FRAME_SAMPLES) & _U32_MAX) % RING_SAMPLES
        self._pos_hi = pos
        self._pos_lo = 0
        self._period_frames = frames
        self._period_count = frames >> 1
        self._pitch_offset = (self.variation << 16) // (frames * 5)
        return True

    def _release(self) -> None:
        self._rings = None

    def prepare(self) -> bool:
        self.temp_disable_fx = False
        self._rings = [[0] * RING_SAMPLES for _ in range(3)]
        self._current_last = 1
        self._old = [[0, 0, 0] for _ in range(3)]
        try:
            return self._configure()
        except ValueError:
            self._rings = None
            raise

    def update_settings(self) -> bool:
        return self._configure()

    def shutdown(self) -> bool:
        """Release the history buffers."""
        self._release()
        return True

    def process(self, buffers: AuxBuffers) -> None:
        if self._rings is None:
            raise RuntimeError("chorus is not prepared")
        channels = buffers.channels
        if any(len(samples) != FRAME_SAMPLES for samples in channels):
            raise ValueError(f"each channel must hold {FRAME_SAMPLES} samples")

        nxt = (self._current_last + 1) % HISTORY_FRAMES
        start = nxt * FRAME_SAMPLES
        for ring, samples in zip(self._rings, channels):
            ring[start:start + FRAME_SAMPLES] = samples

        step_hi = (self._pitch_offset >> 16) + 1
        step_lo = (self._pitch_offset & 0xFFFF) << 16
        self._period_count -= 1
        if self._period_count == 0:
            self._period_count = self._period_frames
            self._pitch_offset = -self._pitch_offset

        pos_hi, pos_lo = self._pos_hi, self._pos_lo
        if step_hi in (0, 1):
            for ring, samples, old in zip(self._rings, channels, self._old):
                pos_hi, pos_lo = _resample(ring, samples, old, self._pos_hi,
                                           self._pos_lo, step_hi, step_lo)
        self._pos_hi = pos_hi % RING_SAMPLES
        self._pos_lo = pos_lo
        self._current_last = nxt