"""Voice state bookkeeping for the mixing hardware: pitch, envelopes, playback position."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

TIME_SLOTS = 5
"""Sub-frame update slots per audio frame."""

MAX_PITCH = 0x3FFF
MAX_LINEAR_SUSTAIN = 0x7FFF
MAX_DLS_SUSTAIN_INDEX = 0x3FF
ITD_OFF = 0x80000000
NO_VIRTUAL_SAMPLE = 0xFFFFFFFF

CHANGE_VOLUME = 0x001
CHANGE_AUX_A = 0x002
CHANGE_AUX_B = 0x004
CHANGE_PITCH = 0x008
CHANGE_ADSR = 0x010
CHANGE_BREAK = 0x020
CHANGE_KEY_OFF = 0x040
CHANGE_POLYPHASE = 0x080
CHANGE_SRC = 0x100
CHANGE_ITD = 0x200

STATE_INACTIVE = 0
STATE_STARTUP = 1
STATE_PLAYING = 2

_ADPCM_TYPES = (0, 1, 4, 5)
_SRC_TYPES = (0, 1, 2)
_COEF_SELECTS = (0, 1, 2)

_ITD_OFFSETS = (
    0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 0, 1, 1, 1, 1, 1, 1, 1, 2, 2, 2, 2,
    2, 3, 3, 3, 3, 3, 4, 4, 4, 4, 5, 5, 5, 6, 6, 6, 7, 7, 7, 8, 8, 8,
    9, 9, 9, 10, 10, 10, 11, 11, 12, 12, 12, 13, 13, 13, 14, 14, 15, 15, 15, 16, 16, 17,
    17, 17, 18, 18, 19, 19, 19, 20, 20, 20, 21, 21, 22, 22, 22, 23, 23, 23, 24, 24, 24, 25,
    25, 25, 26, 26, 26, 27, 27, 27, 28, 28, 28, 28, 29, 29, 29, 29, 29, 30, 30, 30, 30, 30,
    31, 31, 31, 31, 31, 31, 31, 32, 32, 32, 32, 32, 32, 32, 32, 32, 32, 32,
)


def convert_length(length: int, sample_type: int) -> int:
    """Return the storage size in bytes of ``length`` samples of the given type."""
    if sample_type in _ADPCM_TYPES:
        return ((length + 13) // 14) * 8
    if sample_type in (2, 6):
        return length * 2
    return length


def frq_to_pitch(frq: int, mix_frq: int) -> int:
    """Convert a playback frequency to a 4.12 fixed-point pitch ratio."""
    if mix_frq <= 0:
        raise ValueError("mix frequency must be positive")
    return int(frq * 4096.0 / mix_frq)


def align_stream_flush(offset: int, nbytes: int) -> tuple[int, int]:
    """Widen a stream region to 32-byte alignment; returns (offset, nbytes)."""
    nbytes += offset & 31
    offset &= ~31
    nbytes = (nbytes + 31) & ~31
    return offset, nbytes


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, dict):
        return obj[name]
    return getattr(obj, name)


@dataclass
class Voice:
    """State of one hardware voice as seen by the mixer."""

    state: int = STATE_INACTIVE
    changed: list[int] = field(default_factory=lambda: [0] * TIME_SLOTS)
    pitch: list[int] = field(default_factory=lambda: [0] * TIME_SLOTS)
    last_pitch_update: Optional[int] = None
    prio: int = 0
    user_value: int = 0
    flags: int = 0
    sample_id: int = 0
    sample: Any = None
    adsr_mode: int = 0
    adsr_attack_mode: int = 0
    adsr_attack: int = 0
    adsr_decay: int = 0
    adsr_sustain: int = 0
    adsr_release: int = 0
    src_type_select: int = 0
    src_coef_select: int = 0
    itd_shift_l: int = 16
    itd_shift_r: int = 16
    startup_break: bool = False
    current_addr: int = 0
    virtual_sample_id: int = 0

    @property
    def itd_enabled(self) -> bool:
        return not self.flags & ITD_OFF


class Hardware:
    """A bank of voices with per-sub-frame change tracking."""

    def __init__(self, num_voices: int, mix_frq: int = 32000,
                 time_cents: Optional[Callable[[int], int]] = None,
                 scale_index_table: Optional[Sequence[int]] = None) -> None:
        if num_voices < 0:
            raise ValueError("number of voices must not be negative")
        self.voices = [Voice() for _ in range(num_voices)]
        self.mix_frq = mix_frq
        self.frame = 0
        self.aux_frame = 0
        self._time_offset = 0
        self._time_cents = time_cents
        self._scale_index_table = scale_index_table

    @property
    def time_offset(self) -> int:
        """Current sub-frame slot that changes are recorded in."""
        return self._time_offset

    @time_offset.setter
    def time_offset(self, value: int) -> None:
        if not 0 <= value < TIME_SLOTS:
            raise ValueError(f"time offset must lie in 0..{TIME_SLOTS - 1}")
        self._time_offset = value

    def start_frame(self) -> None:
        """Advance the frame counters and clear all recorded changes."""
        self.frame ^= 1
        self.aux_frame = (self.aux_frame + 1) % 3
        for voice in self.voices:
            voice.changed[:] = [0] * TIME_SLOTS

    def init_sample_playback(self, v: int, sample_id: int, sample: Any,
                             set_default_adsr: bool, prio: int, user_value: int,
                             set_src: bool, itd_mode: bool) -> None:
        """Reset voice ``v`` to play ``sample`` (an object with ``addr`` and ``comp_type``)."""
        voice = self.voices[v]
        pending_break = 0
        for slot in range(self._time_offset + 1):
            pending_break |= voice.changed[slot] & CHANGE_BREAK
            voice.changed[slot] = 0
        voice.changed[0] = pending_break
        voice.prio = prio
        voice.user_value = user_value
        voice.flags = 0
        voice.sample_id = sample_id
        voice.sample = copy.copy(sample)

        if set_default_adsr:
            voice.adsr_mode = 0
            voice.adsr_attack = 0
            voice.adsr_decay = 0
            voice.adsr_sustain = MAX_LINEAR_SUSTAIN
            voice.adsr_release = 0

        voice.last_pitch_update = None

        if set_src:
            self.set_src_type(v, 0)
            self.set_poly_phase_filter(v, 1)
        self.set_itd_mode(v, itd_mode)

    def break_voice(self, v: int) -> None:
        voice = self.voices[v]
        if voice.state == STATE_STARTUP and self._time_offset == 0:
            voice.startup_break = True
        voice.changed[self._time_offset] |= CHANGE_BREAK

    def set_adsr(self, v: int, adsr: Any, mode: int) -> None:
        """Set the envelope: mode 0 linear, 1 DLS in time cents, 2 DLS raw."""
        voice = self.voices[v]
        atime = _field(adsr, "atime")
        dtime = _field(adsr, "dtime")
        slevel = _field(adsr, "slevel")
        rtime = _field(adsr, "rtime")
        if mode == 0:
            voice.adsr_mode = 0
            voice.adsr_attack = atime
            voice.adsr_decay = dtime
            voice.adsr_sustain = min(slevel << 3, MAX_LINEAR_SUSTAIN)
            voice.adsr_release = rtime
        elif mode in (1, 2):
            if mode == 1:
                if self._time_cents is None or self._scale_index_table is None:
                    raise ValueError("time-cent envelopes need a converter and a scale table")
                attack = self._time_cents(atime) & 0xFFFF
                decay = self._time_cents(dtime) & 0xFFFF
                index = min(slevel >> 2, MAX_DLS_SUSTAIN_INDEX)
                sustain = 193 - self._scale_index_table[index]
            else:
                attack = atime & 0xFFFF
                decay = dtime & 0xFFFF
                sustain = slevel
            voice.adsr_mode = 1
            voice.adsr_attack_mode = 0
            voice.adsr_attack = attack
            voice.adsr_decay = decay
            voice.adsr_sustain = sustain
            voice.adsr_release = rtime
        else:
            raise ValueError(f"unknown envelope mode {mode}")
        voice.changed[0] |= CHANGE_ADSR

    def key_off(self, v: int) -> None:
        self.voices[v].changed[self._time_offset] |= CHANGE_KEY_OFF

    def set_pitch(self, v: int, speed: int) -> None:
        voice = self.voices[v]
        speed = min(speed, MAX_PITCH)
        value = speed * 16
        last = voice.last_pitch_update
        if last is not None and voice.pitch[last] == value:
            return
        voice.pitch[self._time_offset] = value
        voice.changed[self._time_offset] |= CHANGE_PITCH
        voice.last_pitch_update = self._time_offset

    def set_src_type(self, v: int, src_type: int) -> None:
        if not 0 <= src_type < len(_SRC_TYPES):
            raise ValueError(f"unknown sample rate converter type {src_type}")
        voice = self.voices[v]
        voice.src_type_select = _SRC_TYPES[src_type]
        voice.changed[0] |= CHANGE_SRC

    def set_poly_phase_filter(self, v: int, coef: int) -> None:
        if not 0 <= coef < len(_COEF_SELECTS):
            raise ValueError(f"unknown filter coefficient set {coef}")
        voice = self.voices[v]
        voice.src_coef_select = _COEF_SELECTS[coef]
        voice.changed[0] |= CHANGE_POLYPHASE

    def set_itd_mode(self, v: int, mode: bool) -> None:
        """Enable or disable interaural time delay on a voice."""
        voice = self.voices[v]
        if not mode:
            voice.flags |= ITD_OFF
            voice.itd_shift_l = 16
            voice.itd_shift_r = 16
        else:
            voice.flags &= ~ITD_OFF

    def setup_itd(self, v: int, pan: int) -> None:
        """Set the left/right delay split for a pan position 0..127."""
        if not 0 <= pan < len(_ITD_OFFSETS):
            raise ValueError("pan must lie in 0..127")
        voice = self.voices[v]
        voice.itd_shift_l = _ITD_OFFSETS[pan]
        voice.itd_shift_r = 32 - _ITD_OFFSETS[pan]
        voice.changed[0] |= CHANGE_ITD

    def get_pos(self, v: int) -> int:
        """Playback position of a playing voice, in samples."""
        voice = self.voices[v]
        if voice.state != STATE_PLAYING:
            return 0
        comp_type = _field(voice.sample, "comp_type")
        addr = _field(voice.sample, "addr")
        current = voice.current_addr
        if comp_type in _ADPCM_TYPES:
            pos = (((current - addr * 2) & 0xFFFFFFFF) // 16) * 14
            off = current & 0xF
            if off >= 2:
                pos += off - 2
        elif comp_type == 3:
            pos = current - addr
        elif comp_type == 2:
            pos = current - addr // 2
        else:
            raise ValueError(f"unknown sample type {comp_type}")
        return pos & 0xFFFFFFFF

    def virtual_sample_id(self, v: int) -> int:
        voice = self.voices[v]
        if voice.state == STATE_INACTIVE:
            return NO_VIRTUAL_SAMPLE
        return voice.virtual_sample_id

    def is_active(self, v: int) -> bool:
        return self.voices[v].state != STATE_INACTIVE

    def in_startup(self, v: int) -> bool:
        return self.voices[v].state == STATE_STARTUP