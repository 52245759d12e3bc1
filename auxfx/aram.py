"""Audio RAM manager: sample storage, DMA transfer queues and stream buffers."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Optional

ZERO_BUFFER_BYTES = 2 * 640
QUEUE_DEPTH = 16
STREAM_BUFFER_SLOTS = 64
INVALID_STREAM_ID = 0xFF
DEFAULT_ARAM_SIZE = 16 * 1024 * 1024
DEFAULT_ARQ_CHUNK_SIZE = 4096

TransferCallback = Callable[[Any], None]
UploadCallback = Callable[[int, int], bytes]


def _align32(n: int) -> int:
    return (n + 31) & ~31


class AramError(Exception):
    """Raised when an audio RAM operation cannot be carried out."""


@dataclass
class _TransferJob:
    data: bytes
    dest: int
    callback: Optional[TransferCallback]
    user: Any


class TransferQueue:
    """A bounded queue of pending transfers into audio RAM."""

    def __init__(self, memory: bytearray, high_priority: bool = False,
                 depth: int = QUEUE_DEPTH) -> None:
        self._memory = memory
        self.high_priority = high_priority
        self._depth = depth
        self._jobs: deque[_TransferJob] = deque()

    def __len__(self) -> int:
        return len(self._jobs)

    @property
    def full(self) -> bool:
        return len(self._jobs) >= self._depth

    def post(self, source, dest: int, length: int,
             callback: Optional[TransferCallback] = None, user: Any = 0) -> None:
        """Queue a copy of ``length`` bytes of ``source`` to address ``dest``."""
        if self.full:
            raise AramError("transfer queue is full")
        if dest < 0 or length < 0 or dest + length > len(self._memory):
            raise AramError("transfer lies outside audio RAM")
        data = bytes(source[:length]).ljust(length, b"\0")
        self._jobs.append(_TransferJob(data, dest, callback, user))

    def complete(self) -> None:
        """Carry out the oldest pending transfer and notify its owner."""
        if not self._jobs:
            raise AramError("no transfer pending")
        job = self._jobs.popleft()
        self._memory[job.dest:job.dest + len(job.data)] = job.data
        if job.callback is not None:
            job.callback(job.user)


@dataclass
class _StreamBuffer:
    aram: int = 0
    length: int = 0
    alloc_length: int = 0


class Aram:
    """Audio RAM: samples grow upwards, stream buffers grow downwards from the top."""

    def __init__(self, length: int, base: int = 0, size: int = DEFAULT_ARAM_SIZE,
                 arq_chunk_size: int = DEFAULT_ARQ_CHUNK_SIZE) -> None:
        if length <= ZERO_BUFFER_BYTES:
            raise AramError("ARAM size is too small")
        self.base = base
        self.size = size
        self.memory = bytearray(size)
        self._arq_chunk_size = arq_chunk_size
        self._lo = TransferQueue(self.memory, high_priority=False)
        self._hi = TransferQueue(self.memory, high_priority=True)
        self.upload(bytes(ZERO_BUFFER_BYTES), base, ZERO_BUFFER_BYTES)
        self.sync()
        self.top = min(base + length, size)
        self.write_address = base + ZERO_BUFFER_BYTES
        self._upload_callback: Optional[UploadCallback] = None
        self.chunk_size = 0
        self._slots = [_StreamBuffer() for _ in range(STREAM_BUFFER_SLOTS)]
        self._used: list[int] = []
        self._free: list[int] = []
        self._idle: list[int] = list(range(STREAM_BUFFER_SLOTS))
        self.stream_address = self.top

    @property
    def zero_buffer(self) -> int:
        """Address of the block of silence at the start of audio RAM."""
        return self.base

    def upload(self, source, dest: int, length: int, high_priority: bool = False,
               callback: Optional[TransferCallback] = None, user: Any = 0) -> None:
        """Queue a transfer, finishing older ones first if the queue is full."""
        queue = self._hi if high_priority else self._lo
        while queue.full:
            queue.complete()
        queue.post(source, dest, length, callback, user)

    def sync(self) -> None:
        """Finish every pending low-priority transfer."""
        while self._lo:
            self._lo.complete()

    def set_upload_callback(self, callback: Optional[UploadCallback],
                            chunk_size: int) -> None:
        """Fetch sample data through ``callback`` in chunks instead of directly."""
        if callback is not None:
            self.chunk_size = max(_align32(chunk_size), self._arq_chunk_size)
        self._upload_callback = callback

    def store_data(self, source, length: int) -> int:
        """Store sample data and return its audio RAM address.

        Without an upload callback ``source`` holds the bytes; with one it is
        the position handed to the callback, advanced chunk by chunk.
        """
        length = _align32(length)
        if self.write_address + length > self.stream_address:
            raise AramError("Data will not fit in remaining ARAM space")
        address = self.write_address
        if self._upload_callback is None:
            self.upload(source, self.write_address, length)
            self.write_address += length
            return address

        position = source
        remaining = length
        while remaining:
            block = min(remaining, self.chunk_size)
            data = self._upload_callback(position, block)
            self.upload(data, self.write_address, block)
            remaining -= block
            self.write_address += block
            position += block
        return address

    def remove_data(self, address: int, length: int) -> None:
        """Release the most recently stored block of sample data."""
        expected = self.write_address - _align32(length)
        if address != expected:
            raise AramError("Current ARAM address does not match originally allocated one")
        self.write_address = expected

    def _slot(self, buffer_id: int) -> _StreamBuffer:
        if buffer_id == INVALID_STREAM_ID or not 0 <= buffer_id < STREAM_BUFFER_SLOTS:
            raise AramError("Stream buffer ID is invalid")
        return self._slots[buffer_id]

    def allocate_stream_buffer(self, length: int) -> int:
        """Reserve a stream buffer of at least ``length`` bytes and return its id."""
        length = _align32(length)
        chosen: Optional[int] = None
        best: Optional[int] = None
        for idx in self._free:
            alloc = self._slots[idx].alloc_length
            if alloc == length:
                chosen = idx
                break
            if alloc > length and (best is None or alloc < self._slots[best].alloc_length):
                best = idx
        if chosen is None:
            chosen = best

        if chosen is None:
            if not self._idle or self.stream_address - length < self.write_address:
                raise AramError("No stream buffer slots available or ARAM")
            chosen = self._idle.pop(0)
            slot = self._slots[chosen]
            slot.alloc_length = slot.length = length
            self.stream_address -= length
            slot.aram = self.stream_address
        else:
            self._free.remove(chosen)
            self._slots[chosen].length = length

        self._used.insert(0, chosen)
        return chosen

    def stream_buffer_address(self, buffer_id: int) -> int:
        return self._slot(buffer_id).aram

    def stream_buffer_length(self, buffer_id: int) -> int:
        return self._slot(buffer_id).length

    def free_stream_buffer(self, buffer_id: int) -> None:
        """Return a stream buffer; the lowest one gives its space back."""
        slot = self._slot(buffer_id)
        if buffer_id in self._used:
            self._used.remove(buffer_id)

        if slot.aram != self.stream_address:
            self._free.insert(0, buffer_id)
            return

        self._idle.insert(0, buffer_id)
        min_addr = min((self._slots[i].aram for i in self._used), default=None)
        for idx in list(self._free):
            if min_addr is None or self._slots[idx].aram < min_addr:
                self._free.remove(idx)
                self._idle.insert(0, idx)
        self.stream_address = self.top if min_addr is None else min_addr