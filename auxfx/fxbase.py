"""Common interface shared by the auxiliary bus effect processors."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator

FRAME_SAMPLES = 160
"""Number of samples per channel handed to an effect on every buffer update."""


class AuxReason(enum.IntEnum):
    """Why an effect callback is invoked."""

    BUFFER_UPDATE = 0
    PARAMETER_UPDATE = 1


def _silence() -> list[int]:
    return [0] * FRAME_SAMPLES


@dataclass
class AuxBuffers:
    """One frame of 32-bit samples for the left, right and surround channels."""

    left: list[int] = field(default_factory=_silence)
    right: list[int] = field(default_factory=_silence)
    surround: list[int] = field(default_factory=_silence)

    @classmethod
    def silent(cls) -> "AuxBuffers":
        """Return a frame of silence on all three channels."""
        return cls()

    @property
    def channels(self) -> tuple[list[int], list[int], list[int]]:
        """The three channel sample lists, in left, right, surround order."""
        return (self.left, self.right, self.surround)


class AuxEffect(ABC):
    """An effect processing the auxiliary send buffers in place."""

    def __init__(self) -> None:
        self.temp_disable_fx = False

    def callback(self, reason: AuxReason | int, buffers: AuxBuffers) -> None:
        """Dispatch an aux callback; unknown reasons raise ValueError."""
        reason = AuxReason(reason)
        if reason is AuxReason.BUFFER_UPDATE and not self.temp_disable_fx:
            self.process(buffers)

    @abstractmethod
    def process(self, buffers: AuxBuffers) -> None:
        """Run the effect over one frame, modifying the buffers in place."""

    @abstractmethod
    def _configure(self) -> bool:
        """Build the working state from the current settings."""

    def _release(self) -> None:
        """Drop the working state; nothing to drop by default."""

    @contextmanager
    def _suspended(self) -> Iterator[None]:
        self.temp_disable_fx = True
        try:
            yield
        finally:
            self.temp_disable_fx = False

    def prepare(self) -> bool:
        """Make the effect ready for processing."""
        self.temp_disable_fx = False
        return self._configure()

    def update_settings(self) -> bool:
        """Apply changed settings while processing is suspended."""
        with self._suspended():
            self._release()
            self._configure()
        return True

    def shutdown(self) -> bool:
        """Release everything the effect holds."""
        self._release()
        return True