"""Shared pieces for VME module unpackers: data containers, word helpers and the base class."""

from __future__ import annotations

import abc
from collections.abc import Sequence
from dataclasses import dataclass, field


def get_long(event: Sequence[int], offset: int) -> int:
    """Combine two little-endian 16-bit words at ``offset`` into a 32-bit value."""
    low = event[offset]
    high = event[offset + 1]
    return low | (high << 16)


def hex_dump(event: Sequence[int], offset: int, count: int, words_per_line: int = 8) -> str:
    """Render ``count`` words starting at ``offset`` as zero-padded hex, ``words_per_line`` per line."""
    parts = []
    for i, word in enumerate(event[offset:offset + count]):
        if i % words_per_line == 0:
            parts.append("\n")
        parts.append(f"{word:04x} ")
    parts.append("\n")
    return "".join(parts)


@dataclass
class AdcData:
    """One value per channel, as produced by an ADC or QDC."""

    name: str
    data: dict[int, int] = field(default_factory=dict)

    def set_data(self, channel: int, value: int) -> None:
        self.data[channel] = value

    def clear(self) -> None:
        self.data.clear()


@dataclass
class TdcData:
    """Any number of calibrated hit times per channel, kept in arrival order."""

    name: str
    hits: dict[int, list[float]] = field(default_factory=dict)

    def set_next_data(self, channel: int, value: float) -> None:
        self.hits.setdefault(channel, []).append(value)

    def clear(self) -> None:
        self.hits.clear()


@dataclass
class SingleHitTdcData:
    """At most one calibrated hit time per channel."""

    name: str
    data: dict[int, float] = field(default_factory=dict)

    def set_data(self, channel: int, value: float) -> None:
        self.data[channel] = value

    def clear(self) -> None:
        self.data.clear()


@dataclass
class TimestampData:
    """Timestamp values indexed by timestamp number."""

    name: str
    values: dict[int, int] = field(default_factory=dict)

    def set_data(self, index: int, value: int) -> None:
        self.values[index] = value

    def clear(self) -> None:
        self.values.clear()


class ModuleUnpacker(abc.ABC):
    """Base class for unpackers that decode one module's chunk of an event."""

    def __init__(self, name: str, vsn: int, module) -> None:
        self.name = name
        self.vsn = vsn
        self.module = module
        self.unpack_error = 0
        self.unpack_error_count = 0

    @abc.abstractmethod
    def unpack(self, event: Sequence[int], offset: int) -> int:
        """Decode data starting at ``offset``; return the offset of the first word not consumed."""

    @abc.abstractmethod
    def decode_vsn(self, header: int) -> int:
        """Extract the virtual slot number from a header longword."""

    @abc.abstractmethod
    def summary(self) -> str:
        """Return a human-readable summary of what was unpacked."""

    def __str__(self) -> str:
        return self.name