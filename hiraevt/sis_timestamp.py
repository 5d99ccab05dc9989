"""Unpacker for the pair of 48-bit timestamps written by a SIS timestamp module."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from .base import ModuleUnpacker, TimestampData

_WORDS = 6


class SisTimestampUnpacker(ModuleUnpacker):
    """Reads two 48-bit timestamps from six consecutive 16-bit words."""

    def __init__(self, description: Mapping) -> None:
        name = description["moduleName"]
        super().__init__(name, -1, TimestampData(name))

    def decode_vsn(self, header: int) -> int:
        return -1

    def unpack(self, event: Sequence[int], offset: int) -> int:
        self.module.clear()
        words = event[offset:offset + _WORDS]
        if len(words) < _WORDS:
            raise ValueError(
                f"timestamp needs {_WORDS} words at offset {offset}, only {len(words)} available"
            )
        low0, mid0, low1, mid1, high0, high1 = words
        self.module.set_data(0, low0 | (mid0 << 16) | (high0 << 32))
        self.module.set_data(1, low1 | (mid1 << 16) | (high1 << 32))
        return offset + _WORDS

    def summary(self) -> str:
        return f"-- module {self.name} --\n\n"