"""Unpacker for Mesytec MADC-32 digitizers."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from .base import AdcData, ModuleUnpacker, get_long

log = logging.getLogger(__name__)

ALL_TYPEMASK = 0xC0000000
ALL_TYPESHFT = 30

TYPE_HEADER = 1
TYPE_DATA = 0
TYPE_TRAILER = 3

HDR_COUNTMASK = 0x7FF
HDR_IDMASK = 0x00FF0000
HDR_IDSHFT = 16

DATA_VALUEMASK = 0x1FFF
DATA_ISOVERFLOW = 0x4000
DATA_CHANNELMASK = 0x001F0000
DATA_CHANNELSHFT = 16

TRAILER_COUNTMASK = 0x3FFFFFFF

OVERFLOW_VALUE = 9999


def _long_at(event: Sequence[int], offset: int) -> int | None:
    if offset + 1 >= len(event):
        return None
    return get_long(event, offset)


def _word_type(datum: int | None) -> int | None:
    if datum is None:
        return None
    return (datum & ALL_TYPEMASK) >> ALL_TYPESHFT


class MADC32Unpacker(ModuleUnpacker):
    """Decodes one MADC-32 block: header, data words, trailer and the closing BERR word."""

    def __init__(self, description: Mapping) -> None:
        name = description["moduleName"]
        vsn = int(description["vsn"])
        super().__init__(name, vsn, AdcData(name))
        self.total_unpacked = 0
        self.overflow_count = 0
        self.vsn_mismatch_count = 0

    def decode_vsn(self, header: int) -> int:
        return (header & HDR_IDMASK) >> HDR_IDSHFT

    def unpack(self, event: Sequence[int], offset: int) -> int:
        self.module.clear()

        header = get_long(event, offset)
        if header == 0xFFFFFFFF:  # module had no data
            return offset + 2

        if _word_type(header) != TYPE_HEADER:
            return offset

        longs_read = 1
        module_id = self.decode_vsn(header)
        if module_id != self.vsn:
            log.warning("VSN mismatch: %d %d", module_id, self.vsn)
            self.vsn_mismatch_count += 1
            return offset

        if self.vsn == -1 and event[offset] == 0xFFFF and event[offset + 1] == 0xFFFF:
            return offset + 2

        offset += 2

        datum = _long_at(event, offset)
        longs_read += 1
        offset += 2

        while _word_type(datum) == TYPE_DATA:
            channel = (datum & DATA_CHANNELMASK) >> DATA_CHANNELSHFT
            if datum & DATA_ISOVERFLOW:
                self.overflow_count += 1
                self.module.set_data(channel, OVERFLOW_VALUE)
            else:
                self.module.set_data(channel, datum & DATA_VALUEMASK)
            datum = _long_at(event, offset)
            longs_read += 1
            offset += 2

        if _word_type(datum) != TYPE_TRAILER:
            longs_read -= 1

        self.total_unpacked += longs_read

        # Skip the 0xffffffff longword left by the BERR ending the readout.
        return offset + 2

    def summary(self) -> str:
        if self.total_unpacked:
            percent = 100 * self.overflow_count / self.total_unpacked
        else:
            percent = float("nan")
        return (
            f"-- module {self.name} --\n"
            f"{self.total_unpacked} total unpacked data\n"
            f"{self.vsn_mismatch_count} VSN mismatches found\n"
            f"{percent:.1f} % overflows data\n"
            "\n"
        )