"""Unpacker for CAEN 32-channel digitizers (V775, V785, V792, V862)."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from .base import AdcData, ModuleUnpacker, get_long

log = logging.getLogger(__name__)

ALLH_TYPEMASK = 0x07000000
ALLH_TYPESHIFT = 24
ALLH_GEOMASK = 0xF8000000
ALLH_GEOSHIFT = 27

DATAH_CHANMASK = 0x003F0000
DATAH_CHANSHIFT = 16

DATAL_UNBIT = 0x2000
DATAL_OVBIT = 0x1000
DATAL_DATAMASK = 0x0FFF

HEADER = 2
DATA = 0
TRAILER = 4
INVALID = 6

OVERFLOW_VALUE = 4096


def _long_at(event: Sequence[int], offset: int) -> int | None:
    """Longword at ``offset``, or None when it runs past the end of the event."""
    if offset + 1 >= len(event):
        return None
    return get_long(event, offset)


def _word_type(datum: int | None) -> int | None:
    if datum is None:
        return None
    return (datum & ALLH_TYPEMASK) >> ALLH_TYPESHIFT


class CAEN7xxUnpacker(ModuleUnpacker):
    """Decodes one CAEN 7xx module's block: header, data words and trailer(s).

    Readout of a module may be suppressed entirely; the header carries the
    virtual slot number, so blocks belonging to other modules are left alone.
    """

    def __init__(self, description: Mapping) -> None:
        name = description["moduleName"]
        vsn = int(description["vsn"])
        super().__init__(name, vsn, AdcData(name))
        self.total_unpacked = 0
        self.overflow_count = 0
        self.vsn_mismatch_count = 0

    def decode_vsn(self, header: int) -> int:
        return (header & ALLH_GEOMASK) >> ALLH_GEOSHIFT

    def unpack(self, event: Sequence[int], offset: int) -> int:
        self.module.clear()

        header = get_long(event, offset)
        vsn = self.decode_vsn(header)
        if vsn != self.vsn:
            log.error("VSN wrong: %d %d", vsn, self.vsn)
            self.vsn_mismatch_count += 1
            return offset

        if self.vsn == -1 and event[offset] == 0xFFFF and event[offset + 1] == 0xFFFF:
            return offset + 2

        offset += 2

        # A lone trailer means the module had nothing to report.
        if _word_type(header) != TRAILER:
            datum = _long_at(event, offset)
            offset += 2

            while _word_type(datum) == DATA:
                underflow = bool(datum & DATAL_UNBIT)
                overflow = bool(datum & DATAL_OVBIT)
                self.total_unpacked += 1

                if not underflow:
                    channel = (datum & DATAH_CHANMASK) >> DATAH_CHANSHIFT
                    if overflow:
                        self.overflow_count += 1
                        self.module.set_data(channel, OVERFLOW_VALUE)
                    else:
                        self.module.set_data(channel, datum & DATAL_DATAMASK)

                datum = _long_at(event, offset)
                offset += 2

            # Trailers are sometimes duplicated.
            while _word_type(datum) == TRAILER:
                datum = _long_at(event, offset)
                offset += 2
            offset -= 2  # the last longword read was not a trailer

        # An extra 0xffffffff follows when not chained or at the end of a chain.
        if _long_at(event, offset) == 0xFFFFFFFF:
            offset += 2

        return offset

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