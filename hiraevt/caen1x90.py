"""Unpacker for CAEN V1190/V1290 multi-hit TDCs."""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Mapping, Sequence

from .base import ModuleUnpacker, SingleHitTdcData, TdcData, get_long, hex_dump

log = logging.getLogger(__name__)

ITEM_TYPE = 0xF8000000
TYPE_GBLHEAD = 0x40000000
TYPE_TDCHEAD = 0x08000000
TYPE_DATA = 0x00000000
TYPE_TDCTRAIL = 0x18000000
TYPE_ERROR = 0x20000000
TYPE_TRIGTIME = 0x88000000
TYPE_GBLTRAIL = 0x80000000

GBLHEAD_VSN = 0x0000001F

ERROR_TDCMASK = 0x03000000
ERROR_TDCSHIFT = 24
ERROR_BITS = 0x00007FFF

MAX_CHANNELS = 128

ERROR_STRINGS = (
    "Hit lost in group 0 from read-out FIFO overflow.",
    "Hit lost in group 0 from L1 overflow.",
    "Hit error has been detected in group 0.",
    "Hit lost in group 1 from read-out FIFO overflow,",
    "Hit lost in group 1 from L1 overflow",
    "Hit error has been detected in group 1",
    "Hit lost in group 2 from read-out FIFO overflow,",
    "Hit lost in group 2 from L1 overflow",
    "Hit error has been detected in group 2",
    "Hit lost in group 3 from read-out FIFO overflow,",
    "Hit lost in group 3 from L1 overflow",
    "Hit error has been detected in group 3",
    "Hits rejected because of programmed event size limit",
    "Event lost (trigger FIFO overflow",
    "Internal Fatal Chip error has been detected",
)

# channel count -> (channel mask, channel shift, data mask)
_V1190_LAYOUT = (0x03F80000, 19, 0x0007FFFF)  # 19 bits of data, 7 bits of channel
_V1290_LAYOUT = (0x03E00000, 21, 0x001FFFFF)  # 21 bits of data, 5 bits of channel
_LAYOUTS = {128: _V1190_LAYOUT, 64: _V1190_LAYOUT, 32: _V1290_LAYOUT, 16: _V1290_LAYOUT}


def error_messages(error_word: int) -> list[str]:
    """Return the description of every error bit set in a TDC error word, lowest bit first."""
    errors = error_word & ERROR_BITS
    return [text for bit, text in enumerate(ERROR_STRINGS) if errors & (1 << bit)]


class CAEN1x90Unpacker(ModuleUnpacker):
    """Decodes CAEN 1x90 TDC data, optionally relative to a reference channel."""

    def __init__(self, description: Mapping) -> None:
        name = description["moduleName"]
        vsn = int(description["vsn"])
        self.n_channels = int(description["numberCh"])
        self.ref_channel = int(description["refCh"])
        self.ns_per_channel = float(description["nsPerCh"])
        self.single_hit = bool(description.get("singleHit", False))

        if self.n_channels > MAX_CHANNELS:
            raise ValueError("Cannot support more than 128 channels in CAEN 1x90 tdc!")
        try:
            self.chan_mask, self.chan_shift, self.data_mask = _LAYOUTS[self.n_channels]
        except KeyError:
            raise ValueError(
                f"numberCh must be one of 16, 32, 64 or 128 but was: {self.n_channels}"
            ) from None

        module = SingleHitTdcData(name) if self.single_hit else TdcData(name)
        super().__init__(name, vsn, module)

        self.total_unpacked = 0
        self.error_count = 0
        self.no_reference_count = 0
        self.vsn_mismatch_count = 0

    def decode_vsn(self, header: int) -> int:
        return header & GBLHEAD_VSN

    def report_error(self, error_word: int, slot: int) -> list[str]:
        """Log the content of a TDC error word and return the messages for its set bits."""
        chip = (error_word & ERROR_TDCMASK) >> ERROR_TDCSHIFT
        messages = error_messages(error_word)
        log.warning("V1x90: An error word was produced by chip number %d in vsn %d", chip, slot)
        log.warning("The following error bits were set:")
        for message in messages:
            log.warning("%s", message)
        return messages

    def unpack(self, event: Sequence[int], offset: int) -> int:
        self.module.clear()

        header = get_long(event, offset)
        if header & ITEM_TYPE != TYPE_GBLHEAD:
            log.error("Not TDC Data%s", hex_dump(event, offset, len(event)))
            return offset

        if header & GBLHEAD_VSN != self.vsn:
            log.error("Failed to find TDC: %d", header & GBLHEAD_VSN)
            self.vsn_mismatch_count += 1
            return offset

        offset += 2
        end = len(event)
        raw_times: defaultdict[int, list[int]] = defaultdict(list)
        total_hits = 0

        while offset < end:
            datum = get_long(event, offset)
            if datum == 0xFFFFFFFF:
                break  # premature end of event
            offset += 2

            kind = datum & ITEM_TYPE
            if kind == TYPE_GBLTRAIL:
                while offset < end and event[offset] != 0xFFFF:
                    offset += 1
                break
            if kind == TYPE_ERROR:
                self.error_count += 1
                self.report_error(datum, self.vsn)
            elif kind == TYPE_DATA:
                channel = (datum & self.chan_mask) >> self.chan_shift
                raw_times[channel].append(datum & self.data_mask)
                total_hits += 1
            # TDC headers, TDC trailers and trigger times are ignored.

        if total_hits <= 0:
            return offset

        self.total_unpacked += total_hits

        ref_time = 0
        if self.ref_channel >= 0:
            ref_hits = raw_times.get(self.ref_channel)
            if not ref_hits:
                self.no_reference_count += 1
                return offset
            ref_time = ref_hits[0]

        for channel in range(self.n_channels):
            times = raw_times.get(channel, ())
            if self.single_hit:
                if times:
                    self.module.set_data(channel, self.ns_per_channel * (times[0] - ref_time))
            else:
                for raw in times:
                    self.module.set_next_data(channel, self.ns_per_channel * (raw - ref_time))

        return offset

    def summary(self) -> str:
        return (
            f"-- module {self.name} --\n"
            f"{self.total_unpacked} total unpacked data\n"
            f"{self.error_count} errors produced\n"
            f"{self.vsn_mismatch_count} VSN mismatches found\n"
            f"{self.no_reference_count} TDC data with no hit in reference found\n"
            "\n"
        )