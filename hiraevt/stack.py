"""Unpacking of VM-USB stack buffers into the configured module unpackers."""

from __future__ import annotations

import copy
import logging
import time
from collections.abc import Mapping, Sequence
from pathlib import Path

from .base import ModuleUnpacker, get_long
from .factory import create_unpacker
from .fragments import FragmentIndex

log = logging.getLogger(__name__)

VMUSB_CONTINUE = 0x1000
VMUSB_STACKID_MASK = 0xE000
VMUSB_STACKID_SHIFT = 13
VMUSB_LENGTH = 0x0FFF

_PROGRESS_EVERY = 1000


def find_evt_files(evt_directory, run_number: int) -> list[Path]:
    """Consecutive event files of a run, stopping at the first missing segment."""
    run_dir = Path(evt_directory) / f"run{run_number}"
    files = []
    while True:
        path = run_dir / f"run-{run_number:04d}-{len(files):02d}.evt"
        if not path.is_file():
            return files
        files.append(path)


def _scaled_time(seconds, int_division: bool) -> tuple[object, str]:
    if seconds < 60:
        return seconds, "s"
    if seconds < 3600:
        return (seconds // 60 if int_division else seconds / 60), "m"
    return (seconds // 3600 if int_division else seconds / 3600), "h"


class StackUnpacker:
    """Routes physics events to the module unpackers of each configured VME stack."""

    def __init__(self, config: Mapping, file_length: int) -> None:
        merged = config.get("mergedData")
        if not isinstance(merged, bool):
            log.info("Assuming unmerged data")
            merged = False
        self.merged_data = merged
        self.file_length = file_length
        self.events_unpacked = 0
        self.words_unpacked = 0
        self.stacks: dict[int, list[ModuleUnpacker]] = {}
        self.buffer_mismatch_count: dict[int, int] = {}
        self._start = time.monotonic()

        for stack in config["VMEstacks"]:
            stack_id = int(stack["stackID"])
            log.info("Creating stack with ID: %d", stack_id)
            self.stacks[stack_id] = [create_unpacker(module) for module in stack["modules"]]
            self.buffer_mismatch_count[stack_id] = 0

    def module_list(self, stack_id: int) -> list[ModuleUnpacker]:
        """The unpackers registered for ``stack_id``; KeyError when there is none."""
        return self.stacks[stack_id]

    def unpack_stack(self, body: Sequence[int], size: int) -> int | None:
        """Unpack one stack buffer of ``size`` bytes; return the event offset reached.

        Returns None when the declared size does not match the stack header.
        """
        header = body[0]
        stack_id = (header & VMUSB_STACKID_MASK) >> VMUSB_STACKID_SHIFT
        stack_words = header & VMUSB_LENGTH
        self.words_unpacked += 1

        if header & VMUSB_CONTINUE:
            log.info("Continuation bit set on event %d", self.events_unpacked)

        stack_bytes = 2 * (stack_words + 1)
        if size != stack_bytes:
            log.error("Mismatch in sizes: %d %d", size, stack_bytes)
            return None

        event = list(body[1:1 + stack_words])
        end = len(event)
        offset = 0
        for module in self.module_list(stack_id):
            while offset < end and event[offset] == 0xFFFF:
                offset += 1
            if offset + 2 > end:
                break
            vsn = module.decode_vsn(get_long(event, offset))
            if vsn == module.vsn or vsn == -1:
                offset = module.unpack(event, offset)

        while offset < end and event[offset] == 0xFFFF:
            offset += 1

        self.words_unpacked += end
        if offset < end:
            self.buffer_mismatch_count[stack_id] += 1
        return offset

    def handle_physics_event(self, body: Sequence[int], body_size: int) -> dict[str, object]:
        """Unpack one physics event and return a snapshot of every module's data."""
        self.events_unpacked += 1
        if self.events_unpacked % _PROGRESS_EVERY == 0:
            log.info("%s", self.progress_line(int(time.monotonic() - self._start)))

        if self.merged_data:
            for frag in FragmentIndex.from_body(body):
                if frag.source_id not in self.stacks:
                    log.warning("Couldn't find stack with ID: %d", frag.source_id)
                    continue
                self.unpack_stack(body[frag.item_body:], frag.size)
        else:
            self.unpack_stack(body, body_size)

        return {
            module.name: copy.deepcopy(module.module)
            for modules in self.stacks.values()
            for module in modules
        }

    def progress_line(self, elapsed: int) -> str:
        """Progress bar with elapsed and estimated remaining time."""
        bytes_read = 2 * self.words_unpacked
        percent = 100 * bytes_read // self.file_length
        filled = min(max(20 * bytes_read // self.file_length, 0), 20)
        bar = "=" * filled + " " * (20 - filled)

        value, unit = _scaled_time(elapsed, int_division=True)
        line = f"Percentage= {percent:5d} %   [{bar}]   elapsed time: {value} {unit}; "

        if self.words_unpacked > 2:
            remaining_bytes = self.file_length - bytes_read
            remaining = remaining_bytes * (elapsed / bytes_read)
            value, unit = _scaled_time(remaining, int_division=False)
            line += f"Estimated remaining time: {value:.1f} {unit}      "
        return line

    def summary(self) -> str:
        parts = [f"Unpacked {self.events_unpacked} events.\n\n"]
        for stack_id in sorted(self.stacks):
            parts.append(f"---- Stack {stack_id} ----\n")
            parts.append(f"BufferMismatches: {self.buffer_mismatch_count[stack_id]}\n\n")
            parts.extend(module.summary() for module in self.stacks[stack_id])
        return "".join(parts)