"""Creation of module unpackers from their JSON descriptions."""

from __future__ import annotations

from collections.abc import Mapping

from .base import ModuleUnpacker
from .caen1x90 import CAEN1x90Unpacker
from .caen7xx import CAEN7xxUnpacker
from .madc32 import MADC32Unpacker
from .sis_timestamp import SisTimestampUnpacker

UNPACKER_TYPES = {
    "HTSisTimestampUnpacker": SisTimestampUnpacker,
    "HTCAEN1x90Unpacker": CAEN1x90Unpacker,
    "HTCAEN7xxUnpacker": CAEN7xxUnpacker,
    "HTMADC32Unpacker": MADC32Unpacker,
}


def create_unpacker(description: Mapping) -> ModuleUnpacker:
    """Build the unpacker named by ``description["moduleType"]``."""
    unpacker_type = description["moduleType"]
    try:
        cls = UNPACKER_TYPES[unpacker_type]
    except KeyError:
        raise ValueError(f"The module type {unpacker_type} is not supported!") from None
    return cls(description)