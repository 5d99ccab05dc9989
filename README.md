# hiraevt

Decoders for the raw 16-bit word streams read out of VME data-acquisition
stacks. The package turns each module's section of an event into
per-channel values:

- `hiraevt.caen1x90.CAEN1x90Unpacker`: CAEN V1190/V1290 multi-hit TDCs,
  with optional reference-channel subtraction and single-hit mode
- `hiraevt.caen7xx.CAEN7xxUnpacker`: CAEN V775/V785/V792/V862 32-channel
  digitizers
- `hiraevt.madc32.MADC32Unpacker`: Mesytec MADC-32 ADCs
- `hiraevt.sis_timestamp.SisTimestampUnpacker`: two 48-bit SIS timestamps

`hiraevt.fragments.FragmentIndex` splits event-builder output into its
fragments. `hiraevt.stack.StackUnpacker` runs every configured module of a
VM-USB stack across a physics event.

## Installation

```
pip install .
```

The package has no runtime dependencies. To run the tests, install the test
extra and run pytest:

```
pip install ".[test]"
pytest
```

## Module descriptions

Each module is described by a mapping, usually read from a JSON
configuration file. `create_unpacker` builds the unpacker named by
`moduleType`:

```python
from hiraevt.factory import create_unpacker

tdc = create_unpacker({
    "moduleType": "HTCAEN1x90Unpacker",
    "moduleName": "tdc1",
    "vsn": 5,
    "numberCh": 128,
    "refCh": 127,
    "nsPerCh": 0.1,
    "singleHit": False,
})
```

The supported types are `HTSisTimestampUnpacker`, `HTCAEN1x90Unpacker`,
`HTCAEN7xxUnpacker` and `HTMADC32Unpacker`. Every type except the
timestamp needs `moduleName` and `vsn`. The 1x90 TDC also needs `numberCh`,
`refCh` and `nsPerCh`, and it takes `singleHit` as an option. Any other type
raises `ValueError`. So does a 1x90 channel count other than 16, 32, 64 or
128. Set `refCh` to a negative number if the TDC has no reference channel.

## Unpacking a module

`unpack(event, offset)` takes a sequence of 16-bit words and the index where
the module's data starts. It returns the offset of the first word it did not
consume. The unpacker's `module` attribute holds the decoded values:

- `AdcData.data`: channel -> value. Overflows are stored as 4096 for CAEN
  7xx modules and as 9999 for MADC-32.
- `TdcData.hits`: channel -> list of calibrated times in ns, in arrival order.
- `SingleHitTdcData.data`: channel -> first calibrated time.
- `TimestampData.values`: index (0 or 1) -> timestamp.

`decode_vsn(header)` extracts the virtual slot number from a header longword.
`summary()` returns the run counters (data unpacked, VSN mismatches,
overflows, TDC errors) as text. TDC error words are reported through the
`logging` module. `hiraevt.caen1x90.error_messages(word)` returns the
description of each error bit that is set.

```python
from hiraevt.base import get_long, hex_dump

word = get_long(event, 0)          # two little-endian 16-bit words -> 32 bits
print(hex_dump(event, 0, 16, 8))
```

## Stacks and fragments

```python
from hiraevt.stack import StackUnpacker, find_evt_files

files = find_evt_files("/data/evt", 42)   # run42/run-0042-00.evt, -01.evt, ...
unpacker = StackUnpacker(config, file_length=sum(p.stat().st_size for p in files))
snapshot = unpacker.handle_physics_event(body_words, body_size_in_bytes)
print(unpacker.summary())
```

`config` is the experiment configuration. `VMEstacks` lists the stacks, and
each stack has a `stackID` and its `modules`. If the input comes from the
event builder, set `mergedData` to true. The body is then indexed with
`FragmentIndex.from_body`, and each fragment whose source id names a stack is
unpacked on its own. `handle_physics_event` returns a copy of every module's
data object, keyed by module name. `unpack_stack` returns the offset it
reached, or `None` if the declared size does not match the stack header.
Stack buffers that are not fully consumed are counted per stack in
`buffer_mismatch_count`. `progress_line(elapsed)` formats a progress bar with
the elapsed time and an estimate of the time remaining.

## What this package does not do

There is no command-line program. The package does not read ring items out
of event files: `find_evt_files` only locates the files of a run. The caller
supplies each physics event body as 16-bit words. Begin-run and end-run
state changes are not handled. Unpacked data is returned as Python objects
and is not written to any output file.