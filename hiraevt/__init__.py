"""Decoders for VME digitizer readout, VM-USB stacks and event-builder fragments."""

__version__ = "2.0.0"