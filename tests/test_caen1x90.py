import pytest

from hiraevt.base import SingleHitTdcData, TdcData
from hiraevt.caen1x90 import (
    ERROR_STRINGS,
    TYPE_ERROR,
    TYPE_GBLHEAD,
    TYPE_GBLTRAIL,
    TYPE_TDCHEAD,
    TYPE_TDCTRAIL,
    CAEN1x90Unpacker,
    error_messages,
)


def _split(value):
    return [value & 0xFFFF, value >> 16]


def _words(*longs):
    out = []
    for value in longs:
        out.extend(_split(value))
    return out


def _desc(**overrides):
    desc = {
        "moduleName": "tdc",
        "vsn": 5,
        "numberCh": 64,
        "refCh": 0,
        "nsPerCh": 0.5,
    }
    desc.update(overrides)
    return desc


def _hit64(channel, time):
    return (channel << 19) | time


def test_construct_modules():
    assert isinstance(CAEN1x90Unpacker(_desc()).module, TdcData)
    single = CAEN1x90Unpacker(_desc(singleHit=True))
    assert isinstance(single.module, SingleHitTdcData)
    assert single.single_hit is True


def test_too_many_channels():
    with pytest.raises(ValueError):
        CAEN1x90Unpacker(_desc(numberCh=256))


def test_bad_channel_count():
    with pytest.raises(ValueError):
        CAEN1x90Unpacker(_desc(numberCh=48))


def test_missing_key():
    desc = _desc()
    del desc["nsPerCh"]
    with pytest.raises(KeyError):
        CAEN1x90Unpacker(desc)


def test_decode_vsn():
    unpacker = CAEN1x90Unpacker(_desc())
    assert unpacker.decode_vsn(TYPE_GBLHEAD | 5) == 5


def test_multi_hit_with_reference():
    unpacker = CAEN1x90Unpacker(_desc())
    body = _words(
        TYPE_GBLHEAD | 5,
        TYPE_TDCHEAD,
        _hit64(0, 100),
        _hit64(3, 300),
        _hit64(3, 400),
        TYPE_TDCTRAIL,
        TYPE_GBLTRAIL,
    )
    event = body + [0xFFFF, 0xFFFF]
    offset = unpacker.unpack(event, 0)
    assert offset == len(body)
    assert unpacker.module.hits[0] == [0.0]
    assert unpacker.module.hits[3] == [0.5 * (300 - 100), 0.5 * (400 - 100)]
    assert unpacker.total_unpacked == 3


def test_single_hit_keeps_first():
    unpacker = CAEN1x90Unpacker(_desc(singleHit=True, refCh=-1, nsPerCh=1.0))
    event = _words(TYPE_GBLHEAD | 5, _hit64(2, 50), _hit64(2, 80), TYPE_GBLTRAIL)
    unpacker.unpack(event, 0)
    assert unpacker.module.data == {2: 50.0}


def test_no_reference_hit_discards():
    unpacker = CAEN1x90Unpacker(_desc(refCh=1))
    event = _words(TYPE_GBLHEAD | 5, _hit64(3, 300), TYPE_GBLTRAIL)
    unpacker.unpack(event, 0)
    assert unpacker.no_reference_count == 1
    assert unpacker.module.hits == {}
    assert unpacker.total_unpacked == 1


def test_not_tdc_data_returns_offset():
    unpacker = CAEN1x90Unpacker(_desc())
    event = [0x1234] + _words(0x12345678, TYPE_GBLTRAIL)
    assert unpacker.unpack(event, 1) == 1
    assert unpacker.vsn_mismatch_count == 0


def test_vsn_mismatch():
    unpacker = CAEN1x90Unpacker(_desc())
    event = _words(TYPE_GBLHEAD | 6, _hit64(0, 1), TYPE_GBLTRAIL)
    assert unpacker.unpack(event, 0) == 0
    assert unpacker.vsn_mismatch_count == 1


def test_premature_end():
    unpacker = CAEN1x90Unpacker(_desc(refCh=-1))
    event = _words(TYPE_GBLHEAD | 5, _hit64(1, 10), 0xFFFFFFFF, _hit64(2, 20))
    offset = unpacker.unpack(event, 0)
    assert offset == 4
    assert set(unpacker.module.hits) == {1}


def test_no_hits_leaves_counters():
    unpacker = CAEN1x90Unpacker(_desc())
    event = _words(TYPE_GBLHEAD | 5, TYPE_TDCHEAD, TYPE_TDCTRAIL, TYPE_GBLTRAIL)
    assert unpacker.unpack(event, 0) == len(event)
    assert unpacker.total_unpacked == 0
    assert unpacker.no_reference_count == 0


def test_error_word_counted():
    unpacker = CAEN1x90Unpacker(_desc(refCh=-1))
    event = _words(TYPE_GBLHEAD | 5, TYPE_ERROR | 0b1, _hit64(0, 5), TYPE_GBLTRAIL)
    unpacker.unpack(event, 0)
    assert unpacker.error_count == 1
    assert unpacker.module.hits == {0: [2.5]}


def test_32_channel_layout():
    unpacker = CAEN1x90Unpacker(_desc(numberCh=32, refCh=-1, nsPerCh=1.0))
    event = _words(TYPE_GBLHEAD | 5, (31 << 21) | 0x1FFFFF, TYPE_GBLTRAIL)
    unpacker.unpack(event, 0)
    assert unpacker.module.hits == {31: [float(0x1FFFFF)]}


def test_clear_between_events():
    unpacker = CAEN1x90Unpacker(_desc(refCh=-1))
    unpacker.unpack(_words(TYPE_GBLHEAD | 5, _hit64(1, 10), TYPE_GBLTRAIL), 0)
    unpacker.unpack(_words(TYPE_GBLHEAD | 5, _hit64(2, 10), TYPE_GBLTRAIL), 0)
    assert set(unpacker.module.hits) == {2}
    assert unpacker.total_unpacked == 2


def test_error_messages():
    assert error_messages(TYPE_ERROR | 0b101) == [ERROR_STRINGS[0], ERROR_STRINGS[2]]
    assert error_messages(TYPE_ERROR) == []
    assert error_messages(0x7FFF) == list(ERROR_STRINGS)


def test_report_error_returns_messages():
    unpacker = CAEN1x90Unpacker(_desc())
    messages = unpacker.report_error(TYPE_ERROR | (1 << 14), 5)
    assert messages == ["Internal Fatal Chip error has been detected"]


def test_summary():
    unpacker = CAEN1x90Unpacker(_desc())
    unpacker.unpack(_words(TYPE_GBLHEAD | 6), 0)
    text = unpacker.summary()
    assert text.startswith("-- module tdc --\n")
    assert "1 VSN mismatches found" in text
    assert "0 errors produced" in text