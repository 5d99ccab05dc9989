import pytest

from hiraevt.base import (
    AdcData,
    ModuleUnpacker,
    SingleHitTdcData,
    TdcData,
    TimestampData,
    get_long,
    hex_dump,
)


def _split(value):
    return [value & 0xFFFF, value >> 16]


@pytest.mark.parametrize("value", [0, 1, 0xFFFF, 0x10000, 0xFFFFFFFF, 0x40000005])
def test_get_long_round_trip(value):
    assert get_long(_split(value), 0) == value


def test_get_long_uses_offset():
    event = [0xAAAA] + _split(0x12345678)
    assert get_long(event, 1) == 0x12345678


def test_get_long_low_word_first():
    assert get_long([0x0001, 0x0000], 0) == 1


def test_get_long_short_event_raises():
    with pytest.raises(IndexError):
        get_long([1], 0)


def test_hex_dump_format():
    assert hex_dump([0x1, 0xABCD], 0, 2, 8) == "\n0001 abcd \n"


def test_hex_dump_line_breaks():
    event = list(range(10))
    text = hex_dump(event, 0, 10, 4)
    lines = [line for line in text.split("\n") if line]
    assert [len(line.split()) for line in lines] == [4, 4, 2]


def test_hex_dump_offset_and_count():
    event = [0x1111, 0x2222, 0x3333, 0x4444]
    text = hex_dump(event, 1, 2)
    assert text.split() == ["2222", "3333"]


def test_adc_data_set_and_clear():
    adc = AdcData("adc")
    adc.set_data(3, 100)
    adc.set_data(3, 200)
    adc.set_data(5, 7)
    assert adc.data == {3: 200, 5: 7}
    adc.clear()
    assert adc.data == {}


def test_tdc_data_keeps_hit_order():
    tdc = TdcData("tdc")
    tdc.set_next_data(1, 2.5)
    tdc.set_next_data(1, 1.5)
    tdc.set_next_data(4, 9.0)
    assert tdc.hits == {1: [2.5, 1.5], 4: [9.0]}
    tdc.clear()
    assert tdc.hits == {}


def test_single_hit_overwrites():
    tdc = SingleHitTdcData("tdc")
    tdc.set_data(2, 1.0)
    tdc.set_data(2, 3.0)
    assert tdc.data == {2: 3.0}
    tdc.clear()
    assert tdc.data == {}


def test_timestamp_data():
    ts = TimestampData("ts")
    ts.set_data(0, 10)
    ts.set_data(1, 20)
    assert ts.values == {0: 10, 1: 20}
    ts.clear()
    assert ts.values == {}


def test_module_unpacker_is_abstract():
    with pytest.raises(TypeError):
        ModuleUnpacker("x", 1, AdcData("x"))


def test_subclass_str_is_name():
    class Dummy(ModuleUnpacker):
        def unpack(self, event, offset):
            return offset

        def decode_vsn(self, header):
            return header

        def summary(self):
            return self.name

    dummy = Dummy("mod", 4, AdcData("mod"))
    assert str(dummy) == "mod"
    assert dummy.vsn == 4
    assert dummy.unpack([], 7) == 7