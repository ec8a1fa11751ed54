import pytest
from hypothesis import given, strategies as st

from sysref.fw import (
    FW_SERIALIZE_FALSE_VALUE,
    FW_SERIALIZE_TRUE_VALUE,
    Buffer,
    CmdResponse,
    TimeBase,
    decode_bool,
    encode_bool,
)


def test_encode_bool_wire_bytes():
    assert encode_bool(True) == b"\xff"
    assert encode_bool(False) == b"\x00"


@given(st.booleans())
def test_bool_round_trip(value):
    assert decode_bool(encode_bool(value)) is value


def test_decode_bool_from_int():
    assert decode_bool(FW_SERIALIZE_TRUE_VALUE) is True
    assert decode_bool(FW_SERIALIZE_FALSE_VALUE) is False


@given(st.integers(min_value=1, max_value=0xFE))
def test_decode_bool_rejects_other_bytes(value):
    with pytest.raises(ValueError):
        decode_bool(value)


def test_decode_bool_rejects_wrong_length():
    with pytest.raises(ValueError):
        decode_bool(b"\xff\x00")
    with pytest.raises(ValueError):
        decode_bool(b"")


def test_buffer_converts_bytes_and_reports_size():
    buf = Buffer(b"abc", context=7)
    assert isinstance(buf.data, bytearray)
    assert buf.size == 3
    assert len(buf) == 3
    assert bytes(buf) == b"abc"
    assert buf.context == 7


@given(st.binary(max_size=64), st.data())
def test_buffer_size_setter_truncates(payload, data):
    buf = Buffer(payload)
    new_size = data.draw(st.integers(min_value=0, max_value=len(payload)))
    buf.size = new_size
    assert buf.size == new_size
    assert bytes(buf) == payload[:new_size]


def test_buffer_size_setter_rejects_growth_and_negative():
    buf = Buffer(b"ab")
    with pytest.raises(ValueError):
        buf.size = 3
    with pytest.raises(ValueError):
        buf.size = -1
    assert bytes(buf) == b"ab"


def test_buffer_allocate_and_validity():
    buf = Buffer.allocate(5, context=2)
    assert bytes(buf) == bytes(5)
    assert buf.context == 2
    assert buf.valid is True
    assert Buffer().valid is False
    with pytest.raises(ValueError):
        Buffer.allocate(-1)


def test_buffer_equality_uses_data_and_context():
    assert Buffer(b"xy", 1) == Buffer(bytearray(b"xy"), 1)
    assert not Buffer(b"xy", 1) == Buffer(b"xy", 2)


def test_enum_lookup_by_value():
    assert TimeBase(0xFFFF) is TimeBase.TB_DONT_CARE
    assert CmdResponse(CmdResponse.BUSY.value) is CmdResponse.BUSY
    with pytest.raises(ValueError):
        TimeBase(3)