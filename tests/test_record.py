import struct

import pytest
from litescan.storage.record import decode_record, serial_type_size
from litescan.storage.exceptions import CorruptRecordError, UnsupportedSerialTypeError
from litescan.types.value import Value, Type


def build_record(serial_types, body):
    """Record with single-byte header varints"""
    header = bytes([len(serial_types) + 1] + list(serial_types))
    return header + body


def test_mixed_record():
    payload = build_record(
        [0, 1, 17, 8, 9, 7, 18],
        b'\x2a' + b'hi' + struct.pack('>d', 1.5) + b'\x01\x02\x03')

    record = decode_record(payload)

    assert record.serial_types == [0, 1, 17, 8, 9, 7, 18]
    assert record.values == [
        Value(Type.NULL),
        Value(Type.INTEGER, 42),
        Value(Type.TEXT, 'hi'),
        Value(Type.INTEGER, 0),
        Value(Type.INTEGER, 1),
        Value(Type.FLOAT, 1.5),
        Value(Type.BLOB, b'\x01\x02\x03'),
    ]
    assert len(record) == 7
    assert record[2].value == 'hi'


def test_signed_integer_widths():
    payload = build_record(
        [2, 3, 4, 5, 6],
        b'\xff\xfe' + b'\x80\x00\x00' + b'\x00\x01\x00\x00'
        + b'\xff\xff\xff\xff\xff\xff' + struct.pack('>q', -2 ** 63))

    values = [value.value for value in decode_record(payload)]
    assert values == [-2, -8388608, 65536, -1, -2 ** 63]


def test_empty_text_and_blob():
    record = decode_record(build_record([13, 12], b''))
    assert record.values == [Value(Type.TEXT, ''), Value(Type.BLOB, b'')]


def test_utf16_text():
    text = 'héllo'.encode('utf-16-be')
    payload = build_record([13 + 2 * len(text)], text)
    assert decode_record(payload, 'utf-16-be')[0].value == 'héllo'


def test_invalid_utf8_is_replaced():
    payload = build_record([13 + 2 * 2], b'a\xff')
    assert decode_record(payload)[0].value == 'a�'


def test_serial_type_sizes():
    assert serial_type_size(0) == 0
    assert serial_type_size(5) == 6
    assert serial_type_size(6) == 8
    assert serial_type_size(7) == 8
    assert serial_type_size(12) == 0
    assert serial_type_size(13) == 0
    assert serial_type_size(20) == 4
    assert serial_type_size(21) == 4


@pytest.mark.parametrize("serial_type", [10, 11])
def test_reserved_serial_types(serial_type):
    with pytest.raises(UnsupportedSerialTypeError):
        decode_record(build_record([serial_type], b''))


def test_body_past_payload_end():
    with pytest.raises(CorruptRecordError):
        decode_record(build_record([6], b'\x00\x00'))


def test_header_longer_than_payload():
    with pytest.raises(CorruptRecordError):
        decode_record(bytes([9, 1]))


def test_error_carries_page_number():
    with pytest.raises(CorruptRecordError) as excinfo:
        decode_record(build_record([6], b''), page_number=7)
    assert excinfo.value.page_number == 7
    assert "page 7" in str(excinfo.value)
