"""
Record Codec - Decodes record payloads into typed values

A record is a varint header length, one serial type varint per column, then
the column bodies in the same order.
"""

import struct
from dataclasses import dataclass, field
from typing import List, Optional
from .varint import decode_varint
from .exceptions import CorruptRecordError, UnsupportedSerialTypeError
from ..types.value import Value, Type

# Serial types 1..6 are big-endian two's complement integers of these widths
INTEGER_WIDTHS = {1: 1, 2: 2, 3: 3, 4: 4, 5: 6, 6: 8}


@dataclass
class Record:
    """Decoded record: serial types and values in column order"""
    serial_types: List[int] = field(default_factory=list)
    values: List[Value] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.values)

    def __getitem__(self, index: int) -> Value:
        return self.values[index]

    def __iter__(self):
        return iter(self.values)


def serial_type_size(serial_type: int, page_number: Optional[int] = None) -> int:
    """
    Number of body bytes used by a serial type

    Raises:
        UnsupportedSerialTypeError: For the reserved types 10 and 11
    """
    if serial_type in (0, 8, 9):
        return 0
    if serial_type in INTEGER_WIDTHS:
        return INTEGER_WIDTHS[serial_type]
    if serial_type == 7:
        return 8
    if serial_type in (10, 11):
        raise UnsupportedSerialTypeError(
            f"Reserved serial type {serial_type}", page_number=page_number)
    if serial_type % 2 == 0:
        return (serial_type - 12) // 2
    return (serial_type - 13) // 2


def decode_value(serial_type: int, body: bytes, encoding: str = 'utf-8') -> Value:
    """Decode one column body according to its serial type"""
    if serial_type == 0:
        return Value(Type.NULL)
    if serial_type in INTEGER_WIDTHS:
        return Value(Type.INTEGER, int.from_bytes(body, 'big', signed=True))
    if serial_type == 7:
        return Value(Type.FLOAT, struct.unpack('>d', body)[0])
    if serial_type == 8:
        return Value(Type.INTEGER, 0)
    if serial_type == 9:
        return Value(Type.INTEGER, 1)
    if serial_type % 2 == 0:
        return Value(Type.BLOB, bytes(body))
    return Value(Type.TEXT, bytes(body).decode(encoding, errors='replace'))


def decode_record(payload: bytes, encoding: str = 'utf-8',
                  page_number: Optional[int] = None) -> Record:
    """
    Decode a complete record payload

    Args:
        payload: Full payload bytes (overflow already reassembled)
        encoding: Python codec name for TEXT values
        page_number: Page holding the cell, used in error messages

    Returns:
        Record with one value per serial type in the header

    Raises:
        CorruptRecordError: If the header or a body runs past the payload
        UnsupportedSerialTypeError: If a reserved serial type is present
        MalformedVarintError: If a header varint is truncated
    """
    header_length, offset = decode_varint(payload, 0)
    if header_length > len(payload) or header_length < offset:
        raise CorruptRecordError(
            f"Record header length {header_length} does not fit payload of "
            f"{len(payload)} bytes", page_number=page_number)

    serial_types = []
    header = payload[:header_length]
    while offset < header_length:
        serial_type, consumed = decode_varint(header, offset)
        serial_types.append(serial_type)
        offset += consumed

    record = Record()
    body_offset = header_length
    for serial_type in serial_types:
        size = serial_type_size(serial_type, page_number)
        if body_offset + size > len(payload):
            raise CorruptRecordError(
                f"Column body of {size} bytes runs past payload end",
                page_number=page_number, offset=body_offset)
        body = payload[body_offset:body_offset + size]
        record.serial_types.append(serial_type)
        record.values.append(decode_value(serial_type, body, encoding))
        body_offset += size

    return record
