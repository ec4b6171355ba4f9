"""
Varint Codec - Variable-length big-endian integers

A varint is 1 to 9 bytes long. The first eight bytes contribute their low
7 bits and use the high bit as a continuation flag; a ninth byte contributes
all 8 bits.
"""

from typing import Tuple
from .exceptions import MalformedVarintError
from ..constants import MAX_VARINT_LENGTH


def decode_varint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """
    Decode one varint

    Args:
        data: Buffer holding the varint
        offset: Position of the first varint byte

    Returns:
        (unsigned 64-bit value, number of bytes consumed)

    Raises:
        MalformedVarintError: If the buffer ends before the varint does
    """
    value = 0
    for i in range(MAX_VARINT_LENGTH):
        position = offset + i
        if position >= len(data):
            raise MalformedVarintError(
                f"Varint truncated after {i} byte(s)", offset=offset)
        byte = data[position]
        if i == MAX_VARINT_LENGTH - 1:
            return (value << 8) | byte, MAX_VARINT_LENGTH
        value = (value << 7) | (byte & 0x7F)
        if not byte & 0x80:
            return value, i + 1

    # unreachable: the ninth byte always returns
    raise MalformedVarintError("Varint too long", offset=offset)


def to_signed64(value: int) -> int:
    """Reinterpret an unsigned 64-bit value as two's complement"""
    if value >= 1 << 63:
        return value - (1 << 64)
    return value
