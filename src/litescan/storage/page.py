"""
Page Module - Read-only b-tree pages for LiteScan
Decodes the b-tree page header, the cell pointer array and the four cell
layouts. Each page's cell layout is chosen once from its type byte.
"""

import struct
from dataclasses import dataclass
from enum import Enum
from typing import List, Union
from .exceptions import CorruptPageError
from .varint import decode_varint, to_signed64
from ..constants import (BTREE_PAGE_TYPE_OFFSET, BTREE_FIRST_FREEBLOCK_OFFSET,
                         BTREE_CELL_COUNT_OFFSET, BTREE_CONTENT_START_OFFSET,
                         BTREE_FRAGMENTED_OFFSET, BTREE_RIGHT_MOST_OFFSET,
                         LEAF_HEADER_SIZE, INTERIOR_HEADER_SIZE, MAX_PAGE_SIZE,
                         INTERIOR_INDEX_PAGE, INTERIOR_TABLE_PAGE,
                         LEAF_INDEX_PAGE, LEAF_TABLE_PAGE)


class PageType(Enum):
    """B-tree page types, valued by their on-disk type byte"""
    INTERIOR_INDEX = INTERIOR_INDEX_PAGE
    INTERIOR_TABLE = INTERIOR_TABLE_PAGE
    LEAF_INDEX = LEAF_INDEX_PAGE
    LEAF_TABLE = LEAF_TABLE_PAGE

    @property
    def is_leaf(self) -> bool:
        return self in (PageType.LEAF_TABLE, PageType.LEAF_INDEX)

    @property
    def is_table(self) -> bool:
        return self in (PageType.LEAF_TABLE, PageType.INTERIOR_TABLE)


@dataclass(frozen=True)
class TableLeafCell:
    rowid: int
    payload_size: int
    local_payload: bytes
    overflow_page: int = 0


@dataclass(frozen=True)
class TableInteriorCell:
    left_child: int
    rowid: int


@dataclass(frozen=True)
class IndexLeafCell:
    payload_size: int
    local_payload: bytes
    overflow_page: int = 0


@dataclass(frozen=True)
class IndexInteriorCell:
    left_child: int
    payload_size: int
    local_payload: bytes
    overflow_page: int = 0


Cell = Union[TableLeafCell, TableInteriorCell, IndexLeafCell, IndexInteriorCell]


def local_payload_size(payload_size: int, usable_size: int, table_leaf: bool) -> int:
    """
    Number of payload bytes stored on the b-tree page itself

    Args:
        payload_size: Total payload size P
        usable_size: Usable page size U
        table_leaf: True for table leaf cells, False for index cells

    Returns:
        P when the payload fits, otherwise the size of the in-page prefix
    """
    if table_leaf:
        max_local = usable_size - 35
    else:
        max_local = ((usable_size - 12) * 64 // 255) - 23
    if payload_size <= max_local:
        return payload_size

    min_local = ((usable_size - 12) * 32 // 255) - 23
    surplus = min_local + (payload_size - min_local) % (usable_size - 4)
    if surplus <= max_local:
        return surplus
    return min_local


class Page:
    """Decoded b-tree page with typed, bounds-checked data access"""

    def __init__(self, page_number: int, data: bytes, usable_size: int,
                 header_offset: int = 0):
        """
        Decode a page header and its cell pointer array

        Args:
            page_number: 1-based page number
            data: Raw page bytes
            usable_size: Page size minus reserved bytes
            header_offset: Where the b-tree header starts (100 on page 1)

        Raises:
            CorruptPageError: On an unknown page type or bad cell pointers
        """
        self.page_number = page_number
        self.data = data
        self.usable_size = usable_size
        self.header_offset = header_offset

        type_byte = self.read_byte(header_offset + BTREE_PAGE_TYPE_OFFSET)
        try:
            self.page_type = PageType(type_byte)
        except ValueError:
            raise CorruptPageError(f"Unknown b-tree page type 0x{type_byte:02x}",
                                   page_number=page_number, offset=header_offset)

        self.first_freeblock = self.read_short(header_offset + BTREE_FIRST_FREEBLOCK_OFFSET)
        self.cell_count = self.read_short(header_offset + BTREE_CELL_COUNT_OFFSET)
        self.cell_content_start = (
            self.read_short(header_offset + BTREE_CONTENT_START_OFFSET) or MAX_PAGE_SIZE)
        self.fragmented_free_bytes = self.read_byte(header_offset + BTREE_FRAGMENTED_OFFSET)

        if self.page_type.is_leaf:
            self.right_most_child = 0
            self.header_size = LEAF_HEADER_SIZE
        else:
            self.right_most_child = self.read_int(header_offset + BTREE_RIGHT_MOST_OFFSET)
            self.header_size = INTERIOR_HEADER_SIZE

        pointer_start = header_offset + self.header_size
        pointer_end = pointer_start + 2 * self.cell_count
        self.cell_pointers: List[int] = []
        for position in range(pointer_start, pointer_end, 2):
            pointer = self.read_short(position)
            if pointer < pointer_end or pointer >= usable_size:
                raise CorruptPageError(f"Cell pointer {pointer} outside cell content area",
                                       page_number=page_number, offset=position)
            self.cell_pointers.append(pointer)

    # --------------------------------------------------------------------
    # Typed Data Access Methods
    # --------------------------------------------------------------------

    def _check(self, offset: int, length: int) -> None:
        if offset < 0 or offset + length > len(self.data):
            raise CorruptPageError(f"Read of {length} byte(s) exceeds page bounds",
                                   page_number=self.page_number, offset=offset)

    def read_byte(self, offset: int) -> int:
        """Read single byte from offset"""
        self._check(offset, 1)
        return self.data[offset]

    def read_short(self, offset: int) -> int:
        """Read 2-byte unsigned integer (big-endian)"""
        self._check(offset, 2)
        return struct.unpack_from('>H', self.data, offset)[0]

    def read_int(self, offset: int) -> int:
        """Read 4-byte unsigned integer (big-endian)"""
        self._check(offset, 4)
        return struct.unpack_from('>I', self.data, offset)[0]

    def read_bytes(self, offset: int, length: int) -> bytes:
        """Read raw bytes from offset"""
        self._check(offset, length)
        return bytes(self.data[offset:offset + length])

    def read_varint(self, offset: int):
        """Read a varint, returning (value, bytes consumed)"""
        self._check(offset, 1)
        return decode_varint(self.data, offset)

    # --------------------------------------------------------------------
    # Cells
    # --------------------------------------------------------------------

    @property
    def is_leaf(self) -> bool:
        return self.page_type.is_leaf

    def cell(self, index: int) -> Cell:
        """
        Decode the cell at a position in the pointer array

        Args:
            index: Position in the cell pointer array (logical key order)

        Returns:
            One of the four cell variants, chosen by the page type
        """
        offset = self.cell_pointers[index]
        if self.page_type == PageType.LEAF_TABLE:
            payload_size, consumed = self.read_varint(offset)
            offset += consumed
            rowid, consumed = self.read_varint(offset)
            offset += consumed
            local, overflow = self._read_payload(offset, payload_size, table_leaf=True)
            return TableLeafCell(to_signed64(rowid), payload_size, local, overflow)

        if self.page_type == PageType.INTERIOR_TABLE:
            left_child = self.read_int(offset)
            rowid, _ = self.read_varint(offset + 4)
            return TableInteriorCell(left_child, to_signed64(rowid))

        if self.page_type == PageType.LEAF_INDEX:
            payload_size, consumed = self.read_varint(offset)
            local, overflow = self._read_payload(offset + consumed, payload_size,
                                                 table_leaf=False)
            return IndexLeafCell(payload_size, local, overflow)

        left_child = self.read_int(offset)
        payload_size, consumed = self.read_varint(offset + 4)
        local, overflow = self._read_payload(offset + 4 + consumed, payload_size,
                                             table_leaf=False)
        return IndexInteriorCell(left_child, payload_size, local, overflow)

    def cells(self) -> List[Cell]:
        """All cells in pointer-array order"""
        return [self.cell(i) for i in range(self.cell_count)]

    def _read_payload(self, offset: int, payload_size: int, table_leaf: bool):
        local_size = local_payload_size(payload_size, self.usable_size, table_leaf)
        pointer_size = 4 if local_size < payload_size else 0
        if offset + local_size + pointer_size > self.usable_size:
            raise CorruptPageError(f"Cell payload of {local_size} bytes overruns page",
                                   page_number=self.page_number, offset=offset)
        local = self.read_bytes(offset, local_size)
        overflow_page = 0
        if pointer_size:
            overflow_page = self.read_int(offset + local_size)
        return local, overflow_page

    def __repr__(self) -> str:
        """String representation of page"""
        return (f"Page(number={self.page_number}, type={self.page_type.name}, "
                f"cells={self.cell_count}, right_most={self.right_most_child})")
