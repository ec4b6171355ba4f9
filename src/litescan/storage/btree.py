"""
B-Tree Walker - Traverses table and index b-trees

Table trees are keyed by rowid and hold records in their leaves; interior
cells only route. Index trees are keyed by record comparison and every cell,
interior or leaf, holds an index entry whose last column is the rowid.
"""

import struct
from dataclasses import dataclass
from typing import Iterator, List, Optional, Set, Tuple
from .buffer_pool import BufferPool
from .page import Page, IndexInteriorCell
from .record import Record, decode_record
from .exceptions import CorruptPageError, CorruptRecordError, OverflowChainBrokenError
from ..constants import OVERFLOW_POINTER_SIZE
from ..types.value import Value, Type


@dataclass
class IndexEntry:
    """One index cell: key columns plus the rowid of the table row"""
    key: List[Value]
    rowid: int


class BTreeWalker:
    """Walks b-trees through the buffer pool, reassembling overflow payloads"""

    def __init__(self, buffer_pool: BufferPool):
        self.buffer_pool = buffer_pool
        self.file_manager = buffer_pool.file_manager
        self.encoding = self.file_manager.header.encoding
        self.table_pages_visited = 0
        self.index_pages_visited = 0
        self.overflow_pages_visited = 0

    # --------------------------------------------------------------------
    # Page and payload access
    # --------------------------------------------------------------------

    def _load(self, page_number: int, table: bool, path: Set[int]) -> Page:
        if page_number in path:
            raise CorruptPageError("B-tree child points back at an ancestor",
                                   page_number=page_number)
        page = self.buffer_pool.get_page(page_number)
        if page.page_type.is_table != table:
            expected = "table" if table else "index"
            raise CorruptPageError(f"Expected a {expected} page, found {page.page_type.name}",
                                   page_number=page_number)
        if table:
            self.table_pages_visited += 1
        else:
            self.index_pages_visited += 1
        return page

    def read_payload(self, page: Page, cell) -> bytes:
        """
        Full payload of a leaf or index cell

        Follows the overflow chain when the payload does not fit in-page.

        Raises:
            OverflowChainBrokenError: If the chain ends early, loops, leaves
                the file or continues past the end of the payload
        """
        if not cell.overflow_page:
            return cell.local_payload

        content_size = self.file_manager.usable_size - OVERFLOW_POINTER_SIZE
        remaining = cell.payload_size - len(cell.local_payload)
        parts = [cell.local_payload]
        seen = set()
        next_page = cell.overflow_page

        while remaining > 0:
            if next_page == 0:
                raise OverflowChainBrokenError(
                    f"Overflow chain ended with {remaining} payload bytes missing",
                    page_number=page.page_number)
            if next_page in seen:
                raise OverflowChainBrokenError("Overflow chain loops",
                                               page_number=next_page)
            if next_page < 1 or next_page > self.file_manager.page_count:
                raise OverflowChainBrokenError("Overflow page out of range",
                                               page_number=next_page)
            seen.add(next_page)

            data = self.file_manager.read_overflow_page(next_page)
            self.overflow_pages_visited += 1
            chunk = min(remaining, content_size)
            parts.append(data[OVERFLOW_POINTER_SIZE:OVERFLOW_POINTER_SIZE + chunk])
            remaining -= chunk
            next_page = struct.unpack_from('>I', data, 0)[0]

        if next_page != 0:
            raise OverflowChainBrokenError("Overflow chain continues past payload end",
                                           page_number=next_page)
        return b''.join(parts)

    def _record(self, page: Page, cell) -> Record:
        return decode_record(self.read_payload(page, cell), self.encoding, page.page_number)

    def _index_entry(self, page: Page, cell) -> IndexEntry:
        record = self._record(page, cell)
        if not len(record) or record[-1].type != Type.INTEGER:
            raise CorruptRecordError("Index record does not end with a rowid",
                                     page_number=page.page_number)
        return IndexEntry(record.values[:-1], record[-1].value)

    # --------------------------------------------------------------------
    # Table trees
    # --------------------------------------------------------------------

    def scan_table(self, root_page: int) -> Iterator[Tuple[int, Record]]:
        """
        Yield (rowid, record) for every row in ascending rowid order

        Args:
            root_page: Root page of the table b-tree
        """
        stack = [[self._load(root_page, True, set()), 0]]
        path = {root_page}

        while stack:
            frame = stack[-1]
            page, position = frame

            if page.is_leaf:
                for i in range(page.cell_count):
                    cell = page.cell(i)
                    yield cell.rowid, self._record(page, cell)
                stack.pop()
                path.discard(page.page_number)
                continue

            if position > page.cell_count:
                stack.pop()
                path.discard(page.page_number)
                continue

            frame[1] += 1
            if position < page.cell_count:
                child = page.cell(position).left_child
            else:
                child = page.right_most_child
            stack.append([self._load(child, True, path), 0])
            path.add(child)

    def lookup_rowid(self, root_page: int, rowid: int) -> Optional[Record]:
        """
        Point lookup of one row by rowid

        Descends a single child per interior page: the first cell whose
        rowid is >= the target, or the right-most child.

        Returns:
            The row's record, or None if no row has that rowid
        """
        path = set()
        page = self._load(root_page, True, path)

        while not page.is_leaf:
            path.add(page.page_number)
            position = self._first_rowid_at_least(page, rowid)
            if position < page.cell_count:
                child = page.cell(position).left_child
            else:
                child = page.right_most_child
            page = self._load(child, True, path)

        position = self._first_rowid_at_least(page, rowid)
        if position < page.cell_count:
            cell = page.cell(position)
            if cell.rowid == rowid:
                return self._record(page, cell)
        return None

    @staticmethod
    def _first_rowid_at_least(page: Page, rowid: int) -> int:
        """Binary search the pointer array for the first cell with rowid >= target"""
        low, high = 0, page.cell_count
        while low < high:
            middle = (low + high) // 2
            if page.cell(middle).rowid < rowid:
                low = middle + 1
            else:
                high = middle
        return low

    # --------------------------------------------------------------------
    # Index trees
    # --------------------------------------------------------------------

    def scan_index(self, root_page: int) -> Iterator[IndexEntry]:
        """
        Yield every index entry in key order

        Interior cells carry real entries, emitted between the subtree to
        their left and the next child.
        """
        stack = [[self._load(root_page, False, set()), 0]]
        path = {root_page}

        while stack:
            frame = stack[-1]
            page, position = frame

            if page.is_leaf:
                for i in range(page.cell_count):
                    yield self._index_entry(page, page.cell(i))
                stack.pop()
                path.discard(page.page_number)
                continue

            # Even positions descend into a child, odd positions emit a cell
            if position > 2 * page.cell_count:
                stack.pop()
                path.discard(page.page_number)
                continue

            frame[1] += 1
            cell_index = position // 2
            if position % 2:
                yield self._index_entry(page, page.cell(cell_index))
                continue
            if cell_index < page.cell_count:
                child = page.cell(cell_index).left_child
            else:
                child = page.right_most_child
            stack.append([self._load(child, False, path), 0])
            path.add(child)

    def seek_index(self, root_page: int, key: Value) -> Iterator[int]:
        """
        Yield rowids of index entries whose first column equals key

        Only subtrees that can hold the key are read. A NULL key never
        matches anything. Text keys are ordered by their bytes in the
        database encoding, as BINARY collation stores them.
        """
        if key.is_null:
            return
        yield from self._seek_page(root_page, key, set())

    def _seek_page(self, page_number: int, key: Value, path: Set[int]) -> Iterator[int]:
        page = self._load(page_number, False, path)
        path = path | {page_number}

        for i in range(page.cell_count):
            cell = page.cell(i)
            entry = self._index_entry(page, cell)
            order = entry.key[0].compare(key, self.encoding) if entry.key else -1
            if order < 0:
                continue
            if isinstance(cell, IndexInteriorCell):
                yield from self._seek_page(cell.left_child, key, path)
            if order > 0:
                return
            yield entry.rowid

        if not page.is_leaf:
            yield from self._seek_page(page.right_most_child, key, path)

    # --------------------------------------------------------------------
    # Statistics
    # --------------------------------------------------------------------

    def reset_stats(self) -> None:
        self.table_pages_visited = 0
        self.index_pages_visited = 0
        self.overflow_pages_visited = 0

    def get_stats(self) -> dict:
        """Page visit counters since the last reset"""
        return {
            "table_pages": self.table_pages_visited,
            "index_pages": self.index_pages_visited,
            "overflow_pages": self.overflow_pages_visited,
        }
