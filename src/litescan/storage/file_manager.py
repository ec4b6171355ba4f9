"""
File Manager Module - Read-only access to a SQLite database file
Reads and validates the file header once, then serves whole pages by number.
"""

import os
import threading
from pathlib import Path
from typing import Optional
from .header import FileHeader
from .page import Page
from .exceptions import DatabaseNotFoundError, InvalidHeaderError, CorruptPageError
from ..constants import FILE_HEADER_SIZE


class FileManager:
    """Manages positioned page reads from a database file"""

    def __init__(self, db_path: str):
        """
        Open a database file and parse its header

        Args:
            db_path: Path to database file

        Raises:
            DatabaseNotFoundError: If the file does not exist
            InvalidHeaderError: If the header is not a supported SQLite 3 header
        """
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        self.pages_read = 0

        try:
            self._file = open(self.db_path, 'rb')
        except FileNotFoundError:
            raise DatabaseNotFoundError(f"Database file not found: {self.db_path}")
        except IsADirectoryError:
            raise DatabaseNotFoundError(f"Database path is a directory: {self.db_path}")

        try:
            self.file_size = os.fstat(self._file.fileno()).st_size
            self.header = FileHeader.parse(self._file.read(FILE_HEADER_SIZE))
        except InvalidHeaderError:
            self._file.close()
            raise

        self.page_size = self.header.page_size
        self.usable_size = self.header.usable_size
        self.page_count = self.header.page_count(self.file_size)

    def _read_at(self, page_number: int) -> bytes:
        """Read the raw bytes of one page"""
        if page_number < 1 or page_number > self.page_count:
            raise CorruptPageError(
                f"Page number out of range 1..{self.page_count}", page_number=page_number)

        offset = (page_number - 1) * self.page_size
        with self._lock:
            if self._file is None:
                raise ValueError(f"Database {self.db_path} is closed")
            self._file.seek(offset)
            data = self._file.read(self.page_size)
            self.pages_read += 1

        if len(data) < self.page_size:
            raise CorruptPageError(f"Short read of {len(data)} bytes",
                                   page_number=page_number, offset=offset)
        return data

    def read_page(self, page_number: int) -> Page:
        """
        Read and decode a b-tree page

        Args:
            page_number: 1-based page number

        Returns:
            Page with its header and cell pointers decoded

        Raises:
            CorruptPageError: If the page is out of range or not a b-tree page
        """
        data = self._read_at(page_number)
        header_offset = FILE_HEADER_SIZE if page_number == 1 else 0
        return Page(page_number, data, self.usable_size, header_offset)

    def read_overflow_page(self, page_number: int) -> bytes:
        """Read an overflow page as raw bytes"""
        return self._read_at(page_number)

    def close(self) -> None:
        """Release the file handle"""
        with self._lock:
            if self._file is not None:
                self._file.close()
                self._file = None

    @property
    def closed(self) -> bool:
        return self._file is None

    def __enter__(self) -> 'FileManager':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def get_database_info(self, table_count: Optional[int] = None) -> dict:
        """Get basic database information"""
        header = self.header
        info = {
            "file_size": self.file_size,
            "page_size": header.page_size,
            "usable_size": header.usable_size,
            "total_pages": self.page_count,
            "reserved_bytes": header.reserved_bytes_per_page,
            "write_version": header.write_version,
            "read_version": header.read_version,
            "file_change_counter": header.file_change_counter,
            "freelist_pages": header.freelist_count,
            "schema_cookie": header.schema_cookie,
            "schema_format": header.schema_format,
            "text_encoding": header.encoding,
            "user_version": header.user_version,
            "application_id": header.application_id,
            "sqlite_version": header.sqlite_version_number,
        }
        if table_count is not None:
            info["number_of_tables"] = table_count
        return info

    def __repr__(self) -> str:
        return (f"FileManager(path={self.db_path}, page_size={self.page_size}, "
                f"pages={self.page_count})")
