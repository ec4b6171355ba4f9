"""
File Header Module - Parses the fixed 100-byte SQLite database header
"""

import struct
from dataclasses import dataclass
from typing import Optional
from .exceptions import InvalidHeaderError
from ..constants import (FILE_HEADER_SIZE, SQLITE_MAGIC, MIN_PAGE_SIZE, MAX_PAGE_SIZE,
                         MIN_USABLE_SIZE, PAYLOAD_FRACTIONS, SCHEMA_FORMATS, TEXT_ENCODINGS,
                         HEADER_PAGE_SIZE_OFFSET, HEADER_WRITE_VERSION_OFFSET,
                         HEADER_READ_VERSION_OFFSET, HEADER_RESERVED_OFFSET,
                         HEADER_MAX_FRACTION_OFFSET, HEADER_CHANGE_COUNTER_OFFSET,
                         HEADER_PAGE_COUNT_OFFSET, HEADER_FREELIST_TRUNK_OFFSET,
                         HEADER_FREELIST_COUNT_OFFSET, HEADER_SCHEMA_COOKIE_OFFSET,
                         HEADER_SCHEMA_FORMAT_OFFSET, HEADER_CACHE_SIZE_OFFSET,
                         HEADER_LARGEST_ROOT_OFFSET, HEADER_TEXT_ENCODING_OFFSET,
                         HEADER_USER_VERSION_OFFSET, HEADER_INCREMENTAL_VACUUM_OFFSET,
                         HEADER_APPLICATION_ID_OFFSET, HEADER_VERSION_VALID_FOR_OFFSET,
                         HEADER_SQLITE_VERSION_OFFSET)


def _u32(data: bytes, offset: int) -> int:
    return struct.unpack_from('>I', data, offset)[0]


@dataclass(frozen=True)
class FileHeader:
    """Decoded database file header"""
    page_size: int
    write_version: int
    read_version: int
    reserved_bytes_per_page: int
    max_payload_fraction: int
    min_payload_fraction: int
    leaf_payload_fraction: int
    file_change_counter: int
    header_page_count: int
    first_freelist_trunk: int
    freelist_count: int
    schema_cookie: int
    schema_format: int
    default_cache_size: int
    largest_root_page: int
    text_encoding: int
    user_version: int
    incremental_vacuum: int
    application_id: int
    version_valid_for: int
    sqlite_version_number: int

    @property
    def usable_size(self) -> int:
        """Bytes per page available to b-tree content"""
        return self.page_size - self.reserved_bytes_per_page

    @property
    def encoding(self) -> str:
        """Python codec name for TEXT values"""
        return TEXT_ENCODINGS[self.text_encoding]

    def page_count(self, file_size: Optional[int] = None) -> int:
        """
        Number of pages in the database

        The in-header count is only trusted when it is non-zero and was
        written by the same transaction as the change counter; otherwise the
        count is derived from the file size.
        """
        if self.header_page_count and self.version_valid_for == self.file_change_counter:
            return self.header_page_count
        if file_size is None:
            return self.header_page_count
        return file_size // self.page_size

    @classmethod
    def parse(cls, data: bytes) -> 'FileHeader':
        """
        Parse and validate the header bytes

        Args:
            data: At least the first 100 bytes of the file

        Returns:
            FileHeader

        Raises:
            InvalidHeaderError: If any field is outside the supported subset
        """
        if len(data) < FILE_HEADER_SIZE:
            raise InvalidHeaderError(
                f"File too short for a database header ({len(data)} bytes)")

        if data[:len(SQLITE_MAGIC)] != SQLITE_MAGIC:
            raise InvalidHeaderError("Not a SQLite 3 database (bad magic string)", offset=0)

        raw_page_size = struct.unpack_from('>H', data, HEADER_PAGE_SIZE_OFFSET)[0]
        page_size = MAX_PAGE_SIZE if raw_page_size == 1 else raw_page_size
        if (page_size < MIN_PAGE_SIZE or page_size > MAX_PAGE_SIZE
                or page_size & (page_size - 1)):
            raise InvalidHeaderError(f"Invalid page size {raw_page_size}",
                                     offset=HEADER_PAGE_SIZE_OFFSET)

        write_version = data[HEADER_WRITE_VERSION_OFFSET]
        read_version = data[HEADER_READ_VERSION_OFFSET]
        if read_version not in (1, 2):
            raise InvalidHeaderError(f"Unsupported read version {read_version}",
                                     offset=HEADER_READ_VERSION_OFFSET)

        reserved = data[HEADER_RESERVED_OFFSET]
        if page_size - reserved < MIN_USABLE_SIZE:
            raise InvalidHeaderError(
                f"Reserved space {reserved} leaves too little usable space",
                offset=HEADER_RESERVED_OFFSET)

        fractions = tuple(data[HEADER_MAX_FRACTION_OFFSET:HEADER_MAX_FRACTION_OFFSET + 3])
        if fractions != PAYLOAD_FRACTIONS:
            raise InvalidHeaderError(f"Unexpected payload fractions {fractions}",
                                     offset=HEADER_MAX_FRACTION_OFFSET)

        schema_format = _u32(data, HEADER_SCHEMA_FORMAT_OFFSET)
        # Format 0 appears in freshly created files that have no schema yet
        if schema_format not in SCHEMA_FORMATS and schema_format != 0:
            raise InvalidHeaderError(f"Unsupported schema format {schema_format}",
                                     offset=HEADER_SCHEMA_FORMAT_OFFSET)

        text_encoding = _u32(data, HEADER_TEXT_ENCODING_OFFSET)
        if text_encoding == 0:
            text_encoding = 1
        if text_encoding not in TEXT_ENCODINGS:
            raise InvalidHeaderError(f"Unknown text encoding {text_encoding}",
                                     offset=HEADER_TEXT_ENCODING_OFFSET)

        return cls(
            page_size=page_size,
            write_version=write_version,
            read_version=read_version,
            reserved_bytes_per_page=reserved,
            max_payload_fraction=fractions[0],
            min_payload_fraction=fractions[1],
            leaf_payload_fraction=fractions[2],
            file_change_counter=_u32(data, HEADER_CHANGE_COUNTER_OFFSET),
            header_page_count=_u32(data, HEADER_PAGE_COUNT_OFFSET),
            first_freelist_trunk=_u32(data, HEADER_FREELIST_TRUNK_OFFSET),
            freelist_count=_u32(data, HEADER_FREELIST_COUNT_OFFSET),
            schema_cookie=_u32(data, HEADER_SCHEMA_COOKIE_OFFSET),
            schema_format=schema_format,
            default_cache_size=_u32(data, HEADER_CACHE_SIZE_OFFSET),
            largest_root_page=_u32(data, HEADER_LARGEST_ROOT_OFFSET),
            text_encoding=text_encoding,
            user_version=_u32(data, HEADER_USER_VERSION_OFFSET),
            incremental_vacuum=_u32(data, HEADER_INCREMENTAL_VACUUM_OFFSET),
            application_id=_u32(data, HEADER_APPLICATION_ID_OFFSET),
            version_valid_for=_u32(data, HEADER_VERSION_VALID_FOR_OFFSET),
            sqlite_version_number=_u32(data, HEADER_SQLITE_VERSION_OFFSET),
        )
