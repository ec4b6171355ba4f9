"""
LiteScan - Format Constants
Offsets and limits for the SQLite 3 file format, plus engine defaults.
"""

# File Header (first 100 bytes of page 1)
FILE_HEADER_SIZE = 100
SQLITE_MAGIC = b"SQLite format 3\x00"

HEADER_MAGIC_OFFSET = 0  # 16 bytes
HEADER_PAGE_SIZE_OFFSET = 16  # 2 bytes, 1 means 65536
HEADER_WRITE_VERSION_OFFSET = 18  # 1 byte
HEADER_READ_VERSION_OFFSET = 19  # 1 byte
HEADER_RESERVED_OFFSET = 20  # 1 byte
HEADER_MAX_FRACTION_OFFSET = 21  # 1 byte, must be 64
HEADER_MIN_FRACTION_OFFSET = 22  # 1 byte, must be 32
HEADER_LEAF_FRACTION_OFFSET = 23  # 1 byte, must be 32
HEADER_CHANGE_COUNTER_OFFSET = 24  # 4 bytes
HEADER_PAGE_COUNT_OFFSET = 28  # 4 bytes
HEADER_FREELIST_TRUNK_OFFSET = 32  # 4 bytes
HEADER_FREELIST_COUNT_OFFSET = 36  # 4 bytes
HEADER_SCHEMA_COOKIE_OFFSET = 40  # 4 bytes
HEADER_SCHEMA_FORMAT_OFFSET = 44  # 4 bytes, 1..4
HEADER_CACHE_SIZE_OFFSET = 48  # 4 bytes
HEADER_LARGEST_ROOT_OFFSET = 52  # 4 bytes
HEADER_TEXT_ENCODING_OFFSET = 56  # 4 bytes
HEADER_USER_VERSION_OFFSET = 60  # 4 bytes
HEADER_INCREMENTAL_VACUUM_OFFSET = 64  # 4 bytes
HEADER_APPLICATION_ID_OFFSET = 68  # 4 bytes
HEADER_VERSION_VALID_FOR_OFFSET = 92  # 4 bytes
HEADER_SQLITE_VERSION_OFFSET = 96  # 4 bytes

MIN_PAGE_SIZE = 512
MAX_PAGE_SIZE = 65536
MIN_USABLE_SIZE = 480
PAYLOAD_FRACTIONS = (64, 32, 32)
SCHEMA_FORMATS = (1, 2, 3, 4)

# Text encodings stored at HEADER_TEXT_ENCODING_OFFSET
TEXT_ENCODINGS = {
    1: 'utf-8',
    2: 'utf-16-le',
    3: 'utf-16-be',
}

# B-tree Page Header
BTREE_PAGE_TYPE_OFFSET = 0  # 1 byte
BTREE_FIRST_FREEBLOCK_OFFSET = 1  # 2 bytes
BTREE_CELL_COUNT_OFFSET = 3  # 2 bytes
BTREE_CONTENT_START_OFFSET = 5  # 2 bytes, 0 means 65536
BTREE_FRAGMENTED_OFFSET = 7  # 1 byte
BTREE_RIGHT_MOST_OFFSET = 8  # 4 bytes, interior pages only
LEAF_HEADER_SIZE = 8
INTERIOR_HEADER_SIZE = 12

# Page type codes
INTERIOR_INDEX_PAGE = 0x02
INTERIOR_TABLE_PAGE = 0x05
LEAF_INDEX_PAGE = 0x0A
LEAF_TABLE_PAGE = 0x0D

# Varints
MAX_VARINT_LENGTH = 9

# Overflow pages start with a 4-byte pointer to the next page in the chain
OVERFLOW_POINTER_SIZE = 4

# Schema catalog (sqlite_schema) lives in the table b-tree rooted at page 1
CATALOG_ROOT_PAGE = 1
CATALOG_TABLE_NAMES = ('sqlite_master', 'sqlite_schema',
                       'sqlite_temp_master', 'sqlite_temp_schema')
CATALOG_COLUMNS = (
    ('type', 'TEXT'),
    ('name', 'TEXT'),
    ('tbl_name', 'TEXT'),
    ('rootpage', 'INT'),
    ('sql', 'TEXT'),
)
INTERNAL_TABLE_PREFIX = 'sqlite_'

# Engine defaults
DEFAULT_CACHE_CAPACITY = 100  # decoded pages kept by the buffer pool
