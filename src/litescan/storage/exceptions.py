"""
Storage Exceptions - Errors raised while opening and decoding the file
"""

from typing import Optional
from ..exceptions import LiteScanError


class StorageError(LiteScanError):
    """Base class for file level errors, carrying page/offset context"""

    def __init__(self, message: str, page_number: Optional[int] = None,
                 offset: Optional[int] = None):
        self.page_number = page_number
        self.offset = offset
        context = []
        if page_number is not None:
            context.append(f"page {page_number}")
        if offset is not None:
            context.append(f"offset {offset}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


# Open errors

class OpenError(StorageError):
    """Database file could not be opened"""
    pass


class DatabaseNotFoundError(OpenError):
    """Database file does not exist"""
    pass


class InvalidHeaderError(OpenError):
    """File header is not a supported SQLite 3 header"""
    pass


# Decode errors

class DecodeError(StorageError):
    """Bytes could not be decoded into values"""
    pass


class MalformedVarintError(DecodeError):
    """Buffer ended before a varint terminated"""
    pass


class CorruptRecordError(DecodeError):
    """Record header or body is inconsistent with its payload"""
    pass


class UnsupportedSerialTypeError(DecodeError):
    """Record uses one of the reserved serial types"""
    pass


# Traversal errors

class TraversalError(StorageError):
    """B-tree structure is inconsistent"""
    pass


class CorruptPageError(TraversalError):
    """Page header, cell pointer or cell falls outside the page"""
    pass


class OverflowChainBrokenError(TraversalError):
    """Overflow page chain ended early, looped or ran off the file"""
    pass
