"""
Catalog Exceptions - Errors raised while loading the schema catalog
"""

from ..exceptions import LiteScanError


class SchemaError(LiteScanError):
    """Base class for schema catalog errors"""
    pass


class UnparseableCreateStatementError(SchemaError):
    """Stored creation SQL could not be parsed enough to recover columns"""

    def __init__(self, object_name: str, sql: str, reason: str):
        self.object_name = object_name
        self.sql = sql
        super().__init__(f"Cannot parse creation SQL for {object_name}: {reason}")
