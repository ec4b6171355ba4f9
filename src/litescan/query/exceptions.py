"""
Query Exceptions - Errors raised while planning and executing queries
"""

from ..exceptions import LiteScanError


class QueryError(LiteScanError):
    """Base class for query errors"""
    pass


class TableNotFoundError(QueryError):
    """Request names a table absent from the schema"""

    def __init__(self, table_name: str):
        self.table_name = table_name
        super().__init__(f"Table not found: {table_name}")


class ColumnNotFoundError(QueryError):
    """Request names a column absent from its table"""

    def __init__(self, column_name: str, table_name: str):
        self.column_name = column_name
        self.table_name = table_name
        super().__init__(f"Column not found: {column_name} in table {table_name}")


class UnsupportedQueryError(QueryError):
    """Request is outside the supported SELECT subset"""
    pass
