"""
Query Engine - Main interface for reading a database and executing queries
"""

from typing import List
from ..parser.parser import Parser
from ..parser.ast import (SelectStatement, FunctionCall, Expression,
                          BinaryExpression, ColumnExpression, LiteralExpression)
from ..catalog.catalog import Catalog
from ..catalog.schema import TableSchema
from ..storage.file_manager import FileManager
from ..storage.buffer_pool import BufferPool
from ..storage.btree import BTreeWalker
from ..storage.header import FileHeader
from ..types.value import Value, Type
from ..constants import DEFAULT_CACHE_CAPACITY
from .planner import Planner, QueryRequest, QueryPlan, Filter
from .executor import Executor, QueryResult
from .exceptions import UnsupportedQueryError


class QueryEngine:
    """Open database handle that coordinates catalog, planning and execution"""

    def __init__(self, file_manager: FileManager, cache_capacity: int = DEFAULT_CACHE_CAPACITY):
        """
        Build the engine over an open file and load its schema catalog

        Args:
            file_manager: Open FileManager
            cache_capacity: Pages kept by the buffer pool
        """
        self.file_manager = file_manager
        self.buffer_pool = BufferPool(file_manager, cache_capacity)
        self.walker = BTreeWalker(self.buffer_pool)
        try:
            self.catalog = Catalog(self.walker)
        except Exception:
            file_manager.close()
            raise
        self.planner = Planner(self.catalog)
        self.executor = Executor(self.walker)

    @classmethod
    def open(cls, db_path: str, cache_capacity: int = DEFAULT_CACHE_CAPACITY) -> 'QueryEngine':
        """
        Open a database file

        Raises:
            DatabaseNotFoundError: If the file does not exist
            InvalidHeaderError: If it is not a supported SQLite 3 file
            SchemaError: If the schema catalog cannot be loaded
        """
        return cls(FileManager(db_path), cache_capacity)

    @property
    def header(self) -> FileHeader:
        return self.file_manager.header

    def schema(self) -> Catalog:
        """The loaded schema catalog"""
        return self.catalog

    def describe(self, table_name: str) -> TableSchema:
        """Table metadata by name"""
        return self.catalog.lookup(table_name)

    def table_names(self) -> List[str]:
        """Sorted user table names"""
        return self.catalog.table_names()

    def plan(self, request: QueryRequest) -> QueryPlan:
        return self.planner.plan(request)

    def execute(self, request: QueryRequest) -> QueryResult:
        """
        Execute a structured query request

        Returns:
            Lazy QueryResult

        Raises:
            TableNotFoundError, ColumnNotFoundError, UnsupportedQueryError
        """
        return self.executor.execute(self.planner.plan(request))

    def execute_sql(self, sql: str) -> QueryResult:
        """
        Parse a restricted SELECT statement and execute it

        Raises:
            LiteScanParseError: For syntax errors
            QueryError: For unknown names or unsupported query shapes
        """
        statement = Parser.parse_sql(sql.strip())
        if not isinstance(statement, SelectStatement):
            raise UnsupportedQueryError("Only SELECT statements can be executed")
        return self.execute(self.request_from_select(statement))

    def request_from_select(self, statement: SelectStatement) -> QueryRequest:
        """Translate a parsed SELECT into a QueryRequest"""
        request = QueryRequest(table_name=statement.table_name, columns=[],
                               limit=statement.limit)

        for column in statement.columns:
            if isinstance(column, FunctionCall):
                if column.function_name != 'COUNT' or not column.star:
                    raise UnsupportedQueryError(
                        f"Unsupported function {column.function_name}; only COUNT(*) is supported")
                request.count_only = True
            else:
                request.columns.append(column.name)

        if request.count_only and request.columns:
            raise UnsupportedQueryError("COUNT(*) cannot be combined with other columns")

        if statement.where_clause is not None:
            request.where = self._filter_from_expression(statement.table_name,
                                                         statement.where_clause)
        return request

    def _filter_from_expression(self, table_name: str, expr: Expression) -> Filter:
        """Accept only column = literal (either way round)"""
        if not isinstance(expr, BinaryExpression) or expr.operator != '=':
            raise UnsupportedQueryError("WHERE supports a single column = value comparison")

        left, right = expr.left, expr.right
        if isinstance(left, LiteralExpression) and isinstance(right, ColumnExpression):
            left, right = right, left
        if not isinstance(left, ColumnExpression):
            raise UnsupportedQueryError("WHERE must compare a column with a value")

        if isinstance(right, LiteralExpression):
            return Filter(left.column.name, right.literal.to_value())

        if isinstance(right, ColumnExpression) and right.column.quoted:
            # A double-quoted word that names no column is a string literal
            table = self.catalog.get_table(table_name)
            if table is None or table.get_column(right.column.name) is None:
                return Filter(left.column.name, Value(Type.TEXT, right.column.name))

        raise UnsupportedQueryError("WHERE must compare a column with a literal value")

    def dbinfo(self) -> dict:
        """Header summary plus the number of tables in the catalog"""
        return self.file_manager.get_database_info(table_count=self.catalog.table_count())

    def get_stats(self) -> dict:
        """I/O counters: pages read, buffer pool and b-tree visits"""
        return {
            "pages_read": self.file_manager.pages_read,
            "buffer_pool": self.buffer_pool.get_stats(),
            "btree": self.walker.get_stats(),
        }

    def close(self) -> None:
        """Close the underlying file"""
        self.buffer_pool.clear()
        self.file_manager.close()

    def __enter__(self) -> 'QueryEngine':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"QueryEngine({self.file_manager.db_path}, {self.catalog})"
